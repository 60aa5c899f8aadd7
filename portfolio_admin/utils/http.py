# portfolio_admin/utils/http.py
import json
from http.cookies import SimpleCookie
from urllib.parse import parse_qs, urlsplit

JSON_CONTENT_TYPE = ("Content-Type", "application/json")
HTML_CONTENT_TYPE = ("Content-Type", "text/html; charset=utf-8")


def _read_body(environ) -> bytes:
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        raise ValueError("Invalid Content-Length header.")
    return environ["wsgi.input"].read(content_length) if content_length > 0 else b""


def get_request_data(environ):
    """JSON 요청 본문을 딕셔너리로 읽습니다."""
    body = _read_body(environ)
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object.")
    return data


def get_form_data(environ):
    """application/x-www-form-urlencoded 본문을 {이름: 첫 번째 값} 형태로 읽습니다."""
    body = _read_body(environ).decode("utf-8")
    return {key: values[0] for key, values in parse_qs(body, keep_blank_values=True).items()}


def get_query_params(environ):
    return {key: values[0] for key, values in parse_qs(environ.get("QUERY_STRING", "")).items()}


def json_response(status, payload):
    return status, json.dumps(payload), [JSON_CONTENT_TYPE]


def html_response(status, body, headers=None):
    return status, body, [HTML_CONTENT_TYPE] + list(headers or [])


def redirect_response(location, headers=None, status="302 Found"):
    return status, "", [("Location", location)] + list(headers or [])


def session_cookie_header(name, token, max_age):
    cookie = SimpleCookie()
    cookie[name] = token
    cookie[name]["path"] = "/"
    cookie[name]["httponly"] = True
    cookie[name]["samesite"] = "Lax"
    cookie[name]["max-age"] = max_age
    return ("Set-Cookie", cookie[name].OutputString())


def clear_cookie_header(name):
    return session_cookie_header(name, "", 0)


def safe_next_path(value, default="/admin"):
    """오픈 리다이렉트를 막기 위해 같은 사이트의 절대 경로만 허용합니다."""
    if not isinstance(value, str) or not value.startswith("/") or value.startswith("//"):
        return default
    # 브라우저는 역슬래시를 슬래시로 바꾸므로 /\host 형태도 외부 주소가 됩니다.
    if "\\" in value or any(ord(ch) < 32 for ch in value):
        return default
    try:
        parts = urlsplit(value)
    except ValueError:
        return default
    if parts.scheme or parts.netloc:
        return default
    return value
