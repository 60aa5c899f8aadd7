# portfolio_admin/access/page_guard.py
"""
페이지 단위 가드.

Route Guard와 Server Guard가 실제 보안 경계이며, 이 가드는 화면 전체를
보여줄지 결정하는 2차 방어선입니다.
"""
import functools
from enum import Enum
from urllib.parse import quote

from portfolio_admin.utils.http import html_response, redirect_response
from .auth_context import AuthContext


class PageDecision(Enum):
    LOADING = "loading"
    RENDER = "render"
    FALLBACK = "fallback"
    REDIRECT = "redirect"
    UNAUTHORIZED = "unauthorized"


def decide_page(context: AuthContext, require_admin: bool = False, has_fallback: bool = False) -> PageDecision:
    if context.is_loading:
        return PageDecision.LOADING
    if not context.is_authenticated:
        return PageDecision.FALLBACK if has_fallback else PageDecision.REDIRECT
    if require_admin and not context.is_admin:
        return PageDecision.FALLBACK if has_fallback else PageDecision.UNAUTHORIZED
    return PageDecision.RENDER


def page_guard(require_admin: bool = False, fallback: str = None):
    """
    페이지 핸들러를 감싸 인증/권한이 없을 때 본문 대신 다른 화면을 돌려줍니다.

    핸들러는 (environ, *path_args)를 받으며, environ['auth']에 AuthContext,
    environ['renderer']에 템플릿 렌더러가 있어야 합니다.

    Args:
        require_admin: True이면 ADMIN만 본문을 볼 수 있습니다. 기본값은 인증만 요구합니다.
        fallback: 거부 시 렌더링할 템플릿 이름. 없으면 로그인 리다이렉트나
            'unauthorized.html' 화면을 사용합니다.
    """
    def decorator(handler):
        @functools.wraps(handler)
        def wrapper(environ, *args):
            context = environ['auth']
            renderer = environ['renderer']
            decision = decide_page(context, require_admin=require_admin, has_fallback=fallback is not None)

            if decision is PageDecision.RENDER:
                return handler(environ, *args)
            if decision is PageDecision.LOADING:
                return html_response('200 OK', renderer.render('loading.html', auth=context))
            if decision is PageDecision.FALLBACK:
                return html_response('200 OK', renderer.render(fallback, auth=context))
            if decision is PageDecision.REDIRECT:
                path = environ.get("PATH_INFO", "/")
                return redirect_response(f"{environ['settings'].login_path}?next={quote(path)}")
            return html_response('403 Forbidden', renderer.render('unauthorized.html', auth=context))
        return wrapper
    return decorator
