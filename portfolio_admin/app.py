# portfolio_admin/app.py
from wsgiref.simple_server import make_server
import json
import logging
import re
import sys

from portfolio_admin.config import settings, configure_logging
from portfolio_admin.database.database import SessionLocal
from portfolio_admin.database.db_init import initialize_db
from portfolio_admin.repositories.sqlalchemy.sqlalchemy_user_repository import SqlalchemyUserRepository
from portfolio_admin.repositories.sqlalchemy.sqlalchemy_project_repository import SqlalchemyProjectRepository
from portfolio_admin.repositories.sqlalchemy.sqlalchemy_session_repository import SqlalchemySessionRepository
from portfolio_admin.services.identity_service import IdentityService
from portfolio_admin.services.project_service import ProjectService
from portfolio_admin.services.exceptions import *
from portfolio_admin.access.auth_context import AuthContext
from portfolio_admin.access.page_guard import page_guard
from portfolio_admin.access.route_guard import RouteGuard, RouteGuardMiddleware, SESSION_ENVIRON_KEY
from portfolio_admin.access.server_guard import require_auth, require_manager_or_admin, require_admin
from portfolio_admin.access.session_resolver import IdentitySessionResolver
from portfolio_admin.utils.http import (
    get_request_data, get_form_data, get_query_params, json_response, html_response,
    redirect_response, session_cookie_header, clear_cookie_header, safe_next_path, JSON_CONTENT_TYPE,
)
from portfolio_admin.utils.template_renderer import TemplateRenderer

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def handle_exception(e):
    """도메인 예외를 HTTP 상태와 JSON 본문으로 변환합니다."""
    error_map = [
        (UnauthorizedError, "401 Unauthorized"),
        (AuthenticationError, "401 Unauthorized"),
        (ProjectNotFoundError, "404 Not Found"),
        (UserNotFoundError, "404 Not Found"),
        (RoleNotFoundError, "404 Not Found"),
        (ProjectValidationError, "400 Bad Request"),
        (UserCreationError, "400 Bad Request"),
        (ValueError, "400 Bad Request"),
    ]
    for exc_type, status in error_map:
        if isinstance(e, exc_type):
            break
    else:
        logger.exception("Unhandled error while processing request.")
        return json_response("500 Internal Server Error", {"error": "Internal Server Error"})

    if isinstance(e, UnauthorizedError):
        return json_response(status, {"error": "Unauthorized", "reason": e.reason})
    payload = {"error": str(e)}
    if isinstance(e, ProjectValidationError):
        payload["fields"] = e.errors
    return json_response(status, payload)


def build_services(db_session, app_settings):
    """요청마다 리포지토리와 서비스 객체를 생성합니다."""
    user_repo = SqlalchemyUserRepository(db_session)
    project_repo = SqlalchemyProjectRepository(db_session)
    session_repo = SqlalchemySessionRepository(db_session)
    return {
        'identity': IdentityService(user_repo, session_repo, session_ttl_hours=app_settings.session_ttl_hours),
        'project': ProjectService(project_repo),
    }


def _session_max_age(environ):
    return environ['settings'].session_ttl_hours * 3600


def _cookie_name(environ):
    return environ['settings'].session_cookie_name

# --------------------------------------------------------------------------
## 페이지 핸들러
# --------------------------------------------------------------------------

def home_page(environ, *args):
    projects = environ['services']['project'].list_projects(only_active=True)
    return html_response('200 OK', environ['renderer'].render('home.html', auth=environ['auth'], projects=projects))

def login_page(environ, *args):
    next_path = safe_next_path(get_query_params(environ).get('next'))
    if environ['auth'].is_authenticated:
        return redirect_response(next_path)
    return html_response('200 OK', environ['renderer'].render('login.html', auth=environ['auth'], next_path=next_path))

def login_submit(environ, *args):
    form = get_form_data(environ)
    next_path = safe_next_path(form.get('next'))
    try:
        result = environ['auth'].sign_in(form.get('email', ''), form.get('password', ''))
    except AuthenticationError as e:
        body = environ['renderer'].render('login.html', auth=environ['auth'], next_path=next_path, email=form.get('email'), error=str(e))
        return html_response('401 Unauthorized', body)
    cookie = session_cookie_header(_cookie_name(environ), result['token'], _session_max_age(environ))
    return redirect_response(next_path, [cookie], status='303 See Other')

def logout_submit(environ, *args):
    environ['auth'].sign_out()
    return redirect_response('/', [clear_cookie_header(_cookie_name(environ))], status='303 See Other')

@page_guard()
def admin_dashboard_page(environ, *args):
    projects = environ['services']['project'].list_projects(only_active=False)
    body = environ['renderer'].render('admin/dashboard.html', auth=environ['auth'], project_count=len(projects))
    return html_response('200 OK', body)

@page_guard()
def admin_projects_page(environ, *args):
    projects = environ['services']['project'].list_projects(only_active=False)
    return html_response('200 OK', environ['renderer'].render('admin/projects.html', auth=environ['auth'], projects=projects))

def admin_create_project(environ, *args):
    require_manager_or_admin(environ)
    form = get_form_data(environ)
    try:
        environ['services']['project'].create_project(form)
    except ProjectValidationError as e:
        projects = environ['services']['project'].list_projects(only_active=False)
        body = environ['renderer'].render('admin/projects.html', auth=environ['auth'], projects=projects, error=str(e))
        return html_response('400 Bad Request', body)
    return redirect_response('/admin/projects', status='303 See Other')

def admin_update_project(environ, project_id):
    require_manager_or_admin(environ)
    form = get_form_data(environ)
    # 체크되지 않은 체크박스는 폼에 포함되지 않습니다.
    form['is_active'] = 'is_active' in form
    try:
        environ['services']['project'].update_project(project_id, form)
    except ProjectValidationError as e:
        projects = environ['services']['project'].list_projects(only_active=False)
        body = environ['renderer'].render('admin/projects.html', auth=environ['auth'], projects=projects, error=str(e))
        return html_response('400 Bad Request', body)
    return redirect_response('/admin/projects', status='303 See Other')

def admin_delete_project(environ, project_id):
    require_manager_or_admin(environ)
    environ['services']['project'].delete_project(project_id)
    return redirect_response('/admin/projects', status='303 See Other')

@page_guard(require_admin=True)
def admin_users_page(environ, *args):
    users = environ['services']['identity'].list_users()
    return html_response('200 OK', environ['renderer'].render('admin/users.html', auth=environ['auth'], users=users))

def admin_change_role(environ, user_id):
    require_admin(environ)
    form = get_form_data(environ)
    environ['services']['identity'].change_role(int(user_id), form.get('role'))
    return redirect_response('/admin/users', status='303 See Other')

def admin_delete_user(environ, user_id):
    require_admin(environ)
    environ['services']['identity'].delete_user(int(user_id))
    return redirect_response('/admin/users', status='303 See Other')

# --------------------------------------------------------------------------
## API 핸들러
# --------------------------------------------------------------------------

def sign_up_handler(environ, *args):
    data = get_request_data(environ)
    result = environ['auth'].sign_up(data.get('name'), data.get('email'), data.get('password'))
    cookie = session_cookie_header(_cookie_name(environ), result['token'], _session_max_age(environ))
    return '201 Created', json.dumps(result), [JSON_CONTENT_TYPE, cookie]

def sign_in_handler(environ, *args):
    data = get_request_data(environ)
    result = environ['auth'].sign_in(data.get('email'), data.get('password'))
    cookie = session_cookie_header(_cookie_name(environ), result['token'], _session_max_age(environ))
    return '201 Created', json.dumps(result), [JSON_CONTENT_TYPE, cookie]

def sign_out_handler(environ, *args):
    require_auth(environ)
    environ['auth'].sign_out()
    return '204 No Content', '', [clear_cookie_header(_cookie_name(environ))]

def session_handler(environ, *args):
    return json_response('200 OK', environ['auth'].as_dict())

def list_projects_handler(environ, *args):
    include_inactive = get_query_params(environ).get('all') in ('1', 'true')
    if include_inactive:
        require_manager_or_admin(environ)
    projects = environ['services']['project'].list_projects(only_active=not include_inactive)
    return json_response('200 OK', {"projects": projects})

def get_project_handler(environ, project_id):
    project = environ['services']['project'].get_project(project_id)
    if not project['is_active']:
        require_manager_or_admin(environ)
    return json_response('200 OK', project)

def create_project_handler(environ, *args):
    require_manager_or_admin(environ)
    data = get_request_data(environ)
    project = environ['services']['project'].create_project(data)
    return json_response('201 Created', project)

def update_project_handler(environ, project_id):
    require_manager_or_admin(environ)
    data = get_request_data(environ)
    project = environ['services']['project'].update_project(project_id, data)
    return json_response('200 OK', project)

def delete_project_handler(environ, project_id):
    require_manager_or_admin(environ)
    environ['services']['project'].delete_project(project_id)
    return '204 No Content', '', []

def list_users_handler(environ, *args):
    require_admin(environ)
    users = environ['services']['identity'].list_users()
    return json_response('200 OK', {"users": users})

def get_user_handler(environ, user_id):
    require_admin(environ)
    user = environ['services']['identity'].get_user(int(user_id))
    return json_response('200 OK', user)

def change_role_handler(environ, user_id):
    require_admin(environ)
    data = get_request_data(environ)
    user = environ['services']['identity'].change_role(int(user_id), data.get('role'))
    return json_response('200 OK', user)

def delete_user_handler(environ, user_id):
    require_admin(environ)
    environ['services']['identity'].delete_user(int(user_id))
    return '204 No Content', '', []

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

PROJECT_ID = r'([a-zA-Z0-9-]+)'

ROUTES = [
    ('GET', r'^/$', home_page),
    ('GET', r'^/login$', login_page),
    ('POST', r'^/login$', login_submit),
    ('POST', r'^/logout$', logout_submit),
    ('GET', r'^/admin/?$', admin_dashboard_page),
    ('GET', r'^/admin/projects$', admin_projects_page),
    ('POST', r'^/admin/projects$', admin_create_project),
    ('POST', rf'^/admin/projects/{PROJECT_ID}$', admin_update_project),
    ('POST', rf'^/admin/projects/{PROJECT_ID}/delete$', admin_delete_project),
    ('GET', r'^/admin/users$', admin_users_page),
    ('POST', r'^/admin/users/([0-9]+)/role$', admin_change_role),
    ('POST', r'^/admin/users/([0-9]+)/delete$', admin_delete_user),
    ('POST', r'^/api/auth/sign-up$', sign_up_handler),
    ('POST', r'^/api/auth/sign-in$', sign_in_handler),
    ('POST', r'^/api/auth/sign-out$', sign_out_handler),
    ('GET', r'^/api/auth/session$', session_handler),
    ('GET', r'^/api/projects$', list_projects_handler),
    ('POST', r'^/api/projects$', create_project_handler),
    ('GET', rf'^/api/projects/{PROJECT_ID}$', get_project_handler),
    ('PUT', rf'^/api/projects/{PROJECT_ID}$', update_project_handler),
    ('DELETE', rf'^/api/projects/{PROJECT_ID}$', delete_project_handler),
    ('GET', r'^/api/users$', list_users_handler),
    ('GET', r'^/api/users/([0-9]+)$', get_user_handler),
    ('PUT', r'^/api/users/([0-9]+)/role$', change_role_handler),
    ('DELETE', r'^/api/users/([0-9]+)$', delete_user_handler),
]


def dispatch(environ, start_response):
    """경로와 메서드로 핸들러를 찾아 실행하고, 예외를 응답으로 변환합니다."""
    path = environ.get("PATH_INFO", "") or "/"
    method = environ.get("REQUEST_METHOD", "")

    try:
        if SESSION_ENVIRON_KEY in environ:
            environ['auth'] = AuthContext.from_session(environ[SESSION_ENVIRON_KEY], environ['resolver'], environ)
        else:
            environ['auth'] = AuthContext(environ['resolver'], environ).resolve()

        handler, path_args = None, []
        for route_method, pattern, route_handler in ROUTES:
            if method == route_method and (match := re.match(pattern, path)):
                handler, path_args = route_handler, match.groups()
                break

        if handler:
            status, response_body, headers = handler(environ, *path_args)
        else:
            status, response_body, headers = json_response('404 Not Found', {'error': 'Not Found'})

    except Exception as e:
        status, response_body, headers = handle_exception(e)

    if not any(name.lower() == "content-type" for name, _ in headers):
        headers = [JSON_CONTENT_TYPE] + list(headers)
    start_response(status, headers)
    return [response_body.encode("utf-8")]


class ServiceContainerMiddleware:
    """
    요청마다 DB 세션과 서비스 객체를 만들어 environ에 담고, 응답 후 세션을 닫습니다.
    """

    def __init__(self, app, session_factory, app_settings, renderer, resolver):
        self.app = app
        self.session_factory = session_factory
        self.settings = app_settings
        self.renderer = renderer
        self.resolver = resolver

    def __call__(self, environ, start_response):
        db_session = self.session_factory()
        try:
            environ['services'] = build_services(db_session, self.settings)
            environ['settings'] = self.settings
            environ['renderer'] = self.renderer
            environ['resolver'] = self.resolver
            return self.app(environ, start_response)
        finally:
            db_session.close()


def create_app(session_factory=None, app_settings=None, renderer=None):
    """
    WSGI 애플리케이션을 조립합니다.

    요청 흐름: ServiceContainerMiddleware -> RouteGuardMiddleware -> dispatch
    """
    session_factory = session_factory or SessionLocal
    app_settings = app_settings or settings
    renderer = renderer or TemplateRenderer()
    resolver = IdentitySessionResolver(app_settings.session_cookie_name)

    guarded = RouteGuardMiddleware(dispatch, RouteGuard.from_settings(app_settings), resolver)
    return ServiceContainerMiddleware(guarded, session_factory, app_settings, renderer, resolver)


application = create_app()

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

if __name__ == "__main__":
    configure_logging()
    try:
        initialize_db()
        with make_server(settings.host, settings.port, application) as httpd:
            logger.info("Serving portfolio admin on port %s...", settings.port)
            httpd.serve_forever()
    except Exception:
        logger.exception("Error starting server.")
        sys.exit(1)
