# portfolio_admin/access/route_guard.py
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple
from urllib.parse import quote

from .roles import coerce_role, is_admin, is_manager_or_admin
from .session_resolver import AuthSession, SessionResolver, resolve_safely

logger = logging.getLogger(__name__)

SESSION_ENVIRON_KEY = "auth.session"


@dataclass(frozen=True)
class RouteDecision:
    allow: bool
    redirect_to: Optional[str] = None


ALLOW = RouteDecision(allow=True)


def path_has_prefix(path: str, prefix: str) -> bool:
    """'/admin'은 '/admin', '/admin/...'과 일치하지만 '/administrator'와는 일치하지 않습니다."""
    prefix = prefix.rstrip("/")
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


class RouteGuard:
    """
    보호된 경로에 대한 요청을 (경로, 세션)만으로 판정합니다.
    요청 간에 상태를 가지지 않습니다.
    """

    def __init__(
        self,
        protected_prefixes: Iterable[str] = ("/admin",),
        manager_prefixes: Iterable[str] = ("/admin",),
        admin_prefixes: Iterable[str] = (),
        login_path: str = "/login",
        denied_path: str = "/",
    ):
        self.protected_prefixes: Tuple[str, ...] = tuple(protected_prefixes)
        self.manager_prefixes: Tuple[str, ...] = tuple(manager_prefixes)
        self.admin_prefixes: Tuple[str, ...] = tuple(admin_prefixes)
        self.login_path = login_path
        self.denied_path = denied_path

    @classmethod
    def from_settings(cls, settings) -> "RouteGuard":
        return cls(
            protected_prefixes=settings.protected_prefixes,
            manager_prefixes=settings.manager_prefixes,
            admin_prefixes=settings.admin_prefixes,
            login_path=settings.login_path,
            denied_path=settings.denied_path,
        )

    def is_protected(self, path: str) -> bool:
        return any(path_has_prefix(path, p) for p in self.protected_prefixes)

    def check(self, path: str, session: Optional[AuthSession]) -> RouteDecision:
        """
        요청을 통과시킬지, 어디로 리다이렉트할지 결정합니다.

        1. 보호 경로가 아니면 통과.
        2. 세션이 없으면 로그인 경로로 리다이렉트.
        3. ADMIN 전용 경로인데 ADMIN이 아니면 거부 경로로 리다이렉트.
        4. 관리 경로인데 MANAGER/ADMIN이 아니면 거부 경로로 리다이렉트.
        """
        if not self.is_protected(path):
            return ALLOW

        if session is None:
            return RouteDecision(allow=False, redirect_to=f"{self.login_path}?next={quote(path)}")

        role = coerce_role(session.user.role)
        if any(path_has_prefix(path, p) for p in self.admin_prefixes) and not is_admin(role):
            return RouteDecision(allow=False, redirect_to=self.denied_path)
        if any(path_has_prefix(path, p) for p in self.manager_prefixes) and not is_manager_or_admin(role):
            return RouteDecision(allow=False, redirect_to=self.denied_path)
        return ALLOW


class RouteGuardMiddleware:
    """
    RouteGuard를 WSGI 미들웨어로 적용합니다.
    리다이렉트 판정이면 내부 앱(핸들러)을 호출하지 않고 302 응답을 보냅니다.
    """

    def __init__(self, app, guard: RouteGuard, resolver: SessionResolver):
        self.app = app
        self.guard = guard
        self.resolver = resolver

    def __call__(self, environ, start_response):
        path = environ.get("PATH_INFO", "") or "/"
        session = resolve_safely(self.resolver, environ)
        environ[SESSION_ENVIRON_KEY] = session

        decision = self.guard.check(path, session)
        if not decision.allow:
            logger.info("Route guard redirected %s to %s.", path, decision.redirect_to)
            start_response("302 Found", [("Location", decision.redirect_to), ("Content-Type", "text/plain")])
            return [b""]
        return self.app(environ, start_response)
