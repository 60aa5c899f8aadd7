# portfolio_admin/access/auth_context.py
import logging
from typing import Any, Callable, Dict, List, Optional

from . import roles
from .roles import Role, coerce_role
from .session_resolver import AuthSession, SessionResolver, SessionUser, resolve_safely

logger = logging.getLogger(__name__)


class AuthContext:
    """
    요청 하나에 대한 인증 상태와 역할 판정 헬퍼를 제공합니다.

    전역 세션 객체 대신 요청마다 생성되어 가드와 템플릿에 명시적으로 전달됩니다.
    모든 판정 값은 현재 세션에서 매번 계산되므로, 세션이 바뀌면 함께 바뀝니다.
    """

    def __init__(self, resolver: SessionResolver, environ, provider=None):
        """
        Args:
            resolver: 요청 자격 증명으로 세션을 확인하는 객체.
            environ: 현재 요청의 WSGI environ.
            provider: 로그인/로그아웃/가입을 처리하는 세션 제공자.
                생략하면 environ['services']['identity']를 사용합니다.
        """
        self._resolver = resolver
        self._environ = environ
        self._provider = provider
        self._session: Optional[AuthSession] = None
        self._resolved = False
        self._listeners: List[Callable[["AuthContext"], None]] = []

    @classmethod
    def from_session(cls, session: Optional[AuthSession], resolver: SessionResolver, environ, provider=None) -> "AuthContext":
        """이미 확인된 세션으로 컨텍스트를 만듭니다. (Route Guard가 확인한 경우)"""
        context = cls(resolver, environ, provider)
        context._session = session
        context._resolved = True
        return context

    # ------------------------------------------------------------------
    # 세션 확인
    # ------------------------------------------------------------------

    def resolve(self) -> "AuthContext":
        if not self._resolved:
            self._set_session(resolve_safely(self._resolver, self._environ))
        return self

    @property
    def provider(self):
        return self._provider if self._provider is not None else self._environ['services']['identity']

    @property
    def is_loading(self) -> bool:
        return not self._resolved

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    # ------------------------------------------------------------------
    # 판정 값
    # ------------------------------------------------------------------

    @property
    def user(self) -> Optional[SessionUser]:
        return self._session.user if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def role(self) -> Optional[Role]:
        if self._session is None:
            return None
        # 세션은 있지만 역할이 없으면 USER로 간주합니다.
        return coerce_role(getattr(self._session.user, "role", None))

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and roles.is_admin(self.role)

    @property
    def is_manager_or_admin(self) -> bool:
        return self.is_authenticated and roles.is_manager_or_admin(self.role)

    is_editor = is_manager_or_admin
    can_manage_content = is_manager_or_admin

    def has_permission(self, permission: str) -> bool:
        return self.is_authenticated and roles.has_permission(self.role, permission)

    # ------------------------------------------------------------------
    # 세션 제공자 위임
    # ------------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        result = self.provider.sign_in(email, password)
        self._refresh_from_token(result["token"])
        return result

    def sign_up(self, name: str, email: str, password: str) -> Dict[str, Any]:
        result = self.provider.sign_up(name, email, password)
        self._refresh_from_token(result["token"])
        return result

    def sign_out(self) -> bool:
        signed_out = False
        if self._session is not None:
            signed_out = self.provider.sign_out(self._session.token)
        self._set_session(None)
        return signed_out

    def refetch_session(self) -> Optional[AuthSession]:
        """현재 토큰(없으면 요청 자격 증명)으로 세션을 다시 확인합니다."""
        if self._session is not None:
            self._refresh_from_token(self._session.token)
        else:
            self._set_session(resolve_safely(self._resolver, self._environ))
        return self._session

    def subscribe(self, listener: Callable[["AuthContext"], None]) -> Callable[[], None]:
        """세션이 바뀔 때 호출될 함수를 등록하고, 등록 해제 함수를 반환합니다."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def as_dict(self) -> Dict[str, Any]:
        role = self.role
        return {
            "is_authenticated": self.is_authenticated,
            "user": self.user.to_dict() if self.user else None,
            "role": role.value if role else None,
            "is_admin": self.is_admin,
            "is_manager_or_admin": self.is_manager_or_admin,
            "permissions": sorted(roles.permissions_for(role)) if role else [],
            "expires_at": self._session.expires_at.isoformat() if self._session and self._session.expires_at else None,
        }

    # ------------------------------------------------------------------

    def _refresh_from_token(self, token: str):
        try:
            session = self.provider.resolve_session(token)
        except Exception:
            logger.warning("Session refresh failed; treating as signed out.", exc_info=True)
            session = None
        self._set_session(session if isinstance(session, AuthSession) else None)

    def _set_session(self, session: Optional[AuthSession]):
        changed = not self._resolved or session != self._session
        self._session = session
        self._resolved = True
        if changed:
            for listener in list(self._listeners):
                listener(self)
