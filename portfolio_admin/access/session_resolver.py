# portfolio_admin/access/session_resolver.py
"""
세션 확인(Session Resolver) 경계.

접근 제어 코어는 토큰 내용을 해석하지 않으며, 확인된 세션의 user.id와
user.role만 읽습니다. 확인 과정에서 오류가 나면 항상 미인증으로 취급합니다.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from http.cookies import SimpleCookie, CookieError
from typing import Any, Optional

from .roles import Role, coerce_role

logger = logging.getLogger(__name__)

AUTH_TOKEN_HEADER = "HTTP_X_AUTH_TOKEN"


@dataclass(frozen=True)
class SessionUser:
    id: int
    name: str
    email: str
    role: Role = Role.USER

    def to_dict(self):
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role.value}


@dataclass(frozen=True)
class AuthSession:
    token: str
    user: SessionUser
    expires_at: Optional[datetime] = None


def build_session_user(user_model: Any) -> SessionUser:
    """ORM 사용자 객체를 읽기 전용 SessionUser로 변환하며 역할을 검증합니다."""
    return SessionUser(
        id=user_model.id,
        name=user_model.name,
        email=user_model.email,
        role=coerce_role(getattr(user_model, "role", None)),
    )


def read_session_token(environ, cookie_name: str) -> Optional[str]:
    """
    요청에서 세션 토큰을 읽습니다. 'X-Auth-Token' 헤더가 쿠키보다 우선합니다.
    """
    header_token = environ.get(AUTH_TOKEN_HEADER)
    if header_token:
        return header_token.strip() or None

    raw_cookie = environ.get("HTTP_COOKIE")
    if not raw_cookie:
        return None
    try:
        cookie = SimpleCookie()
        cookie.load(raw_cookie)
    except CookieError:
        return None
    morsel = cookie.get(cookie_name)
    return morsel.value if morsel and morsel.value else None


class SessionResolver(ABC):
    @abstractmethod
    def resolve_session(self, environ) -> Optional[AuthSession]:
        """요청 자격 증명으로 세션을 확인합니다. 자격 증명이 없으면 None을 반환합니다."""
        pass


class IdentitySessionResolver(SessionResolver):
    """요청마다 생성되는 IdentityService에 세션 조회를 위임합니다."""

    def __init__(self, cookie_name: str):
        self.cookie_name = cookie_name

    def resolve_session(self, environ) -> Optional[AuthSession]:
        token = read_session_token(environ, self.cookie_name)
        if not token:
            return None
        identity_service = environ['services']['identity']
        return identity_service.resolve_session(token)


def resolve_safely(resolver: SessionResolver, environ) -> Optional[AuthSession]:
    """
    세션 확인 중 발생한 모든 오류를 미인증(None)으로 변환합니다. (fail-closed)
    """
    try:
        session = resolver.resolve_session(environ)
    except Exception:
        logger.warning("Session resolution failed; treating request as unauthenticated.", exc_info=True)
        return None
    if session is not None and not isinstance(session, AuthSession):
        logger.warning("Session resolver returned %r; treating request as unauthenticated.", type(session))
        return None
    return session
