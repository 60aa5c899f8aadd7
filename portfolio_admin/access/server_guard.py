# portfolio_admin/access/server_guard.py
"""
서버 측 핸들러에서 사용하는 인증/권한 단언 함수.

클라이언트가 보낸 역할 값은 신뢰하지 않고, 요청마다 세션 저장소에서 직접
세션을 확인합니다. 데이터를 변경하는 모든 핸들러는 서비스를 호출하기 전에
이 함수들 중 하나를 먼저 호출해야 합니다.
"""
import logging

from portfolio_admin.services.exceptions import UnauthenticatedError, ForbiddenError
from .roles import coerce_role, is_admin, is_manager_or_admin
from .session_resolver import SessionUser, resolve_safely

logger = logging.getLogger(__name__)


def require_auth(environ) -> SessionUser:
    """
    인증된 사용자를 반환합니다.

    Raises:
        UnauthenticatedError: 유효한 세션이 없거나 세션 확인에 실패했을 때.
    """
    session = resolve_safely(environ['resolver'], environ)
    if session is None:
        raise UnauthenticatedError("Unauthorized")
    return session.user


def require_manager_or_admin(environ) -> SessionUser:
    """
    Raises:
        UnauthenticatedError: 유효한 세션이 없을 때.
        ForbiddenError: 역할이 MANAGER 또는 ADMIN이 아닐 때.
    """
    user = require_auth(environ)
    role = coerce_role(user.role)
    if not is_manager_or_admin(role):
        logger.info("User %s (%s) denied manager action on %s.", user.id, role.value, environ.get("PATH_INFO"))
        raise ForbiddenError("Unauthorized")
    return user


def require_admin(environ) -> SessionUser:
    """
    Raises:
        UnauthenticatedError: 유효한 세션이 없을 때.
        ForbiddenError: 역할이 ADMIN이 아닐 때.
    """
    user = require_auth(environ)
    role = coerce_role(user.role)
    if not is_admin(role):
        logger.info("User %s (%s) denied admin action on %s.", user.id, role.value, environ.get("PATH_INFO"))
        raise ForbiddenError("Unauthorized")
    return user
