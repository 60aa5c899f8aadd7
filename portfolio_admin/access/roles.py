# portfolio_admin/access/roles.py
"""
역할(Role) 모델.

모든 접근 제어 지점(Route Guard, Page Guard, Component Gate, Server Guard)은
이 모듈의 판정 함수만 사용합니다. 역할이 추가되면 이 테이블만 수정하면 됩니다.
"""
from enum import Enum
from typing import Any, FrozenSet


class Role(str, Enum):
    USER = "USER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


AGENDA_READ = "agenda:read"
AGENDA_CREATE = "agenda:create"
AGENDA_UPDATE = "agenda:update"
AGENDA_DELETE = "agenda:delete"
PROFILE_READ_OWN = "profile:read_own"
PROFILE_UPDATE_OWN = "profile:update_own"

USER_PERMISSIONS: FrozenSet[str] = frozenset({
    AGENDA_READ,
    PROFILE_READ_OWN,
    PROFILE_UPDATE_OWN,
})

# MANAGER는 USER 권한의 합집합으로 정의되어 항상 상위 집합입니다.
MANAGER_PERMISSIONS: FrozenSet[str] = USER_PERMISSIONS | frozenset({
    AGENDA_CREATE,
    AGENDA_UPDATE,
    AGENDA_DELETE,
})

KNOWN_PERMISSIONS: FrozenSet[str] = MANAGER_PERMISSIONS

# ADMIN은 허용 목록이 아니라 is_admin 분기로 모든 권한을 가집니다.
ROLE_PERMISSIONS = {
    Role.USER: USER_PERMISSIONS,
    Role.MANAGER: MANAGER_PERMISSIONS,
}


def coerce_role(value: Any) -> Role:
    """
    저장소나 세션에서 읽은 값을 Role로 변환합니다.
    값이 없거나 알 수 없는 값이면 최소 권한인 USER를 반환합니다.
    """
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        try:
            return Role(value.strip().upper())
        except ValueError:
            return Role.USER
    return Role.USER


def is_admin(role: Any) -> bool:
    return role == Role.ADMIN


def is_manager_or_admin(role: Any) -> bool:
    return role == Role.MANAGER or role == Role.ADMIN


def has_permission(role: Any, permission: Any) -> bool:
    """
    역할이 주어진 권한 문자열을 가지는지 판정합니다.

    ADMIN은 어떤 문자열이든 True이며, 그 외 역할은 허용 목록에 포함된 경우만
    True입니다. 알 수 없는 역할이나 문자열이 아닌 권한은 예외 없이 False입니다.
    """
    if is_admin(role):
        return True
    if not isinstance(permission, str):
        return False
    try:
        allowed = ROLE_PERMISSIONS.get(role, frozenset())
    except TypeError:
        # 해시 불가능한 값
        return False
    return permission in allowed


def permissions_for(role: Any) -> FrozenSet[str]:
    """화면 표시용 권한 목록. ADMIN은 알려진 어휘 전체를 반환합니다."""
    if is_admin(role):
        return KNOWN_PERMISSIONS
    try:
        return ROLE_PERMISSIONS.get(role, frozenset())
    except TypeError:
        return frozenset()
