import hashlib
import hmac
import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional

from portfolio_admin.database import models
from portfolio_admin.access.roles import Role, coerce_role
from portfolio_admin.access.session_resolver import AuthSession, build_session_user
from portfolio_admin.repositories.interfaces import IUserRepository, ISessionRepository
from portfolio_admin.services.exceptions import (
    UserCreationError, UserNotFoundError, RoleNotFoundError, AuthenticationError
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def _user_to_dict(user: models.User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": coerce_role(user.role).value,
    }


class IdentityService:
    """사용자, 역할, 세션(로그인/로그아웃) 등 신원 관리 서비스를 제공합니다."""

    def __init__(self, user_repo: IUserRepository, session_repo: ISessionRepository, session_ttl_hours: int = 24 * 7):
        """
        IdentityService를 초기화합니다.

        Args:
            user_repo: 사용자 데이터에 접근하기 위한 리포지토리.
            session_repo: 세션 데이터에 접근하기 위한 리포지토리.
            session_ttl_hours: 발급된 세션의 유효 시간(시간 단위).
        """
        self.user_repo = user_repo
        self.session_repo = session_repo
        self.session_ttl = timedelta(hours=session_ttl_hours)

    # ------------------------------------------------------------------
    # 세션 (Session Provider)
    # ------------------------------------------------------------------

    def sign_up(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """
        새로운 USER 계정을 만들고 바로 로그인된 세션을 발급합니다.

        Raises:
            UserCreationError: 입력값이 유효하지 않거나 이메일이 이미 사용 중일 때.
        """
        if not all(isinstance(value, str) for value in (name or "", email or "", password or "")):
            raise UserCreationError("Name, email and password must be strings.")
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name:
            raise UserCreationError("Name is required.")
        if "@" not in email:
            raise UserCreationError("A valid email is required.")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise UserCreationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if self.user_repo.find_by_email(email):
            raise UserCreationError(f"User with email '{email}' already exists.")

        new_user = models.User(name=name, email=email, password_hash=hash_password(password), role=Role.USER.value)
        created_user = self.user_repo.create(new_user)
        logger.info("User %s signed up.", created_user.id)
        return self._issue_session(created_user)

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        자격증명을 검증하고, 성공 시 세션 토큰을 발급합니다.

        Raises:
            AuthenticationError: 이메일 또는 비밀번호가 일치하지 않을 때.
        """
        if not isinstance(email or "", str) or not isinstance(password or "", str):
            raise AuthenticationError("Invalid email or password.")
        user = self.user_repo.find_by_email((email or "").strip().lower())
        if not user or not hmac.compare_digest(user.password_hash, hash_password(password or "")):
            raise AuthenticationError("Invalid email or password.")
        return self._issue_session(user)

    def sign_out(self, token: str) -> bool:
        """세션을 삭제합니다. 이미 없는 세션이면 False를 반환합니다."""
        session = self.session_repo.find_by_token(token) if token else None
        if not session:
            return False
        self.session_repo.delete(session)
        logger.info("User %s signed out.", session.user_id)
        return True

    def resolve_session(self, token: str) -> Optional[AuthSession]:
        """
        세션 토큰을 확인하고, 유효하면 읽기 전용 AuthSession을 반환합니다.

        만료된 세션은 삭제하고 None을 반환합니다. 남은 유효 시간이 절반 미만이면
        만료 시각을 연장합니다. (활동 시 갱신)
        """
        if not token:
            return None
        session = self.session_repo.find_by_token(token)
        if not session or not session.user:
            return None

        now = datetime.now()
        if now >= session.expires_at:
            self.session_repo.delete(session)
            return None

        if session.expires_at - now < self.session_ttl / 2:
            session = self.session_repo.extend(session, now + self.session_ttl)

        return AuthSession(token=session.token, user=build_session_user(session.user), expires_at=session.expires_at)

    def purge_expired_sessions(self) -> int:
        """만료된 세션을 정리합니다."""
        return self.session_repo.delete_expired(datetime.now())

    def _issue_session(self, user: models.User) -> Dict[str, Any]:
        expires_at = datetime.now() + self.session_ttl
        session = self.session_repo.create(
            models.UserSession(token=str(uuid.uuid4()), user_id=user.id, expires_at=expires_at)
        )
        return {
            "token": session.token,
            "expires_at": expires_at.isoformat(),
            "user": _user_to_dict(user),
        }

    # ------------------------------------------------------------------
    # 사용자 관리
    # ------------------------------------------------------------------

    def list_users(self) -> List[Dict[str, Any]]:
        """모든 사용자의 목록을 조회합니다. (비밀번호 제외)"""
        return [_user_to_dict(u) for u in self.user_repo.list_all()]

    def get_user(self, user_id: int) -> Dict[str, Any]:
        """
        ID로 특정 사용자를 조회합니다. (비밀번호 제외)

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
        """
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        return _user_to_dict(user)

    def delete_user(self, user_id: int) -> bool:
        """
        사용자를 삭제합니다. 사용자의 모든 세션도 함께 삭제됩니다.

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
        """
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        self.user_repo.delete(user)
        logger.info("User %s deleted.", user_id)
        return True

    def change_role(self, user_id: int, role_name: str) -> Dict[str, Any]:
        """
        사용자의 역할을 변경합니다.

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            RoleNotFoundError: 역할 이름이 USER, MANAGER, ADMIN 중 하나가 아닐 때.
        """
        try:
            role = Role(str(role_name).upper())
        except ValueError:
            raise RoleNotFoundError(f"Role '{role_name}' not found.")

        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")

        updated = self.user_repo.update_role(user, role.value)
        logger.info("User %s role changed to %s.", user_id, role.value)
        return _user_to_dict(updated)
