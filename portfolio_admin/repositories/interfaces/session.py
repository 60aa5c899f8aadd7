from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from portfolio_admin.database import models

class ISessionRepository(ABC):
    @abstractmethod
    def create(self, session_model: models.UserSession) -> models.UserSession:
        """새로운 세션을 저장합니다."""
        pass

    @abstractmethod
    def find_by_token(self, token: str) -> Optional[models.UserSession]:
        """토큰으로 세션을 조회합니다."""
        pass

    @abstractmethod
    def extend(self, session: models.UserSession, expires_at: datetime) -> models.UserSession:
        """세션의 만료 시각을 연장합니다."""
        pass

    @abstractmethod
    def delete(self, session: models.UserSession) -> bool:
        """세션을 삭제합니다."""
        pass

    @abstractmethod
    def delete_expired(self, now: datetime) -> int:
        """만료된 세션을 모두 삭제하고 삭제된 개수를 반환합니다."""
        pass
