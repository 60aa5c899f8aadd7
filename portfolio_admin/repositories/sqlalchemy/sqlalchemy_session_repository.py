from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session, joinedload
from portfolio_admin.database import models
from portfolio_admin.repositories.interfaces import ISessionRepository

class SqlalchemySessionRepository(ISessionRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, session_model: models.UserSession) -> models.UserSession:
        self.db.add(session_model)
        self.db.commit()
        self.db.refresh(session_model)
        return session_model

    def find_by_token(self, token: str) -> Optional[models.UserSession]:
        return self.db.query(models.UserSession).options(
            joinedload(models.UserSession.user)
        ).filter(models.UserSession.token == token).first()

    def extend(self, session: models.UserSession, expires_at: datetime) -> models.UserSession:
        session.expires_at = expires_at
        self.db.commit()
        return session

    def delete(self, session: models.UserSession) -> bool:
        if session:
            self.db.delete(session)
            self.db.commit()
            return True
        return False

    def delete_expired(self, now: datetime) -> int:
        count = self.db.query(models.UserSession).filter(
            models.UserSession.expires_at < now
        ).delete(synchronize_session=False)
        self.db.commit()
        return count
