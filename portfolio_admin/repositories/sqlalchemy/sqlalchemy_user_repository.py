from typing import List, Optional
from sqlalchemy.orm import Session
from portfolio_admin.database import models
from portfolio_admin.repositories.interfaces import IUserRepository

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, user_model: models.User) -> models.User:
        self.db.add(user_model)
        self.db.commit()
        self.db.refresh(user_model)
        return user_model

    def find_by_id(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def find_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.email == email).first()

    def list_all(self) -> List[models.User]:
        return self.db.query(models.User).order_by(models.User.email.asc()).all()

    def update_role(self, user: models.User, role: str) -> models.User:
        user.role = role
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user: models.User) -> bool:
        if user:
            self.db.delete(user)
            self.db.commit()
            return True
        return False
