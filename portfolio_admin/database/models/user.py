from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from ...access.roles import Role
from ..database import Base

class User(Base):
    """
    관리자 패널에 로그인할 수 있는 사용자를 나타냅니다.
    역할(role)은 USER, MANAGER, ADMIN 중 하나이며 생성 시 USER로 시작합니다.
    역할 값은 문자열로 저장되고, 세션 확인 시점에 Role로 검증됩니다.
    """
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.USER.value, server_default=Role.USER.value)
    created_at = Column(DateTime, server_default=func.now())

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
