from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

class UserSession(Base):
    """
    로그인 시 발급되는 세션 토큰을 저장합니다.
    토큰은 불투명한 UUID 문자열이며, 로그아웃하거나 만료되면 삭제됩니다.
    """
    __tablename__ = "sessions"
    token = Column(String(36), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="sessions")
