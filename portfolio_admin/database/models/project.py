import uuid
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, func
from ..database import Base

class Project(Base):
    """
    포트폴리오에 노출되는 하나의 프로젝트(제목, 설명, 이미지, 링크)를 나타냅니다.
    is_active가 False인 프로젝트는 공개 페이지에 표시되지 않습니다.
    """
    __tablename__ = "projects"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String, nullable=False)
    link = Column(String, nullable=True)
    order = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
