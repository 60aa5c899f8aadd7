from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from portfolio_admin.config import settings


def build_engine(database_url: str):
    # connect_args는 SQLite에서만 필요합니다. (thread-safe 설정)
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


# SQLAlchemy 엔진 생성 (연결 문자열은 설정에서 읽습니다)
engine = build_engine(settings.database_url)

# autocommit=False, autoflush=False로 설정하여, 명시적으로 commit을 호출해야 DB에 반영됩니다.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 모든 모델 클래스가 상속받을 Base 클래스
Base = declarative_base()
