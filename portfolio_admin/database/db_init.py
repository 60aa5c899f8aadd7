import hashlib
import logging

from portfolio_admin.config import settings, configure_logging
from portfolio_admin.access.roles import Role
from .database import engine, SessionLocal, Base
from .models import *

logger = logging.getLogger(__name__)

def initialize_db(bind=None, session_factory=None, app_settings=None):
    """
    DB와 테이블을 생성하고, 최초 관리자(ADMIN) 계정을 삽입합니다.
    사용자가 한 명이라도 존재하면 기본 데이터 삽입은 건너뜁니다.
    """
    bind = bind or engine
    session_factory = session_factory or SessionLocal
    app_settings = app_settings or settings

    logger.info("Initializing database...")

    # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
    Base.metadata.create_all(bind=bind)

    db = session_factory()
    try:
        if db.query(User).first():
            logger.info("Seed data already present, skipping.")
            return

        password_hash = hashlib.sha256(app_settings.admin_password.encode('utf-8')).hexdigest()
        admin_user = User(
            name=app_settings.admin_name,
            email=app_settings.admin_email.strip().lower(),
            password_hash=password_hash,
            role=Role.ADMIN.value,
        )
        db.add(admin_user)
        db.commit()
        logger.info("Created initial admin account '%s'.", app_settings.admin_email)

    except Exception:
        logger.exception("Database initialization failed.")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == '__main__':
    configure_logging()
    initialize_db()
