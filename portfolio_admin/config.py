# portfolio_admin/config.py
import logging
import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()


def _split_prefixes(value: str) -> Tuple[str, ...]:
    return tuple(p.strip() for p in value.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    """
    애플리케이션 전역 설정값을 담습니다.
    값은 환경 변수(.env 포함)에서 읽으며, 없으면 기본값을 사용합니다.
    """
    database_url: str = "sqlite:///portfolio_admin.db"
    host: str = ""
    port: int = 8000
    log_level: str = "INFO"

    session_cookie_name: str = "portfolio_session"
    session_ttl_hours: int = 24 * 7

    # Route Guard 설정
    protected_prefixes: Tuple[str, ...] = ("/admin",)
    manager_prefixes: Tuple[str, ...] = ("/admin",)
    admin_prefixes: Tuple[str, ...] = ("/admin/users",)
    login_path: str = "/login"
    denied_path: str = "/"

    # 최초 실행 시 생성되는 관리자 계정
    admin_name: str = "Administrator"
    admin_email: str = "admin@example.com"
    admin_password: str = field(default="admin", repr=False)

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", defaults.port)),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            session_cookie_name=os.getenv("SESSION_COOKIE_NAME", defaults.session_cookie_name),
            session_ttl_hours=int(os.getenv("SESSION_TTL_HOURS", defaults.session_ttl_hours)),
            protected_prefixes=_split_prefixes(os.getenv("PROTECTED_PREFIXES", ",".join(defaults.protected_prefixes))),
            manager_prefixes=_split_prefixes(os.getenv("MANAGER_PREFIXES", ",".join(defaults.manager_prefixes))),
            admin_prefixes=_split_prefixes(os.getenv("ADMIN_PREFIXES", ",".join(defaults.admin_prefixes))),
            login_path=os.getenv("LOGIN_PATH", defaults.login_path),
            denied_path=os.getenv("DENIED_PATH", defaults.denied_path),
            admin_name=os.getenv("ADMIN_NAME", defaults.admin_name),
            admin_email=os.getenv("ADMIN_EMAIL", defaults.admin_email),
            admin_password=os.getenv("ADMIN_PASSWORD", defaults.admin_password),
        )


settings = Settings.from_env()


def configure_logging(level: str = None):
    """루트 로거를 한 번만 설정합니다."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
