# tests/conftest.py
from datetime import datetime, timedelta

import pytest

from portfolio_admin.access.roles import Role
from portfolio_admin.access.session_resolver import AuthSession, SessionUser


def build_session(role=Role.USER, user_id=1, token="token-1"):
    user = SessionUser(id=user_id, name=f"user-{user_id}", email=f"user{user_id}@example.com", role=role)
    return AuthSession(token=token, user=user, expires_at=datetime.now() + timedelta(hours=1))


@pytest.fixture
def make_session():
    """역할을 받아 테스트용 AuthSession을 만드는 팩토리를 반환합니다."""
    return build_session
