# tests/access/test_server_guard.py
import io
import json
from unittest.mock import MagicMock

import pytest

from portfolio_admin.access.roles import Role
from portfolio_admin.access.server_guard import require_auth, require_manager_or_admin, require_admin
from portfolio_admin.access.session_resolver import AuthSession, SessionResolver, SessionUser
from portfolio_admin.app import create_project_handler, delete_user_handler, handle_exception
from portfolio_admin.services.exceptions import UnauthenticatedError, ForbiddenError
from portfolio_admin.services.identity_service import IdentityService
from portfolio_admin.services.project_service import ProjectService

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_resolver() -> MagicMock:
    return MagicMock(spec=SessionResolver)

@pytest.fixture
def mock_identity_service() -> MagicMock:
    return MagicMock(spec=IdentityService)

@pytest.fixture
def mock_project_service() -> MagicMock:
    return MagicMock(spec=ProjectService)

@pytest.fixture
def make_environ(mock_resolver, mock_identity_service, mock_project_service):
    def _make(body=None):
        raw = json.dumps(body or {}).encode("utf-8")
        return {
            "PATH_INFO": "/api/test",
            "CONTENT_LENGTH": str(len(raw)),
            "wsgi.input": io.BytesIO(raw),
            "resolver": mock_resolver,
            "services": {"identity": mock_identity_service, "project": mock_project_service},
        }
    return _make

# ===================================================================
#  단언 함수
# ===================================================================
class TestRequireFunctions:
    def test_require_auth_without_session(self, make_environ, mock_resolver):
        mock_resolver.resolve_session.return_value = None

        with pytest.raises(UnauthenticatedError, match="Unauthorized"):
            require_auth(make_environ())

    def test_require_auth_when_resolver_fails(self, make_environ, mock_resolver):
        """세션 저장소 오류도 미인증으로 처리되어 Unauthorized가 발생합니다."""
        mock_resolver.resolve_session.side_effect = OSError("store unreachable")

        with pytest.raises(UnauthenticatedError):
            require_auth(make_environ())

    def test_require_auth_returns_user(self, make_environ, mock_resolver, make_session):
        session = make_session(Role.USER, user_id=3)
        mock_resolver.resolve_session.return_value = session

        assert require_auth(make_environ()) is session.user

    def test_require_manager_or_admin_rejects_user(self, make_environ, mock_resolver, make_session):
        mock_resolver.resolve_session.return_value = make_session(Role.USER)

        with pytest.raises(ForbiddenError, match="Unauthorized"):
            require_manager_or_admin(make_environ())

    @pytest.mark.parametrize("role", [Role.MANAGER, Role.ADMIN])
    def test_require_manager_or_admin_accepts(self, make_environ, mock_resolver, make_session, role):
        mock_resolver.resolve_session.return_value = make_session(role)

        assert require_manager_or_admin(make_environ()).role is role

    @pytest.mark.parametrize("role", [Role.USER, Role.MANAGER])
    def test_require_admin_rejects_non_admin(self, make_environ, mock_resolver, make_session, role):
        mock_resolver.resolve_session.return_value = make_session(role)

        with pytest.raises(ForbiddenError):
            require_admin(make_environ())

    @pytest.mark.parametrize("raw_role, admin_ok, manager_ok", [
        ("admin", True, True),
        ("MANAGER", False, True),
        ("user", False, False),
        (None, False, False),
    ])
    def test_raw_role_values_are_coerced(self, make_environ, mock_resolver, raw_role, admin_ok, manager_ok):
        """세션의 역할이 문자열이어도 Route Guard와 같은 방식으로 판정합니다."""
        user = SessionUser(id=9, name="raw", email="raw@example.com", role=raw_role)
        mock_resolver.resolve_session.return_value = AuthSession(token="t", user=user)

        for guard, allowed in ((require_admin, admin_ok), (require_manager_or_admin, manager_ok)):
            if allowed:
                assert guard(make_environ()) is user
            else:
                with pytest.raises(ForbiddenError):
                    guard(make_environ())

    def test_session_is_checked_on_every_call(self, make_environ, mock_resolver, make_session):
        """역할이 강등되면 다음 호출부터 바로 거부됩니다."""
        mock_resolver.resolve_session.side_effect = [make_session(Role.ADMIN), make_session(Role.USER)]
        environ = make_environ()

        require_admin(environ)
        with pytest.raises(ForbiddenError):
            require_admin(environ)

# ===================================================================
#  핸들러에 적용된 Server Guard
# ===================================================================
class TestGuardedHandlers:
    def test_unauthenticated_mutation_never_reaches_service(self, make_environ, mock_resolver, mock_project_service):
        mock_resolver.resolve_session.return_value = None

        with pytest.raises(UnauthenticatedError):
            create_project_handler(make_environ({"title": "Site"}))

        mock_project_service.create_project.assert_not_called()

    def test_manager_can_create_project(self, make_environ, mock_resolver, mock_project_service, make_session):
        # === Arrange ===
        mock_resolver.resolve_session.return_value = make_session(Role.MANAGER)
        payload = {"title": "Portfolio site", "image_url": "https://img.example.com/a.png", "description": "d"}
        mock_project_service.create_project.return_value = {"id": "p-1", **payload}

        # === Act ===
        status, body, _ = create_project_handler(make_environ(payload))

        # === Assert ===
        assert status == "201 Created"
        assert json.loads(body)["id"] == "p-1"
        mock_project_service.create_project.assert_called_once_with(payload)

    def test_manager_cannot_delete_user(self, make_environ, mock_resolver, mock_identity_service, make_session):
        mock_resolver.resolve_session.return_value = make_session(Role.MANAGER)

        with pytest.raises(ForbiddenError):
            delete_user_handler(make_environ(), "5")

        mock_identity_service.delete_user.assert_not_called()

    @pytest.mark.parametrize("error, reason", [
        (UnauthenticatedError(), "unauthenticated"),
        (ForbiddenError(), "forbidden"),
    ])
    def test_guard_errors_map_to_401(self, error, reason):
        status, body, _ = handle_exception(error)

        assert status == "401 Unauthorized"
        assert json.loads(body) == {"error": "Unauthorized", "reason": reason}
