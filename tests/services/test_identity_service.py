# tests/services/test_identity_service.py
import pytest
from unittest.mock import MagicMock, ANY, patch
import hmac
from datetime import datetime, timedelta

from portfolio_admin.access.roles import Role
from portfolio_admin.access.session_resolver import AuthSession
from portfolio_admin.services.identity_service import IdentityService, hash_password
from portfolio_admin.services.exceptions import *
from portfolio_admin.repositories.interfaces import IUserRepository, ISessionRepository
from portfolio_admin.database import models

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_user_repo() -> MagicMock:
    """IUserRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IUserRepository)

@pytest.fixture
def mock_session_repo() -> MagicMock:
    """ISessionRepository에 대한 모의 객체를 생성합니다."""
    repo = MagicMock(spec=ISessionRepository)
    # 시나리오: 저장소는 전달받은 세션 모델을 그대로 돌려줌
    repo.create.side_effect = lambda session_model: session_model
    return repo

@pytest.fixture
def identity_service(mock_user_repo: MagicMock, mock_session_repo: MagicMock) -> IdentityService:
    """테스트에 사용될 IdentityService 인스턴스를 생성하고, 의존성을 주입합니다."""
    return IdentityService(mock_user_repo, mock_session_repo, session_ttl_hours=24)

def make_user(user_id=1, role="USER", password="password123"):
    return models.User(id=user_id, name=f"user{user_id}", email=f"user{user_id}@example.com",
                       password_hash=hash_password(password), role=role)

def make_stored_session(user, expires_in: timedelta, token="tok"):
    return models.UserSession(token=token, user_id=user.id, expires_at=datetime.now() + expires_in, user=user)

# ===================================================================
#  가입 / 로그인 / 로그아웃 테스트
# ===================================================================
class TestSignUpAndSignIn:
    def test_sign_up_creates_user_role_account(self, identity_service: IdentityService, mock_user_repo: MagicMock):
        """가입한 계정은 항상 USER 역할이며 바로 세션이 발급됩니다."""
        # === Arrange (테스트 준비) ===
        mock_user_repo.find_by_email.return_value = None
        mock_user_repo.create.side_effect = lambda user: (setattr(user, "id", 10), user)[1]

        # === Act (실제 테스트 대상 실행) ===
        result = identity_service.sign_up("New User", " New@Example.com ", "password123")

        # === Assert (결과 검증) ===
        created = mock_user_repo.create.call_args[0][0]
        assert created.role == "USER"
        assert created.email == "new@example.com"
        assert created.password_hash == hash_password("password123")
        assert result["user"] == {"id": 10, "name": "New User", "email": "new@example.com", "role": "USER"}
        assert result["token"]
        mock_user_repo.find_by_email.assert_called_once_with("new@example.com")

    @pytest.mark.parametrize("name, email, password", [
        ("", "a@example.com", "password123"),
        ("Name", "not-an-email", "password123"),
        ("Name", "a@example.com", "short"),
    ])
    def test_sign_up_rejects_invalid_input(self, identity_service, mock_user_repo, name, email, password):
        mock_user_repo.find_by_email.return_value = None

        with pytest.raises(UserCreationError):
            identity_service.sign_up(name, email, password)
        mock_user_repo.create.assert_not_called()

    @pytest.mark.parametrize("name, email, password", [
        (123, "a@example.com", "password123"),
        ("Name", ["a@example.com"], "password123"),
        ("Name", "a@example.com", 12345678),
    ])
    def test_sign_up_rejects_non_string_input(self, identity_service, mock_user_repo, name, email, password):
        """JSON 본문의 값이 문자열이 아니면 UserCreationError가 발생합니다."""
        with pytest.raises(UserCreationError):
            identity_service.sign_up(name, email, password)
        mock_user_repo.find_by_email.assert_not_called()
        mock_user_repo.create.assert_not_called()

    def test_sign_up_rejects_duplicate_email(self, identity_service, mock_user_repo):
        mock_user_repo.find_by_email.return_value = make_user()

        with pytest.raises(UserCreationError):
            identity_service.sign_up("Dup", "user1@example.com", "password123")
        mock_user_repo.create.assert_not_called()

    def test_sign_in_success_issues_session(self, identity_service, mock_user_repo, mock_session_repo):
        user = make_user(user_id=3, role="MANAGER")
        mock_user_repo.find_by_email.return_value = user

        result = identity_service.sign_in("USER3@example.com", "password123")

        mock_user_repo.find_by_email.assert_called_once_with("user3@example.com")
        mock_session_repo.create.assert_called_once_with(ANY)
        stored = mock_session_repo.create.call_args[0][0]
        assert stored.user_id == 3
        assert stored.token == result["token"]
        assert result["user"]["role"] == "MANAGER"

    @pytest.mark.parametrize("found_user, password", [
        (None, "password123"),
        (make_user(), "wrong-password"),
    ])
    def test_sign_in_failure(self, identity_service, mock_user_repo, mock_session_repo, found_user, password):
        """이메일이 없거나 비밀번호가 틀리면 같은 오류가 발생합니다."""
        mock_user_repo.find_by_email.return_value = found_user

        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            identity_service.sign_in("user1@example.com", password)
        mock_session_repo.create.assert_not_called()

    def test_sign_in_compares_hash_in_constant_time(self, identity_service, mock_user_repo):
        user = make_user()
        mock_user_repo.find_by_email.return_value = user

        with patch("portfolio_admin.services.identity_service.hmac.compare_digest", wraps=hmac.compare_digest) as compare:
            identity_service.sign_in("user1@example.com", "password123")

        compare.assert_called_once_with(user.password_hash, hash_password("password123"))

    def test_sign_in_rejects_non_string_credentials(self, identity_service, mock_user_repo, mock_session_repo):
        with pytest.raises(AuthenticationError):
            identity_service.sign_in({"email": "x"}, 1234)
        mock_user_repo.find_by_email.assert_not_called()
        mock_session_repo.create.assert_not_called()

    def test_sign_out_deletes_session(self, identity_service, mock_session_repo):
        stored = make_stored_session(make_user(), timedelta(hours=1))
        mock_session_repo.find_by_token.return_value = stored

        assert identity_service.sign_out("tok") is True
        mock_session_repo.delete.assert_called_once_with(stored)

    def test_sign_out_unknown_token(self, identity_service, mock_session_repo):
        mock_session_repo.find_by_token.return_value = None

        assert identity_service.sign_out("missing") is False
        mock_session_repo.delete.assert_not_called()

# ===================================================================
#  세션 확인 테스트
# ===================================================================
class TestResolveSession:
    def test_valid_session_returns_auth_session(self, identity_service, mock_session_repo):
        user = make_user(user_id=2, role="ADMIN")
        mock_session_repo.find_by_token.return_value = make_stored_session(user, timedelta(hours=20))

        session = identity_service.resolve_session("tok")

        assert isinstance(session, AuthSession)
        assert session.user.id == 2
        assert session.user.role is Role.ADMIN
        mock_session_repo.extend.assert_not_called()

    def test_unknown_role_value_is_treated_as_user(self, identity_service, mock_session_repo):
        user = make_user(role="SUPERUSER")
        mock_session_repo.find_by_token.return_value = make_stored_session(user, timedelta(hours=20))

        assert identity_service.resolve_session("tok").user.role is Role.USER

    def test_expired_session_is_deleted(self, identity_service, mock_session_repo):
        stored = make_stored_session(make_user(), timedelta(seconds=-1))
        mock_session_repo.find_by_token.return_value = stored

        assert identity_service.resolve_session("tok") is None
        mock_session_repo.delete.assert_called_once_with(stored)

    def test_session_near_expiry_is_extended(self, identity_service, mock_session_repo):
        """남은 시간이 TTL의 절반 미만이면 만료 시각을 연장합니다."""
        stored = make_stored_session(make_user(), timedelta(hours=2))
        mock_session_repo.find_by_token.return_value = stored
        mock_session_repo.extend.side_effect = lambda s, expires_at: (setattr(s, "expires_at", expires_at), s)[1]

        session = identity_service.resolve_session("tok")

        mock_session_repo.extend.assert_called_once_with(stored, ANY)
        assert session.expires_at > datetime.now() + timedelta(hours=23)

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, identity_service, mock_session_repo, token):
        assert identity_service.resolve_session(token) is None
        mock_session_repo.find_by_token.assert_not_called()

    def test_unknown_token(self, identity_service, mock_session_repo):
        mock_session_repo.find_by_token.return_value = None

        assert identity_service.resolve_session("nope") is None

    def test_purge_expired_sessions(self, identity_service, mock_session_repo):
        mock_session_repo.delete_expired.return_value = 4

        assert identity_service.purge_expired_sessions() == 4
        mock_session_repo.delete_expired.assert_called_once_with(ANY)

# ===================================================================
#  사용자 관리 테스트
# ===================================================================
class TestUserManagement:
    def test_list_users_hides_password(self, identity_service, mock_user_repo):
        mock_user_repo.list_all.return_value = [make_user(1), make_user(2, role="ADMIN")]

        users = identity_service.list_users()

        assert [u["id"] for u in users] == [1, 2]
        assert all("password_hash" not in u for u in users)

    def test_get_user_not_found(self, identity_service, mock_user_repo):
        mock_user_repo.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            identity_service.get_user(99)

    def test_delete_user(self, identity_service, mock_user_repo):
        user = make_user(5)
        mock_user_repo.find_by_id.return_value = user

        assert identity_service.delete_user(5) is True
        mock_user_repo.delete.assert_called_once_with(user)

    def test_delete_user_not_found(self, identity_service, mock_user_repo):
        mock_user_repo.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            identity_service.delete_user(5)
        mock_user_repo.delete.assert_not_called()

    def test_change_role_success(self, identity_service, mock_user_repo):
        # === Arrange ===
        user = make_user(4)
        mock_user_repo.find_by_id.return_value = user
        mock_user_repo.update_role.side_effect = lambda u, role: (setattr(u, "role", role), u)[1]

        # === Act ===
        result = identity_service.change_role(4, "manager")

        # === Assert ===
        mock_user_repo.update_role.assert_called_once_with(user, "MANAGER")
        assert result["role"] == "MANAGER"

    def test_change_role_rejects_unknown_role(self, identity_service, mock_user_repo):
        with pytest.raises(RoleNotFoundError):
            identity_service.change_role(4, "OWNER")
        # 검증: 역할 검증이 사용자 조회보다 먼저 수행됨
        mock_user_repo.find_by_id.assert_not_called()
