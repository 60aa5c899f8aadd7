# portfolio_admin/services/exceptions.py

# --- General Exceptions ---
class ProjectNotFoundError(Exception):
    """프로젝트를 찾을 수 없을 때"""
    pass

class UserNotFoundError(Exception):
    """사용자를 찾을 수 없을 때"""
    pass

class RoleNotFoundError(Exception):
    """역할 이름이 USER, MANAGER, ADMIN 중 하나가 아닐 때"""
    pass

# --- Creation/Validation Exceptions ---
class UserCreationError(Exception):
    """사용자 생성 실패 시 (이메일 중복 등)"""
    pass

class ProjectValidationError(ValueError):
    """프로젝트 입력값이 유효하지 않을 때"""
    def __init__(self, errors):
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(f"Invalid project data. {detail}")

# --- Auth Exceptions ---
class AuthenticationError(Exception):
    """사용자 자격 증명 실패 시"""
    pass

class UnauthorizedError(Exception):
    """접근 권한이 없을 때. reason으로 미인증/권한 부족을 구분합니다."""
    reason = "unauthorized"

    def __init__(self, message="Unauthorized"):
        super().__init__(message)

class UnauthenticatedError(UnauthorizedError):
    """유효한 세션이 없을 때"""
    reason = "unauthenticated"

class ForbiddenError(UnauthorizedError):
    """세션은 유효하지만 역할이 부족할 때"""
    reason = "forbidden"
