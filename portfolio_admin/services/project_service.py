import logging
from typing import Dict, Any, List, Optional
from urllib.parse import urlsplit

from portfolio_admin.database import models
from portfolio_admin.repositories.interfaces import IProjectRepository
from portfolio_admin.services.exceptions import ProjectNotFoundError, ProjectValidationError

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500

EDITABLE_FIELDS = ("title", "description", "image_url", "link", "order", "is_active")


def _project_to_dict(project: models.Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "image_url": project.image_url,
        "link": project.link,
        "order": project.order,
        "is_active": project.is_active,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "on", "yes")
    return bool(value)


def _read_text(data: Dict[str, Any], field: str, errors: Dict[str, str]) -> Optional[str]:
    """문자열 필드를 읽습니다. 문자열이 아니면 오류를 기록하고 None을 반환합니다."""
    value = data.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        errors[field] = f"{field} must be a string."
        return None
    return value


def is_safe_url(value: str, allow_relative: bool = False) -> bool:
    """
    http/https 절대 URL만 허용합니다. 'javascript:' 등 다른 스킴은 거부합니다.

    Args:
        value: 검사할 URL.
        allow_relative: True이면 '/'로 시작하는 같은 사이트의 경로도 허용합니다.
    """
    if "\\" in value or any(ch.isspace() or ord(ch) < 32 for ch in value):
        return False
    if allow_relative and value.startswith("/") and not value.startswith("//"):
        return True
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def validate_project_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    프로젝트 입력값을 검증하고 저장 가능한 형태로 정리합니다.

    Args:
        data: 요청 본문 또는 폼에서 읽은 값.
        partial: True이면 전달된 필드만 검증합니다. (수정 요청)

    Returns:
        EDITABLE_FIELDS 중 전달된 필드만 담은 정리된 딕셔너리.

    Raises:
        ProjectValidationError: 하나 이상의 필드가 유효하지 않을 때. 모든 오류를 함께 담습니다.
    """
    errors = {}
    cleaned = {}

    unknown = set(data) - set(EDITABLE_FIELDS)
    if unknown:
        errors["fields"] = f"Unknown fields: {', '.join(sorted(unknown))}."

    if "title" in data or not partial:
        title = _read_text(data, "title", errors)
        if title is not None:
            title = title.strip()
            if not title:
                errors["title"] = "Title is required."
            elif not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
                errors["title"] = f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters."
            cleaned["title"] = title

    if "image_url" in data or not partial:
        image_url = _read_text(data, "image_url", errors)
        if image_url is not None:
            image_url = image_url.strip()
            if not image_url:
                errors["image_url"] = "Project image is required."
            elif not is_safe_url(image_url, allow_relative=True):
                errors["image_url"] = "Image URL must be an http(s) URL or a site-relative path."
            cleaned["image_url"] = image_url

    if "description" in data or not partial:
        description = _read_text(data, "description", errors)
        if description is not None:
            if len(description) > DESCRIPTION_MAX_LENGTH:
                errors["description"] = f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters."
            cleaned["description"] = description

    if "link" in data:
        link = _read_text(data, "link", errors)
        if link is not None:
            link = link.strip() or None
            if link is not None and not is_safe_url(link):
                errors["link"] = "Link must be an http(s) URL."
            cleaned["link"] = link

    if "order" in data:
        order = data.get("order")
        if order in (None, ""):
            cleaned["order"] = None
        else:
            try:
                cleaned["order"] = int(order)
            except (TypeError, ValueError):
                errors["order"] = "Order must be an integer."

    if "is_active" in data:
        cleaned["is_active"] = _to_bool(data.get("is_active"))
    elif not partial:
        cleaned["is_active"] = True

    if errors:
        raise ProjectValidationError(errors)
    return cleaned


class ProjectService:
    """포트폴리오 프로젝트의 생성, 조회, 수정, 삭제를 담당합니다."""

    def __init__(self, project_repo: IProjectRepository):
        self.project_repo = project_repo

    def create_project(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        새로운 프로젝트를 생성합니다.

        Raises:
            ProjectValidationError: 입력값이 유효하지 않을 때.
        """
        cleaned = validate_project_data(data)
        created = self.project_repo.create(models.Project(**cleaned))
        logger.info("Project %s created.", created.id)
        return _project_to_dict(created)

    def list_projects(self, only_active: bool = True) -> List[Dict[str, Any]]:
        """프로젝트 목록을 표시 순서대로 조회합니다."""
        return [_project_to_dict(p) for p in self.project_repo.list_all(only_active=only_active)]

    def get_project(self, project_id: str) -> Dict[str, Any]:
        """
        ID로 특정 프로젝트를 조회합니다.

        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
        """
        return _project_to_dict(self._find_or_raise(project_id))

    def update_project(self, project_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        전달된 필드만 갱신합니다.

        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
            ProjectValidationError: 입력값이 유효하지 않을 때.
        """
        project = self._find_or_raise(project_id)
        cleaned = validate_project_data(data, partial=True)
        updated = self.project_repo.update(project, cleaned)
        logger.info("Project %s updated (%s).", project_id, ", ".join(sorted(cleaned)) or "no changes")
        return _project_to_dict(updated)

    def delete_project(self, project_id: str) -> bool:
        """
        프로젝트를 삭제합니다.

        Raises:
            ProjectNotFoundError: 해당 ID의 프로젝트를 찾을 수 없을 때.
        """
        project = self._find_or_raise(project_id)
        self.project_repo.delete(project)
        logger.info("Project %s deleted.", project_id)
        return True

    def _find_or_raise(self, project_id: str) -> models.Project:
        project = self.project_repo.find_by_id(project_id)
        if not project:
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found.")
        return project
