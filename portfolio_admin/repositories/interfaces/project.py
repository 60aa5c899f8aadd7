from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from portfolio_admin.database import models

class IProjectRepository(ABC):
    @abstractmethod
    def create(self, project_model: models.Project) -> models.Project:
        """새로운 프로젝트를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, project_id: str) -> Optional[models.Project]:
        """고유 ID로 특정 프로젝트를 조회합니다."""
        pass

    @abstractmethod
    def list_all(self, only_active: bool = False) -> List[models.Project]:
        """
        프로젝트 목록을 표시 순서대로 조회합니다.

        Args:
            only_active: True이면 활성화된(is_active) 프로젝트만 조회합니다.

        Returns:
            order 오름차순(값이 없는 항목은 뒤로), 생성일 내림차순으로 정렬된 목록.
        """
        pass

    @abstractmethod
    def update(self, project: models.Project, changes: Dict[str, Any]) -> models.Project:
        """프로젝트의 필드를 주어진 값으로 갱신합니다."""
        pass

    @abstractmethod
    def delete(self, project: models.Project) -> bool:
        """특정 프로젝트를 데이터베이스에서 삭제합니다."""
        pass
