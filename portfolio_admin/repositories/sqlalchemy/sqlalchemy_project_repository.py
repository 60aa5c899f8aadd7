from typing import List, Optional, Dict, Any
from sqlalchemy.orm import Session
from portfolio_admin.database import models
from portfolio_admin.repositories.interfaces import IProjectRepository

class SqlalchemyProjectRepository(IProjectRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, project_model: models.Project) -> models.Project:
        self.db.add(project_model)
        self.db.commit()
        self.db.refresh(project_model)
        return project_model

    def find_by_id(self, project_id: str) -> Optional[models.Project]:
        return self.db.query(models.Project).filter(models.Project.id == project_id).first()

    def list_all(self, only_active: bool = False) -> List[models.Project]:
        query = self.db.query(models.Project)
        if only_active:
            query = query.filter(models.Project.is_active.is_(True))
        # order가 NULL인 프로젝트는 뒤로 보냅니다.
        return query.order_by(
            models.Project.order.is_(None),
            models.Project.order.asc(),
            models.Project.created_at.desc(),
        ).all()

    def update(self, project: models.Project, changes: Dict[str, Any]) -> models.Project:
        for field, value in changes.items():
            setattr(project, field, value)
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete(self, project: models.Project) -> bool:
        if project:
            self.db.delete(project)
            self.db.commit()
            return True
        return False
