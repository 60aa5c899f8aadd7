from .user import IUserRepository
from .project import IProjectRepository
from .session import ISessionRepository
