from .user import User
from .project import Project
from .session import UserSession
