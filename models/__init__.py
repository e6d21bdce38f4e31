"""
Checkmate data model.

`db` is the Flask-SQLAlchemy extension bound to the shared declarative `Base`,
so `db.metadata` and `db.session` cover every model imported below.
"""

from flask_sqlalchemy import SQLAlchemy

from .base import Base

db = SQLAlchemy(model_class=Base)

from .user import User  # noqa: E402
from .profile import Profile, Role  # noqa: E402
from .team import Team  # noqa: E402
from .project import Project  # noqa: E402
from .task import Task, TaskStatus  # noqa: E402

__all__ = [
    "Base",
    "db",
    "User",
    "Profile",
    "Role",
    "Team",
    "Project",
    "Task",
    "TaskStatus",
]
