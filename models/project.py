"""
Project Model - a manager-owned container for an ordered task list.
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, func
from .base import Base

if TYPE_CHECKING:
    from .profile import Profile
    from .task import Task

PROJECT_TITLE_MAX_LENGTH = 60
PROJECT_DESCRIPTION_MAX_LENGTH = 500


class Project(Base):
    """
    Deleting a project deletes its tasks in the same flush (delete-orphan cascade).
    """
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(PROJECT_TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    owner_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    owner_email: Mapped[str] = mapped_column(String(120), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
    # Optimistic lock: every UPDATE of the row checks and bumps it.
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    owner: Mapped[Optional["Profile"]] = relationship(foreign_keys=[owner_id])
    tasks: Mapped[List["Task"]] = relationship(
        back_populates="project",
        order_by="Task.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f'<Project {self.id}: {self.title}>'

    @property
    def is_completed(self) -> bool:
        """True when no task is left uncompleted (so also for a project with no tasks)."""
        return all(task.is_completed for task in self.tasks)

    def to_dict(self, include_tasks=False):
        completed = sum(1 for task in self.tasks if task.is_completed)
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'owner_id': self.owner_id,
            'owner_email': self.owner_email,
            'task_count': len(self.tasks),
            'completed_task_count': completed,
            'is_completed': self.is_completed,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_tasks:
            data['tasks'] = [task.to_dict() for task in self.tasks]
        return data
