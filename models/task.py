"""
Task Model - one ordered item of a project's task list.
`position` is 1-based and dense within a project; services/task_reconciler.py keeps it that way.
"""

from typing import TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, ForeignKey, Enum as SQLEnum, Index, func
from .base import Base
import enum

if TYPE_CHECKING:
    from .project import Project

TASK_TITLE_MAX_LENGTH = 255


class TaskStatus(str, enum.Enum):
    """Completion state of a task."""
    COMPLETED = "completed"
    UNCOMPLETED = "uncompleted"

    def toggled(self) -> "TaskStatus":
        return TaskStatus.UNCOMPLETED if self is TaskStatus.COMPLETED else TaskStatus.COMPLETED

    @classmethod
    def parse(cls, value) -> "TaskStatus":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Invalid task status: {value!r}")


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )

    title: Mapped[str] = mapped_column(String(TASK_TITLE_MAX_LENGTH), nullable=False)
    status: Mapped[TaskStatus] = mapped_column(
        SQLEnum(TaskStatus, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        default=TaskStatus.UNCOMPLETED,
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-based display order

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    project: Mapped["Project"] = relationship(back_populates="tasks")

    # Not unique: renumbering passes through transient duplicates inside a flush.
    __table_args__ = (
        Index('ix_tasks_project_position', 'project_id', 'position'),
    )

    def __repr__(self):
        return f'<Task {self.id}: {self.title} @{self.position}>'

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def toggle_status(self) -> TaskStatus:
        self.status = self.status.toggled()
        return self.status

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'title': self.title,
            'status': self.status.value,
            'position': self.position,
            'is_completed': self.is_completed,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
