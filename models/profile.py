"""
Profile Model - application-level user record (name, role, team).
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DateTime, ForeignKey, Enum as SQLEnum, func
from .base import Base
import enum

if TYPE_CHECKING:
    from .user import User
    from .team import Team


class Role(str, enum.Enum):
    """Closed set of roles. Ordering by `priority` puts managers first."""
    MANAGER = "manager"
    LEADER = "leader"
    WORKER = "worker"

    @property
    def display_name(self) -> str:
        return _ROLE_DISPLAY_NAMES[self]

    @property
    def priority(self) -> int:
        return _ROLE_PRIORITY[self]

    @classmethod
    def parse(cls, value) -> "Role":
        """Coerce a raw value into a Role; raises ValueError for anything outside the set."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Invalid role: {value!r}")


_ROLE_DISPLAY_NAMES = {
    Role.MANAGER: "Project Manager",
    Role.LEADER: "Team Leader",
    Role.WORKER: "Worker",
}

_ROLE_PRIORITY = {
    Role.MANAGER: 1,
    Role.LEADER: 2,
    Role.WORKER: 3,
}


class Profile(Base):
    """
    One profile per User; `id` is the User's id.
    `team_id` is nulled when the profile leaves its team or the team is deleted.
    """
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    email: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(64), default="", nullable=False)

    role: Mapped[Role] = mapped_column(
        SQLEnum(Role, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        default=Role.WORKER,
        nullable=False,
    )

    team_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    user: Mapped["User"] = relationship(back_populates="profile")
    team: Mapped[Optional["Team"]] = relationship(
        foreign_keys=[team_id], back_populates="members", lazy="joined"
    )
    led_teams: Mapped[List["Team"]] = relationship(
        foreign_keys="Team.leader_id", back_populates="leader", post_update=True
    )

    def __repr__(self):
        return f'<Profile {self.id}: {self.email} ({self.role.value})>'

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def sort_key(self):
        """Managers first, then leaders, then workers; alphabetical within a role."""
        return (self.role.priority, self.last_name.lower(), self.first_name.lower(), self.id)

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER

    def to_dict(self, include_team=True):
        data = {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'role': self.role.value,
            'role_display_name': self.role.display_name,
            'team_id': self.team_id,
        }
        if include_team:
            data['team'] = {'id': self.team.id, 'name': self.team.name} if self.team else None
        return data
