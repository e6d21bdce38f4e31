"""
Team Model - named group of profiles with an optional leader.
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, func
from .base import Base

if TYPE_CHECKING:
    from .profile import Profile


class Team(Base):
    """
    Members are the profiles whose team_id points here (back-reference).
    leader_id forms a cycle with profiles.team_id, hence use_alter/post_update.
    """
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    leader_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL", use_alter=True, name="fk_teams_leader_id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    members: Mapped[List["Profile"]] = relationship(
        foreign_keys="Profile.team_id", back_populates="team"
    )
    leader: Mapped[Optional["Profile"]] = relationship(
        foreign_keys=[leader_id], back_populates="led_teams", post_update=True
    )

    def __repr__(self):
        return f'<Team {self.id}: {self.name}>'

    @property
    def leader_email(self) -> Optional[str]:
        return self.leader.email if self.leader else None

    def sorted_members(self) -> List["Profile"]:
        """Members ordered manager, leader, worker; ties by last then first name."""
        return sorted(self.members, key=lambda p: p.sort_key)

    def to_dict(self, include_members=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'leader_id': self.leader_id,
            'leader_email': self.leader_email,
            'member_count': len(self.members),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_members:
            data['members'] = [
                {
                    'id': member.id,
                    'first_name': member.first_name,
                    'last_name': member.last_name,
                    'role': member.role.value,
                    'role_display_name': member.role.display_name,
                }
                for member in self.sorted_members()
            ]
        return data
