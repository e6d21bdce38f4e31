"""
User Model - authentication identity for Checkmate.
Holds credentials only; name, role and team live on the linked Profile.
"""

from typing import Optional, TYPE_CHECKING
from datetime import datetime
from flask_login import UserMixin
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, DateTime, Boolean, func
from werkzeug.security import generate_password_hash, check_password_hash
from .base import Base

if TYPE_CHECKING:
    from .profile import Profile


class User(UserMixin, Base):
    """
    Login identity. The Profile shares this row's id.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(120), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # True only on the account that claimed manager by signing up first; NULL
    # elsewhere, so the unique constraint admits a single claim.
    first_account: Mapped[Optional[bool]] = mapped_column(Boolean, unique=True, nullable=True)

    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    profile: Mapped[Optional["Profile"]] = relationship(
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="joined",
    )

    def __repr__(self):
        return f'<User {self.id}: {self.email}>'

    @property
    def is_active(self) -> bool:
        return self.active

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def update_last_login(self):
        self.last_login = datetime.utcnow()
