"""
Declarative base shared by every Checkmate model.
SQLAlchemy 2.0 typed mappings; Flask-SQLAlchemy reuses this registry for `db.Model`.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
