"""
SQLAlchemy declarative base.

Constraint names follow PostgreSQL's own defaults so tables created by
``create_tables()`` match the ones created by the Alembic migration.
"""

from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "%(table_name)s_%(column_0_name)s_key",
    "fk": "%(table_name)s_%(column_0_name)s_fkey",
    "pk": "%(table_name)s_pkey",
}


class Base(DeclarativeBase):
    """Base class for the meeting and sync status models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
