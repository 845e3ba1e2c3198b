"""Database package: engine, ORM models, and CRUD facade."""

from wasteflow.db.engine import create_db_engine, create_session_factory
from wasteflow.db.facade import Database
from wasteflow.db.orm import Base, ProcessRow, UserRow

__all__ = [
    "Base",
    "Database",
    "ProcessRow",
    "UserRow",
    "create_db_engine",
    "create_session_factory",
]
