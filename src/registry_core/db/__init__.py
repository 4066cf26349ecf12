"""Database utilities exposed for the registry core."""

from .base import Base
from .session import Database, get_database

__all__ = ["Base", "Database", "get_database"]
