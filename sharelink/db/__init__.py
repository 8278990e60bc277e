"""
Database package for ShareLink.
"""

from .base import Base, get_db, get_engine, init_database
from .models import LinkModel, UserModel
from .repositories import LinkRepository, SqlLinkRepository, UserRepository

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "init_database",
    "LinkModel",
    "UserModel",
    "LinkRepository",
    "SqlLinkRepository",
    "UserRepository",
]
