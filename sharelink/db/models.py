"""
SQLAlchemy models for ShareLink.
"""

from typing import Any, Dict

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String, Text

from ..primitives import as_utc, generate_link_id, utc_now
from .base import Base


def _isoformat(value) -> Any:
    value = as_utc(value)
    return value.isoformat() if value else None


class LinkModel(Base):
    """SQLAlchemy model for shareable links."""

    __tablename__ = "links"

    # Primary fields
    id = Column(String(32), primary_key=True, default=generate_link_id)
    title = Column(String(512), nullable=True)

    # Ownership (immutable after creation)
    owner_id = Column(String(128), nullable=False)
    owner_email = Column(String(320), nullable=True, index=True)

    # Stored file
    blob_ref = Column(String(2000), nullable=False)

    # Access control
    visibility = Column(
        Enum("public", "private", name="link_visibility"),
        nullable=False,
        default="public",
    )
    password = Column(Text, nullable=True)
    expiration = Column(DateTime(timezone=True), nullable=True)

    # Timestamps and analytics
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    access_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (Index("ix_links_created_at", "created_at"),)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "ownerId": self.owner_id,
            "ownerEmail": self.owner_email,
            "blobRef": self.blob_ref,
            "visibility": self.visibility,
            "password": self.password,
            "expiration": _isoformat(self.expiration),
            "createdAt": _isoformat(self.created_at),
            "accessCount": self.access_count,
        }

    def __repr__(self) -> str:
        return f"<LinkModel(id={self.id}, visibility={self.visibility})>"


class UserModel(Base):
    """SQLAlchemy model for uploading users."""

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=generate_link_id)
    email = Column(String(320), nullable=False, unique=True, index=True)
    name = Column(String(256), nullable=True)
    photo = Column(String(2000), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "photo": self.photo,
            "createdAt": _isoformat(self.created_at),
        }
