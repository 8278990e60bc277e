"""
Persistence layer for ShareLink.

``LinkRepository`` is the store interface the lifecycle manager and the access
policy engine depend on; ``SqlLinkRepository`` implements it over a
SQLAlchemy session.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..primitives import generate_link_id, utc_now
from .models import LinkModel, UserModel


class LinkRepository(ABC):
    """Abstract store of link records keyed by opaque identifier."""

    @abstractmethod
    def add(
        self,
        *,
        owner_id: str,
        owner_email: Optional[str],
        title: Optional[str],
        blob_ref: str,
        visibility: str,
        password: Optional[str],
        expiration: Optional[datetime],
    ) -> LinkModel:
        """Persist a new link and return it with its generated id."""
        pass

    @abstractmethod
    def get(self, link_id: str) -> Optional[LinkModel]:
        """Get a link by ID."""
        pass

    @abstractmethod
    def list(self, owner_email: Optional[str] = None) -> List[LinkModel]:
        """List links in insertion order, optionally filtered by owner email."""
        pass

    @abstractmethod
    def update_fields(self, link_id: str, values: Dict[str, Any]) -> bool:
        """Overwrite the given columns. Returns False when no link matches."""
        pass

    @abstractmethod
    def delete(self, link_id: str) -> bool:
        """Delete a link record. Returns False when no link matches."""
        pass

    @abstractmethod
    def increment_access_count(self, link_id: str) -> Optional[int]:
        """Atomically add one to the access counter.

        Returns the counter after the increment, or None when no link matches.
        """
        pass


class SqlLinkRepository(LinkRepository):
    """Link repository backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        *,
        owner_id: str,
        owner_email: Optional[str],
        title: Optional[str],
        blob_ref: str,
        visibility: str,
        password: Optional[str],
        expiration: Optional[datetime],
    ) -> LinkModel:
        db_link = LinkModel(
            id=generate_link_id(),
            owner_id=owner_id,
            owner_email=owner_email,
            title=title,
            blob_ref=blob_ref,
            visibility=visibility,
            password=password,
            expiration=expiration,
            created_at=utc_now(),
            access_count=0,
        )

        try:
            self.db.add(db_link)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(db_link)
        return db_link

    def get(self, link_id: str) -> Optional[LinkModel]:
        return self.db.get(LinkModel, link_id)

    def list(self, owner_email: Optional[str] = None) -> List[LinkModel]:
        query = select(LinkModel)
        if owner_email is not None:
            query = query.where(LinkModel.owner_email == owner_email)
        query = query.order_by(LinkModel.created_at)
        return list(self.db.scalars(query).all())

    def update_fields(self, link_id: str, values: Dict[str, Any]) -> bool:
        if not values:
            return self.get(link_id) is not None
        try:
            result = self.db.execute(
                update(LinkModel).where(LinkModel.id == link_id).values(**values)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount > 0

    def delete(self, link_id: str) -> bool:
        try:
            result = self.db.execute(delete(LinkModel).where(LinkModel.id == link_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount > 0

    def increment_access_count(self, link_id: str) -> Optional[int]:
        # Single UPDATE statement; the database serializes concurrent viewers.
        try:
            result = self.db.execute(
                update(LinkModel)
                .where(LinkModel.id == link_id)
                .values(access_count=LinkModel.access_count + 1)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if result.rowcount == 0:
            return None
        return self.db.scalar(
            select(LinkModel.access_count).where(LinkModel.id == link_id)
        )


class UserRepository:
    """Repository for uploading users."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[UserModel]:
        """Get a user by email."""
        return self.db.scalar(select(UserModel).where(UserModel.email == email))

    def create(
        self, email: str, name: Optional[str] = None, photo: Optional[str] = None
    ) -> UserModel:
        """Create a new user."""
        db_user = UserModel(
            id=generate_link_id(),
            email=email,
            name=name,
            photo=photo,
            created_at=utc_now(),
        )
        try:
            self.db.add(db_user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(db_user)
        return db_user
