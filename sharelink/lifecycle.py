"""
Link lifecycle: creation, metadata updates, deletion and listing.

Ordering is the only consistency mechanism between the blob store and the
record store:
- create: store the blob, then insert the record
- delete: delete the blob, then delete the record
A crash between the two steps can leave an orphaned blob; it never leaves a
record without a blob.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from .db.models import LinkModel
from .db.repositories import LinkRepository
from .errors import NoChangesError, NotFoundError, StorageFailure, ValidationError
from .primitives import as_utc, is_valid_link_id, normalize_password, parse_timestamp
from .schemas import LinkDraft, LinkPatch
from .storage import BlobStorageError, BlobStore

logger = structlog.get_logger()

VISIBILITIES = ("public", "private")


@dataclass(frozen=True)
class CreatedLink:
    id: str
    file_url: str


def _resolve_visibility(value: Optional[str]) -> str:
    if value is None or not value.strip():
        return "public"
    visibility = value.strip().lower()
    if visibility not in VISIBILITIES:
        raise ValidationError(
            f"Visibility '{value}' is not allowed. "
            f"Allowed values: {', '.join(VISIBILITIES)}"
        )
    return visibility


class LinkLifecycleManager:
    """Orchestrates the blob store and the link repository.

    Usage:
        manager = LinkLifecycleManager(SqlLinkRepository(db), blob_store)
        created = await manager.create(LinkDraft(owner_id="u1", content=b"..."))
    """

    def __init__(self, repository: LinkRepository, blob_store: BlobStore):
        self.repository = repository
        self.blob_store = blob_store

    async def create(self, draft: LinkDraft) -> CreatedLink:
        """Store the upload and persist a link record for it.

        Raises:
            ValidationError: If the owner id or the file payload is missing,
                or the visibility is unknown
            StorageFailure: If the blob or the record could not be stored
        """
        if not draft.owner_id or not draft.owner_id.strip() or not draft.content:
            raise ValidationError("User ID and file are required")

        visibility = _resolve_visibility(draft.visibility)
        password = normalize_password(draft.password) if visibility == "private" else None
        expiration = parse_timestamp(draft.expiration)
        if draft.expiration and expiration is None:
            logger.warning("Ignoring unparseable expiration", expiration=draft.expiration)

        result = await self.blob_store.store(
            draft.filename, draft.content, draft.content_type
        )
        if not result.ok:
            logger.error("Upload not stored; no link created", error=result.error)
            raise StorageFailure("Failed to store file")

        try:
            link = await asyncio.to_thread(
                self.repository.add,
                owner_id=draft.owner_id,
                owner_email=draft.owner_email or None,
                title=draft.title or draft.filename,
                blob_ref=result.ref,
                visibility=visibility,
                password=password,
                expiration=expiration,
            )
        except SQLAlchemyError as e:
            logger.error("Failed to persist link", blob_ref=result.ref, error=str(e))
            await self._discard_blob(result.ref)
            raise StorageFailure("Failed to create link") from e

        logger.info(
            "Link created",
            link_id=link.id,
            owner_id=link.owner_id,
            visibility=visibility,
            blob_ref=link.blob_ref,
        )
        return CreatedLink(id=link.id, file_url=link.blob_ref)

    def update(self, link_id: str, patch: LinkPatch) -> LinkModel:
        """Apply a metadata patch.

        Raises:
            ValidationError: If the id is malformed or the visibility unknown
            NotFoundError: If no link matches
            NoChangesError: If the patch leaves the link unchanged
        """
        if not is_valid_link_id(link_id):
            raise ValidationError(f"Malformed link id: {link_id}")

        link = self.repository.get(link_id)
        if link is None:
            raise NotFoundError("No link found to update")

        fields = patch.model_fields_set
        target: Dict[str, Any] = {}

        if "title" in fields:
            target["title"] = patch.title

        visibility = link.visibility
        if "visibility" in fields and patch.visibility is not None:
            visibility = _resolve_visibility(patch.visibility)
            target["visibility"] = visibility

        password = link.password
        if "password" in fields:
            password = normalize_password(patch.password)
        target["password"] = password if visibility == "private" else None

        if "expiration" in fields:
            target["expiration"] = parse_timestamp(patch.expiration)

        changes = {
            key: value
            for key, value in target.items()
            if self._current_value(link, key) != value
        }
        if not changes:
            raise NoChangesError("No changes to apply")

        if not self.repository.update_fields(link_id, changes):
            raise NotFoundError("No link found to update")

        logger.info("Link updated", link_id=link_id, fields=sorted(changes))
        return self.repository.get(link_id)

    async def delete(self, link_id: str) -> None:
        """Delete a link's blob, then its record.

        Raises:
            NotFoundError: If no link matches (no blob operation happens)
            StorageFailure: If the blob could not be deleted; the record is kept
        """
        link = (
            await asyncio.to_thread(self.repository.get, link_id)
            if is_valid_link_id(link_id)
            else None
        )
        if link is None:
            raise NotFoundError("Link not found")

        blob_ref = link.blob_ref
        try:
            removed = await self.blob_store.delete(blob_ref)
        except BlobStorageError as e:
            logger.error("Blob delete failed; keeping link", link_id=link_id, blob_ref=blob_ref, error=str(e))
            raise StorageFailure("Failed to delete file") from e

        if not removed:
            logger.warning("Blob already absent", link_id=link_id, blob_ref=blob_ref)

        if not await asyncio.to_thread(self.repository.delete, link_id):
            raise NotFoundError("Link not found")
        logger.info("Link deleted", link_id=link_id)

    def list(self, owner_email: Optional[str] = None) -> List[LinkModel]:
        """All links, optionally only those of one owner email."""
        return self.repository.list(owner_email=owner_email)

    def get(self, link_id: str) -> LinkModel:
        link = self.repository.get(link_id) if is_valid_link_id(link_id) else None
        if link is None:
            raise NotFoundError("Link not found")
        return link

    def access_count(self, link_id: str) -> int:
        """Analytics read of the access counter."""
        return self.get(link_id).access_count

    @staticmethod
    def _current_value(link: LinkModel, key: str) -> Any:
        value = getattr(link, key)
        if key == "expiration":
            return as_utc(value)
        return value

    async def _discard_blob(self, ref: str) -> None:
        try:
            await self.blob_store.delete(ref)
        except BlobStorageError as e:
            logger.error("Failed to remove orphaned blob", blob_ref=ref, error=str(e))
