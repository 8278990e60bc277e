"""Tests for LinkLifecycleManager."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from sharelink.db.repositories import SqlLinkRepository
from sharelink.errors import (
    NoChangesError,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from sharelink.lifecycle import LinkLifecycleManager
from sharelink.primitives import as_utc
from sharelink.schemas import LinkDraft, LinkPatch
from sharelink.storage import BlobStorageError, LocalBlobStore, StoreResult


class RecordingBlobStore(LocalBlobStore):
    """Local store that records every delete call."""

    def __init__(self, root):
        super().__init__(root)
        self.deleted = []

    async def delete(self, ref):
        self.deleted.append(ref)
        return await super().delete(ref)


class FailingDeleteBlobStore(LocalBlobStore):
    async def delete(self, ref):
        raise BlobStorageError("bucket unavailable")


class FailingStoreBlobStore(LocalBlobStore):
    async def store(self, filename, data, content_type=None):
        return StoreResult.failure("disk full")


class FailingInsertRepository(SqlLinkRepository):
    def add(self, **fields):
        raise OperationalError("INSERT INTO links", {}, Exception("database is locked"))


@pytest.fixture
def manager(repository, blob_store):
    return LinkLifecycleManager(repository, blob_store)


def draft(**overrides):
    values = {
        "owner_id": "user-1",
        "owner_email": "owner@example.com",
        "filename": "notes.txt",
        "content_type": "text/plain",
        "content": b"hello",
    }
    values.update(overrides)
    return LinkDraft(**values)


class TestCreate:
    @pytest.mark.asyncio
    async def test_creates_public_link_by_default(self, manager, repository, blob_store):
        created = await manager.create(draft())

        link = repository.get(created.id)
        assert link.visibility == "public"
        assert link.password is None
        assert link.access_count == 0
        assert link.title == "notes.txt"
        assert link.blob_ref == created.file_url
        assert await blob_store.read_text(created.file_url) == "hello"

    @pytest.mark.asyncio
    async def test_ids_are_unique_and_opaque(self, manager):
        first = await manager.create(draft())
        second = await manager.create(draft())
        assert first.id != second.id
        assert len(first.id) == 32

    @pytest.mark.asyncio
    async def test_private_link_keeps_password(self, manager, repository):
        created = await manager.create(draft(visibility="private", password="abc"))
        link = repository.get(created.id)
        assert link.visibility == "private"
        assert link.password == "abc"

    @pytest.mark.asyncio
    async def test_public_link_drops_password(self, manager, repository):
        created = await manager.create(draft(visibility="public", password="abc"))
        assert repository.get(created.id).password is None

    @pytest.mark.asyncio
    async def test_private_link_without_password_stores_null(self, manager, repository):
        created = await manager.create(draft(visibility="private", password=""))
        link = repository.get(created.id)
        assert link.visibility == "private"
        assert link.password is None

    @pytest.mark.asyncio
    async def test_expiration_is_parsed(self, manager, repository):
        created = await manager.create(draft(expiration="2030-01-02T03:04:05Z"))
        assert as_utc(repository.get(created.id).expiration) == datetime(
            2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc
        )

    @pytest.mark.asyncio
    async def test_unparseable_expiration_means_never(self, manager, repository):
        created = await manager.create(draft(expiration="next tuesday"))
        assert repository.get(created.id).expiration is None

    @pytest.mark.asyncio
    async def test_explicit_title_wins(self, manager, repository):
        created = await manager.create(draft(title="Meeting notes"))
        assert repository.get(created.id).title == "Meeting notes"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [{"owner_id": None}, {"owner_id": "  "}, {"content": b""}],
    )
    async def test_missing_owner_or_file_is_rejected(self, manager, repository, overrides):
        with pytest.raises(ValidationError):
            await manager.create(draft(**overrides))
        assert repository.list() == []

    @pytest.mark.asyncio
    async def test_unknown_visibility_is_rejected(self, manager):
        with pytest.raises(ValidationError):
            await manager.create(draft(visibility="friends"))

    @pytest.mark.asyncio
    async def test_store_failure_creates_no_record(self, repository, tmp_path):
        manager = LinkLifecycleManager(repository, FailingStoreBlobStore(tmp_path))

        with pytest.raises(StorageFailure):
            await manager.create(draft())

        assert repository.list() == []

    @pytest.mark.asyncio
    async def test_insert_failure_removes_stored_blob(self, db_session, blob_store):
        repository = FailingInsertRepository(db_session)
        manager = LinkLifecycleManager(repository, blob_store)

        with pytest.raises(StorageFailure):
            await manager.create(draft())

        assert list(blob_store.root.iterdir()) == []
        assert SqlLinkRepository(db_session).list() == []


class TestUpdate:
    def test_updates_title(self, manager, make_link):
        link = make_link()
        updated = manager.update(link.id, LinkPatch(title="Renamed"))
        assert updated.title == "Renamed"

    def test_private_to_public_clears_password(self, manager, make_link):
        link = make_link(visibility="private", password="abc")
        updated = manager.update(link.id, LinkPatch(visibility="public"))
        assert updated.visibility == "public"
        assert updated.password is None

    def test_password_ignored_while_public(self, manager, make_link):
        link = make_link()
        with pytest.raises(NoChangesError):
            manager.update(link.id, LinkPatch(password="abc"))

    def test_password_change_on_private_link(self, manager, make_link):
        link = make_link(visibility="private", password="abc")
        updated = manager.update(link.id, LinkPatch(password="xyz"))
        assert updated.visibility == "private"
        assert updated.password == "xyz"

    def test_private_keeps_password_when_only_visibility_repeated(self, manager, make_link):
        link = make_link(visibility="private", password="abc")
        with pytest.raises(NoChangesError):
            manager.update(link.id, LinkPatch(visibility="private"))

    def test_public_to_private_with_password(self, manager, make_link):
        link = make_link()
        updated = manager.update(
            link.id, LinkPatch(visibility="private", password="s3cret")
        )
        assert updated.visibility == "private"
        assert updated.password == "s3cret"

    def test_sets_and_clears_expiration(self, manager, make_link):
        link = make_link()
        updated = manager.update(link.id, LinkPatch(expiration="2031-05-06T07:08:09+00:00"))
        assert as_utc(updated.expiration) == datetime(
            2031, 5, 6, 7, 8, 9, tzinfo=timezone.utc
        )

        cleared = manager.update(link.id, LinkPatch(expiration=None))
        assert cleared.expiration is None

    def test_unknown_fields_are_ignored(self, manager, make_link, repository):
        link = make_link()
        patch = LinkPatch.model_validate(
            {"title": "New", "accessCount": 99, "ownerId": "mallory", "id": "x"}
        )

        updated = manager.update(link.id, patch)

        assert updated.title == "New"
        assert updated.access_count == 0
        assert updated.owner_id == "user-1"
        assert updated.id == link.id

    def test_identical_values_raise_no_changes(self, manager, make_link):
        link = make_link(title="Same")
        with pytest.raises(NoChangesError):
            manager.update(link.id, LinkPatch(title="Same", visibility="public"))

    def test_empty_patch_raises_no_changes(self, manager, make_link):
        link = make_link()
        with pytest.raises(NoChangesError):
            manager.update(link.id, LinkPatch())

    def test_same_expiration_is_no_change(self, manager, make_link):
        when = datetime(2030, 1, 1, tzinfo=timezone.utc)
        link = make_link(expiration=when)
        with pytest.raises(NoChangesError):
            manager.update(link.id, LinkPatch(expiration=when.isoformat()))

    def test_missing_link(self, manager):
        with pytest.raises(NotFoundError):
            manager.update("0" * 32, LinkPatch(title="x"))

    @pytest.mark.parametrize("link_id", ["not-an-id", "ABCDEF" * 6, "0" * 31])
    def test_malformed_id(self, manager, link_id):
        with pytest.raises(ValidationError):
            manager.update(link_id, LinkPatch(title="x"))

    def test_update_does_not_touch_access_count(self, manager, make_link, repository):
        link = make_link()
        repository.increment_access_count(link.id)
        updated = manager.update(link.id, LinkPatch(title="Other"))
        assert updated.access_count == 1


class TestDelete:
    @pytest.mark.asyncio
    async def test_deletes_blob_then_record(self, repository, tmp_path):
        store = RecordingBlobStore(tmp_path / "uploads")
        manager = LinkLifecycleManager(repository, store)
        created = await manager.create(draft())

        await manager.delete(created.id)

        assert repository.get(created.id) is None
        assert store.deleted == [created.file_url]
        assert not store.path_for(created.file_url).exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("link_id", ["0" * 32, "garbage"])
    async def test_missing_link_touches_no_blob(self, repository, tmp_path, link_id):
        store = RecordingBlobStore(tmp_path / "uploads")
        manager = LinkLifecycleManager(repository, store)

        with pytest.raises(NotFoundError):
            await manager.delete(link_id)

        assert store.deleted == []

    @pytest.mark.asyncio
    async def test_blob_failure_keeps_record(self, repository, make_link, tmp_path):
        link = make_link()
        manager = LinkLifecycleManager(repository, FailingDeleteBlobStore(tmp_path))

        with pytest.raises(StorageFailure):
            await manager.delete(link.id)

        assert repository.get(link.id) is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "blob_ref",
        [
            "https://bucket.s3.amazonaws.com/links/1-a.pdf",
            "/elsewhere/1-a.pdf",
            "/uploads/..",
        ],
    )
    async def test_blob_ref_outside_store_keeps_record(
        self, repository, make_link, tmp_path, blob_ref
    ):
        link = make_link(blob_ref=blob_ref)
        manager = LinkLifecycleManager(repository, LocalBlobStore(tmp_path / "uploads"))

        with pytest.raises(StorageFailure):
            await manager.delete(link.id)

        assert repository.get(link.id) is not None

    @pytest.mark.asyncio
    async def test_already_absent_blob_still_deletes_record(self, manager, repository, make_link):
        link = make_link(blob_ref="/uploads/1-gone.pdf")

        await manager.delete(link.id)

        assert repository.get(link.id) is None


class TestQueries:
    def test_list_filters_by_owner_email(self, manager, make_link):
        mine = make_link(owner_email="me@example.com")
        make_link(owner_email="you@example.com")

        assert [link.id for link in manager.list("me@example.com")] == [mine.id]
        assert len(manager.list()) == 2
        assert manager.list("nobody@example.com") == []

    def test_list_in_insertion_order(self, manager, make_link):
        ids = [make_link(title=f"link {i}").id for i in range(3)]
        assert [link.id for link in manager.list()] == ids

    def test_access_count(self, manager, make_link, repository):
        link = make_link()
        for _ in range(3):
            repository.increment_access_count(link.id)
        assert manager.access_count(link.id) == 3

    def test_access_count_missing_link(self, manager):
        with pytest.raises(NotFoundError):
            manager.access_count("0" * 32)

    def test_expired_link_is_still_listed(self, manager, make_link):
        link = make_link(expiration=datetime.now(timezone.utc) - timedelta(days=1))
        assert [row.id for row in manager.list()] == [link.id]
