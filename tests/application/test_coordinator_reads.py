"""Read path: local answers first, refreshed from the server when reachable."""

from __future__ import annotations

from datetime import timedelta

import pytest

from docsync.core.time_utils import utc_now
from docsync.domain.events.entity_events import EntityListRefreshed
from docsync.domain.models.entities import Bookmark, Comment, SyncState
from docsync.domain.models.job import JobType


def _bookmark(entity_id: str, **overrides) -> Bookmark:
    values = {"doc_id": "doc-1", "user_id": "user-1", "page_number": 1}
    values.update(overrides)
    return Bookmark(id=entity_id, **values)


def _comment(entity_id: str, content: str, minutes_ago: int, **overrides) -> Comment:
    created = utc_now() - timedelta(minutes=minutes_ago)
    return Comment(
        id=entity_id,
        doc_id=overrides.pop("doc_id", "doc-1"),
        content=content,
        created_at=created,
        updated_at=created,
        **overrides,
    )


class TestGet:
    @pytest.mark.asyncio
    async def test_local_hit_skips_remote(self, bookmarks):
        await bookmarks.store.put(_bookmark("b1"))

        found = await bookmarks.coordinator.get("b1")

        assert found.id == "b1"
        assert bookmarks.remote.calls == []

    @pytest.mark.asyncio
    async def test_miss_is_fetched_and_cached(self, bookmarks):
        bookmarks.remote.seed(_bookmark("srv-9", note="from server"))

        found = await bookmarks.coordinator.get("srv-9")

        assert found.note == "from server"
        assert bookmarks.store.records["srv-9"].sync_state is SyncState.SYNCED

    @pytest.mark.asyncio
    async def test_miss_offline_or_failing_returns_none(self, bookmarks):
        bookmarks.remote.seed(_bookmark("srv-9"))
        bookmarks.connectivity.online = False
        assert await bookmarks.coordinator.get("srv-9") is None

        bookmarks.connectivity.online = True
        bookmarks.remote.fail = True
        assert await bookmarks.coordinator.get("srv-9") is None
        assert bookmarks.store.records == {}

    @pytest.mark.asyncio
    async def test_locally_deleted_record_is_not_resurrected(self, bookmarks):
        bookmarks.remote.seed(_bookmark("srv-9"))
        await bookmarks.store.put(_bookmark("srv-9", sync_state=SyncState.SYNCED))
        bookmarks.connectivity.online = False
        await bookmarks.coordinator.delete("srv-9")
        bookmarks.connectivity.online = True

        assert await bookmarks.coordinator.get("srv-9") is None
        assert bookmarks.store.records == {}


class TestList:
    @pytest.mark.asyncio
    async def test_server_result_replaces_synced_cache(self, bookmarks):
        await bookmarks.store.put(_bookmark("stale", sync_state=SyncState.SYNCED))
        bookmarks.connectivity.online = False
        pending = await bookmarks.coordinator.create(doc_id="doc-1", user_id="user-1")
        bookmarks.connectivity.online = True
        bookmarks.remote.seed(_bookmark("srv-9", page_number=3))
        bookmarks.remote.seed(_bookmark("srv-10", doc_id="doc-2"))

        listed = await bookmarks.coordinator.list("doc-1")

        assert {b.id for b in listed} == {pending.id, "srv-9"}
        assert "stale" not in bookmarks.store.records
        assert bookmarks.store.records[pending.id].sync_state is SyncState.UNSYNCED
        assert bookmarks.store.records["srv-9"].is_synced()

    @pytest.mark.asyncio
    async def test_unsynced_edit_survives_refresh(self, bookmarks):
        created = await bookmarks.coordinator.create(doc_id="doc-1", user_id="user-1")
        bookmarks.connectivity.online = False
        await bookmarks.coordinator.update(created.id, note="local edit")
        bookmarks.connectivity.online = True

        listed = await bookmarks.coordinator.list("doc-1")

        assert [b.note for b in listed] == ["local edit"]
        assert listed[0].sync_state is SyncState.UNSYNCED

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back_to_local(self, bookmarks):
        await bookmarks.store.put(_bookmark("b1"))
        bookmarks.remote.fail = True

        listed = await bookmarks.coordinator.list("doc-1")

        assert [b.id for b in listed] == ["b1"]

    @pytest.mark.asyncio
    async def test_offline_list_never_calls_remote(self, bookmarks):
        await bookmarks.store.put(_bookmark("b1"))
        bookmarks.connectivity.online = False

        listed = await bookmarks.coordinator.list("doc-1")

        assert [b.id for b in listed] == ["b1"]
        assert bookmarks.remote.calls == []

    @pytest.mark.asyncio
    async def test_publishes_list_refreshed_event(self, bookmarks):
        received: list[EntityListRefreshed] = []

        async def on_refresh(event: EntityListRefreshed) -> None:
            received.append(event)

        bookmarks.coordinator.events.subscribe(EntityListRefreshed, on_refresh)
        bookmarks.remote.seed(_bookmark("srv-1"))

        listed = await bookmarks.coordinator.list("doc-1")

        assert len(received) == 1
        assert received[0].parent_id == "doc-1"
        assert [e.id for e in received[0].entities] == [e.id for e in listed]
        assert bookmarks.events == []

    @pytest.mark.asyncio
    async def test_filters_apply_to_both_sides(self, comments):
        comments.remote.seed(_comment("c1", "first page", 5, page_number=1))
        comments.remote.seed(_comment("c2", "second page", 4, page_number=2))

        page_two = await comments.coordinator.list_page("doc-1", 2)

        assert [c.id for c in page_two] == ["c2"]
        assert await comments.coordinator.count_page("doc-1", 2) == 1
        assert await comments.coordinator.count_page("doc-1", 1) == 0


class TestSearch:
    @pytest.mark.asyncio
    async def test_merges_by_id_with_server_copy_winning(self, comments):
        await comments.store.put(_comment("c1", "alpha draft", 30))
        await comments.store.put(_comment("local-only", "alpha local", 10))
        comments.remote.seed(_comment("c1", "alpha final", 30))
        comments.remote.seed(_comment("c2", "alpha remote", 20))
        comments.remote.seed(_comment("c3", "beta", 1))

        results = await comments.coordinator.search("alpha", "doc-1")

        assert [c.id for c in results] == ["local-only", "c2", "c1"]
        assert results[2].content == "alpha final"
        assert results[1].sync_state is SyncState.SYNCED

    @pytest.mark.asyncio
    async def test_excludes_records_pending_deletion(self, comments):
        comments.remote.seed(_comment("c1", "alpha", 5))
        await comments.queue.enqueue(
            JobType.DELETE_COMMENT, {"entity_id": "c1", "parent_id": "doc-1"}
        )

        assert await comments.coordinator.search("alpha", "doc-1") == []

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_local_matches(self, comments):
        await comments.store.put(_comment("c1", "alpha", 5))
        comments.remote.fail = True

        results = await comments.coordinator.search("ALPHA")

        assert [c.id for c in results] == ["c1"]


class TestPageHelpers:
    @pytest.mark.asyncio
    async def test_bookmark_at_page(self, bookmarks):
        bookmarks.connectivity.online = False
        await bookmarks.coordinator.create(doc_id="doc-1", user_id="u", page_number=3)
        marked = await bookmarks.coordinator.create(doc_id="doc-1", user_id="u", page_number=8)

        found = await bookmarks.coordinator.at_page("doc-1", 8)

        assert found.id == marked.id
        assert await bookmarks.coordinator.at_page("doc-1", 9) is None
        assert await bookmarks.coordinator.count("doc-1") == 2
