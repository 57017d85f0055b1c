"""Per-kind remote APIs: routes, request bodies and response mapping."""

from __future__ import annotations

import json

import httpx
import pytest

from docsync.adapters.remote import BookmarkApi, CommentApi, LibraryApi, RemoteApiClient
from docsync.domain.exceptions.domain_exceptions import RemoteServiceError
from docsync.domain.models.entities import Bookmark, Comment, Library, LibraryType, SyncState


class Recorder:
    def __init__(self, responses: dict[tuple[str, str], httpx.Response]) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        canned = self.responses.get((request.method, request.url.path))
        if canned is None:
            return httpx.Response(404, json={"detail": "no route"})
        return httpx.Response(canned.status_code, headers=canned.headers, content=canned.content)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def _client(recorder: Recorder) -> RemoteApiClient:
    return RemoteApiClient("https://docs.example.test", transport=httpx.MockTransport(recorder))


BOOKMARK_JSON = {
    "id": "bm-1",
    "doc_id": "doc-1",
    "user_id": "u-1",
    "page_number": 3,
    "note": "intro",
    "created_at": "2024-05-01T10:00:00Z",
    "updated_at": "2024-05-02T10:00:00Z",
}


class TestBookmarkApi:
    @pytest.mark.asyncio
    async def test_create_posts_under_document(self):
        recorder = Recorder(
            {("POST", "/api/documents/doc-1/bookmarks"): httpx.Response(201, json=BOOKMARK_JSON)}
        )
        async with _client(recorder) as client:
            created = await BookmarkApi(client).create(
                Bookmark(id="local", doc_id="doc-1", user_id="u-1", page_number=3, note="intro")
            )

        assert recorder.body() == {"page_number": 3, "note": "intro"}
        assert created.id == "bm-1"
        assert created.sync_state is SyncState.SYNCED
        assert created.created_at.tzinfo is not None
        assert created.updated_at > created.created_at

    @pytest.mark.asyncio
    async def test_update_sends_only_changed_fields(self):
        recorder = Recorder(
            {("PUT", "/api/bookmarks/bm-1"): httpx.Response(200, json=BOOKMARK_JSON)}
        )
        async with _client(recorder) as client:
            await BookmarkApi(client).update("bm-1", {"note": None})

        assert recorder.body() == {"note": None}

    @pytest.mark.asyncio
    async def test_list_get_and_delete(self):
        recorder = Recorder(
            {
                ("GET", "/api/documents/doc-1/bookmarks"): httpx.Response(
                    200, json=[BOOKMARK_JSON]
                ),
                ("GET", "/api/bookmarks/bm-1"): httpx.Response(200, json=BOOKMARK_JSON),
                ("DELETE", "/api/bookmarks/bm-1"): httpx.Response(204),
            }
        )
        async with _client(recorder) as client:
            api = BookmarkApi(client)
            listed = await api.list("doc-1", page_number=3)
            fetched = await api.get("bm-1")
            await api.delete("bm-1")

        assert [b.id for b in listed] == ["bm-1"]
        assert recorder.requests[0].url.params["page_number"] == "3"
        assert fetched.note == "intro"
        assert recorder.requests[-1].method == "DELETE"

    @pytest.mark.asyncio
    async def test_payload_without_user_is_a_remote_error(self):
        anonymous = {k: v for k, v in BOOKMARK_JSON.items() if k != "user_id"}
        recorder = Recorder(
            {("GET", "/api/bookmarks/bm-1"): httpx.Response(200, json=anonymous)}
        )
        async with _client(recorder) as client:
            with pytest.raises(RemoteServiceError):
                await BookmarkApi(client).get("bm-1")


COMMENT_JSON = {"id": "cm-1", "doc_id": "doc-1", "content": "hello", "page_number": 2}


class TestCommentApi:
    @pytest.mark.asyncio
    async def test_create_with_anchor(self):
        recorder = Recorder(
            {("POST", "/api/documents/doc-1/comments"): httpx.Response(201, json=COMMENT_JSON)}
        )
        async with _client(recorder) as client:
            created = await CommentApi(client).create(
                Comment(
                    id="local", doc_id="doc-1", content="hello", page_number=2, anchor={"s": 1}
                )
            )

        assert recorder.body() == {"page_number": 2, "anchor": {"s": 1}, "content": "hello"}
        assert created.id == "cm-1"

    @pytest.mark.asyncio
    async def test_page_listing_uses_page_route(self):
        recorder = Recorder(
            {
                ("GET", "/api/documents/doc-1/pages/2/comments"): httpx.Response(
                    200, json=[COMMENT_JSON]
                ),
                ("GET", "/api/documents/doc-1/comments"): httpx.Response(200, json=[]),
            }
        )
        async with _client(recorder) as client:
            api = CommentApi(client)
            page = await api.list("doc-1", page_number=2)
            everything = await api.list("doc-1")

        assert [c.id for c in page] == ["cm-1"]
        assert everything == []

    @pytest.mark.asyncio
    async def test_search_passes_query_and_document(self):
        recorder = Recorder(
            {("GET", "/api/comments/search"): httpx.Response(200, json=[COMMENT_JSON])}
        )
        async with _client(recorder) as client:
            found = await CommentApi(client).search("hel", "doc-1")

        params = recorder.requests[0].url.params
        assert (params["q"], params["document_id"]) == ("hel", "doc-1")
        assert [c.content for c in found] == ["hello"]


LIBRARY_JSON = {"id": "lib-1", "name": "Work", "type": "s3", "owner_id": "u-1"}


class TestLibraryApi:
    @pytest.mark.asyncio
    async def test_create_and_owner_filtered_list(self):
        other = {**LIBRARY_JSON, "id": "lib-2", "owner_id": "u-2"}
        recorder = Recorder(
            {
                ("POST", "/api/libraries"): httpx.Response(201, json=LIBRARY_JSON),
                ("GET", "/api/libraries"): httpx.Response(200, json=[LIBRARY_JSON, other]),
            }
        )
        async with _client(recorder) as client:
            api = LibraryApi(client)
            created = await api.create(
                Library(id="local", name="Work", type=LibraryType.S3, owner_id="u-1")
            )
            mine = await api.list("u-1")
            everyone = await api.list(None)

        assert recorder.body(0) == {"name": "Work", "type": "s3"}
        assert created.type is LibraryType.S3
        assert [lib.id for lib in mine] == ["lib-1"]
        assert len(everyone) == 2

    @pytest.mark.asyncio
    async def test_unexpected_payload_is_a_remote_error(self):
        recorder = Recorder(
            {("GET", "/api/libraries/lib-1"): httpx.Response(200, json={"id": "lib-1"})}
        )
        async with _client(recorder) as client:
            with pytest.raises(RemoteServiceError):
                await LibraryApi(client).get("lib-1")

    @pytest.mark.asyncio
    async def test_enum_filters_are_sent_by_value(self):
        recorder = Recorder({("GET", "/api/libraries"): httpx.Response(200, json=[LIBRARY_JSON])})
        async with _client(recorder) as client:
            listed = await LibraryApi(client).list(None, type=LibraryType.S3)

        assert recorder.requests[0].url.query == b"type=s3"
        assert [lib.id for lib in listed] == ["lib-1"]
