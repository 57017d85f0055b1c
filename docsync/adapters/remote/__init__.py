from docsync.adapters.remote.bookmark_api import BookmarkApi
from docsync.adapters.remote.client import RemoteApiClient, retry_with_backoff
from docsync.adapters.remote.comment_api import CommentApi
from docsync.adapters.remote.library_api import LibraryApi

__all__ = ["BookmarkApi", "CommentApi", "LibraryApi", "RemoteApiClient", "retry_with_backoff"]
