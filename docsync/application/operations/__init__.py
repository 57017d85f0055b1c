from docsync.application.operations.base import EntityOperations
from docsync.application.operations.bookmark import BookmarkOperations
from docsync.application.operations.comment import CommentOperations
from docsync.application.operations.library import LibraryOperations

__all__ = ["BookmarkOperations", "CommentOperations", "EntityOperations", "LibraryOperations"]
