"""SQLite persistence: peewee models and session management."""

from docsync.db.session import DatabaseSessionManager

__all__ = ["DatabaseSessionManager"]
