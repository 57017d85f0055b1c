"""Peewee ORM models for the local store and the job queue."""

from __future__ import annotations

import datetime as _dt
from typing import Any

import peewee
from playhouse.sqlite_ext import JSONField

from docsync.core.time_utils import ensure_utc, utc_now

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


class UtcDateTimeField(peewee.DateTimeField):
    """Stores naive UTC text, returns timezone-aware UTC datetimes."""

    def db_value(self, value: Any) -> Any:
        if isinstance(value, _dt.datetime) and value.tzinfo is not None:
            value = value.astimezone(_dt.UTC).replace(tzinfo=None)
        return super().db_value(value)

    def python_value(self, value: Any) -> Any:
        parsed = super().python_value(value)
        if isinstance(parsed, _dt.datetime):
            return ensure_utc(parsed)
        return parsed


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    class Meta:
        database = database_proxy
        legacy_table_names = False


class BookmarkRecord(BaseModel):
    id = peewee.TextField(primary_key=True)
    doc_id = peewee.TextField()
    user_id = peewee.TextField()
    page_number = peewee.IntegerField(null=True)
    note = peewee.TextField(null=True)
    is_synced = peewee.BooleanField(default=False)
    created_at = UtcDateTimeField(default=utc_now)
    updated_at = UtcDateTimeField(default=utc_now)

    class Meta:
        table_name = "bookmarks"
        indexes = (
            (("doc_id",), False),
            (("doc_id", "page_number"), False),
        )


class CommentRecord(BaseModel):
    id = peewee.TextField(primary_key=True)
    doc_id = peewee.TextField()
    user_id = peewee.TextField(null=True)
    page_number = peewee.IntegerField(null=True)
    anchor = JSONField(null=True)  # Text selection position
    content = peewee.TextField()
    is_synced = peewee.BooleanField(default=False)
    created_at = UtcDateTimeField(default=utc_now)
    updated_at = UtcDateTimeField(default=utc_now)

    class Meta:
        table_name = "comments"
        indexes = (
            (("doc_id",), False),
            (("doc_id", "page_number"), False),
        )


class LibraryRecord(BaseModel):
    id = peewee.TextField(primary_key=True)
    owner_id = peewee.TextField(null=True)
    name = peewee.TextField()
    type = peewee.TextField()
    config = JSONField(null=True)
    is_synced = peewee.BooleanField(default=False)
    created_at = UtcDateTimeField(default=utc_now)
    updated_at = UtcDateTimeField(default=utc_now)

    class Meta:
        table_name = "libraries"
        indexes = ((("owner_id",), False),)


class SyncJob(BaseModel):
    """Queued mutation intent. ``seq`` fixes FIFO order independent of clocks."""

    seq = peewee.AutoField()
    job_id = peewee.TextField(unique=True)
    type = peewee.TextField()
    payload = JSONField(default=dict)
    status = peewee.TextField(default="pending")
    attempts = peewee.IntegerField(default=0)
    last_error = peewee.TextField(null=True)
    created_at = UtcDateTimeField(default=utc_now)
    updated_at = UtcDateTimeField(default=utc_now)

    class Meta:
        table_name = "sync_jobs"
        indexes = (
            (("status", "seq"), False),
            (("type", "status"), False),
        )


ALL_MODELS: tuple[type[BaseModel], ...] = (
    BookmarkRecord,
    CommentRecord,
    LibraryRecord,
    SyncJob,
)

ENTITY_MODELS: tuple[type[BaseModel], ...] = (BookmarkRecord, CommentRecord, LibraryRecord)
