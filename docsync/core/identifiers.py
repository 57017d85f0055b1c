"""Identifier generation for locally created records and queued jobs."""

from __future__ import annotations

import uuid


def generate_local_id() -> str:
    """Return a fresh client-side entity identifier (UUID4 string)."""
    return str(uuid.uuid4())


def generate_job_id() -> str:
    return f"job_{uuid.uuid4().hex}"
