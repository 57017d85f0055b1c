"""Replacement of client-generated identities by server-assigned ones.

The new record is always written before the old one is deleted. An
interruption between the two steps leaves a duplicate, never zero records,
and running the reconciliation again with the same server entity converges
on a single synced record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from docsync.domain.models.entities import SyncState, SyncTracked
from docsync.protocols import LocalStore

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=SyncTracked)


class ReconciliationOutcome(str, Enum):
    RECONCILED = "reconciled"
    SAME_IDENTITY = "same_identity"
    ALREADY_RECONCILED = "already_reconciled"
    LOCALLY_DELETED = "locally_deleted"


@dataclass(frozen=True)
class ReconciliationResult(Generic[E]):
    outcome: ReconciliationOutcome
    entity: E | None

    @property
    def identity_changed(self) -> bool:
        return self.outcome in (
            ReconciliationOutcome.RECONCILED,
            ReconciliationOutcome.ALREADY_RECONCILED,
            ReconciliationOutcome.LOCALLY_DELETED,
        )


async def reconcile_identity(
    store: LocalStore[E],
    local_id: str,
    server_entity: E,
    *,
    identity_only: bool = False,
) -> ReconciliationResult[E]:
    """Swap the record stored under ``local_id`` for ``server_entity``.

    Steps, in this order: write the server-identified record, delete the
    locally-identified record, flag the new record as synced. When the local
    record is already gone and the server record exists, only the final
    state is re-applied. When both are gone the entity was deleted locally
    while its create was queued, and nothing is written back.

    With ``identity_only`` the local record keeps its fields and stays
    unsynced under the server id. This is for creates whose entity still has
    queued edits: the server copy predates them and must not win locally.

    Args:
        store: Local store for the entity's kind.
        local_id: Identifier the entity was created under on this device.
        server_entity: Canonical entity returned by the remote create.
        identity_only: Adopt only the server id, keeping local fields.

    Returns:
        The outcome and the entity now stored locally (None if deleted).
    """
    server_id = server_entity.id

    if server_id == local_id:
        if identity_only:
            return ReconciliationResult(
                ReconciliationOutcome.SAME_IDENTITY, await store.get(local_id)
            )
        synced = server_entity.copy()
        synced.sync_state = SyncState.SYNCED
        await store.put(synced)
        return ReconciliationResult(ReconciliationOutcome.SAME_IDENTITY, synced)

    local = await store.get(local_id)
    if local is None:
        existing = await store.get(server_id)
        if existing is None:
            logger.info(
                "reconcile_skipped_locally_deleted",
                extra={
                    "entity_kind": server_entity.kind.value,
                    "local_id": local_id,
                    "server_id": server_id,
                },
            )
            return ReconciliationResult(ReconciliationOutcome.LOCALLY_DELETED, None)

        if identity_only:
            return ReconciliationResult(ReconciliationOutcome.ALREADY_RECONCILED, existing)

        synced = server_entity.copy()
        synced.sync_state = SyncState.SYNCED
        await store.put(synced)
        return ReconciliationResult(ReconciliationOutcome.ALREADY_RECONCILED, synced)

    if identity_only:
        replacement = local.with_identity(server_id)
    else:
        replacement = server_entity.copy()
    replacement.sync_state = SyncState.UNSYNCED
    await store.put(replacement)
    await store.delete(local_id)
    if not identity_only:
        await store.set_sync_flag(server_id, True)
        replacement.sync_state = SyncState.SYNCED

    logger.debug(
        "identity_reconciled",
        extra={
            "entity_kind": server_entity.kind.value,
            "local_id": local_id,
            "server_id": server_id,
            "identity_only": identity_only,
        },
    )
    return ReconciliationResult(ReconciliationOutcome.RECONCILED, replacement)
