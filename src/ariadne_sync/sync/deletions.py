"""Detect records deleted locally that are still mapped to remote pages.

By default candidates are only reported.  With ``apply_deletes`` each
remote page is archived, and its sync entry and reverse mapping are
removed only once the archive call has succeeded.
"""

from __future__ import annotations

import logging

from ariadne_sync.core.client import NotionClient
from ariadne_sync.errors import RemoteRecordError
from ariadne_sync.sync.models import EntityType, SyncAction, SyncResult
from ariadne_sync.sync.state import SyncState

logger = logging.getLogger(__name__)


class DeletionReconciler:
    def __init__(
        self,
        client: NotionClient,
        state: SyncState,
        dry_run: bool = False,
        apply_deletes: bool = False,
    ) -> None:
        self.client = client
        self.state = state
        self.dry_run = dry_run
        self.apply_deletes = apply_deletes

    def candidates(
        self, entity_type: EntityType, local_keys: set[str]
    ) -> list[tuple[str, str]]:
        """Return ``(key, remote_id)`` of mapped keys missing locally."""
        return [
            (key, entry.remote_id)
            for key, entry in self.state.entries(entity_type).items()
            if key not in local_keys and entry.remote_id
        ]

    def reconcile(
        self, entity_type: EntityType, local_keys: set[str]
    ) -> list[SyncResult]:
        found = self.candidates(entity_type, local_keys)
        if not found:
            return []

        if not self.apply_deletes:
            logger.warning(
                "%d %s deleted locally but still in Notion: %s",
                len(found),
                entity_type.value,
                ", ".join(key for key, _ in found),
            )
            logger.warning("Use --apply-deletes to archive them in Notion")
            return [
                SyncResult(
                    entity_type=entity_type,
                    key=key,
                    action=SyncAction.DELETE_CANDIDATE,
                    detail=remote_id,
                )
                for key, remote_id in found
            ]

        return [
            self._archive(entity_type, key, remote_id)
            for key, remote_id in found
        ]

    def _archive(
        self, entity_type: EntityType, key: str, remote_id: str
    ) -> SyncResult:
        if self.dry_run:
            return SyncResult(
                entity_type=entity_type,
                key=key,
                action=SyncAction.ARCHIVE_REMOTE,
                detail=remote_id,
            )
        try:
            self.client.archive_page(remote_id)
        except RemoteRecordError as exc:
            logger.error("Error archiving %s: %s", key, exc)
            return SyncResult(
                entity_type=entity_type,
                key=key,
                action=SyncAction.ARCHIVE_REMOTE,
                success=False,
                detail=str(exc),
            )
        self.state.remove_entry(entity_type, key)
        logger.info("Archived in Notion: %s", key)
        return SyncResult(
            entity_type=entity_type,
            key=key,
            action=SyncAction.ARCHIVE_REMOTE,
            detail=remote_id,
        )
