"""Push local changes to the remote databases.

Records whose canonical hash matches the stored ``localHash`` of a mapped
page are skipped, so pushing twice without a local change makes no remote
call the second time.  Everything else is updated (known remote id) or
created.  Errors tied to a single record (validation, page not found) are
logged and counted; any other remote error aborts the run.
"""

from __future__ import annotations

import logging
from typing import Any

from ariadne_sync.core.client import NotionClient
from ariadne_sync.errors import RemoteRecordError
from ariadne_sync.local_store import LocalCollections
from ariadne_sync.sync.entities import EntityAdapter
from ariadne_sync.sync.hashing import canonical_hash
from ariadne_sync.sync.models import LocalKey, SyncAction, SyncResult
from ariadne_sync.sync.state import SyncState

logger = logging.getLogger(__name__)


class Pusher:
    """Push pass over all collections of one run.

    Args:
        client: Notion API client.
        state: Sync state, updated after every successful write.
        local: Local collections (read only).
        dry_run: Report what would be written without calling the API.
        full: Push every record, ignoring stored hashes.
    """

    def __init__(
        self,
        client: NotionClient,
        state: SyncState,
        local: LocalCollections,
        dry_run: bool = False,
        full: bool = False,
    ) -> None:
        self.client = client
        self.state = state
        self.local = local
        self.dry_run = dry_run
        self.full = full

    def push(
        self, adapter: EntityAdapter, database_id: str
    ) -> tuple[list[SyncResult], set[str]]:
        """Push one collection.

        Returns:
            The per-record results and the set of local key strings seen,
            which the deletion pass compares against the sync state.
        """
        results: list[SyncResult] = []
        local_keys: set[str] = set()
        for key, record in adapter.records(self.local):
            key_text = str(key)
            if key_text in local_keys:
                logger.error(
                    "Duplicate local %s key %s; only the first is synced",
                    adapter.entity_type.value,
                    key_text,
                )
                results.append(
                    SyncResult(
                        entity_type=adapter.entity_type,
                        key=key_text,
                        action=SyncAction.SKIP,
                        success=False,
                        label=adapter.label(record),
                        detail="duplicate local key",
                    )
                )
                continue
            local_keys.add(key_text)
            results.append(self._push_record(adapter, database_id, key, record))

        logger.info(
            "%s: %d created, %d updated, %d unchanged, %d errors",
            adapter.entity_type.value.capitalize(),
            sum(1 for r in results if r.success and r.action == SyncAction.CREATE_REMOTE),
            sum(1 for r in results if r.success and r.action == SyncAction.PUSH),
            sum(1 for r in results if r.action == SyncAction.UNCHANGED),
            sum(1 for r in results if not r.success),
        )
        return results, local_keys

    def _push_record(
        self,
        adapter: EntityAdapter,
        database_id: str,
        key: LocalKey,
        record: Any,
    ) -> SyncResult:
        entity_type = adapter.entity_type
        label = adapter.label(record)
        entry = self.state.get_entry(entity_type, key)
        current = canonical_hash(record)
        remote_id = entry.remote_id if entry else None

        if not self.full and remote_id and entry.local_hash == current:
            return SyncResult(
                entity_type=entity_type,
                key=str(key),
                action=SyncAction.UNCHANGED,
                label=label,
            )

        action = SyncAction.PUSH if remote_id else SyncAction.CREATE_REMOTE
        if self.dry_run:
            return SyncResult(
                entity_type=entity_type, key=str(key), action=action, label=label
            )

        payload = adapter.to_remote(record)
        try:
            if remote_id:
                page = self.client.update_page(remote_id, payload)
            else:
                page = self.client.create_page(database_id, payload)
        except RemoteRecordError as exc:
            logger.error("Error syncing %s: %s", label, exc)
            return SyncResult(
                entity_type=entity_type,
                key=str(key),
                action=action,
                success=False,
                label=label,
                detail=str(exc),
            )

        self.state.set_entry(
            entity_type,
            key,
            adapter.make_entry(
                record,
                page.get("id") or remote_id,
                current,
                page.get("last_edited_time"),
            ),
        )
        logger.info("%s: %s", "Updated" if remote_id else "Created", label)
        return SyncResult(
            entity_type=entity_type, key=str(key), action=action, label=label
        )
