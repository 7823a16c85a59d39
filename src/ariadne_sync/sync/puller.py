"""Apply remote-side changes to the local collections.

For each fetched page the puller resolves the local key through the
reverse index, never by rebuilding it from the page's current fields: a
status changed remotely changes a job's natural key.  The decision tree
per page:

* **Mapped, baseline run** -- acknowledge the remote edit time only.
* **Mapped, not edited since last sync** -- skip (unless full resync).
* **Mapped, local hash differs from the stored one** -- conflict.  Local
  wins: only the remote edit time is acknowledged and the push pass
  overwrites the remote page.
* **Mapped, local unchanged** -- apply the remote value, in place when the
  key is unchanged, otherwise as a reclassification that moves the record
  between buckets (and its artifact folder on disk).
* **Unmapped** -- skipped during baseline, otherwise materialized as a new
  local record.

In a dry run the same decisions are made and reported, but neither the
local collections nor the sync state are touched.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ariadne_sync.file_handler import relocate_folder
from ariadne_sync.local_store import LocalCollections
from ariadne_sync.sync.entities import EntityAdapter, JobAdapter
from ariadne_sync.sync.fetcher import RemoteChangeFetcher
from ariadne_sync.sync.hashing import canonical_hash
from ariadne_sync.sync.models import (
    LocalKey,
    SyncAction,
    SyncResult,
    SyncStateEntry,
)
from ariadne_sync.sync.state import SyncState

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime | str:
    """Parse an ISO-8601 timestamp, falling back to the raw string."""
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return value


def is_newer(remote: str | None, stored: str | None) -> bool:
    """True when *remote* is later than *stored* (or nothing is stored)."""
    if not stored:
        return True
    if not remote:
        return False
    a, b = parse_timestamp(remote), parse_timestamp(stored)
    if isinstance(a, datetime) and isinstance(b, datetime):
        try:
            return a > b
        except TypeError:
            # naive vs aware
            pass
    return remote > stored


class Puller:
    """Pull pass over all collections of one run.

    Args:
        fetcher: Remote change fetcher.
        state: Sync state, mutated in place unless *dry_run*.
        local: Local collections, mutated in place unless *dry_run*.
        workspace_root: Directory job folder paths are relative to.
        dry_run: Report decisions without mutating anything.
        full: Ignore remote edit times and re-evaluate every page.
    """

    def __init__(
        self,
        fetcher: RemoteChangeFetcher,
        state: SyncState,
        local: LocalCollections,
        workspace_root: Path,
        dry_run: bool = False,
        full: bool = False,
    ) -> None:
        self.fetcher = fetcher
        self.state = state
        self.local = local
        self.workspace_root = workspace_root
        self.dry_run = dry_run
        self.full = full
        self.baseline = state.is_baseline

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def pull(self, adapter: EntityAdapter, database_id: str) -> list[SyncResult]:
        """Fetch and apply remote changes for one collection."""
        since = None if (self.baseline or self.full) else self.state.watermark
        pages = self.fetcher.fetch(database_id, since)
        logger.info(
            "Pulling %s: %d remote record(s)%s",
            adapter.entity_type.value,
            len(pages),
            " (baseline)" if self.baseline else "",
        )
        return [self._pull_page(adapter, page) for page in pages]

    # ------------------------------------------------------------------
    # Per-page decision
    # ------------------------------------------------------------------

    def _pull_page(self, adapter: EntityAdapter, page: dict[str, Any]) -> SyncResult:
        entity_type = adapter.entity_type
        remote_id = page["id"]
        edited = page.get("last_edited_time")
        props = page.get("properties") or {}

        key_text = self.state.lookup_remote(entity_type, remote_id)
        entry = (
            self.state.get_entry(entity_type, key_text)
            if key_text is not None
            else None
        )

        if entry is None:
            return self._pull_unmapped(adapter, remote_id, edited, props)

        if self.baseline:
            self._acknowledge(entry, edited)
            return SyncResult(
                entity_type=entity_type,
                key=key_text,
                action=SyncAction.BASELINE,
            )

        if not self.full and not is_newer(edited, entry.remote_last_edited):
            return SyncResult(
                entity_type=entity_type, key=key_text, action=SyncAction.SKIP
            )

        key = adapter.parse_key(key_text, entry)
        existing = adapter.find(self.local, key)
        if existing is None:
            logger.warning(
                "%s %s was deleted locally; keeping the deletion",
                entity_type.value,
                key_text,
            )
            self._acknowledge(entry, edited)
            return SyncResult(
                entity_type=entity_type,
                key=key_text,
                action=SyncAction.LOCAL_MISSING,
            )

        label = adapter.label(existing)
        if canonical_hash(existing) != entry.local_hash:
            logger.warning("Conflict (local wins): %s", label)
            self._acknowledge(entry, edited)
            return SyncResult(
                entity_type=entity_type,
                key=key_text,
                action=SyncAction.CONFLICT,
                label=label,
                detail="changed on both sides; local kept",
            )

        try:
            record = adapter.from_remote(props, existing)
        except ValidationError as exc:
            return self._invalid(adapter, key_text, exc)

        new_key = adapter.key_of(record)
        if new_key == key:
            return self._apply_in_place(
                adapter, key, record, remote_id, edited
            )
        return self._reclassify(
            adapter, key, new_key, existing, record, remote_id, edited
        )

    def _acknowledge(self, entry: SyncStateEntry, edited: str | None) -> None:
        if not self.dry_run:
            entry.remote_last_edited = edited

    def _invalid(
        self, adapter: EntityAdapter, key_text: str, exc: ValidationError
    ) -> SyncResult:
        logger.error(
            "Remote %s %s has invalid fields: %s",
            adapter.entity_type.value,
            key_text,
            exc,
        )
        return SyncResult(
            entity_type=adapter.entity_type,
            key=key_text,
            action=SyncAction.PULL,
            success=False,
            detail=f"invalid remote record: {exc.error_count()} error(s)",
        )

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def _apply_in_place(
        self,
        adapter: EntityAdapter,
        key: LocalKey,
        record: Any,
        remote_id: str,
        edited: str | None,
    ) -> SyncResult:
        label = adapter.label(record)
        if not self.dry_run:
            adapter.replace(self.local, key, record)
            self.state.set_entry(
                adapter.entity_type,
                key,
                adapter.make_entry(
                    record, remote_id, canonical_hash(record), edited
                ),
            )
            logger.info("Pulled: %s", label)
        return SyncResult(
            entity_type=adapter.entity_type,
            key=str(key),
            action=SyncAction.PULL,
            label=label,
        )

    def _reclassify(
        self,
        adapter: EntityAdapter,
        key: LocalKey,
        new_key: LocalKey,
        previous: Any,
        record: Any,
        remote_id: str,
        edited: str | None,
    ) -> SyncResult:
        entity_type = adapter.entity_type
        label = adapter.label(record)

        clash: str | None = None
        if adapter.find(self.local, new_key) is not None:
            clash = "a local record already has that key"
        else:
            mapped = self.state.get_entry(entity_type, new_key)
            if mapped is not None and mapped.remote_id != remote_id:
                clash = f"that key is still mapped to page {mapped.remote_id}"
        if clash is not None:
            logger.error(
                "Cannot move %s %s to %s: %s",
                entity_type.value,
                key,
                new_key,
                clash,
            )
            return SyncResult(
                entity_type=entity_type,
                key=str(key),
                action=SyncAction.RECLASSIFY,
                success=False,
                label=label,
                detail=f"target key {new_key} already exists",
            )

        detail = f"-> {new_key}"
        folder: str | None = None
        if isinstance(adapter, JobAdapter):
            folder = adapter.relocated_folder(record, previous)
            if folder is not None:
                detail += f" (folder {folder})"

        if self.dry_run:
            return SyncResult(
                entity_type=entity_type,
                key=str(key),
                action=SyncAction.RECLASSIFY,
                label=label,
                detail=detail,
            )

        adapter.remove(self.local, key)
        if folder is not None:
            if previous.folder:
                relocate_folder(self.workspace_root, previous.folder, folder)
            record.folder = folder
        adapter.insert(self.local, record)
        self.state.rename_entry(
            entity_type,
            key,
            new_key,
            adapter.make_entry(record, remote_id, canonical_hash(record), edited),
        )
        logger.info("Reclassified: %s %s", label, detail)
        return SyncResult(
            entity_type=entity_type,
            key=str(key),
            action=SyncAction.RECLASSIFY,
            label=label,
            detail=detail,
        )

    # ------------------------------------------------------------------
    # Unmapped pages
    # ------------------------------------------------------------------

    def _pull_unmapped(
        self,
        adapter: EntityAdapter,
        remote_id: str,
        edited: str | None,
        props: dict[str, Any],
    ) -> SyncResult:
        entity_type = adapter.entity_type
        if self.baseline:
            return SyncResult(
                entity_type=entity_type,
                key=remote_id,
                action=SyncAction.SKIP,
                detail="unmapped during baseline",
            )

        try:
            record = adapter.from_remote(props, None)
        except ValidationError as exc:
            return self._invalid(adapter, remote_id, exc)

        key = adapter.key_of(record)
        label = adapter.label(record)
        existing = adapter.find(self.local, key)
        if existing is not None:
            return self._link_existing(adapter, key, existing, remote_id, edited)

        if not self.dry_run:
            adapter.insert(self.local, record)
            self.state.set_entry(
                entity_type,
                key,
                adapter.make_entry(
                    record, remote_id, canonical_hash(record), edited
                ),
            )
            logger.info("Pulled new: %s", label)
        return SyncResult(
            entity_type=entity_type,
            key=str(key),
            action=SyncAction.CREATE_LOCAL,
            label=label,
        )

    def _link_existing(
        self,
        adapter: EntityAdapter,
        key: LocalKey,
        existing: Any,
        remote_id: str,
        edited: str | None,
    ) -> SyncResult:
        """Handle an unmapped page whose key matches a local record.

        An unmapped local record is linked to the page with no stored hash,
        so the push pass overwrites the page with the local value.  A local
        record already mapped to another page makes this page a remote
        duplicate, which is reported and left alone.
        """
        entity_type = adapter.entity_type
        label = adapter.label(existing)
        if self.state.get_entry(entity_type, key) is not None:
            logger.warning(
                "Remote %s %s duplicates already mapped %s",
                entity_type.value,
                remote_id,
                key,
            )
            return SyncResult(
                entity_type=entity_type,
                key=str(key),
                action=SyncAction.SKIP,
                label=label,
                detail=f"remote duplicate {remote_id}",
            )

        if not self.dry_run:
            self.state.set_entry(
                entity_type,
                key,
                adapter.make_entry(existing, remote_id, None, edited),
            )
        logger.warning("Conflict (local wins): %s linked to existing record", label)
        return SyncResult(
            entity_type=entity_type,
            key=str(key),
            action=SyncAction.CONFLICT,
            label=label,
            detail=f"linked to remote {remote_id}; local kept",
        )
