"""Sync state persistence layer.

Manages the JSON sync map that links local records to remote pages::

    {
      "watermark": "2026-03-01T09:00:00+00:00" | null,
      "jobs":     {"Active:Acme:Engineer": {"remoteId": ..., "localHash": ...,
                                             "remoteLastEdited": ...}},
      "contacts": {...},
      "tasks":    {...},
      "reverseIndex": {"<remoteId>": {"type": "jobs", "key": "Active:Acme:Engineer"}}
    }

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Explicit migration** -- ``migrate()`` is a pure function applied to the
  raw JSON before validation.  It converts the legacy flat map
  (``{"jobs": {"<key>": "<remoteId>"}}``) and the older Notion-named
  enriched map into the current shape, and is a no-op once the
  ``watermark`` key exists (even when null).
* **Reverse index maintenance** -- every mutation of an entry goes through
  ``SyncState`` helpers so ``reverseIndex`` never holds two remote ids for
  one key or a remote id whose entry is gone.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ariadne_sync.errors import (
    LocalStoreError,
    StateCorruptionError,
    SyncLockedError,
)
from ariadne_sync.file_handler import write_json_atomic
from ariadne_sync.sync.models import (
    EntityType,
    LocalKey,
    ReverseEntry,
    SyncStateEntry,
)

logger = logging.getLogger(__name__)

ENTITY_TYPES = tuple(t.value for t in EntityType)


class SyncState(BaseModel):
    """In-memory sync map for one run.

    Callers mutate it freely during a run and persist once at the end via
    ``SyncStateStore.save()``.
    """

    model_config = ConfigDict(populate_by_name=True)

    watermark: str | None = None
    jobs: dict[str, SyncStateEntry] = Field(default_factory=dict)
    contacts: dict[str, SyncStateEntry] = Field(default_factory=dict)
    tasks: dict[str, SyncStateEntry] = Field(default_factory=dict)
    reverse_index: dict[str, ReverseEntry] = Field(
        default_factory=dict, alias="reverseIndex"
    )

    @property
    def is_baseline(self) -> bool:
        """True until the first successful non-dry run."""
        return self.watermark is None

    # ------------------------------------------------------------------
    # Entry helpers
    # ------------------------------------------------------------------

    def entries(self, entity_type: EntityType) -> dict[str, SyncStateEntry]:
        return getattr(self, entity_type.value)

    def keys(self, entity_type: EntityType) -> list[str]:
        return list(self.entries(entity_type))

    def get_entry(
        self, entity_type: EntityType, key: LocalKey
    ) -> SyncStateEntry | None:
        """Return the entry for *key*, or ``None`` if never synced."""
        return self.entries(entity_type).get(str(key))

    def set_entry(
        self,
        entity_type: EntityType,
        key: LocalKey,
        entry: SyncStateEntry,
    ) -> None:
        """Upsert *entry* under *key* and point its remote id back at it.

        A reverse mapping left over from a previous remote id of the same
        key is dropped.
        """
        key_text = str(key)
        entries = self.entries(entity_type)
        previous = entries.get(key_text)
        if (
            previous is not None
            and previous.remote_id
            and previous.remote_id != entry.remote_id
        ):
            self.reverse_index.pop(previous.remote_id, None)
        entries[key_text] = entry
        if entry.remote_id:
            self.reverse_index[entry.remote_id] = ReverseEntry(
                type=entity_type, key=key_text
            )

    def rename_entry(
        self,
        entity_type: EntityType,
        old_key: LocalKey,
        new_key: LocalKey,
        entry: SyncStateEntry,
    ) -> None:
        """Move the entry of *old_key* to *new_key*, rewriting the reverse index."""
        self.entries(entity_type).pop(str(old_key), None)
        self.set_entry(entity_type, new_key, entry)

    def remove_entry(self, entity_type: EntityType, key: LocalKey) -> None:
        """Remove *key* and its reverse mapping.  No-op if not present."""
        entry = self.entries(entity_type).pop(str(key), None)
        if entry is not None and entry.remote_id:
            mapped = self.reverse_index.get(entry.remote_id)
            if mapped is not None and mapped.key == str(key):
                del self.reverse_index[entry.remote_id]

    def lookup_remote(
        self, entity_type: EntityType, remote_id: str
    ) -> str | None:
        """Return the local key string mapped to *remote_id* for *entity_type*."""
        mapped = self.reverse_index.get(remote_id)
        if mapped is None or mapped.type != entity_type:
            return None
        return mapped.key

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"watermark": self.watermark}
        data.update(
            self.model_dump(
                mode="json",
                by_alias=True,
                exclude_none=True,
                exclude={"watermark"},
            )
        )
        return data


# ----------------------------------------------------------------------
# Migration
# ----------------------------------------------------------------------


def migrate(raw: dict[str, Any]) -> dict[str, Any]:
    """Convert a legacy sync map into the current enriched shape.

    Recognised inputs:

    * Current shape -- detected by the presence of ``watermark``; returned
      unchanged.
    * Flat map -- ``{"jobs": {"<key>": "<remoteId>"}, ...}``.
    * Notion-named enriched map -- entries with ``notionId`` /
      ``notionLastEdited`` and a top-level ``lastSyncTime``.

    The reverse index is always rebuilt from the entries and the watermark
    is reset to null.

    Raises:
        StateCorruptionError: If the structure cannot be interpreted.
    """
    if not isinstance(raw, dict):
        raise StateCorruptionError(
            f"Sync state root must be an object, got {type(raw).__name__}"
        )
    if "watermark" in raw:
        return raw

    logger.info("Migrating sync map to enriched format")
    # A migrated map always starts a baseline run: hashes written by older
    # tooling are not comparable with canonical_hash().
    migrated: dict[str, Any] = {
        "watermark": None,
        "reverseIndex": {},
    }
    for entity_type in ENTITY_TYPES:
        old = raw.get(entity_type) or {}
        if not isinstance(old, dict):
            raise StateCorruptionError(
                f"Sync state section '{entity_type}' must be an object"
            )
        section: dict[str, Any] = {}
        for key, value in old.items():
            if isinstance(value, str):
                entry = {
                    "remoteId": value,
                    "localHash": None,
                    "remoteLastEdited": None,
                }
            elif isinstance(value, dict):
                entry = {
                    "remoteId": value.get("remoteId", value.get("notionId")),
                    "localHash": value.get("localHash"),
                    "remoteLastEdited": value.get(
                        "remoteLastEdited", value.get("notionLastEdited")
                    ),
                }
                for extra in ("company", "role"):
                    if extra in value:
                        entry[extra] = value[extra]
            else:
                raise StateCorruptionError(
                    f"Unrecognised sync entry for {entity_type} '{key}'"
                )
            section[key] = entry
            if entry["remoteId"]:
                migrated["reverseIndex"][entry["remoteId"]] = {
                    "type": entity_type,
                    "key": key,
                }
        migrated[entity_type] = section
    return migrated


# ----------------------------------------------------------------------
# Persistence
# ----------------------------------------------------------------------


class SyncStateStore:
    """Load and save the sync map file.

    Args:
        path: Location of the sync map (typically
            ``data/.notion-sync-map.json``).
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> SyncState:
        """Load sync state from disk, migrating legacy formats.

        Returns:
            The state.  If the file does not exist an empty state with a
            null watermark is returned.

        Raises:
            StateCorruptionError: If the file is not valid JSON or does not
                describe a sync map.
        """
        if not self.path.exists():
            return SyncState()
        try:
            with open(self.path, encoding="utf-8") as fh:
                raw = json.load(fh)
        except json.JSONDecodeError as exc:
            raise StateCorruptionError(
                f"Sync state {self.path} is not valid JSON: {exc}"
            ) from exc
        except OSError as exc:
            raise LocalStoreError(
                f"Cannot read sync state {self.path}: {exc}"
            ) from exc

        data = migrate(raw)
        try:
            return SyncState.model_validate(data)
        except ValidationError as exc:
            raise StateCorruptionError(
                f"Sync state {self.path} is structurally invalid: {exc}"
            ) from exc

    def save(self, state: SyncState) -> None:
        """Persist sync state to disk atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target.  Creates the parent directory if needed.
        """
        write_json_atomic(self.path, state.to_json())



# ----------------------------------------------------------------------
# Run lock
# ----------------------------------------------------------------------


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class SyncLock:
    """Exclusive lock file guarding the sync map during a run.

    The lock is a small JSON file created with ``O_EXCL`` next to the sync
    map.  A lock left behind by a process that no longer exists on this
    host is treated as stale and replaced.

    Usage::

        with SyncLock(state_path.with_name(state_path.name + ".lock")):
            ...
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._held = False

    def acquire(self) -> None:
        """Create the lock file.

        Raises:
            SyncLockedError: If another live process holds the lock.
            LocalStoreError: If the lock file cannot be created.
        """
        if self.path.exists() and self._is_stale():
            logger.warning("Removing stale sync lock %s", self.path)
            self.path.unlink(missing_ok=True)

        lock_data = {
            "pid": os.getpid(),
            "hostname": platform.node(),
            "locked_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            raise SyncLockedError(
                f"Another sync run holds {self.path}. If no sync is running, "
                "delete the file and retry."
            ) from None
        except OSError as exc:
            raise LocalStoreError(
                f"Cannot create sync lock {self.path}: {exc}"
            ) from exc
        try:
            os.write(fd, json.dumps(lock_data).encode("utf-8"))
        finally:
            os.close(fd)
        self._held = True

    def release(self) -> None:
        if not self._held:
            return
        self.path.unlink(missing_ok=True)
        self._held = False

    def _is_stale(self) -> bool:
        try:
            holder = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return False
        if not isinstance(holder, dict):
            return False
        pid = holder.get("pid")
        if holder.get("hostname") != platform.node() or not isinstance(pid, int):
            return False
        return not _pid_alive(pid)

    def __enter__(self) -> SyncLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
