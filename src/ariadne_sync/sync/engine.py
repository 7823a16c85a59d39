"""Sync engine that orchestrates one full pull/push run.

The ``SyncEngine`` walks a fixed sequence of phases::

    INIT -> SCHEMA_CHECK -> PULL -> PERSIST_LOCAL -> PUSH -> PERSIST_STATE -> DONE

and moves to ``FATAL`` when any phase raises.  Run options gate phases:

* ``pull_only`` skips PUSH, ``push_only`` skips PULL (together they are a
  configuration error, rejected before any I/O).
* ``dry_run`` makes every phase report without mutating, skips
  PERSIST_LOCAL and PERSIST_STATE, and takes no run lock.
* PERSIST_LOCAL runs only when the pull changed local data.
* PERSIST_STATE always moves the watermark to the completion time.

A baseline run (no watermark yet) only changes how the pull treats
records; the push pass runs as usual and records hashes for every local
record.  Non-dry runs hold an exclusive lock file next to the sync map.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from ariadne_sync.core.client import NotionClient
from ariadne_sync.errors import ConfigurationError
from ariadne_sync.local_store import LocalStore
from ariadne_sync.sync.deletions import DeletionReconciler
from ariadne_sync.sync.entities import EntityAdapter, create_adapters
from ariadne_sync.sync.fetcher import RemoteChangeFetcher
from ariadne_sync.sync.models import (
    LOCAL_MUTATIONS,
    EntityType,
    SyncReport,
    SyncResult,
)
from ariadne_sync.sync.puller import Puller
from ariadne_sync.sync.pusher import Pusher
from ariadne_sync.sync.schema import ensure_schema
from ariadne_sync.sync.state import SyncLock, SyncStateStore

if TYPE_CHECKING:
    from ariadne_sync.config import Config

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    INIT = "init"
    SCHEMA_CHECK = "schema_check"
    PULL = "pull"
    PERSIST_LOCAL = "persist_local"
    PUSH = "push"
    PERSIST_STATE = "persist_state"
    DONE = "done"
    FATAL = "fatal"


@dataclass(frozen=True)
class SyncOptions:
    """Run-mode flags of one sync run."""

    dry_run: bool = False
    pull_only: bool = False
    push_only: bool = False
    full: bool = False
    apply_deletes: bool = False

    def validate(self) -> None:
        if self.pull_only and self.push_only:
            raise ConfigurationError(
                "--pull-only and --push-only are mutually exclusive"
            )

    @property
    def labels(self) -> list[str]:
        flags = [
            ("DRY RUN", self.dry_run),
            ("PULL ONLY", self.pull_only),
            ("PUSH ONLY", self.push_only),
            ("FULL", self.full),
            ("APPLY DELETES", self.apply_deletes),
        ]
        return [name for name, on in flags if on]


def folder_prefix(config: Config) -> str:
    """Data directory relative to the workspace root, as a posix path."""
    try:
        relative = config.data_dir.resolve().relative_to(
            config.workspace_root.resolve()
        )
    except ValueError:
        return config.data_dir.name
    return relative.as_posix()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncEngine:
    """Orchestrate a full sync run over the configured databases.

    Args:
        config: Runtime configuration.
        client: Notion client; built from *config* when omitted.
        local_store: Store of the local documents.
        state_store: Store of the sync map.
        adapters: Collection adapters, in sync order.
        now: Clock returning an aware ``datetime``.
    """

    def __init__(
        self,
        config: Config,
        client: NotionClient | None = None,
        local_store: LocalStore | None = None,
        state_store: SyncStateStore | None = None,
        adapters: list[EntityAdapter] | None = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.config = config
        self.client = client or NotionClient(config)
        self.local_store = local_store or LocalStore(config.data_dir)
        self.state_store = state_store or SyncStateStore(config.state_path)
        self.adapters = adapters or create_adapters(
            folder_prefix=folder_prefix(config)
        )
        self._now = now
        self.phase = SyncPhase.INIT

    @property
    def lock_path(self) -> Path:
        path = self.state_store.path
        return path.with_name(path.name + ".lock")

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self, options: SyncOptions | None = None) -> SyncReport:
        """Execute one sync run.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.

        Raises:
            ConfigurationError: On conflicting options or when no database
                is configured.  Raised before any I/O.
            SyncError: Any fatal error of a phase; ``self.phase`` is then
                ``SyncPhase.FATAL``.
        """
        options = options or SyncOptions()
        self.phase = SyncPhase.INIT
        options.validate()
        adapters = [
            a for a in self.adapters if self.config.database_id(a.entity_type)
        ]
        if not adapters:
            raise ConfigurationError("No Notion database ids configured")

        if options.labels:
            logger.info("[%s]", " | ".join(options.labels))

        if options.dry_run:
            return self._run(options, adapters)
        with SyncLock(self.lock_path):
            return self._run(options, adapters)

    def _enter(self, phase: SyncPhase) -> None:
        logger.debug("Sync phase: %s", phase.value)
        self.phase = phase

    def _run(
        self, options: SyncOptions, adapters: list[EntityAdapter]
    ) -> SyncReport:
        started_at = self._now().isoformat()
        results: list[SyncResult] = []
        try:
            state = self.state_store.load()
            baseline = state.is_baseline
            if baseline:
                logger.info(
                    "First sync detected, running baseline "
                    "(recording mappings, no local overwrites)"
                )
            local = self.local_store.load()

            self._enter(SyncPhase.SCHEMA_CHECK)
            schema_changes: dict[EntityType, list[str]] = {}
            for adapter in adapters:
                changes = ensure_schema(
                    self.client,
                    adapter.entity_type,
                    self._database_id(adapter),
                    dry_run=options.dry_run,
                )
                if changes:
                    schema_changes[adapter.entity_type] = changes

            if not options.push_only:
                self._enter(SyncPhase.PULL)
                puller = Puller(
                    RemoteChangeFetcher(self.client),
                    state,
                    local,
                    self.config.workspace_root,
                    dry_run=options.dry_run,
                    full=options.full,
                )
                for adapter in adapters:
                    results.extend(
                        puller.pull(adapter, self._database_id(adapter))
                    )

            mutations = sum(
                1 for r in results if r.success and r.action in LOCAL_MUTATIONS
            )
            if mutations and not options.dry_run:
                self._enter(SyncPhase.PERSIST_LOCAL)
                self.local_store.save(local)

            if not options.pull_only:
                self._enter(SyncPhase.PUSH)
                pusher = Pusher(
                    self.client,
                    state,
                    local,
                    dry_run=options.dry_run,
                    full=options.full,
                )
                reconciler = DeletionReconciler(
                    self.client,
                    state,
                    dry_run=options.dry_run,
                    apply_deletes=options.apply_deletes,
                )
                for adapter in adapters:
                    pushed, local_keys = pusher.push(
                        adapter, self._database_id(adapter)
                    )
                    results.extend(pushed)
                    results.extend(
                        reconciler.reconcile(adapter.entity_type, local_keys)
                    )

            if not options.dry_run:
                self._enter(SyncPhase.PERSIST_STATE)
                state.watermark = self._now().isoformat()
                self.state_store.save(state)
                logger.info("Sync complete. Last sync: %s", state.watermark)
            else:
                logger.info("Dry run complete. No changes made.")

            self._enter(SyncPhase.DONE)
        except Exception:
            logger.error("Sync failed during phase %s", self.phase.value)
            self.phase = SyncPhase.FATAL
            raise

        return SyncReport(
            dry_run=options.dry_run,
            baseline=baseline,
            full=options.full,
            results=results,
            schema_changes=schema_changes,
            started_at=started_at,
            completed_at=self._now().isoformat(),
            watermark=state.watermark,
        )

    def _database_id(self, adapter: EntityAdapter) -> str:
        return self.config.databases[adapter.entity_type]
