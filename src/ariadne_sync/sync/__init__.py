"""Bidirectional incremental sync between the local tracker and Notion.

Architecture
------------
Local records (jobs, contacts, tasks) are linked to remote pages through
a persisted sync map.  Each record's canonical content hash is stored at
its last sync, so a local change is detected by re-hashing, and remote
changes are detected through the page's ``last_edited_time`` compared
with a run watermark.  When both sides changed, local wins.

Modules:

- ``engine``    -- ``SyncEngine``: orchestrates the phases of one run.
- ``state``     -- ``SyncState``/``SyncStateStore``: the sync map, its
  migration from older formats, and the run lock.
- ``hashing``   -- ``canonical_hash``: order-independent record hash.
- ``fetcher``   -- ``RemoteChangeFetcher``: paginated change query.
- ``puller``    -- applies remote changes, conflicts and reclassification.
- ``pusher``    -- incremental create/update of remote pages.
- ``deletions`` -- ``DeletionReconciler``: reports or archives pages of
  locally deleted records.
- ``entities``  -- per-collection adapters (keys, buckets, converters).
- ``properties``-- record <-> Notion property conversion.
- ``merger``    -- append-only merge of a contact's interaction log.
- ``schema``    -- remote database property provisioning.
- ``models``    -- records, keys, state entries and report models.
- ``reporter``  -- human-readable and JSON report formatting.

Usage example
-------------
::

    from ariadne_sync.config import load_config
    from ariadne_sync.sync import SyncEngine, SyncOptions, format_sync_report

    engine = SyncEngine(load_config())
    report = engine.run(SyncOptions(dry_run=True))
    print(format_sync_report(report))
"""

from ariadne_sync.sync.engine import SyncEngine, SyncOptions, SyncPhase
from ariadne_sync.sync.hashing import canonical_hash
from ariadne_sync.sync.models import (
    EntityType,
    JobKey,
    SyncAction,
    SyncReport,
    SyncResult,
)
from ariadne_sync.sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from ariadne_sync.sync.state import SyncState, SyncStateStore, migrate

__all__ = [
    "EntityType",
    "JobKey",
    "SyncAction",
    "SyncEngine",
    "SyncOptions",
    "SyncPhase",
    "SyncReport",
    "SyncResult",
    "SyncState",
    "SyncStateStore",
    "canonical_hash",
    "format_dry_run_preview",
    "format_sync_report",
    "migrate",
    "report_to_json",
]
