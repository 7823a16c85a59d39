"""Sync report formatting functions.

Provides human-readable and machine-readable output for sync runs:

- ``format_sync_report`` -- post-sync summary, one block per collection.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``report_to_json`` -- structured dict for ``--json`` and MCP tool output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from .models import EntityType, SyncAction

if TYPE_CHECKING:
    from .models import SyncReport, SyncResult


def _describe(r: SyncResult) -> str:
    text = r.label or r.key
    if r.label and r.label != r.key:
        text = f"{r.label} [{r.key}]"
    if r.detail:
        text += f": {r.detail}"
    return text


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Each collection gets a ``created / updated / unchanged / errors``
    summary line.  Pulled records, conflicts, deletions and errors are
    listed separately, and only when present.
    """
    lines: list[str] = []

    header = "Notion sync report"
    if report.dry_run:
        header += " (DRY RUN)"
    if report.baseline:
        header += " (baseline)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    for entity_type, changes in report.schema_changes.items():
        lines.append(
            f"Schema {entity_type.value}: {', '.join(changes)}"
        )
    if report.schema_changes:
        lines.append("")

    for entity_type in EntityType:
        results = report.for_type(entity_type)
        if not results:
            continue
        c = report.counts(entity_type)
        name = entity_type.value.capitalize()
        lines.append(
            f"{name}: {c['created']} created, {c['updated']} updated, "
            f"{c['unchanged']} unchanged, {c['errors']} errors"
        )
        extras = []
        if c["pulled"]:
            extras.append(f"{c['pulled']} pulled")
        if c["conflicts"]:
            extras.append(f"{c['conflicts']} conflicts")
        if c["deletions"]:
            extras.append(f"{c['deletions']} deletions")
        if extras:
            lines.append(f"  {', '.join(extras)}")
    lines.append("")

    pulled = [
        r
        for r in report.results
        if r.success
        and r.action
        in (SyncAction.PULL, SyncAction.RECLASSIFY, SyncAction.CREATE_LOCAL)
    ]
    if pulled:
        lines.append("Pulled from Notion:")
        for r in pulled:
            lines.append(f"  {r.entity_type.value} {_describe(r)}")
        lines.append("")

    if report.conflicts:
        lines.append("Conflicts (local wins):")
        for r in report.conflicts:
            lines.append(f"  {r.entity_type.value} {_describe(r)}")
        lines.append("")

    candidates = report.with_action(SyncAction.DELETE_CANDIDATE)
    if candidates:
        lines.append("Deleted locally but still in Notion:")
        for r in candidates:
            lines.append(f"  {r.entity_type.value} {r.key}")
        lines.append("  Use --apply-deletes to archive them in Notion")
        lines.append("")

    archived = [
        r for r in report.with_action(SyncAction.ARCHIVE_REMOTE) if r.success
    ]
    if archived:
        lines.append("Archived in Notion:")
        for r in archived:
            lines.append(f"  {r.entity_type.value} {r.key}")
        lines.append("")

    missing = report.with_action(SyncAction.LOCAL_MISSING)
    if missing:
        lines.append("Edited in Notion but deleted locally (kept deleted):")
        for r in missing:
            lines.append(f"  {r.entity_type.value} {r.key}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.entity_type.value} {_describe(r)}")
        lines.append("")

    if not report.dry_run and report.watermark:
        lines.append(f"Last sync: {report.watermark}")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by action type.

    Each proposed action is shown as ``[ACTION]`` followed by one line per
    record.  Unchanged and skipped records are summarised by count.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    if report.baseline:
        lines.append("Baseline run: mappings only, no local overwrites")
    lines.append("")

    for entity_type, changes in report.schema_changes.items():
        lines.append(
            f"[SCHEMA] {entity_type.value}: {', '.join(changes)}"
        )
    if report.schema_changes:
        lines.append("")

    groups: dict[SyncAction, list[SyncResult]] = defaultdict(list)
    for r in report.results:
        groups[r.action].append(r)

    display_order = [
        SyncAction.PULL,
        SyncAction.RECLASSIFY,
        SyncAction.CREATE_LOCAL,
        SyncAction.CONFLICT,
        SyncAction.LOCAL_MISSING,
        SyncAction.PUSH,
        SyncAction.CREATE_REMOTE,
        SyncAction.DELETE_CANDIDATE,
        SyncAction.ARCHIVE_REMOTE,
    ]

    for action in display_order:
        if action not in groups:
            continue
        label = action.value.upper().replace("_", " ")
        lines.append(f"[{label}]")
        for r in groups[action]:
            lines.append(f"  {r.entity_type.value} {_describe(r)}")
        lines.append("")

    quiet = sum(
        len(groups.get(a, []))
        for a in (SyncAction.SKIP, SyncAction.UNCHANGED, SyncAction.BASELINE)
    )
    if quiet:
        lines.append(f"Unchanged: {quiet} records")
        lines.append("")

    if not any(a in groups for a in display_order) and not report.schema_changes:
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "type": r.entity_type.value,
            "key": r.key,
            "action": r.action.value,
            "success": r.success,
        }
        if r.label:
            entry["label"] = r.label
        if r.detail:
            entry["detail"] = r.detail
        results_list.append(entry)

    return {
        "dry_run": report.dry_run,
        "baseline": report.baseline,
        "full": report.full,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "watermark": report.watermark,
        "schema_changes": {
            t.value: changes for t, changes in report.schema_changes.items()
        },
        "counts": {
            t.value: report.counts(t)
            for t in EntityType
            if report.for_type(t)
        },
        "results": results_list,
    }
