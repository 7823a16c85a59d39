"""Tests for sync report formatting.

Covers:
- Summary line per collection, only for collections with results
- Sections for pulled records, conflicts, deletions and errors
- Dry-run preview grouping
- JSON output shape
"""

import json

import pytest

from ariadne_sync.sync.models import EntityType, SyncAction, SyncReport, SyncResult
from ariadne_sync.sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)


def _r(action, key="k", entity_type=EntityType.JOBS, **kwargs) -> SyncResult:
    return SyncResult(entity_type=entity_type, key=key, action=action, **kwargs)


@pytest.fixture
def report() -> SyncReport:
    return SyncReport(
        started_at="2026-03-01T09:00:00+00:00",
        completed_at="2026-03-01T09:00:05+00:00",
        watermark="2026-03-01T09:00:04+00:00",
        schema_changes={EntityType.TASKS: ["Done"]},
        results=[
            _r(SyncAction.CREATE_REMOTE, "Active:Acme:Eng", label="Acme - Eng"),
            _r(SyncAction.UNCHANGED, "Active:Beta:Eng"),
            _r(
                SyncAction.RECLASSIFY,
                "Active:Gamma:Eng",
                label="Gamma - Eng",
                detail="-> Closed:Gamma:Eng",
            ),
            _r(
                SyncAction.CONFLICT,
                "ada",
                entity_type=EntityType.CONTACTS,
                label="Ada",
            ),
            _r(
                SyncAction.PUSH,
                "ada",
                entity_type=EntityType.CONTACTS,
                label="Ada",
            ),
            _r(SyncAction.DELETE_CANDIDATE, "t9", entity_type=EntityType.TASKS),
            _r(
                SyncAction.CREATE_REMOTE,
                "t1",
                entity_type=EntityType.TASKS,
                success=False,
                detail="bad property",
            ),
        ],
    )


class TestFormatSyncReport:
    def test_summary_lines(self, report):
        text = format_sync_report(report)
        assert "Jobs: 1 created, 0 updated, 1 unchanged, 0 errors" in text
        assert "  1 pulled" in text
        assert "Contacts: 0 created, 1 updated, 0 unchanged, 0 errors" in text
        assert "Tasks: 0 created, 0 updated, 0 unchanged, 1 errors" in text

    def test_sections(self, report):
        text = format_sync_report(report)
        assert "Schema tasks: Done" in text
        assert "jobs Gamma - Eng [Active:Gamma:Eng]: -> Closed:Gamma:Eng" in text
        assert "Conflicts (local wins):\n  contacts Ada [ada]" in text
        assert "Use --apply-deletes" in text
        assert "Errors:\n  tasks t1: bad property" in text
        assert text.endswith("Last sync: 2026-03-01T09:00:04+00:00")

    def test_collections_without_results_omitted(self):
        text = format_sync_report(
            SyncReport(started_at="t", results=[_r(SyncAction.UNCHANGED)])
        )
        assert "Jobs:" in text
        assert "Contacts:" not in text

    def test_baseline_header(self):
        text = format_sync_report(SyncReport(started_at="t", baseline=True))
        assert text.splitlines()[0] == "Notion sync report (baseline)"


class TestDryRunPreview:
    def test_grouped_by_action(self, report):
        text = format_dry_run_preview(report)
        assert text.startswith("DRY RUN -- No changes will be made")
        assert "[CREATE REMOTE]\n  jobs Acme - Eng [Active:Acme:Eng]" in text
        assert "[RECLASSIFY]" in text
        assert "[SCHEMA] tasks: Done" in text
        assert "Unchanged: 1 records" in text

    def test_nothing_to_do(self):
        text = format_dry_run_preview(
            SyncReport(started_at="t", dry_run=True, results=[_r(SyncAction.SKIP)])
        )
        assert "No changes needed." in text


class TestReportToJson:
    def test_shape(self, report):
        data = report_to_json(report)
        assert data["watermark"] == "2026-03-01T09:00:04+00:00"
        assert data["schema_changes"] == {"tasks": ["Done"]}
        assert data["counts"]["jobs"]["created"] == 1
        assert data["results"][0] == {
            "type": "jobs",
            "key": "Active:Acme:Eng",
            "action": "create_remote",
            "success": True,
            "label": "Acme - Eng",
        }
        json.dumps(data)

    def test_counts_only_for_present_types(self):
        data = report_to_json(
            SyncReport(started_at="t", results=[_r(SyncAction.UNCHANGED)])
        )
        assert list(data["counts"]) == ["jobs"]
