"""End-to-end tests for SyncEngine against the in-memory Notion fake.

Covers:
- First run is a baseline that pushes every local record
- Idempotent push: a second run without changes writes nothing
- Remote status change moves a job between buckets
- Concurrent edits: local wins on pull, push then overwrites the remote
- Run flags: dry-run, pull-only, push-only, apply-deletes
- Fatal errors, the run lock and configuration errors
"""

import json
from unittest.mock import MagicMock

import pytest

from ariadne_sync.config import Config
from ariadne_sync.errors import (
    AuthenticationError,
    ConfigurationError,
    SyncLockedError,
)
from ariadne_sync.sync.engine import SyncEngine, SyncOptions, SyncPhase
from ariadne_sync.sync.models import EntityType, SyncAction
from ariadne_sync.sync.state import SyncLock, SyncStateStore

from conftest import DATABASES


@pytest.fixture
def engine(mock_config, fake_notion):
    return SyncEngine(mock_config, client=fake_notion, now=fake_notion.clock)


def _state(mock_config) -> dict:
    return json.loads(mock_config.state_path.read_text())


def _job_page(fake_notion) -> str:
    (page_id,) = [
        pid for pid, page in fake_notion.pages.items()
        if page["database_id"] == DATABASES[EntityType.JOBS]
    ]
    return page_id


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_new_local_job_created_once(self, engine, fake_notion, write_local):
        write_local(jobs={"active": [{"company": "Acme", "role": "Engineer"}]})

        report = engine.run()
        assert report.baseline is True
        assert report.counts(EntityType.JOBS)["created"] == 1
        assert fake_notion.writes("create_page") == [("create_page", "db-jobs")]

        fake_notion.calls.clear()
        report = engine.run()
        assert report.baseline is False
        assert fake_notion.writes() == []
        assert report.counts(EntityType.JOBS)["unchanged"] == 1

    def test_remote_status_change_moves_job(
        self, engine, fake_notion, write_local, read_local, mock_config
    ):
        write_local(jobs={"active": [{"company": "Acme", "role": "Engineer"}]})
        engine.run()
        page_id = _job_page(fake_notion)

        fake_notion.edit_page(page_id, {"Status": {"select": {"name": "Closed"}}})
        fake_notion.calls.clear()
        report = engine.run()

        assert [r.action for r in report.with_action(SyncAction.RECLASSIFY)] == [
            SyncAction.RECLASSIFY
        ]
        tracker = read_local("tracker.json")
        assert tracker["active"] == []
        assert tracker["closed"][0]["company"] == "Acme"
        state = _state(mock_config)
        assert list(state["jobs"]) == ["Closed:Acme:Engineer"]
        assert state["reverseIndex"][page_id] == {
            "type": "jobs",
            "key": "Closed:Acme:Engineer",
        }
        assert fake_notion.writes() == []

    def test_concurrent_contact_edit_local_wins(
        self, engine, fake_notion, write_local, read_local
    ):
        write_local(contacts=[{"id": "ada", "name": "Ada", "email": "ada@old.io"}])
        engine.run()
        (page_id,) = list(fake_notion.pages)

        write_local(contacts=[{"id": "ada", "name": "Ada", "email": "ada@new.io"}])
        fake_notion.edit_page(page_id, {"Email": {"email": "ada@remote.io"}})
        fake_notion.calls.clear()
        report = engine.run()

        assert len(report.conflicts) == 1
        assert report.counts(EntityType.CONTACTS)["updated"] == 1
        assert fake_notion.writes() == [("update_page", page_id)]
        assert fake_notion.pages[page_id]["properties"]["Email"]["email"] == (
            "ada@new.io"
        )
        assert read_local("network.json")["contacts"][0]["email"] == "ada@new.io"


# ---------------------------------------------------------------------------
# Run flags
# ---------------------------------------------------------------------------


class TestRunFlags:
    def test_dry_run_writes_nothing(self, engine, fake_notion, write_local, mock_config):
        write_local(jobs={"active": [{"company": "Acme", "role": "Engineer"}]})

        report = engine.run(SyncOptions(dry_run=True))

        assert report.dry_run is True
        assert report.counts(EntityType.JOBS)["created"] == 1
        assert fake_notion.writes("create_page", "update_page", "update_database") == []
        assert not mock_config.state_path.exists()
        assert not engine.lock_path.exists()
        assert report.watermark is None

    def test_pull_only_skips_push(self, engine, fake_notion, write_local, mock_config):
        write_local(jobs={"active": [{"company": "Acme", "role": "Engineer"}]})
        engine.run(SyncOptions(pull_only=True))

        assert fake_notion.writes("create_page") == []
        assert _state(mock_config)["watermark"] is not None

    def test_push_only_skips_pull(self, engine, fake_notion, write_local):
        write_local(jobs={"active": [{"company": "Acme", "role": "Engineer"}]})
        engine.run(SyncOptions(push_only=True))

        assert fake_notion.writes("query_database") == []
        assert len(fake_notion.writes("create_page")) == 1

    def test_pull_and_push_only_rejected_before_io(self, engine, fake_notion):
        with pytest.raises(ConfigurationError):
            engine.run(SyncOptions(pull_only=True, push_only=True))
        assert fake_notion.calls == []

    def test_apply_deletes_archives_removed_records(
        self, engine, fake_notion, write_local, mock_config
    ):
        write_local(jobs={"active": [{"company": "Acme", "role": "Engineer"}]})
        engine.run()
        page_id = _job_page(fake_notion)

        write_local(jobs={"active": []})
        report = engine.run()
        assert report.counts(EntityType.JOBS)["deletions"] == 1
        assert fake_notion.pages[page_id]["archived"] is False

        engine.run(SyncOptions(apply_deletes=True))
        assert fake_notion.pages[page_id]["archived"] is True
        assert _state(mock_config)["jobs"] == {}

    def test_watermark_is_completion_time(self, engine, mock_config, write_local):
        write_local(jobs={"active": []})
        report = engine.run()
        assert report.watermark == _state(mock_config)["watermark"]
        assert report.watermark > report.started_at

    def test_local_files_written_only_on_pull_changes(self, engine, write_local):
        write_local(jobs={"active": [{"company": "Acme", "role": "Engineer"}]})
        engine.local_store.save = MagicMock()

        engine.run()
        engine.run()
        engine.local_store.save.assert_not_called()


# ---------------------------------------------------------------------------
# Failures and configuration
# ---------------------------------------------------------------------------


class TestFailures:
    def test_fatal_remote_error(self, engine, fake_notion, write_local, mock_config):
        write_local(jobs={"active": [{"company": "Acme", "role": "Engineer"}]})
        fake_notion.fail_on["create_page"] = AuthenticationError(
            "unauthorized", status_code=401
        )

        with pytest.raises(AuthenticationError):
            engine.run()

        assert engine.phase == SyncPhase.FATAL
        assert not mock_config.state_path.exists()
        assert not engine.lock_path.exists()

    def test_lock_held_by_other_run(self, engine, fake_notion):
        with SyncLock(engine.lock_path):
            with pytest.raises(SyncLockedError):
                engine.run()
        assert fake_notion.calls == []

    def test_dry_run_ignores_lock(self, engine):
        with SyncLock(engine.lock_path):
            assert engine.run(SyncOptions(dry_run=True)).dry_run is True

    def test_no_databases_configured(self, data_dir, fake_notion):
        config = Config(api_key="secret_test", data_dir=data_dir)
        with pytest.raises(ConfigurationError):
            SyncEngine(config, client=fake_notion).run()

    def test_unconfigured_types_skipped(self, data_dir, fake_notion, write_local):
        config = Config(
            api_key="secret_test",
            databases={EntityType.JOBS: "db-jobs"},
            data_dir=data_dir,
        )
        write_local(contacts=[{"id": "ada", "name": "Ada"}])
        report = SyncEngine(config, client=fake_notion, now=fake_notion.clock).run()

        assert {db for _, db in fake_notion.calls} == {"db-jobs"}
        assert report.for_type(EntityType.CONTACTS) == []

    def test_state_survives_reload(self, engine, mock_config, write_local):
        write_local(tasks=[{"id": "t1", "task": "Send CV"}])
        engine.run()
        state = SyncStateStore(mock_config.state_path).load()
        assert state.keys(EntityType.TASKS) == ["t1"]
        assert state.is_baseline is False
