"""Shared pytest fixtures for ariadne-sync tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from ariadne_sync.config import Config
from ariadne_sync.sync.models import EntityType


# ---------------------------------------------------------------------------
# In-memory Notion
# ---------------------------------------------------------------------------


def to_read_format(properties: dict[str, Any]) -> dict[str, Any]:
    """Convert a write payload into the shape Notion returns on read."""
    out: dict[str, Any] = {}
    for name, value in properties.items():
        if "title" in value or "rich_text" in value:
            kind = "title" if "title" in value else "rich_text"
            out[name] = {
                "type": kind,
                kind: [
                    {
                        "type": "text",
                        "text": part["text"],
                        "plain_text": part["text"]["content"],
                    }
                    for part in value[kind]
                ],
            }
        else:
            (kind, inner), = value.items()
            out[name] = {"type": kind, kind: inner}
    return out


class FakeNotionClient:
    """In-memory stand-in for ``NotionClient``.

    Pages live in ``self.pages`` keyed by id.  Every write advances a shared
    clock by one minute; pass ``fake.clock`` as the engine's ``now`` so the
    watermark and page edit times are ordered.
    """

    def __init__(self, page_size: int | None = None) -> None:
        self.pages: dict[str, dict[str, Any]] = {}
        self.databases: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.page_size = page_size
        self.fail_on: dict[str, Exception] = {}
        self._time = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        self._next_id = 1

    # -- clock -------------------------------------------------------------

    def clock(self) -> datetime:
        self._time += timedelta(minutes=1)
        return self._time

    def _stamp(self) -> str:
        return self.clock().isoformat().replace("+00:00", "Z")

    # -- test helpers ------------------------------------------------------

    def add_page(self, database_id: str, properties: dict[str, Any]) -> str:
        """Create a page as if a user made it in Notion."""
        page_id = f"page-{self._next_id}"
        self._next_id += 1
        self.pages[page_id] = {
            "id": page_id,
            "database_id": database_id,
            "properties": to_read_format(properties),
            "last_edited_time": self._stamp(),
            "archived": False,
        }
        return page_id

    def edit_page(self, page_id: str, properties: dict[str, Any]) -> None:
        """Edit a page as if a user changed it in Notion."""
        page = self.pages[page_id]
        page["properties"].update(to_read_format(properties))
        page["last_edited_time"] = self._stamp()

    def writes(self, *methods: str) -> list[tuple[str, str]]:
        names = methods or ("create_page", "update_page", "archive_page")
        return [c for c in self.calls if c[0] in names]

    def _maybe_fail(self, key: str) -> None:
        if key in self.fail_on:
            raise self.fail_on[key]

    # -- NotionClient surface ----------------------------------------------

    def query_database(
        self,
        database_id: str,
        filter: dict | None = None,
        start_cursor: str | None = None,
        page_size: int = 100,
    ) -> dict[str, Any]:
        self.calls.append(("query_database", database_id))
        size = self.page_size or page_size
        since = None
        if filter:
            since = datetime.fromisoformat(
                filter["last_edited_time"]["after"]
            )
        matching = [
            p
            for p in self.pages.values()
            if p["database_id"] == database_id
            and not p["archived"]
            and (
                since is None
                or datetime.fromisoformat(p["last_edited_time"]) > since
            )
        ]
        start = int(start_cursor) if start_cursor else 0
        chunk = matching[start : start + size]
        more = start + size < len(matching)
        return {
            "results": [dict(p) for p in chunk],
            "has_more": more,
            "next_cursor": str(start + size) if more else None,
        }

    def retrieve_database(self, database_id: str) -> dict[str, Any]:
        self.calls.append(("retrieve_database", database_id))
        db = self.databases.setdefault(
            database_id, {"properties": {"Name": {"type": "title"}}}
        )
        return {"id": database_id, "properties": dict(db["properties"])}

    def update_database(
        self, database_id: str, properties: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(("update_database", database_id))
        db = self.databases.setdefault(database_id, {"properties": {}})
        for name, schema in properties.items():
            if set(schema) == {"name"} and name in db["properties"]:
                db["properties"][schema["name"]] = db["properties"].pop(name)
            else:
                db["properties"][name] = schema
        return {"id": database_id, "properties": db["properties"]}

    def create_page(
        self, database_id: str, properties: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(("create_page", database_id))
        self._maybe_fail("create_page")
        page_id = self.add_page(database_id, properties)
        return dict(self.pages[page_id])

    def update_page(
        self, page_id: str, properties: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(("update_page", page_id))
        self._maybe_fail(page_id)
        self.edit_page(page_id, properties)
        return dict(self.pages[page_id])

    def archive_page(self, page_id: str) -> bool:
        self.calls.append(("archive_page", page_id))
        self._maybe_fail(page_id)
        self.pages[page_id]["archived"] = True
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


DATABASES = {
    EntityType.JOBS: "db-jobs",
    EntityType.CONTACTS: "db-contacts",
    EntityType.TASKS: "db-tasks",
}


@pytest.fixture
def fake_notion() -> FakeNotionClient:
    return FakeNotionClient()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def mock_config(data_dir: Path) -> Config:
    """Config pointing at an empty data directory under tmp_path."""
    return Config(
        api_key="secret_test",
        databases=dict(DATABASES),
        data_dir=data_dir,
        request_interval=0,
    )


@pytest.fixture
def write_local(data_dir: Path):
    """Factory fixture writing the tracker's local documents."""

    def _write(
        jobs: dict | None = None,
        contacts: list | None = None,
        tasks: list | None = None,
    ) -> None:
        if jobs is not None:
            doc = {"active": [], "skipped": [], "closed": []}
            doc.update(jobs)
            (data_dir / "tracker.json").write_text(json.dumps(doc))
        if contacts is not None:
            (data_dir / "network.json").write_text(
                json.dumps({"contacts": contacts})
            )
        if tasks is not None:
            (data_dir / "tasks.json").write_text(json.dumps({"tasks": tasks}))

    return _write


@pytest.fixture
def read_local(data_dir: Path):
    """Factory fixture reading back a local document as a dict."""

    def _read(name: str) -> dict:
        return json.loads((data_dir / name).read_text())

    return _read
