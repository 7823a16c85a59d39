"""Make sure each remote database has the properties the sync writes.

New Notion databases come with a single ``Name`` title property.  For
jobs and tasks it is renamed to ``Role`` / ``Task``; every other required
property that is missing is created in one database update.
"""

from __future__ import annotations

import logging
from typing import Any

from ariadne_sync.core.client import NotionClient
from ariadne_sync.sync.models import (
    EntityType,
    JobOutcome,
    JobStage,
)

logger = logging.getLogger(__name__)


def _options(*names: str, color: str | None = None) -> dict[str, Any]:
    return {
        "select": {
            "options": [
                {"name": n, "color": color} if color else {"name": n}
                for n in names
            ]
        }
    }


_TEXT: dict[str, Any] = {"rich_text": {}}
_DATE: dict[str, Any] = {"date": {}}

REQUIRED_PROPERTIES: dict[EntityType, dict[str, dict[str, Any]]] = {
    EntityType.JOBS: {
        "Company": _TEXT,
        "Status": {
            "select": {
                "options": [
                    {"name": "Active", "color": "green"},
                    {"name": "Skipped", "color": "gray"},
                    {"name": "Closed", "color": "red"},
                ]
            }
        },
        "Stage": _options(*(s.value for s in JobStage)),
        "URL": {"url": {}},
        "Next Action": _TEXT,
        "Outcome": _options(*(o.value for o in JobOutcome)),
        "Skip Reason": _TEXT,
        "Added": _DATE,
        "Updated": _DATE,
        "Closed": _DATE,
        "Folder": _TEXT,
    },
    EntityType.CONTACTS: {
        "Company": _TEXT,
        "Title": _TEXT,
        "Email": {"email": {}},
        "LinkedIn": {"url": {}},
        "Source": _TEXT,
        "Added": _DATE,
        "Notes": _TEXT,
    },
    EntityType.TASKS: {
        "Done": {"checkbox": {}},
        "Due": _DATE,
        "Created": _DATE,
    },
}

TITLE_PROPERTIES: dict[EntityType, str] = {
    EntityType.JOBS: "Role",
    EntityType.CONTACTS: "Name",
    EntityType.TASKS: "Task",
}


def missing_properties(
    entity_type: EntityType, existing: set[str]
) -> dict[str, dict[str, Any]]:
    return {
        name: schema
        for name, schema in REQUIRED_PROPERTIES[entity_type].items()
        if name not in existing
    }


def ensure_schema(
    client: NotionClient,
    entity_type: EntityType,
    database_id: str,
    dry_run: bool = False,
) -> list[str]:
    """Provision one database.

    Returns:
        Names of the properties renamed or created (or that would be, in a
        dry run).
    """
    database = client.retrieve_database(database_id)
    existing = set((database.get("properties") or {}).keys())
    changes: list[str] = []

    title = TITLE_PROPERTIES[entity_type]
    if title != "Name" and "Name" in existing and title not in existing:
        logger.info("Renaming title property: Name -> %s", title)
        if not dry_run:
            client.update_database(database_id, {"Name": {"name": title}})
        existing.discard("Name")
        existing.add(title)
        changes.append(f"Name -> {title}")

    to_create = missing_properties(entity_type, existing)
    if to_create:
        logger.info(
            "Creating %s properties: %s",
            entity_type.value,
            ", ".join(to_create),
        )
        if not dry_run:
            client.update_database(database_id, to_create)
        changes.extend(to_create)
    else:
        logger.debug("%s schema OK", entity_type.value)
    return changes
