"""Paginated retrieval of remote database records."""

from __future__ import annotations

import logging
from typing import Any

from ariadne_sync.core.client import PAGE_SIZE, NotionClient

logger = logging.getLogger(__name__)


def edited_after(since: str) -> dict[str, Any]:
    """Query filter selecting pages edited after *since*."""
    return {
        "timestamp": "last_edited_time",
        "last_edited_time": {"after": since},
    }


class RemoteChangeFetcher:
    """Fetch every page of a database query.

    Pacing between page requests and retries of rate-limited requests are
    handled by the client's transport.

    Args:
        client: Notion API client.
        page_size: Records requested per page.
    """

    def __init__(self, client: NotionClient, page_size: int = PAGE_SIZE) -> None:
        self.client = client
        self.page_size = page_size

    def fetch(self, database_id: str, since: str | None) -> list[dict[str, Any]]:
        """Return all records of *database_id*, following cursors.

        Args:
            database_id: Remote database to query.
            since: Only records edited after this ISO timestamp; ``None``
                scans the whole database.

        Returns:
            Page objects in the order the API returned them.

        Raises:
            RemoteError: On any failed request; nothing is returned for a
                partially fetched database.
        """
        query_filter = edited_after(since) if since else None
        records: list[dict[str, Any]] = []
        seen: set[str] = set()
        cursor: str | None = None
        pages = 0
        while True:
            response = self.client.query_database(
                database_id,
                filter=query_filter,
                start_cursor=cursor,
                page_size=self.page_size,
            )
            pages += 1
            for record in response.get("results", []):
                record_id = record.get("id")
                if record_id in seen:
                    continue
                seen.add(record_id)
                records.append(record)
            cursor = response.get("next_cursor")
            if not response.get("has_more") or not cursor:
                break

        logger.debug(
            "Fetched %d records from %s in %d page(s)%s",
            len(records),
            database_id,
            pages,
            f" (edited after {since})" if since else "",
        )
        return records
