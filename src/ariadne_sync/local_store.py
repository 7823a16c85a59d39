"""Local tracker documents: load, validate and save.

The tracker keeps three independent JSON documents in its data directory:

- ``tracker.json`` -- ``{"active": [...], "skipped": [...], "closed": [...]}``
- ``network.json`` -- ``{"contacts": [...]}``
- ``tasks.json``   -- ``{"tasks": [...]}``

Missing documents load as empty collections.  Validation happens here, at
the boundary, so the sync modules only ever see well-formed records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from ariadne_sync.errors import LocalStoreError
from ariadne_sync.file_handler import read_json, write_json_atomic
from ariadne_sync.sync.models import (
    ContactsDocument,
    JobsDocument,
    JobStatus,
    TasksDocument,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

JOBS_FILE = "tracker.json"
CONTACTS_FILE = "network.json"
TASKS_FILE = "tasks.json"


@dataclass
class LocalCollections:
    """The three local documents, mutated in place during a pull."""

    jobs: JobsDocument
    contacts: ContactsDocument
    tasks: TasksDocument


class LocalStore:
    """Read and write the tracker's JSON documents.

    Args:
        data_dir: Directory holding ``tracker.json``, ``network.json`` and
            ``tasks.json``.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir

    def load(self) -> LocalCollections:
        """Load all three documents.

        Raises:
            LocalStoreError: If a document is unreadable or malformed.
        """
        jobs = self._load(JOBS_FILE, JobsDocument)
        for status in JobStatus:
            for job in jobs.bucket(status):
                job.status = status
        return LocalCollections(
            jobs=jobs,
            contacts=self._load(CONTACTS_FILE, ContactsDocument),
            tasks=self._load(TASKS_FILE, TasksDocument),
        )

    def save(self, collections: LocalCollections) -> None:
        """Write all three documents atomically (one file at a time)."""
        self._save(JOBS_FILE, collections.jobs)
        self._save(CONTACTS_FILE, collections.contacts)
        self._save(TASKS_FILE, collections.tasks)
        logger.info("Local files updated in %s", self.data_dir)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self, name: str, model: type[M]) -> M:
        path = self.data_dir / name
        raw = read_json(path, default={})
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            raise LocalStoreError(f"{path} is malformed: {exc}") from exc

    def _save(self, name: str, document: BaseModel) -> None:
        write_json_atomic(
            self.data_dir / name,
            document.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
