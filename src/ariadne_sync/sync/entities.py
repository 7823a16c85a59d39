"""Per-collection adapters used by the puller, pusher and deletion pass.

Each adapter knows how one collection is laid out in the local documents
(jobs live in three status buckets, contacts and tasks in flat lists), how
its local key is formed and parsed, and which property converters apply.
The sync algorithms are written once against the ``EntityAdapter``
protocol.

``create_adapters()`` builds the three adapters in sync order.
"""

from __future__ import annotations

import logging
import time
from pathlib import PurePosixPath
from typing import Any, Callable, Iterator, Protocol, Union

from ariadne_sync.errors import StateCorruptionError
from ariadne_sync.local_store import LocalCollections
from ariadne_sync.sync import properties
from ariadne_sync.sync.models import (
    Contact,
    EntityType,
    Job,
    JobKey,
    JobStage,
    JobStatus,
    LocalKey,
    SyncStateEntry,
    Task,
)

logger = logging.getLogger(__name__)

Record = Union[Job, Contact, Task]

LABEL_WIDTH = 50


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class EntityAdapter(Protocol):
    """Protocol that all collection adapters must satisfy."""

    entity_type: EntityType
    title_property: str

    def records(self, local: LocalCollections) -> Iterator[tuple[LocalKey, Any]]:
        """Yield ``(key, record)`` for every local record."""
        ...  # pragma: no cover

    def find(self, local: LocalCollections, key: LocalKey) -> Any | None:
        ...  # pragma: no cover

    def remove(self, local: LocalCollections, key: LocalKey) -> Any | None:
        ...  # pragma: no cover

    def insert(self, local: LocalCollections, record: Any) -> None:
        ...  # pragma: no cover

    def replace(self, local: LocalCollections, key: LocalKey, record: Any) -> bool:
        """Overwrite the record stored under *key* in place."""
        ...  # pragma: no cover

    def key_of(self, record: Any) -> LocalKey:
        ...  # pragma: no cover

    def parse_key(self, text: str, entry: SyncStateEntry | None) -> LocalKey:
        """Rebuild a local key from its persisted string form."""
        ...  # pragma: no cover

    def from_remote(
        self, props: dict[str, Any], existing: Any | None
    ) -> Any:
        """Build a local record from remote page properties."""
        ...  # pragma: no cover

    def to_remote(self, record: Any) -> dict[str, Any]:
        ...  # pragma: no cover

    def label(self, record: Any) -> str:
        ...  # pragma: no cover

    def make_entry(
        self,
        record: Any,
        remote_id: str | None,
        local_hash: str | None,
        remote_last_edited: str | None,
    ) -> SyncStateEntry:
        ...  # pragma: no cover


def today_iso() -> str:
    return time.strftime("%Y-%m-%d")


def _short(text: str) -> str:
    return text if len(text) <= LABEL_WIDTH else text[:LABEL_WIDTH]


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def stage_directory(stage: JobStage | None, status: JobStatus) -> str:
    """Artifact directory a job's folder belongs in."""
    if status == JobStatus.CLOSED:
        return "Rejected"
    if stage is None or stage == JobStage.SOURCED:
        return "InProgress"
    return "Applied"


class JobAdapter:
    """Jobs stored in the ``active``/``skipped``/``closed`` buckets.

    Args:
        folder_prefix: Path of the data directory relative to the
            workspace root, used to build relocated folder paths.
        today: Callable returning today's date as ``YYYY-MM-DD``.
    """

    entity_type = EntityType.JOBS
    title_property = "Role"

    def __init__(
        self,
        folder_prefix: str = "data",
        today: Callable[[], str] = today_iso,
    ) -> None:
        self.folder_prefix = folder_prefix
        self.today = today

    def records(self, local: LocalCollections) -> Iterator[tuple[JobKey, Job]]:
        for status in JobStatus:
            for job in local.jobs.bucket(status):
                job.status = status
                yield job.key, job

    def _index(self, local: LocalCollections, key: JobKey) -> int | None:
        for i, job in enumerate(local.jobs.bucket(key.status)):
            if job.company == key.company and job.role == key.role:
                return i
        return None

    def find(self, local: LocalCollections, key: JobKey) -> Job | None:
        index = self._index(local, key)
        if index is None:
            return None
        return local.jobs.bucket(key.status)[index]

    def remove(self, local: LocalCollections, key: JobKey) -> Job | None:
        index = self._index(local, key)
        if index is None:
            return None
        return local.jobs.bucket(key.status).pop(index)

    def insert(self, local: LocalCollections, record: Job) -> None:
        local.jobs.bucket(record.status).append(record)

    def replace(self, local: LocalCollections, key: JobKey, record: Job) -> bool:
        index = self._index(local, key)
        if index is None:
            return False
        local.jobs.bucket(key.status)[index] = record
        return True

    def key_of(self, record: Job) -> JobKey:
        return record.key

    def parse_key(self, text: str, entry: SyncStateEntry | None) -> JobKey:
        try:
            return JobKey.parse(
                text,
                company=entry.company if entry else None,
                role=entry.role if entry else None,
            )
        except ValueError as exc:
            raise StateCorruptionError(
                f"Invalid job key in sync state: {text!r}"
            ) from exc

    def from_remote(self, props: dict[str, Any], existing: Job | None) -> Job:
        job = properties.properties_to_job(props, existing)
        if existing is None:
            if not job.added:
                job.added = self.today()
            if job.status == JobStatus.ACTIVE and not job.updated:
                job.updated = self.today()
        return job

    def to_remote(self, record: Job) -> dict[str, Any]:
        return properties.job_to_properties(record)

    def label(self, record: Job) -> str:
        return f"{record.company} - {record.role}"

    def make_entry(
        self,
        record: Job,
        remote_id: str | None,
        local_hash: str | None,
        remote_last_edited: str | None,
    ) -> SyncStateEntry:
        return SyncStateEntry(
            remote_id=remote_id,
            local_hash=local_hash,
            remote_last_edited=remote_last_edited,
            company=record.company,
            role=record.role,
        )

    def relocated_folder(self, job: Job, previous: Job | None) -> str | None:
        """Folder path a reclassified job should point at.

        Returns ``None`` when neither the new nor the previous version of
        the job has a folder.
        """
        old = previous.folder if previous else None
        if not (job.folder or old):
            return None
        base = PurePosixPath(
            old or job.folder or f"{job.company} - {job.role}"
        ).name
        directory = stage_directory(job.stage, job.status)
        return str(PurePosixPath(self.folder_prefix) / directory / base)


# ---------------------------------------------------------------------------
# Contacts and tasks
# ---------------------------------------------------------------------------


class _ListAdapter:
    """Shared lookup for collections stored as one flat list keyed by id."""

    def _items(self, local: LocalCollections) -> list:
        raise NotImplementedError

    def records(self, local: LocalCollections) -> Iterator[tuple[str, Any]]:
        for record in self._items(local):
            yield record.key, record

    def _index(self, local: LocalCollections, key: str) -> int | None:
        for i, record in enumerate(self._items(local)):
            if record.key == key:
                return i
        return None

    def find(self, local: LocalCollections, key: str) -> Any | None:
        index = self._index(local, key)
        return None if index is None else self._items(local)[index]

    def remove(self, local: LocalCollections, key: str) -> Any | None:
        index = self._index(local, key)
        return None if index is None else self._items(local).pop(index)

    def insert(self, local: LocalCollections, record: Any) -> None:
        self._items(local).append(record)

    def replace(self, local: LocalCollections, key: str, record: Any) -> bool:
        index = self._index(local, key)
        if index is None:
            return False
        self._items(local)[index] = record
        return True

    def key_of(self, record: Any) -> str:
        return record.key

    def parse_key(self, text: str, entry: SyncStateEntry | None) -> str:
        return text

    def make_entry(
        self,
        record: Any,
        remote_id: str | None,
        local_hash: str | None,
        remote_last_edited: str | None,
    ) -> SyncStateEntry:
        return SyncStateEntry(
            remote_id=remote_id,
            local_hash=local_hash,
            remote_last_edited=remote_last_edited,
        )


class ContactAdapter(_ListAdapter):
    entity_type = EntityType.CONTACTS
    title_property = "Name"

    def __init__(self, today: Callable[[], str] = today_iso) -> None:
        self.today = today

    def _items(self, local: LocalCollections) -> list[Contact]:
        return local.contacts.contacts

    def from_remote(
        self, props: dict[str, Any], existing: Contact | None
    ) -> Contact:
        return properties.properties_to_contact(props, existing, self.today())

    def to_remote(self, record: Contact) -> dict[str, Any]:
        return properties.contact_to_properties(record)

    def label(self, record: Contact) -> str:
        return record.name


def to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


class TaskAdapter(_ListAdapter):
    """Tasks stored in ``tasks.json``.

    New tasks pulled from the remote side get an id of the form
    ``task-<milliseconds in base 36>``, bumped until it is unused.
    """

    entity_type = EntityType.TASKS
    title_property = "Task"

    def __init__(
        self,
        today: Callable[[], str] = today_iso,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.today = today
        self.clock = clock
        self._issued: set[str] = set()

    def _items(self, local: LocalCollections) -> list[Task]:
        return local.tasks.tasks

    def new_id(self) -> str:
        millis = int(self.clock() * 1000)
        candidate = f"task-{to_base36(millis)}"
        while candidate in self._issued:
            millis += 1
            candidate = f"task-{to_base36(millis)}"
        self._issued.add(candidate)
        return candidate

    def from_remote(self, props: dict[str, Any], existing: Task | None) -> Task:
        new_id = "" if existing is not None else self.new_id()
        return properties.properties_to_task(
            props, existing, self.today(), new_id
        )

    def to_remote(self, record: Task) -> dict[str, Any]:
        return properties.task_to_properties(record)

    def label(self, record: Task) -> str:
        return _short(record.task)


def create_adapters(
    folder_prefix: str = "data",
    today: Callable[[], str] = today_iso,
) -> list[EntityAdapter]:
    """Return the jobs, contacts and tasks adapters, in sync order."""
    return [
        JobAdapter(folder_prefix=folder_prefix, today=today),
        ContactAdapter(today=today),
        TaskAdapter(today=today),
    ]
