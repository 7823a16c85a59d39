"""Pydantic models for the tracker sync engine.

Defines the data contracts shared by every sync module:

- Local records: ``Job``, ``Contact`` (with ``Interaction`` sub-records),
  ``Task`` and the documents that hold them.
- Keys: ``EntityType`` and the structured ``JobKey``.
- Persisted mapping: ``SyncStateEntry`` and ``ReverseEntry``.
- Outcome reporting: ``SyncAction``, ``SyncResult``, ``SyncReport``.

Local records accept unknown fields (``extra="allow"``) so data written by
the surrounding tracker tooling survives a pull round-trip untouched.
Result and report models are frozen.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EntityType(str, Enum):
    """The three synchronised collections."""

    JOBS = "jobs"
    CONTACTS = "contacts"
    TASKS = "tasks"


class JobStatus(str, Enum):
    """Bucket a job lives in; part of the job's local key."""

    ACTIVE = "Active"
    SKIPPED = "Skipped"
    CLOSED = "Closed"


class JobStage(str, Enum):
    """Pipeline stage of an active job, in pipeline order."""

    SOURCED = "Sourced"
    APPLIED = "Applied"
    PHONE_SCREEN = "Phone Screen"
    TECHNICAL = "Technical"
    ONSITE = "Onsite"
    OFFER = "Offer"
    NEGOTIATING = "Negotiating"


class JobOutcome(str, Enum):
    REJECTED = "Rejected"
    WITHDREW = "Withdrew"
    ACCEPTED = "Accepted"
    EXPIRED = "Expired"


class InteractionType(str, Enum):
    EMAIL = "email"
    CALL = "call"
    MESSAGE = "message"
    MEETING = "meeting"
    LINKEDIN = "linkedin"
    COFFEE = "coffee"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Local records
# ---------------------------------------------------------------------------

_RECORD_CONFIG = ConfigDict(extra="allow", populate_by_name=True)


class Job(BaseModel):
    """A tracked job application.

    ``status`` is not stored inside the record: it is implied by the bucket
    (``active``/``skipped``/``closed``) of the jobs document, so it is
    excluded from serialisation and hashing.
    """

    model_config = _RECORD_CONFIG

    company: str
    role: str
    status: JobStatus = Field(default=JobStatus.ACTIVE, exclude=True)
    stage: JobStage | None = None
    url: str | None = None
    next: str | None = None
    added: str | None = None
    updated: str | None = None
    closed: str | None = None
    folder: str | None = None
    reason: str | None = None
    outcome: JobOutcome | None = None

    @property
    def key(self) -> JobKey:
        return JobKey(
            status=self.status, company=self.company, role=self.role
        )


class Interaction(BaseModel):
    """One dated entry of a contact's append-only interaction log."""

    model_config = _RECORD_CONFIG

    date: str
    type: InteractionType
    summary: str
    linked_jobs: list[str] | None = Field(
        default=None, alias="linkedJobs"
    )

    @property
    def note_summary(self) -> str:
        """Summary as it appears in a notes line: one line, single-spaced."""
        return " ".join(self.summary.split())

    @property
    def merge_key(self) -> tuple[str, str, str]:
        """Composite identity used to de-duplicate merged interactions."""
        return (self.date, self.type.value, self.note_summary)


class Contact(BaseModel):
    model_config = _RECORD_CONFIG

    id: str | None = None
    name: str
    company: str | None = None
    title: str | None = None
    email: str | None = None
    linkedin: str | None = None
    source: str | None = None
    introduced_by: str | None = Field(default=None, alias="introducedBy")
    added: str | None = None
    interactions: list[Interaction] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return self.id or self.name


class Task(BaseModel):
    model_config = _RECORD_CONFIG

    id: str | None = None
    task: str = ""
    due: str | None = None
    linked_contacts: list[str] = Field(
        default_factory=list, alias="linkedContacts"
    )
    linked_jobs: list[str] = Field(default_factory=list, alias="linkedJobs")
    status: TaskStatus = TaskStatus.PENDING
    created: str | None = None
    completed: str | None = None

    @property
    def key(self) -> str:
        return self.id or self.task


# ---------------------------------------------------------------------------
# Local documents
# ---------------------------------------------------------------------------


class JobsDocument(BaseModel):
    """``tracker.json``: jobs grouped by status bucket."""

    model_config = ConfigDict(extra="allow")

    active: list[Job] = Field(default_factory=list)
    skipped: list[Job] = Field(default_factory=list)
    closed: list[Job] = Field(default_factory=list)

    def bucket(self, status: JobStatus) -> list[Job]:
        return getattr(self, BUCKET_BY_STATUS[status])


class ContactsDocument(BaseModel):
    """``network.json``."""

    model_config = ConfigDict(extra="allow")

    contacts: list[Contact] = Field(default_factory=list)


class TasksDocument(BaseModel):
    """``tasks.json``."""

    model_config = ConfigDict(extra="allow")

    tasks: list[Task] = Field(default_factory=list)


BUCKET_BY_STATUS: dict[JobStatus, str] = {
    JobStatus.ACTIVE: "active",
    JobStatus.SKIPPED: "skipped",
    JobStatus.CLOSED: "closed",
}


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class JobKey(BaseModel):
    """Structured composite key ``(status, company, role)`` of a job.

    ``str(key)`` gives the ``Status:Company:Role`` form used for log output
    and as the key of the persisted sync map.
    """

    status: JobStatus
    company: str
    role: str

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.status.value}:{self.company}:{self.role}"

    @classmethod
    def parse(
        cls,
        text: str,
        company: str | None = None,
        role: str | None = None,
    ) -> JobKey:
        """Rebuild a key from its string form.

        When the sync entry kept ``company`` and ``role`` they are used
        verbatim, so names containing ``:`` survive.  Otherwise the text is
        split on the first two colons.

        Raises:
            ValueError: If the status prefix is not a known status.
        """
        status_text, _, rest = text.partition(":")
        status = JobStatus(status_text)
        if company is not None and role is not None:
            return cls(status=status, company=company, role=role)
        company_text, _, role_text = rest.partition(":")
        return cls(status=status, company=company_text, role=role_text)


LocalKey = JobKey | str


# ---------------------------------------------------------------------------
# Persisted sync map
# ---------------------------------------------------------------------------


class SyncStateEntry(BaseModel):
    """Mapping of one local record to its remote page.

    Attributes:
        remote_id: Remote page id.
        local_hash: Canonical hash of the local record at last sync.
        remote_last_edited: Remote ``last_edited_time`` at last sync.
        company: Job company (jobs only) for unambiguous key parsing.
        role: Job role (jobs only).
    """

    model_config = ConfigDict(populate_by_name=True)

    remote_id: str | None = Field(default=None, alias="remoteId")
    local_hash: str | None = Field(default=None, alias="localHash")
    remote_last_edited: str | None = Field(
        default=None, alias="remoteLastEdited"
    )
    company: str | None = None
    role: str | None = None


class ReverseEntry(BaseModel):
    """Reverse-index value: which local record a remote id belongs to."""

    type: EntityType
    key: str


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


class SyncAction(str, Enum):
    """Outcome of processing one record in one direction."""

    # pull side
    BASELINE = "baseline"
    SKIP = "skip"
    CONFLICT = "conflict"
    PULL = "pull"
    RECLASSIFY = "reclassify"
    CREATE_LOCAL = "create_local"
    LOCAL_MISSING = "local_missing"
    # push side
    UNCHANGED = "unchanged"
    PUSH = "push"
    CREATE_REMOTE = "create_remote"
    # deletions
    DELETE_CANDIDATE = "delete_candidate"
    ARCHIVE_REMOTE = "archive_remote"


LOCAL_MUTATIONS = frozenset(
    {SyncAction.PULL, SyncAction.RECLASSIFY, SyncAction.CREATE_LOCAL}
)


class SyncResult(BaseModel):
    """Result of one decision for one record.

    Attributes:
        entity_type: Collection the record belongs to.
        key: String form of the local key.
        action: What was (or, in a dry run, would be) done.
        success: ``False`` when the operation raised a record-level error.
        label: Human-readable record description for reports.
        detail: Extra context (new key after reclassification, folder
            move, error message).
    """

    entity_type: EntityType
    key: str
    action: SyncAction
    success: bool = True
    label: str = ""
    detail: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for a full sync run."""

    dry_run: bool = False
    baseline: bool = False
    full: bool = False
    results: list[SyncResult] = []
    schema_changes: dict[EntityType, list[str]] = {}
    started_at: str
    completed_at: str | None = None
    watermark: str | None = None

    model_config = {"frozen": True}

    def for_type(self, entity_type: EntityType) -> list[SyncResult]:
        return [r for r in self.results if r.entity_type == entity_type]

    def with_action(self, action: SyncAction) -> list[SyncResult]:
        return [r for r in self.results if r.action == action]

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def conflicts(self) -> list[SyncResult]:
        return self.with_action(SyncAction.CONFLICT)

    @property
    def local_mutations(self) -> int:
        """Number of successful results that changed local data."""
        return sum(
            1
            for r in self.results
            if r.success and r.action in LOCAL_MUTATIONS
        )

    def counts(self, entity_type: EntityType) -> dict[str, int]:
        """Per-type counters shown in the run summary."""
        results = self.for_type(entity_type)

        def count(*actions: SyncAction) -> int:
            return sum(
                1 for r in results if r.success and r.action in actions
            )

        return {
            "pulled": count(
                SyncAction.PULL,
                SyncAction.RECLASSIFY,
                SyncAction.CREATE_LOCAL,
            ),
            "created": count(SyncAction.CREATE_REMOTE),
            "updated": count(SyncAction.PUSH),
            "unchanged": count(SyncAction.UNCHANGED),
            "conflicts": count(SyncAction.CONFLICT),
            "deletions": count(
                SyncAction.DELETE_CANDIDATE, SyncAction.ARCHIVE_REMOTE
            ),
            "errors": sum(1 for r in results if not r.success),
        }
