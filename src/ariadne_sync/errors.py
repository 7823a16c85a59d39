"""Exception hierarchy for the sync engine.

Fatal errors abort the whole run.  ``RemoteRecordError`` subclasses are
scoped to a single record: the pusher and the deletion reconciler log and
count them, then move on to the next record.
"""


class SyncError(Exception):
    """Base class for every error raised by ariadne_sync."""


class ConfigurationError(SyncError):
    """Missing credentials, database ids, or contradictory run flags."""


class SyncLockedError(SyncError):
    """Another sync run holds the lock file."""


class StateCorruptionError(SyncError):
    """The persisted sync state cannot be parsed or migrated."""


class LocalStoreError(SyncError):
    """A local JSON document could not be read, validated or written."""


class RemoteError(SyncError):
    """Unrecoverable error talking to the remote service.

    Attributes:
        status_code: HTTP status of the failed response, if any.
        code: Service-specific error code (e.g. ``validation_error``).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class AuthenticationError(RemoteError):
    """The API key was rejected or lacks access to a database."""


class RateLimitExceeded(RemoteError):
    """Capacity errors persisted after all retries were used."""


class RemoteRecordError(RemoteError):
    """Error confined to one remote record; the batch continues."""


class RemoteValidationError(RemoteRecordError):
    """The service rejected the payload of a single record."""


class RemoteNotFoundError(RemoteRecordError):
    """The remote record no longer exists (or is not shared)."""
