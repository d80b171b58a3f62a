"""Custom exception hierarchy for lockstep."""


class LockstepError(Exception):
    """Base exception for all lockstep errors."""


class ConfigurationError(LockstepError):
    """Raised when a run is set up inconsistently (duplicate users, bad weights)."""


class UnexpectedActionError(LockstepError):
    """Raised when an action outside the known catalog reaches the executor."""


# ---------------------------------------------------------------------------
# Exhausted candidates: the current action is skipped
# ---------------------------------------------------------------------------


class ExhaustedCandidateError(LockstepError):
    """Raised when there is nothing to target for the current action."""


class NoCandidateError(ExhaustedCandidateError):
    """Raised when no directory, file or second user is available."""


class NothingSharedError(ExhaustedCandidateError):
    """Raised when an owner has shared nothing with a grantee under a permission kind."""


# ---------------------------------------------------------------------------
# Backend rejections
# ---------------------------------------------------------------------------


class BackendError(LockstepError):
    """Base exception for failures reported by a filesystem backend."""


class PathNotFoundError(BackendError):
    """Raised when a file or directory path does not exist."""


class AccessDeniedError(BackendError, PermissionError):
    """Raised when a user lacks the permission needed for an operation."""


class NotAFileError(BackendError):
    """Raised when a file operation targets a directory (or the reverse)."""


class StorageError(BackendError):
    """Raised on storage failures (DB connection, disk I/O, etc.)."""
