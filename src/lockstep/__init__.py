"""lockstep: model-based randomized consistency testing for filesystems.

Drives a system under test and a reference model through the same random
operations, then checks both ended in the same observable state.
"""

__version__ = "0.1.0"

from lockstep.actions import Action, PermissionKind, permission_of
from lockstep.config import SimulationConfig
from lockstep.exceptions import (
    AccessDeniedError,
    BackendError,
    ConfigurationError,
    ExhaustedCandidateError,
    LockstepError,
    NoCandidateError,
    NotAFileError,
    NothingSharedError,
    PathNotFoundError,
    StorageError,
    UnexpectedActionError,
)
from lockstep.executor import DualExecutor
from lockstep.index import ShadowIndex
from lockstep.oplog import (
    LoggingOperationLog,
    MemoryOperationLog,
    OperationLog,
    OperationLogEntry,
    TeeOperationLog,
)
from lockstep.pairs import FileSystemPair, FileSystems
from lockstep.protocol import SimulatedFileSystem
from lockstep.scheduler import DEFAULT_WEIGHTS, ProbabilityTable, WeightedScheduler
from lockstep.simulator import SimulationResult, Simulator
from lockstep.verifier import VerificationFailure, VerificationReport, Verifier

__all__ = [
    "DEFAULT_WEIGHTS",
    "AccessDeniedError",
    "Action",
    "BackendError",
    "ConfigurationError",
    "DualExecutor",
    "ExhaustedCandidateError",
    "FileSystemPair",
    "FileSystems",
    "LockstepError",
    "LoggingOperationLog",
    "MemoryOperationLog",
    "NoCandidateError",
    "NotAFileError",
    "NothingSharedError",
    "OperationLog",
    "OperationLogEntry",
    "PathNotFoundError",
    "PermissionKind",
    "ProbabilityTable",
    "ShadowIndex",
    "SimulatedFileSystem",
    "SimulationConfig",
    "SimulationResult",
    "Simulator",
    "StorageError",
    "TeeOperationLog",
    "UnexpectedActionError",
    "VerificationFailure",
    "VerificationReport",
    "Verifier",
    "WeightedScheduler",
    "__version__",
    "permission_of",
]
