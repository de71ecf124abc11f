# Public surface of the delete-sync engine.
from ._result import RunResult, empty_result, safety_triggered_result
from ._safety import SafetyVerdict, evaluate, validate_threshold
from ._types import (
    Collaborators,
    ConfigError,
    DeletionPolicy,
    ProtectionError,
    ReconcileError,
    TrackedItem,
    WatchlistUnavailable,
)
from .facade import Reconciler

__all__ = [
    "Reconciler",
    "Collaborators",
    "DeletionPolicy",
    "TrackedItem",
    "RunResult",
    "SafetyVerdict",
    "evaluate",
    "validate_threshold",
    "empty_result",
    "safety_triggered_result",
    "ReconcileError",
    "ConfigError",
    "ProtectionError",
    "WatchlistUnavailable",
]
