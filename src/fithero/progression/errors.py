"""Progression error taxonomy.

Every failure the engine can report is a ``ProgressionError`` carrying a stable
``code`` and one of five ``ErrorKind`` values. The HTTP layer picks a status
from the kind alone (see ``fithero.middleware.error_handler``), never from the
message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition_failed"
    ACCESS_DENIED = "access_denied"
    DEPENDENCY_FAILURE = "dependency_failure"


class ProgressionError(Exception):
    """Base class for all domain errors raised by the progression engine."""

    kind: ErrorKind = ErrorKind.DEPENDENCY_FAILURE
    code: str = "progression_error"
    default_message: str = "Progression operation failed"

    def __init__(self, message: str | None = None, **details: Any) -> None:  # noqa: ANN401
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


# --- Not found ---


class UserNotFound(ProgressionError):
    kind = ErrorKind.NOT_FOUND
    code = "user_not_found"
    default_message = "User not found"


class TaskNotFound(ProgressionError):
    kind = ErrorKind.NOT_FOUND
    code = "task_not_found"
    default_message = "Task not found"


class AchievementNotFound(ProgressionError):
    kind = ErrorKind.NOT_FOUND
    code = "achievement_not_found"
    default_message = "Achievement not found"


class AssignmentNotFound(ProgressionError):
    kind = ErrorKind.NOT_FOUND
    code = "assignment_not_found"
    default_message = "Daily task not found"


# --- Conflict ---


class AlreadyCompleted(ProgressionError):
    kind = ErrorKind.CONFLICT
    code = "already_completed"
    default_message = "Task already completed"


class AlreadyUnlocked(ProgressionError):
    kind = ErrorKind.CONFLICT
    code = "already_unlocked"
    default_message = "Achievement already unlocked"


class NotCurrentPeriod(ProgressionError):
    kind = ErrorKind.CONFLICT
    code = "not_current_period"
    default_message = "Daily task belongs to a past period"


class AssignmentsInProgress(ProgressionError):
    kind = ErrorKind.CONFLICT
    code = "assignments_in_progress"
    default_message = "Daily tasks cannot be reset once one is completed"


class BalanceConflict(ProgressionError):
    kind = ErrorKind.CONFLICT
    code = "balance_conflict"
    default_message = "Point balance changed concurrently"


class DuplicateUser(ProgressionError):
    kind = ErrorKind.CONFLICT
    code = "duplicate_user"
    default_message = "User already exists"


# --- Precondition failed ---


class InsufficientFunds(ProgressionError):
    kind = ErrorKind.PRECONDITION_FAILED
    code = "insufficient_funds"
    default_message = "Insufficient points"


class NoTasksAvailable(ProgressionError):
    kind = ErrorKind.PRECONDITION_FAILED
    code = "no_tasks_available"
    default_message = "No tasks available for your level"


class InvalidAmount(ProgressionError):
    kind = ErrorKind.PRECONDITION_FAILED
    code = "invalid_amount"
    default_message = "Point amount must be non-negative"


# --- Access denied ---


class AccessDenied(ProgressionError):
    kind = ErrorKind.ACCESS_DENIED
    code = "access_denied"
    default_message = "Access denied: you can only complete your own tasks"


# --- Dependency failure ---


class PersistenceFailure(ProgressionError):
    kind = ErrorKind.DEPENDENCY_FAILURE
    code = "persistence_failure"
    default_message = "Storage write failed"


class UniqueViolation(PersistenceFailure):
    """A unique constraint rejected an insert. Callers map it to a domain conflict."""

    code = "unique_violation"
    default_message = "Record already exists"


class PointsAwardFailed(ProgressionError):
    kind = ErrorKind.DEPENDENCY_FAILURE
    code = "points_award_failed"
    default_message = "Task completion rolled back: points could not be awarded"


class UnlockFailed(ProgressionError):
    kind = ErrorKind.DEPENDENCY_FAILURE
    code = "unlock_failed"
    default_message = "Failed to unlock achievement"


class CompensationFailed(ProgressionError):
    """A compensating action failed; the ledger is visibly inconsistent."""

    kind = ErrorKind.DEPENDENCY_FAILURE
    code = "compensation_failed"
    default_message = "Rollback failed after a partial update"
