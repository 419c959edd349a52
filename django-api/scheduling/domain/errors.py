"""Domain error codes for the scheduling module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_RULE = "INVALID_RULE"
    INVALID_SCOPE = "INVALID_SCOPE"
    SERIES_NOT_FOUND = "SERIES_NOT_FOUND"
    OCCURRENCE_NOT_FOUND = "OCCURRENCE_NOT_FOUND"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_REFERENCE = "INVALID_REFERENCE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidRuleError(DomainError):
    """Raised when a recurrence rule or end condition is malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_RULE, message=message)


class InvalidScopeError(DomainError):
    """Raised when a scope and date combination cannot be applied."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_SCOPE, message=message)


class NotFoundError(DomainError):
    """Base for unknown series or occurrence ids."""


class SeriesNotFoundError(NotFoundError):
    """Raised when a series is not found."""

    def __init__(self, series_id: object) -> None:
        super().__init__(
            code=ErrorCode.SERIES_NOT_FOUND,
            message="Series not found",
        )
        self.series_id = series_id


class OccurrenceNotFoundError(NotFoundError):
    """Raised when an occurrence is not found."""

    def __init__(self, occurrence_id: object) -> None:
        super().__init__(
            code=ErrorCode.OCCURRENCE_NOT_FOUND,
            message="Occurrence not found",
        )
        self.occurrence_id = occurrence_id


class ConcurrentModificationError(DomainError):
    """Raised when a series changed between resolution and commit."""

    def __init__(self, series_id: object, expected: int, actual: int) -> None:
        super().__init__(
            code=ErrorCode.CONCURRENT_MODIFICATION,
            message="Series was modified by another change, reload and retry",
        )
        self.series_id = series_id
        self.expected_version = expected
        self.actual_version = actual


class InvalidTransitionError(DomainError):
    """Raised for a status change the state machine does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot move from {current} to {target}",
        )
        self.current = current
        self.target = target


class InvalidReferenceError(DomainError):
    """Raised when an instructor or location id is unknown to the directory."""

    def __init__(self, kind: str, reference_id: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_REFERENCE,
            message=f"Unknown {kind}",
        )
        self.kind = kind
        self.reference_id = reference_id
