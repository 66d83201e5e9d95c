"""
Vesting-specific exception hierarchy.

Provides typed exceptions for schedule compilation and release accounting so
callers can handle each failure precisely instead of catching bare Exception.
Compilation is deterministic: none of these errors is worth retrying without
changing the input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class VestingError(Exception):
    """Base exception for all vesting errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ==================== Compilation Errors ====================


class CompileError(VestingError):
    """Raised when a vesting plan cannot be compiled into a schedule."""
    pass


class DurationFormatError(CompileError):
    """Raised when a duration string does not match the accepted grammar."""

    def __init__(
        self,
        message: str,
        text: Any = None,
        index: Optional[int] = None,
        field: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.text = text
        self.index = index
        self.field = field


@dataclass(frozen=True)
class ValidationIssue:
    """One structural problem found in raw plan input.

    ``index`` is the schedule item position, or None for top-level fields.
    """

    index: Optional[int]
    field: str
    message: str

    def __str__(self) -> str:
        if self.index is None:
            return f"{self.field}: {self.message}"
        return f"schedule[{self.index}].{self.field}: {self.message}"


class ValidationError(CompileError):
    """Raised when raw plan input violates field requirements.

    Carries every issue discovered, not just the first one.
    """

    def __init__(
        self,
        message: str,
        issues: Optional[List[ValidationIssue]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.issues = list(issues or [])

    @classmethod
    def from_issues(cls, issues: List[ValidationIssue]) -> "ValidationError":
        first = issues[0]
        extra = f" (and {len(issues) - 1} more)" if len(issues) > 1 else ""
        return cls(f"Invalid vesting plan: {first}{extra}", issues=issues)


class OverAllocationError(CompileError):
    """Raised when explicit parts claim more tokens than the plan holds."""

    def __init__(
        self,
        message: str,
        total_tokens: int = 0,
        allocated_tokens: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.total_tokens = total_tokens
        self.allocated_tokens = allocated_tokens


class EmptyScheduleError(CompileError):
    """Raised when a schedule has no items."""
    pass


class AmbiguousRemainderError(CompileError):
    """Raised when more than one schedule item omits its part."""

    def __init__(self, message: str, indices: Optional[List[int]] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.indices = list(indices or [])


class FirstItemOffsetedError(CompileError):
    """Raised when the first schedule item is offset-relative and has no anchor."""
    pass


class ZeroAllocationError(CompileError):
    """Raised when a schedule item would release zero tokens."""

    def __init__(self, message: str, index: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.index = index


class TooManyEventsError(CompileError):
    """Raised when a schedule exceeds the configured maximum event count."""
    pass


# ==================== Account Errors ====================


class VestingAccountError(VestingError):
    """Raised when release accounting against a schedule fails."""
    pass


class UnknownScheduleError(VestingAccountError):
    """Raised when a vesting account references an unregistered schedule."""
    pass


class UnknownAccountError(VestingAccountError):
    """Raised when a vesting account id is not found."""
    pass


class InsufficientUnlockedTokensError(VestingAccountError):
    """Raised when a withdrawal exceeds the tokens unlocked so far."""
    pass


# ==================== Ingestion Errors ====================


class PlanLoadError(VestingError):
    """Raised when a plan or account file cannot be read or parsed."""
    pass


__all__ = [
    "VestingError",
    "CompileError",
    "DurationFormatError",
    "ValidationIssue",
    "ValidationError",
    "OverAllocationError",
    "EmptyScheduleError",
    "AmbiguousRemainderError",
    "FirstItemOffsetedError",
    "ZeroAllocationError",
    "TooManyEventsError",
    "VestingAccountError",
    "UnknownScheduleError",
    "UnknownAccountError",
    "InsufficientUnlockedTokensError",
    "PlanLoadError",
]
