"""
Structured error types for cadence.

Every error raised by cadence carries a category, a retry flag, structured
context, and an optional chained cause, so callers can log and route
failures without parsing messages.

Manifesto:
    - **Typed hierarchy:** one base class, one subclass per failure domain
    - **Absorbed in the core:** scheduling failures degrade to "not
      scheduled" and never reach the caller; the host surface raises
      validation and lookup errors to its own caller
    - **Rich context:** ``job_id`` / ``job_name`` travel with the error

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       CadenceError                           │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ValidationError     ConfigError       ScheduleError         │
        │  (VALIDATION)        (CONFIG)          (SCHEDULING)          │
        │       │                                     │                │
        │  JobPausedError                       UnschedulableJobError  │
        │                                                              │
        │  StorageError        JobNotFoundError                        │
        │  (STORAGE)           (NOT_FOUND)                             │
        │       │                                                      │
        │  PersistedStateCorruptError                                  │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = UnschedulableJobError("unknown schedule type: 'monthly'")
    >>> error.category
    <ErrorCategory.SCHEDULING: 'SCHEDULING'>
    >>> error.with_context(job_id="abc").context.job_id
    'abc'

Tags:
    error-handling, exception-hierarchy, error-context, cadence
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, ClassVar


class ErrorCategory(str, Enum):
    """Failure domain, used to route and filter errors."""

    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    SCHEDULING = "SCHEDULING"
    STORAGE = "STORAGE"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclasses.dataclass
class ErrorContext:
    """Structured fields describing where an error happened.

    Keys without a dedicated attribute land in ``metadata``.
    """

    job_id: str | None = None
    job_name: str | None = None
    schedule_type: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    _NAMED: ClassVar[tuple[str, ...]] = ("job_id", "job_name", "schedule_type", "path")

    def set(self, key: str, value: Any) -> None:
        if key in self._NAMED:
            setattr(self, key, value)
        else:
            self.metadata[key] = value

    def to_dict(self) -> dict[str, Any]:
        """Non-empty fields, metadata merged in."""
        named = {k: getattr(self, k) for k in self._NAMED if getattr(self, k) is not None}
        return {**named, **self.metadata}


class CadenceError(Exception):
    """Base exception for all cadence errors.

    Subclasses override ``category`` / ``retryable`` class defaults; raising
    sites only pass what differs.
    """

    category: ErrorCategory = ErrorCategory.INTERNAL
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        if retryable is not None:
            self.retryable = retryable
        self.context = context if context is not None else ErrorContext()
        self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def with_context(self, **fields: Any) -> CadenceError:
        """Attach context and return self, for ``raise Err(...).with_context(...)``."""
        for key, value in fields.items():
            self.context.set(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serializable summary: type, message, category, retry flag, context, cause."""
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if context := self.context.to_dict():
            data["context"] = context
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def log_fields(self) -> dict[str, Any]:
        """Flat key/value pairs for a structured log event."""
        fields = {
            "error_type": type(self).__name__,
            "error": self.message,
            "category": self.category.value,
        }
        fields.update(self.context.to_dict())
        return fields

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# -----------------------------------------------------------------------------
# Input
# -----------------------------------------------------------------------------


class ValidationError(CadenceError):
    """Rejected user input; carries the offending field and value."""

    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        if self.value is not None:
            data["value"] = repr(self.value)
        return data


class JobPausedError(ValidationError):
    """Operation refused because the job is paused."""


class ConfigError(CadenceError):
    """Invalid runtime configuration."""

    category = ErrorCategory.CONFIG


# -----------------------------------------------------------------------------
# Scheduling
# -----------------------------------------------------------------------------


class ScheduleError(CadenceError):
    category = ErrorCategory.SCHEDULING


class UnschedulableJobError(ScheduleError):
    """Job definition cannot produce a fire time.

    Raised by the strict recurrence calculation for unrecognized schedule
    types and malformed schedule configs. The engine absorbs it: the job
    stays inert and only its missing ``next_run`` reveals the problem.
    """


# -----------------------------------------------------------------------------
# Storage and lookup
# -----------------------------------------------------------------------------


class StorageError(CadenceError):
    """Persisted state could not be read or written."""

    category = ErrorCategory.STORAGE


class PersistedStateCorruptError(StorageError):
    """Stored state exists but cannot be parsed."""


class JobNotFoundError(CadenceError):
    category = ErrorCategory.NOT_FOUND

    def __init__(self, job_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Job not found: {job_id}", context=ErrorContext(job_id=job_id))
        self.job_id = job_id


def is_retryable(error: BaseException) -> bool:
    """Whether retrying the failed operation may succeed."""
    if isinstance(error, CadenceError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Category of any exception; builtins are mapped by type."""
    if isinstance(error, CadenceError):
        return error.category
    for types, category in (
        ((ValueError, TypeError), ErrorCategory.VALIDATION),
        ((OSError,), ErrorCategory.STORAGE),
    ):
        if isinstance(error, types):
            return category
    return ErrorCategory.UNKNOWN


__all__ = [
    "CadenceError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "JobNotFoundError",
    "JobPausedError",
    "PersistedStateCorruptError",
    "ScheduleError",
    "StorageError",
    "UnschedulableJobError",
    "ValidationError",
    "categorize_error",
    "is_retryable",
]
