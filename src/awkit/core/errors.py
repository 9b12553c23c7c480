"""Standardized error types for transformation sessions.

Every error carries a machine-readable code plus a human-readable message so
hosts can surface it as a notice, and a ``recoverable`` flag telling them
whether the session survives the failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for error codes attached to session errors."""

    # Session lifecycle
    SESSION_ACTIVE = "session_already_active"
    SESSION_NOT_FOUND = "session_not_found"
    RUN_IN_PROGRESS = "run_in_progress"

    # Range bookkeeping
    INVALID_RANGE = "invalid_range"
    EDIT_CONFLICT = "host_edit_conflict"

    # Commit
    EMPTY_OUTPUT = "empty_output"

    # External tool
    TOOL_LAUNCH_FAILED = "tool_launch_failed"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class AwkitError(Exception):
    """Base exception class for all session errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
        suggestion: Actionable guidance for recovery.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    # User mistakes leave the session intact; contract violations do not.
    recoverable: ClassVar[bool] = True

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for notices and logs."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
            "recoverable": self.recoverable,
        }
        if self.details:
            result["details"] = dict(self.details)
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# -----------------------------------------------------------------------------
# Session Lifecycle Errors
# -----------------------------------------------------------------------------

@dataclass
class SessionAlreadyActiveError(AwkitError):
    """Raised when a session is started on a document that already has one."""

    error_code: str = field(default=ErrorCode.SESSION_ACTIVE)
    message: str = field(default="A transformation session is already active for this document")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Exit or abort the current session first")

    document_key: str | None = field(default=None)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.document_key:
            self.details.setdefault("document", self.document_key)


@dataclass
class SessionNotFoundError(AwkitError):
    """Raised when an operation targets a document without a live session."""

    error_code: str = field(default=ErrorCode.SESSION_NOT_FOUND)
    message: str = field(default="No transformation session is active for this document")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Select a region and start a session")

    document_key: str | None = field(default=None)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.document_key:
            self.details.setdefault("document", self.document_key)


@dataclass
class RunInProgressError(AwkitError):
    """Raised when a run is requested while another is still pending."""

    error_code: str = field(default=ErrorCode.RUN_IN_PROGRESS)
    message: str = field(default="The previous command is still running")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Wait for the current run to finish or abort the session")


# -----------------------------------------------------------------------------
# Range Errors
# -----------------------------------------------------------------------------

@dataclass
class InvalidRangeError(AwkitError):
    """Raised when a range is created with malformed offsets."""

    error_code: str = field(default=ErrorCode.INVALID_RANGE)
    message: str = field(default="Range offsets are invalid")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="")

    start: int | None = field(default=None)
    end: int | None = field(default=None)
    document_length: int | None = field(default=None)

    recoverable: ClassVar[bool] = False

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.start is not None:
            self.details["start"] = self.start
        if self.end is not None:
            self.details["end"] = self.end
        if self.document_length is not None:
            self.details["document_length"] = self.document_length


@dataclass
class HostEditConflictError(AwkitError):
    """Raised when a tracked range vanished because of an outside edit."""

    error_code: str = field(default=ErrorCode.EDIT_CONFLICT)
    message: str = field(default="A session region was deleted by an edit")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Abort the session and start again")

    range_name: str | None = field(default=None)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.range_name:
            self.details.setdefault("range", self.range_name)


# -----------------------------------------------------------------------------
# Commit / Tool Errors
# -----------------------------------------------------------------------------

@dataclass
class EmptyOutputError(AwkitError):
    """Raised when replace/insert is requested without any output to apply."""

    error_code: str = field(default=ErrorCode.EMPTY_OUTPUT)
    message: str = field(default="There is no output to apply")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Run a command that produces output first")

    action: str | None = field(default=None)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.action:
            self.details.setdefault("action", self.action)


@dataclass
class ToolLaunchError(AwkitError):
    """Raised when the external tool could not be started at all."""

    error_code: str = field(default=ErrorCode.TOOL_LAUNCH_FAILED)
    message: str = field(default="The transformation tool could not be started")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Check the tool_command setting")

    recoverable: ClassVar[bool] = False


__all__ = [
    "ErrorCode",
    "AwkitError",
    "SessionAlreadyActiveError",
    "SessionNotFoundError",
    "RunInProgressError",
    "InvalidRangeError",
    "HostEditConflictError",
    "EmptyOutputError",
    "ToolLaunchError",
]
