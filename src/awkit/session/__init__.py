"""Transformation session: state, script building, tool runs and commits."""

from .command_builder import Mode, build
from .controller import TransformController
from .events import (
    EventBus,
    NoticePosted,
    RunCompleted,
    SessionCommitted,
    SessionEnded,
    SessionStarted,
)
from .runner import ExternalToolFailure, ProcessRunner, RunResult
from .state import CommitAction, Session, SessionRegistry, SessionState

__all__ = [
    # Controller
    "TransformController",
    # State
    "CommitAction",
    "Session",
    "SessionRegistry",
    "SessionState",
    # Scripts and runs
    "Mode",
    "build",
    "ExternalToolFailure",
    "ProcessRunner",
    "RunResult",
    # Events
    "EventBus",
    "NoticePosted",
    "RunCompleted",
    "SessionCommitted",
    "SessionEnded",
    "SessionStarted",
]
