"""Session entity and the per-document session registry.

A session owns four tracked ranges inside one document:

``command``
    The prompt line inserted just above the selected region. Text typed at
    its start lands inside it and its end never moves onto the region.
``input``
    The originally selected text. It is never modified until a commit.
``output`` / ``error``
    Zero-length anchors at the start of ``input`` whose annotations carry
    the preview text. They stay put when a commit inserts text there, so
    previews always sit at the region start. Previews never become document
    text.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from ..core.errors import (
    HostEditConflictError,
    InvalidRangeError,
    SessionAlreadyActiveError,
    SessionNotFoundError,
)
from ..core.ranges import GrowPolicy, RangeTracker, TrackedRange
from ..editor.surface import EditingSurface, HighlightStyle

LOGGER = logging.getLogger(__name__)

PROMPT_LINE = "\n"


class SessionState(Enum):
    """Lifecycle of a transformation session."""

    ACTIVE = auto()
    COMMITTING = auto()  # Transition state
    ABORTING = auto()  # Transition state
    ENDED = auto()


class CommitAction(str, Enum):
    """Terminal action applied to the output of a session."""

    DISCARD = "discard"
    REPLACE = "replace"
    INSERT = "insert"
    COPY = "copy"

    @classmethod
    def parse(cls, value: CommitAction | str) -> CommitAction:
        if isinstance(value, CommitAction):
            return value
        normalized = str(value or "").strip().lower()
        for action in cls:
            if action.value == normalized:
                return action
        raise ValueError(
            f"Unknown commit action {value!r}; expected one of {', '.join(a.value for a in cls)}"
        )

    @property
    def mutates_document(self) -> bool:
        return self in (CommitAction.REPLACE, CommitAction.INSERT)


def _strip_line_terminator(text: str) -> str:
    for terminator in ("\r\n", "\n", "\r"):
        if text.endswith(terminator):
            return text[: -len(terminator)]
    return text


def first_line(text: str) -> str:
    return text.splitlines()[0] if text else ""


@dataclass(eq=False)
class Session:
    """One active transformation over a region of a document."""

    document_key: str
    doc: Any
    surface: EditingSurface
    tracker: RangeTracker
    input: TrackedRange
    command: TrackedRange
    output: TrackedRange
    error: TrackedRange
    example_text: str = ""
    last_code: str | None = None
    is_committed: bool = False
    state: SessionState = SessionState.ACTIVE
    run_pending: bool = False
    resources: ExitStack = field(default_factory=ExitStack, repr=False)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.state is not SessionState.ENDED

    @property
    def ranges(self) -> tuple[TrackedRange, ...]:
        return (self.command, self.input, self.output, self.error)

    def require_range(self, tracked: TrackedRange) -> TrackedRange:
        """Return ``tracked`` or raise if an outside edit deleted it."""

        if tracked.vanished or tracked.released:
            raise HostEditConflictError(
                message=f"The {tracked.name or 'session'} region was deleted",
                range_name=tracked.name,
            )
        return tracked

    def current_command_text(self) -> str:
        """Live prompt text with one trailing line terminator removed."""

        command = self.require_range(self.command)
        text = self.surface.get_text(self.doc, command.start, command.end)
        return _strip_line_terminator(text)

    def input_text(self) -> str:
        return self.surface.get_text(self.doc, self.input.start, self.input.end)

    def output_text(self) -> str:
        return self.output.annotation or ""

    def error_text(self) -> str:
        return self.error.annotation or ""

    # ------------------------------------------------------------------
    # Previews
    # ------------------------------------------------------------------

    def set_output(self, text: str | None) -> None:
        """Show ``text`` as the output preview; ``None`` or empty hides it."""

        self._set_preview(self.output, text, HighlightStyle.OUTPUT)

    def set_error(self, text: str | None) -> None:
        """Show ``text`` as the error preview; ``None`` or empty hides it."""

        self._set_preview(self.error, text, HighlightStyle.ERROR)

    def _set_preview(self, tracked: TrackedRange, text: str | None, style: str) -> None:
        tracked.annotation = text or None
        self.surface.highlight_range(self.doc, tracked, style if tracked.annotation else HighlightStyle.NONE)

    def refresh_highlights(self) -> None:
        self.surface.highlight_range(self.doc, self.command, HighlightStyle.COMMAND)
        self.surface.highlight_range(self.doc, self.input, HighlightStyle.INPUT)


class SessionRegistry:
    """Holds at most one live :class:`Session` per document."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def get(self, surface: EditingSurface, doc: Any) -> Session | None:
        return self._sessions.get(surface.document_key(doc))

    def require(self, surface: EditingSurface, doc: Any) -> Session:
        key = surface.document_key(doc)
        session = self._sessions.get(key)
        if session is None:
            raise SessionNotFoundError(document_key=key)
        return session

    def is_live(self, session: Session) -> bool:
        return self._sessions.get(session.document_key) is session and session.is_active

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        surface: EditingSurface,
        doc: Any,
        selection_start: int,
        selection_end: int,
    ) -> Session:
        """Insert the prompt line above ``[selection_start, selection_end)`` and track it.

        Raises:
            SessionAlreadyActiveError: if ``doc`` already has a session.
            InvalidRangeError: if the selection is malformed.
        """

        key = surface.document_key(doc)
        if key in self._sessions:
            raise SessionAlreadyActiveError(document_key=key)
        length = surface.document_length(doc)
        if not 0 <= selection_start <= selection_end <= length:
            raise InvalidRangeError(
                message=f"Selection [{selection_start}, {selection_end}) is outside the document",
                start=selection_start,
                end=selection_end,
                document_length=length,
            )

        example_text = first_line(surface.get_text(doc, selection_start, selection_end))
        tracker = RangeTracker.attach(surface, doc)
        inserted = False
        try:
            surface.insert_text(doc, selection_start, PROMPT_LINE)
            inserted = True
            prompt_end = selection_start + len(PROMPT_LINE)
            input_end = selection_end + len(PROMPT_LINE)
            anchored = GrowPolicy.ANCHORED_START
            command = tracker.create_range(selection_start, prompt_end, anchored, name="command")
            input_range = tracker.create_range(prompt_end, input_end, anchored, name="input")
            output = tracker.create_range(prompt_end, prompt_end, anchored, name="output")
            error = tracker.create_range(prompt_end, prompt_end, anchored, name="error")
        except Exception:
            tracker.detach()
            if inserted:
                surface.delete_text(doc, selection_start, selection_start + len(PROMPT_LINE))
            raise

        session = Session(
            document_key=key,
            doc=doc,
            surface=surface,
            tracker=tracker,
            input=input_range,
            command=command,
            output=output,
            error=error,
            example_text=example_text,
        )
        self._sessions[key] = session
        session.refresh_highlights()
        LOGGER.info(
            "Session started for %s over [%d, %d)",
            key,
            input_range.start,
            input_range.end,
        )
        return session

    def end(self, session: Session) -> bool:
        """Tear ``session`` down; return ``False`` when it had already ended."""

        if session.state is SessionState.ENDED:
            return False
        try:
            command = session.command
            if not command.vanished and not command.released and not command.is_empty:
                session.surface.delete_text(session.doc, command.start, command.end)
            for tracked in session.ranges:
                tracked.annotation = None
                session.surface.highlight_range(session.doc, tracked, HighlightStyle.NONE)
        finally:
            session.tracker.detach()
            session.state = SessionState.ENDED
            session.run_pending = False
            if self._sessions.get(session.document_key) is session:
                del self._sessions[session.document_key]
            session.resources.close()
        LOGGER.info("Session ended for %s", session.document_key)
        return True


__all__ = [
    "CommitAction",
    "PROMPT_LINE",
    "Session",
    "SessionRegistry",
    "SessionState",
    "first_line",
]
