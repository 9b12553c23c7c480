"""Protocols for the host collaborators a transformation session talks to.

A session never assumes how text is stored: it reads substrings and requests
edits through an :class:`EditingSurface`, pushes results to a
:class:`Clipboard`, and brackets its edits with an :class:`UndoHistory`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Protocol, runtime_checkable

from ..core.ranges import TrackedRange

EditCallback = Callable[[int, int, int], None]


class HighlightStyle:
    """Style tokens passed to :meth:`EditingSurface.highlight_range`."""

    INPUT = "awkit-input"
    COMMAND = "awkit-command"
    OUTPUT = "awkit-output"
    ERROR = "awkit-error"
    NONE = ""


@runtime_checkable
class EditingSurface(Protocol):
    """Host editing surface owning one or more documents."""

    def document_key(self, doc: Any) -> str:
        """Return a stable identity for ``doc``."""
        ...

    def document_length(self, doc: Any) -> int:
        ...

    def get_text(self, doc: Any, start: int, end: int) -> str:
        ...

    def insert_text(self, doc: Any, offset: int, text: str) -> None:
        ...

    def delete_text(self, doc: Any, start: int, end: int) -> None:
        ...

    def notify_on_edit(self, doc: Any, callback: EditCallback) -> Callable[[], None]:
        """Call ``callback(start, end, inserted)`` after every edit; return a disconnect."""
        ...

    def highlight_range(self, doc: Any, tracked: TrackedRange, style: str) -> None:
        """Style ``tracked``; an empty style removes the highlight."""
        ...

    def get_selection(self, doc: Any) -> tuple[int, int]:
        ...


@runtime_checkable
class Clipboard(Protocol):
    """Clipboard-equivalent receiving copied output."""

    def set_clipboard(self, text: str) -> None:
        ...


@runtime_checkable
class UndoHistory(Protocol):
    """Undo store able to group every edit made during a session."""

    def begin_grouped_change(self, doc: Any) -> None:
        ...

    def end_grouped_change(self, doc: Any) -> None:
        ...

    def strip_sentinels(self, doc: Any) -> int:
        """Remove group markers left behind; return how many were dropped."""
        ...


@contextmanager
def grouped_change(history: UndoHistory | None, doc: Any) -> Iterator[None]:
    """Bracket the enclosed edits as one undo step."""

    if history is None:
        yield
        return
    history.begin_grouped_change(doc)
    try:
        yield
    finally:
        history.end_grouped_change(doc)


__all__ = [
    "Clipboard",
    "EditCallback",
    "EditingSurface",
    "HighlightStyle",
    "UndoHistory",
    "grouped_change",
]
