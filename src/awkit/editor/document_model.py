"""Dataclasses representing an in-memory document and its selection."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Protocol

LOGGER = logging.getLogger(__name__)


class EditListener(Protocol):
    """Callback invoked after ``[start, end)`` was replaced by ``inserted`` characters."""

    def __call__(self, start: int, end: int, inserted: int) -> None:
        ...


@dataclass(slots=True)
class SelectionRange:
    """Represents the current selection inside the document."""

    start: int = 0
    end: int = 0

    def as_tuple(self) -> tuple[int, int]:
        """Return the selection as a ``(start, end)`` tuple."""

        return (self.start, self.end)


@dataclass(slots=True, eq=False)
class TextDocument:
    """Mutable text buffer that reports every edit to its listeners.

    Listeners run synchronously inside :meth:`replace`, after the text has
    changed, so anything tracking offsets is never stale relative to
    :attr:`text`.
    """

    text: str = ""
    selection: SelectionRange = field(default_factory=SelectionRange)
    dirty: bool = False
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    version_id: int = 1
    _listeners: list[EditListener] = field(default_factory=list, repr=False)

    def __len__(self) -> int:
        return len(self.text)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace(self, start: int, end: int, replacement: str) -> None:
        """Replace ``[start, end)`` with ``replacement`` and notify listeners."""

        length = len(self.text)
        if not 0 <= start <= end <= length:
            raise ValueError(f"Edit range [{start}, {end}) outside document of length {length}")
        if start == end and not replacement:
            return
        self.text = self.text[:start] + replacement + self.text[end:]
        self.dirty = True
        self.version_id += 1
        self._shift_selection(start, end, len(replacement))
        for listener in list(self._listeners):
            listener(start, end, len(replacement))

    def insert(self, offset: int, text: str) -> None:
        self.replace(offset, offset, text)

    def delete(self, start: int, end: int) -> None:
        self.replace(start, end, "")

    def set_selection(self, start: int, end: int) -> None:
        length = len(self.text)
        start = max(0, min(int(start), length))
        end = max(0, min(int(end), length))
        if end < start:
            start, end = end, start
        self.selection = SelectionRange(start, end)

    def _shift_selection(self, start: int, end: int, inserted: int) -> None:
        delta = inserted - (end - start)

        def _move(offset: int) -> int:
            if offset <= start:
                return offset
            if offset >= end:
                return offset + delta
            return start + inserted

        self.selection = SelectionRange(_move(self.selection.start), _move(self.selection.end))

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_edit_listener(self, listener: EditListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""

        self._listeners.append(listener)

        def _disconnect() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                LOGGER.debug("Edit listener already removed from %s", self.document_id)

        return _disconnect

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


__all__ = [
    "EditListener",
    "SelectionRange",
    "TextDocument",
]
