"""Undo bookkeeping for :class:`TextDocument` with grouped changes.

Grouping works by pushing a sentinel marker onto the history; closing the
group folds every edit recorded after the sentinel into one undo step. If a
host loses track of an open group, :meth:`EditHistory.strip_sentinels`
drops the dangling markers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Union

from .document_model import TextDocument

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class _Edit:
    start: int
    removed: str
    inserted: str


@dataclass(slots=True, frozen=True)
class _Group:
    edits: tuple[_Edit, ...]


@dataclass(slots=True, frozen=True)
class _Sentinel:
    label: str = "awkit-group"


_Entry = Union[_Edit, _Group, _Sentinel]


@dataclass(slots=True)
class _DocumentHistory:
    shadow: str
    disconnect: Callable[[], None]
    entries: list[_Entry] = field(default_factory=list)
    depth: int = 0
    replaying: bool = False


class EditHistory:
    """Undo store implementing the :class:`~awkit.editor.surface.UndoHistory` protocol."""

    MAX_ENTRIES = 200

    def __init__(self) -> None:
        self._documents: dict[str, _DocumentHistory] = {}

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def track(self, doc: TextDocument) -> None:
        """Start recording edits made to ``doc``."""

        if doc.document_id in self._documents:
            return

        def _record(start: int, end: int, inserted: int) -> None:
            self._record(doc, start, end, inserted)

        disconnect = doc.add_edit_listener(_record)
        self._documents[doc.document_id] = _DocumentHistory(shadow=doc.text, disconnect=disconnect)

    def untrack(self, doc: TextDocument) -> None:
        history = self._documents.pop(doc.document_id, None)
        if history is not None:
            history.disconnect()

    def _record(self, doc: TextDocument, start: int, end: int, inserted: int) -> None:
        history = self._documents[doc.document_id]
        removed = history.shadow[start:end]
        history.shadow = doc.text
        if history.replaying:
            return
        history.entries.append(_Edit(start=start, removed=removed, inserted=doc.text[start : start + inserted]))
        overflow = len(history.entries) - self.MAX_ENTRIES
        if overflow > 0 and history.depth == 0:
            del history.entries[:overflow]

    # ------------------------------------------------------------------
    # Grouping
    # ------------------------------------------------------------------

    def begin_grouped_change(self, doc: TextDocument) -> None:
        self.track(doc)
        history = self._documents[doc.document_id]
        history.entries.append(_Sentinel())
        history.depth += 1
        LOGGER.debug("Opened undo group for %s (depth=%d)", doc.document_id, history.depth)

    def end_grouped_change(self, doc: TextDocument) -> None:
        history = self._documents.get(doc.document_id)
        if history is None or history.depth == 0:
            LOGGER.debug("No open undo group for %s", doc.document_id)
            return
        collected: list[_Edit] = []
        while history.entries:
            entry = history.entries.pop()
            if isinstance(entry, _Sentinel):
                break
            if isinstance(entry, _Group):
                collected.extend(reversed(entry.edits))
            else:
                collected.append(entry)
        history.depth -= 1
        if collected:
            history.entries.append(_Group(edits=tuple(reversed(collected))))
        LOGGER.debug(
            "Closed undo group for %s with %d edit(s) (depth=%d)",
            doc.document_id,
            len(collected),
            history.depth,
        )

    def strip_sentinels(self, doc: TextDocument) -> int:
        history = self._documents.get(doc.document_id)
        if history is None:
            return 0
        before = len(history.entries)
        history.entries = [entry for entry in history.entries if not isinstance(entry, _Sentinel)]
        history.depth = 0
        stripped = before - len(history.entries)
        if stripped:
            LOGGER.info("Stripped %d stale undo marker(s) from %s", stripped, doc.document_id)
        return stripped

    # ------------------------------------------------------------------
    # Undo
    # ------------------------------------------------------------------

    def can_undo(self, doc: TextDocument) -> bool:
        history = self._documents.get(doc.document_id)
        if history is None:
            return False
        return any(not isinstance(entry, _Sentinel) for entry in history.entries)

    def undo(self, doc: TextDocument) -> bool:
        """Revert the most recent edit or group; return ``False`` when there is none."""

        history = self._documents.get(doc.document_id)
        if history is None:
            return False
        for index in range(len(history.entries) - 1, -1, -1):
            entry = history.entries[index]
            if isinstance(entry, _Sentinel):
                continue
            del history.entries[index]
            edits = entry.edits if isinstance(entry, _Group) else (entry,)
            history.replaying = True
            try:
                for edit in reversed(edits):
                    doc.replace(edit.start, edit.start + len(edit.inserted), edit.removed)
            finally:
                history.replaying = False
            return True
        return False

    def depth(self, doc: TextDocument) -> int:
        history = self._documents.get(doc.document_id)
        return history.depth if history else 0

    def entry_count(self, doc: TextDocument) -> int:
        history = self._documents.get(doc.document_id)
        return len(history.entries) if history else 0


__all__ = ["EditHistory"]
