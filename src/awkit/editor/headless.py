"""In-memory host collaborators used by the CLI and the test-suite."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from ..core.ranges import TrackedRange
from .document_model import TextDocument
from .surface import EditCallback

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Highlight:
    """A styled range as the headless surface currently displays it."""

    tracked: TrackedRange
    style: str


class HeadlessSurface:
    """Editing surface backed by :class:`TextDocument` objects."""

    def __init__(self) -> None:
        self._highlights: dict[str, dict[int, Highlight]] = {}

    # ------------------------------------------------------------------
    # Document access
    # ------------------------------------------------------------------

    def document_key(self, doc: TextDocument) -> str:
        return doc.document_id

    def document_length(self, doc: TextDocument) -> int:
        return len(doc.text)

    def get_text(self, doc: TextDocument, start: int, end: int) -> str:
        return doc.text[start:end]

    def insert_text(self, doc: TextDocument, offset: int, text: str) -> None:
        doc.insert(offset, text)

    def delete_text(self, doc: TextDocument, start: int, end: int) -> None:
        doc.delete(start, end)

    def notify_on_edit(self, doc: TextDocument, callback: EditCallback) -> Callable[[], None]:
        return doc.add_edit_listener(callback)

    def get_selection(self, doc: TextDocument) -> tuple[int, int]:
        return doc.selection.as_tuple()

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def highlight_range(self, doc: TextDocument, tracked: TrackedRange, style: str) -> None:
        bucket = self._highlights.setdefault(doc.document_id, {})
        if not style or tracked.released:
            bucket.pop(tracked.id, None)
            return
        bucket[tracked.id] = Highlight(tracked=tracked, style=style)

    def highlights(self, doc: TextDocument) -> list[Highlight]:
        """Return live highlights in document order."""

        bucket = self._highlights.get(doc.document_id, {})
        return sorted(bucket.values(), key=lambda item: (item.tracked.start, item.tracked.id))

    def visible_annotations(self, doc: TextDocument) -> list[str]:
        """Return the preview texts currently shown for ``doc``."""

        return [
            item.tracked.annotation
            for item in self.highlights(doc)
            if item.tracked.annotation
        ]

    def render(self, doc: TextDocument) -> str:
        """Return the document text with annotations spliced in at their anchors."""

        pieces: list[str] = []
        cursor = 0
        for item in self.highlights(doc):
            annotation = item.tracked.annotation
            if not annotation:
                continue
            anchor = item.tracked.start
            pieces.append(doc.text[cursor:anchor])
            pieces.append(annotation)
            cursor = anchor
        pieces.append(doc.text[cursor:])
        return "".join(pieces)


@dataclass(slots=True)
class MemoryClipboard:
    """Clipboard that remembers everything copied to it."""

    history: list[str] = field(default_factory=list)

    def set_clipboard(self, text: str) -> None:
        LOGGER.debug("Clipboard received %d characters", len(text))
        self.history.append(text)

    @property
    def text(self) -> str | None:
        return self.history[-1] if self.history else None


__all__ = ["Highlight", "HeadlessSurface", "MemoryClipboard"]
