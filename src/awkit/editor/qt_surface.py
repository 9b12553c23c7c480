"""PySide6 adapters exposing a ``QPlainTextEdit`` as an editing surface.

Documents are the editor widgets themselves. Offsets are Qt character
positions, which match Python string offsets for text inside the BMP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from PySide6.QtGui import QColor, QGuiApplication, QTextCharFormat, QTextCursor
from PySide6.QtWidgets import QPlainTextEdit, QTextEdit

from ..core.ranges import TrackedRange
from .surface import EditCallback, HighlightStyle

LOGGER = logging.getLogger(__name__)

_STYLE_COLORS: dict[str, str] = {
    HighlightStyle.INPUT: "#2d3b55",
    HighlightStyle.COMMAND: "#4b3b1f",
    HighlightStyle.OUTPUT: "#1f4b2c",
    HighlightStyle.ERROR: "#5a1f1f",
}


@dataclass(slots=True)
class _EditorState:
    highlights: dict[int, tuple[TrackedRange, str]] = field(default_factory=dict)
    group_depth: int = 0
    group_started: bool = False


class QtSurface:
    """Editing surface and undo grouping for ``QPlainTextEdit`` widgets.

    Grouped changes are implemented by joining each session edit onto the
    previous edit block instead of holding one block open, because Qt defers
    ``contentsChange`` until an open block closes and ranges must be rebased
    synchronously.
    """

    def __init__(self) -> None:
        self._states: dict[str, _EditorState] = {}

    def _state(self, editor: QPlainTextEdit) -> _EditorState:
        return self._states.setdefault(self.document_key(editor), _EditorState())

    # ------------------------------------------------------------------
    # Document access
    # ------------------------------------------------------------------

    def document_key(self, editor: QPlainTextEdit) -> str:
        return f"qt-{id(editor.document()):x}"

    def document_length(self, editor: QPlainTextEdit) -> int:
        return len(editor.toPlainText())

    def get_text(self, editor: QPlainTextEdit, start: int, end: int) -> str:
        return editor.toPlainText()[start:end]

    def insert_text(self, editor: QPlainTextEdit, offset: int, text: str) -> None:
        cursor = QTextCursor(editor.document())
        cursor.setPosition(offset)
        self._edit(editor, cursor, lambda: cursor.insertText(text))

    def delete_text(self, editor: QPlainTextEdit, start: int, end: int) -> None:
        cursor = QTextCursor(editor.document())
        cursor.setPosition(start)
        cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
        self._edit(editor, cursor, cursor.removeSelectedText)

    def _edit(self, editor: QPlainTextEdit, cursor: QTextCursor, action: Callable[[], None]) -> None:
        state = self._state(editor)
        if state.group_depth and state.group_started:
            cursor.joinPreviousEditBlock()
        else:
            cursor.beginEditBlock()
        try:
            action()
        finally:
            cursor.endEditBlock()
        if state.group_depth:
            state.group_started = True
        self._refresh_highlights(editor)

    def notify_on_edit(self, editor: QPlainTextEdit, callback: EditCallback) -> Callable[[], None]:
        document = editor.document()

        def _on_contents_change(position: int, removed: int, added: int) -> None:
            callback(position, position + removed, added)

        document.contentsChange.connect(_on_contents_change)

        def _disconnect() -> None:
            try:
                document.contentsChange.disconnect(_on_contents_change)
            except (RuntimeError, TypeError):  # pragma: no cover - already gone
                LOGGER.debug("contentsChange handler already disconnected")

        return _disconnect

    def get_selection(self, editor: QPlainTextEdit) -> tuple[int, int]:
        cursor = editor.textCursor()
        return cursor.selectionStart(), cursor.selectionEnd()

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def highlight_range(self, editor: QPlainTextEdit, tracked: TrackedRange, style: str) -> None:
        state = self._state(editor)
        if not style or tracked.released:
            state.highlights.pop(tracked.id, None)
        else:
            state.highlights[tracked.id] = (tracked, style)
        self._refresh_highlights(editor)

    def annotations(self, editor: QPlainTextEdit) -> list[tuple[str, str]]:
        """Return ``(style, text)`` for every annotated highlight, in document order."""

        state = self._state(editor)
        ordered = sorted(state.highlights.values(), key=lambda item: item[0].start)
        return [(style, tracked.annotation) for tracked, style in ordered if tracked.annotation]

    def _refresh_highlights(self, editor: QPlainTextEdit) -> None:
        state = self._state(editor)
        selections = []
        for tracked, style in state.highlights.values():
            if tracked.is_empty:
                continue
            selection = QTextEdit.ExtraSelection()
            fmt = QTextCharFormat()
            fmt.setBackground(QColor(_STYLE_COLORS.get(style, "#333333")))
            selection.format = fmt
            cursor = QTextCursor(editor.document())
            cursor.setPosition(tracked.start)
            cursor.setPosition(tracked.end, QTextCursor.MoveMode.KeepAnchor)
            selection.cursor = cursor
            selections.append(selection)
        editor.setExtraSelections(selections)

    # ------------------------------------------------------------------
    # Undo grouping
    # ------------------------------------------------------------------

    def begin_grouped_change(self, editor: QPlainTextEdit) -> None:
        state = self._state(editor)
        state.group_depth += 1
        if state.group_depth == 1:
            state.group_started = False

    def end_grouped_change(self, editor: QPlainTextEdit) -> None:
        state = self._state(editor)
        if state.group_depth:
            state.group_depth -= 1

    def strip_sentinels(self, editor: QPlainTextEdit) -> int:
        state = self._state(editor)
        stripped, state.group_depth = state.group_depth, 0
        state.group_started = False
        return stripped


class QtClipboard:
    """Clipboard backed by the application's system clipboard."""

    def __init__(self, app: Any | None = None) -> None:
        self._app = app

    def set_clipboard(self, text: str) -> None:
        app = self._app or QGuiApplication.instance()
        if app is None:
            raise RuntimeError("A QGuiApplication must exist before using the clipboard")
        app.clipboard().setText(text)


__all__ = ["QtClipboard", "QtSurface"]
