"""Qt adapter tests; skipped when PySide6 is unavailable."""

from __future__ import annotations

import pytest

pytest.importorskip("PySide6.QtWidgets")

from helpers import ScriptedRunner, ok  # noqa: E402
from PySide6.QtGui import QTextCursor  # noqa: E402
from PySide6.QtWidgets import QApplication, QPlainTextEdit  # noqa: E402

from awkit.editor.qt_surface import QtClipboard, QtSurface  # noqa: E402
from awkit.editor.surface import EditingSurface, HighlightStyle, UndoHistory  # noqa: E402
from awkit.session.controller import TransformController  # noqa: E402


@pytest.fixture(autouse=True)
def _ensure_qapp(qapp):  # pragma: no cover - pytest-qt provides the fixture
    """Guarantee a running QApplication when PySide6 is installed."""

    return qapp


def _editor(text: str) -> QPlainTextEdit:
    editor = QPlainTextEdit()
    editor.setPlainText(text)
    return editor


def _controller(surface: QtSurface, settings, runner=None) -> TransformController:
    return TransformController(
        surface,
        settings=settings,
        history=surface,
        runner=runner or ScriptedRunner(lambda text, script: ok("X\n")),
    )


def test_qt_surface_satisfies_protocols() -> None:
    surface = QtSurface()
    assert isinstance(surface, EditingSurface)
    assert isinstance(surface, UndoHistory)


def test_edits_and_notifications() -> None:
    surface = QtSurface()
    editor = _editor("abcdef")
    edits: list[tuple[int, int, int]] = []
    disconnect = surface.notify_on_edit(editor, lambda *args: edits.append(args))

    surface.insert_text(editor, 3, "XY")
    surface.delete_text(editor, 1, 2)

    assert surface.get_text(editor, 0, surface.document_length(editor)) == "acXYdef"
    assert edits == [(3, 3, 2), (1, 2, 0)]

    disconnect()
    surface.insert_text(editor, 0, "!")
    assert len(edits) == 2


def test_get_selection_reads_the_text_cursor() -> None:
    surface = QtSurface()
    editor = _editor("hello world")
    cursor = editor.textCursor()
    cursor.setPosition(6)
    cursor.setPosition(11, QTextCursor.MoveMode.KeepAnchor)
    editor.setTextCursor(cursor)

    assert surface.get_selection(editor) == (6, 11)


def test_document_keys_are_per_editor() -> None:
    surface = QtSurface()
    first, second = _editor("a"), _editor("a")
    assert surface.document_key(first) != surface.document_key(second)
    assert surface.document_key(first) == surface.document_key(first)


def test_session_start_and_abort_restore_the_editor(settings) -> None:
    surface = QtSurface()
    editor = _editor("keep\na b\n")
    controller = _controller(surface, settings)

    session = controller.start(editor, (5, 9))

    assert editor.toPlainText() == "keep\n\na b\n"
    assert session.input_text() == "a b\n"
    assert len(editor.extraSelections()) == 2

    controller.abort(editor)

    assert editor.toPlainText() == "keep\na b\n"
    assert editor.extraSelections() == []


@pytest.mark.asyncio
async def test_replace_then_undo_as_one_step(settings) -> None:
    surface = QtSurface()
    editor = _editor("keep\na b\n")
    controller = _controller(surface, settings)
    session = controller.start(editor, (5, 9))
    surface.insert_text(editor, session.command.start, "$1")

    await controller.run(editor)
    assert surface.annotations(editor) == [(HighlightStyle.OUTPUT, "X\n")]
    controller.exit(editor, "replace")

    assert editor.toPlainText() == "keep\nX\n"
    editor.undo()
    assert editor.toPlainText() == "keep\na b\n"


def test_strip_sentinels_resets_grouping() -> None:
    surface = QtSurface()
    editor = _editor("x")
    surface.begin_grouped_change(editor)
    surface.begin_grouped_change(editor)
    assert surface.strip_sentinels(editor) == 2
    assert surface.strip_sentinels(editor) == 0


def test_qt_clipboard_sets_system_clipboard() -> None:
    QtClipboard().set_clipboard("copied")
    assert QApplication.clipboard().text() == "copied"
