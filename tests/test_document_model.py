"""Tests for :mod:`awkit.editor.document_model` and the headless surface."""

from __future__ import annotations

import pytest

from awkit.core.ranges import TrackedRange
from awkit.editor.document_model import TextDocument
from awkit.editor.headless import HeadlessSurface, MemoryClipboard
from awkit.editor.surface import Clipboard, EditingSurface, HighlightStyle


def test_replace_notifies_listeners_with_edit_geometry() -> None:
    doc = TextDocument(text="hello world")
    edits: list[tuple[int, int, int]] = []
    doc.add_edit_listener(lambda start, end, inserted: edits.append((start, end, inserted)))

    doc.replace(0, 5, "goodbye")

    assert doc.text == "goodbye world"
    assert edits == [(0, 5, 7)]
    assert doc.dirty is True
    assert doc.version_id == 2


def test_listeners_see_updated_text() -> None:
    doc = TextDocument(text="abc")
    seen: list[str] = []
    doc.add_edit_listener(lambda *_: seen.append(doc.text))
    doc.insert(3, "d")
    assert seen == ["abcd"]


def test_empty_edit_is_ignored() -> None:
    doc = TextDocument(text="abc")
    edits: list[tuple[int, int, int]] = []
    doc.add_edit_listener(lambda *args: edits.append(args))
    doc.delete(1, 1)
    assert edits == []
    assert doc.version_id == 1


def test_out_of_bounds_edit_raises() -> None:
    doc = TextDocument(text="abc")
    with pytest.raises(ValueError):
        doc.replace(2, 9, "x")


def test_disconnect_removes_listener() -> None:
    doc = TextDocument(text="abc")
    disconnect = doc.add_edit_listener(lambda *_: None)
    assert doc.listener_count == 1
    disconnect()
    disconnect()
    assert doc.listener_count == 0


def test_selection_follows_edits() -> None:
    doc = TextDocument(text="one two three")
    doc.set_selection(8, 4)
    assert doc.selection.as_tuple() == (4, 8)

    doc.insert(0, ">>")
    assert doc.selection.as_tuple() == (6, 10)


class TestHeadlessSurface:
    def test_satisfies_protocols(self) -> None:
        assert isinstance(HeadlessSurface(), EditingSurface)
        assert isinstance(MemoryClipboard(), Clipboard)

    def test_text_access_and_edits(self) -> None:
        surface = HeadlessSurface()
        doc = TextDocument(text="abcdef")
        surface.insert_text(doc, 3, "XY")
        surface.delete_text(doc, 0, 1)
        assert surface.get_text(doc, 0, surface.document_length(doc)) == "bcXYdef"
        assert surface.document_key(doc) == doc.document_id

    def test_highlights_are_listed_in_document_order(self) -> None:
        surface = HeadlessSurface()
        doc = TextDocument(text="abcdef")
        late = TrackedRange(start=4, end=6, name="late")
        early = TrackedRange(start=0, end=2, name="early")
        surface.highlight_range(doc, late, HighlightStyle.INPUT)
        surface.highlight_range(doc, early, HighlightStyle.COMMAND)

        assert [item.tracked.name for item in surface.highlights(doc)] == ["early", "late"]

        surface.highlight_range(doc, late, HighlightStyle.NONE)
        assert [item.tracked.name for item in surface.highlights(doc)] == ["early"]

    def test_render_splices_annotations_without_touching_text(self) -> None:
        surface = HeadlessSurface()
        doc = TextDocument(text="head\nbody\n")
        anchor = TrackedRange(start=5, end=5, annotation="PREVIEW\n")
        surface.highlight_range(doc, anchor, HighlightStyle.OUTPUT)

        assert surface.render(doc) == "head\nPREVIEW\nbody\n"
        assert surface.visible_annotations(doc) == ["PREVIEW\n"]
        assert doc.text == "head\nbody\n"


def test_memory_clipboard_remembers_history() -> None:
    clipboard = MemoryClipboard()
    assert clipboard.text is None
    clipboard.set_clipboard("one")
    clipboard.set_clipboard("two")
    assert clipboard.text == "two"
    assert clipboard.history == ["one", "two"]
