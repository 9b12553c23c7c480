"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

from awkit.editor.document_model import TextDocument
from awkit.editor.headless import HeadlessSurface, MemoryClipboard
from awkit.editor.undo import EditHistory
from awkit.services.settings import Settings

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep log files and AWKIT_* overrides out of the developer's environment."""

    for name in list(os.environ):
        if name.startswith("AWKIT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWKIT_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def surface() -> HeadlessSurface:
    return HeadlessSurface()


@pytest.fixture
def clipboard() -> MemoryClipboard:
    return MemoryClipboard()


@pytest.fixture
def history() -> EditHistory:
    return EditHistory()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def make_doc():
    def _factory(text: str = "", selection: tuple[int, int] | None = None) -> TextDocument:
        doc = TextDocument(text=text)
        if selection is not None:
            doc.set_selection(*selection)
        return doc

    return _factory
