"""Editor package containing the document model and host surface adapters."""

from importlib import import_module
from typing import Any

from . import document_model, headless, surface, undo

__all__ = ["document_model", "headless", "surface", "undo"]


def __getattr__(name: str) -> Any:
	if name == "qt_surface":
		module = import_module(f"{__name__}.{name}")
		globals()[name] = module
		return module
	raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
