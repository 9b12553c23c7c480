"""Service layer: persisted configuration."""

from .settings import Settings, SettingsStore

__all__ = ["Settings", "SettingsStore"]
