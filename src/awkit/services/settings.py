"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

__all__ = [
    "Settings",
    "SettingsStore",
    "MODE_CHOICES",
    "COMMIT_ACTION_CHOICES",
    "normalize_settings",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".awkit"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
MODE_CHOICES: tuple[str, ...] = ("print", "simple", "raw")
COMMIT_ACTION_CHOICES: tuple[str, ...] = ("discard", "replace", "insert", "copy")
_CHOICES: Mapping[str, tuple[str, ...]] = {
    "mode": MODE_CHOICES,
    "commit_action": COMMIT_ACTION_CHOICES,
}


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    tool_command: str = "awk"
    commit_action: str = "replace"
    group_undo: bool = True
    match_expression: str = ""
    field_separator: str = " "
    mode: str = "print"
    live_preview: bool = False
    preview_delay: float = 0.3
    run_timeout: float | None = None
    debug_logging: bool = False


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            LOGGER.debug("Settings loaded from %s", self._path)

        version_mismatch = bool(payload) and payload.get("version") != _SETTINGS_VERSION
        if version_mismatch:
            try:
                self.save(settings)
            except OSError as exc:  # pragma: no cover - depends on filesystem
                LOGGER.warning("Failed to migrate settings payload: %s", exc)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        settings = self._apply_env_overrides(settings)
        return normalize_settings(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = self._serialize(settings)
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _serialize(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        return data

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, (field_name, parse) in _ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw is None:
                continue
            try:
                overrides[field_name] = parse(raw)
            except ValueError:
                LOGGER.warning("Ignoring %s=%r: not a valid %s", env_name, raw, field_name)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _parse_flag(raw: str) -> bool:
    return raw.strip().lower() in _TRUE_VALUES


# Environment variable -> (settings field, parser); parsers raise ValueError on junk.
_ENV_OVERRIDES: Mapping[str, tuple[str, Callable[[str], Any]]] = {
    "AWKIT_TOOL_COMMAND": ("tool_command", str),
    "AWKIT_MODE": ("mode", str),
    "AWKIT_COMMIT_ACTION": ("commit_action", str),
    "AWKIT_MATCH_EXPRESSION": ("match_expression", str),
    "AWKIT_FIELD_SEPARATOR": ("field_separator", str),
    "AWKIT_GROUP_UNDO": ("group_undo", _parse_flag),
    "AWKIT_LIVE_PREVIEW": ("live_preview", _parse_flag),
    "AWKIT_DEBUG_LOGGING": ("debug_logging", _parse_flag),
    "AWKIT_PREVIEW_DELAY": ("preview_delay", float),
    "AWKIT_RUN_TIMEOUT": ("run_timeout", float),
}


def normalize_settings(settings: Settings) -> Settings:
    """Replace out-of-range enum values with their defaults, logging each."""

    defaults = Settings()
    updates: Dict[str, Any] = {}
    for name, choices in _CHOICES.items():
        raw = getattr(settings, name)
        normalized = str(raw or "").strip().lower()
        if normalized in choices:
            if normalized != raw:
                updates[name] = normalized
            continue
        fallback = getattr(defaults, name)
        LOGGER.warning("Unknown %s '%s'; defaulting to %s.", name, raw, fallback)
        updates[name] = fallback
    if settings.preview_delay < 0:
        updates["preview_delay"] = 0.0
    if not (settings.tool_command or "").strip():
        LOGGER.warning("Empty tool_command; defaulting to %s.", defaults.tool_command)
        updates["tool_command"] = defaults.tool_command
    return replace(settings, **updates) if updates else settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}
