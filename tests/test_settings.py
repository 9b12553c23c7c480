"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from awkit.services.settings import Settings, SettingsStore, normalize_settings


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings == Settings()
    assert settings.tool_command == "awk"
    assert settings.commit_action == "replace"
    assert settings.group_undo is True
    assert settings.match_expression == ""
    assert settings.field_separator == " "
    assert settings.mode == "print"


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    original = Settings(
        tool_command="gawk",
        commit_action="insert",
        group_undo=False,
        match_expression="NR > 1",
        field_separator="\t",
        mode="simple",
        live_preview=True,
        preview_delay=0.5,
        run_timeout=12.0,
    )

    SettingsStore(path).save(original)
    reloaded = SettingsStore(path).load()

    assert reloaded == original
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1
    assert not path.with_suffix(".tmp").exists()


def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"version": 1, "mode": "raw", "theme": "dark"}), encoding="utf-8")

    loaded = SettingsStore(path).load()

    assert loaded.mode == "raw"


def test_invalid_json_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_non_object_payload_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_legacy_payload_is_rewritten_with_version(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"tool_command": "mawk"}), encoding="utf-8")

    loaded = SettingsStore(path).load()

    assert loaded.tool_command == "mawk"
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1


def test_cli_overrides_apply_before_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("AWKIT_MODE", "raw")

    loaded = SettingsStore(tmp_path / "settings.json").load(
        overrides={"mode": "simple", "tool_command": "gawk", "not_a_field": 1, "commit_action": None}
    )

    assert loaded.mode == "raw"
    assert loaded.tool_command == "gawk"
    assert loaded.commit_action == "replace"


def test_env_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(Settings(tool_command="gawk", field_separator=","))
    monkeypatch.setenv("AWKIT_TOOL_COMMAND", "busybox awk")
    monkeypatch.setenv("AWKIT_FIELD_SEPARATOR", ":")
    monkeypatch.setenv("AWKIT_COMMIT_ACTION", "copy")

    overridden = SettingsStore(path).load()

    assert overridden.tool_command == "busybox awk"
    assert overridden.field_separator == ":"
    assert overridden.commit_action == "copy"


def test_bool_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("AWKIT_GROUP_UNDO", "off")
    monkeypatch.setenv("AWKIT_LIVE_PREVIEW", "yes")

    overridden = SettingsStore(tmp_path / "settings.json").load()

    assert overridden.group_undo is False
    assert overridden.live_preview is True


def test_float_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("AWKIT_PREVIEW_DELAY", "0.75")
    monkeypatch.setenv("AWKIT_RUN_TIMEOUT", "not-a-number")

    overridden = SettingsStore(tmp_path / "settings.json").load()

    assert overridden.preview_delay == pytest.approx(0.75)
    assert overridden.run_timeout is None


def test_invalid_choices_are_normalised(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"version": 1, "mode": "SIMPLE", "commit_action": "append", "tool_command": " "}),
        encoding="utf-8",
    )

    loaded = SettingsStore(path).load()

    assert loaded.mode == "simple"
    assert loaded.commit_action == "replace"
    assert loaded.tool_command == "awk"


def test_normalize_settings_clamps_negative_delay() -> None:
    assert normalize_settings(Settings(preview_delay=-1.0)).preview_delay == 0.0
    untouched = Settings()
    assert normalize_settings(untouched) is untouched
