"""Shared test fixtures for chezguard tests."""

from __future__ import annotations

import json
import pathlib

import pytest

import chezguard.config
import chezguard.guard.config


@pytest.fixture(autouse=True)
def isolated_global_config(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> pathlib.Path:
    """Point the global config file into tmp_path so user config never leaks in."""
    global_toml = tmp_path / "global_config" / "config.toml"
    monkeypatch.setattr(chezguard.config, "_global_path", lambda: global_toml)
    return global_toml


@pytest.fixture
def guard_cfg(tmp_path: pathlib.Path) -> chezguard.guard.config.GuardConfig:
    """Default guard config with the source dir inside tmp_path."""
    return chezguard.guard.config.GuardConfig(
        source_dir=str(tmp_path / "chezmoi-src")
    )


@pytest.fixture
def bash_payload():
    """Factory for PreToolUse payloads proposing a Bash command."""

    def _create(command: str | None, **overrides) -> dict:
        tool_input: dict = {"description": "run it"}
        if command is not None:
            tool_input["command"] = command
        base = {"tool_name": "Bash", "tool_input": tool_input}
        base.update(overrides)
        return base

    return _create


@pytest.fixture
def settings_file(tmp_path: pathlib.Path):
    """Factory for creating a settings.local.json file."""

    def _create(settings: dict | None = None) -> pathlib.Path:
        claude_dir = tmp_path / ".claude"
        claude_dir.mkdir(parents=True, exist_ok=True)
        path = claude_dir / "settings.local.json"
        if settings is None:
            settings = {"hooks": {}}
        path.write_text(json.dumps(settings, indent=2))
        return path

    return _create
