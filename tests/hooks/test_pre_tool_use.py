"""Tests for the PreToolUse hook module."""

from __future__ import annotations

import dataclasses
import io
import json

import chezguard.hooks.pre_tool_use as hook


class TestGuardedCommands:
    def test_blocks_unscoped_apply(self, guard_cfg, bash_payload):
        result = hook.main(bash_payload("chezmoi apply"), guard_cfg)
        assert result.exit_code == 2
        assert result.stdout == ""
        assert result.stderr.startswith("No specific files specified")
        assert result.stderr.endswith("\n")

    def test_blocks_force_flag(self, guard_cfg, bash_payload):
        result = hook.main(bash_payload("chezmoi apply --force ~/.bashrc"), guard_cfg)
        assert result.exit_code == 2
        assert result.stderr == (
            "Force flag detected: chezmoi commands with --force or -f are not allowed\n"
            "   Reason: Force flag bypasses safety checks and can overwrite changes\n"
        )

    def test_allows_scoped_dry_run(self, guard_cfg, bash_payload):
        result = hook.main(bash_payload("chezmoi apply --dry-run ~/.bashrc"), guard_cfg)
        assert result == hook.HookResult()

    def test_allows_missing_command(self, guard_cfg, bash_payload):
        assert hook.main(bash_payload(None), guard_cfg) == hook.HookResult()

    def test_other_tool_never_blocks(self, guard_cfg):
        result = hook.main(
            {"tool_name": "WebFetch", "tool_input": {"command": "chezmoi apply -f"}},
            guard_cfg,
        )
        assert result.exit_code == 0
        assert result.stderr == ""


class TestSourceDirWarning:
    def test_warns_outside_source_dir(self, guard_cfg, tmp_path):
        outside = tmp_path / "home" / ".bashrc"
        result = hook.main(
            {"tool_name": "Edit", "tool_input": {"file_path": str(outside)}},
            guard_cfg,
        )
        assert result.exit_code == 0
        assert result.stderr == ""
        out = json.loads(result.stdout)["hookSpecificOutput"]
        assert out["hookEventName"] == "PreToolUse"
        assert "OUTSIDE the chezmoi source directory" in out["additionalContext"]
        assert str(outside) in out["additionalContext"]

    def test_silent_inside_source_dir(self, guard_cfg, tmp_path):
        inside = tmp_path / "chezmoi-src" / "dot_bashrc"
        result = hook.main(
            {"tool_name": "Read", "tool_input": {"file_path": str(inside)}},
            guard_cfg,
        )
        assert result == hook.HookResult()

    def test_relative_path_uses_payload_cwd(self, guard_cfg, tmp_path):
        result = hook.main(
            {
                "tool_name": "Write",
                "tool_input": {"file_path": "dot_config/fish/config.fish"},
                "cwd": str(tmp_path / "chezmoi-src"),
            },
            guard_cfg,
        )
        assert result.stdout == ""

    def test_sibling_prefix_is_outside(self, guard_cfg, tmp_path):
        sibling = tmp_path / "chezmoi-src-backup" / "dot_bashrc"
        result = hook.main(
            {"tool_name": "Read", "tool_input": {"file_path": str(sibling)}},
            guard_cfg,
        )
        assert "additionalContext" in result.stdout

    def test_disabled_warning(self, guard_cfg):
        cfg = dataclasses.replace(guard_cfg, context_warning_enabled=False)
        result = hook.main(
            {"tool_name": "Read", "tool_input": {"file_path": "/etc/hosts"}}, cfg
        )
        assert result == hook.HookResult()

    def test_ignores_other_tools(self, guard_cfg):
        result = hook.main(
            {"tool_name": "Grep", "tool_input": {"file_path": "/etc/hosts"}},
            guard_cfg,
        )
        assert result.stdout == ""


class TestRun:
    def test_reads_stream_and_blocks(self, guard_cfg, bash_payload):
        stream = io.StringIO(json.dumps(bash_payload("chezmoi update")))
        result = hook.run(stream, guard_cfg)
        assert result.exit_code == 2

    def test_malformed_json_allows(self, guard_cfg):
        result = hook.run(io.StringIO('{"tool_name": "Bash", "tool_in'), guard_cfg)
        assert result == hook.HookResult()

    def test_non_object_json_allows(self, guard_cfg):
        assert hook.run(io.StringIO('["chezmoi apply"]'), guard_cfg) == hook.HookResult()

    def test_empty_stream_allows(self, guard_cfg):
        assert hook.run(io.StringIO(""), guard_cfg) == hook.HookResult()

    def test_oversized_payload_allows(self, guard_cfg, bash_payload):
        cfg = dataclasses.replace(guard_cfg, max_input_bytes=16)
        stream = io.StringIO(json.dumps(bash_payload("chezmoi apply")))
        assert hook.run(stream, cfg) == hook.HookResult()

    def test_read_error_allows(self, guard_cfg):
        class _Broken(io.StringIO):
            def read(self, *args):
                raise OSError("closed")

        assert hook.run(_Broken(), guard_cfg) == hook.HookResult()
