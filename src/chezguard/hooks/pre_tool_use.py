"""PreToolUse hook — chezmoi command guard plus source-dir context warning.

Reads stdin JSON with tool_name, tool_input and cwd.

Pipeline:
1. Bash commands go through the command guard; a block exits 2 with the
   reasons on stderr.
2. Read/Edit/Write on files outside the chezmoi source directory get an
   ``additionalContext`` reminder on stdout (never blocks).
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import pathlib
from typing import TextIO

import chezguard.config
import chezguard.guard.config
import chezguard.guard.rules

logger = logging.getLogger("chezguard.hooks.pre_tool_use")

_FILE_TOOLS = frozenset(["Read", "Edit", "Write"])


@dataclasses.dataclass(frozen=True)
class HookResult:
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""


def _guard_cfg() -> chezguard.guard.config.GuardConfig:
    return chezguard.config.load("guard")


def _resolve(file_path: str, cwd: str) -> pathlib.Path:
    path = pathlib.Path(file_path).expanduser()
    if not path.is_absolute():
        path = pathlib.Path(cwd or os.getcwd()) / path
    return pathlib.Path(os.path.normpath(path))


def _check_source_dir(
    request: chezguard.guard.rules.Request,
    cfg: chezguard.guard.config.GuardConfig,
) -> str | None:
    """Return a reminder when a file tool touches a path chezmoi doesn't manage."""
    if not cfg.context_warning_enabled or not cfg.source_dir:
        return None
    if request.tool_name not in _FILE_TOOLS or not request.file_path:
        return None

    target = _resolve(request.file_path, request.cwd)
    source_dir = _resolve(cfg.source_dir, request.cwd)
    if target == source_dir or source_dir in target.parents:
        return None

    return (
        "<chezmoi-context-warning>\n"
        "This file is OUTSIDE the chezmoi source directory.\n\n"
        f"File location: {target}\n"
        f"Source directory: {source_dir}\n\n"
        "Changes here are not tracked by chezmoi, will not sync across "
        "machines, and affect the local system directly.\n"
        f"To change a dotfile, edit its source under {source_dir} instead.\n"
        "</chezmoi-context-warning>"
    )


def main(
    hook_input: dict,
    cfg: chezguard.guard.config.GuardConfig | None = None,
) -> HookResult:
    """Run the PreToolUse pipeline for one parsed payload."""
    cfg = cfg if cfg is not None else _guard_cfg()
    request = chezguard.guard.rules.Request.from_payload(hook_input)

    verdict = chezguard.guard.rules.evaluate(request, cfg)
    if not verdict.allowed:
        return HookResult(exit_code=verdict.exit_code, stderr=verdict.message + "\n")

    warning = _check_source_dir(request, cfg)
    if warning:
        return HookResult(
            stdout=json.dumps({
                "hookSpecificOutput": {
                    "hookEventName": "PreToolUse",
                    "additionalContext": warning,
                }
            })
        )
    return HookResult()


def run(
    stream: TextIO,
    cfg: chezguard.guard.config.GuardConfig | None = None,
) -> HookResult:
    """Read the whole payload from *stream* once and run the hook.

    Oversized, undecodable or malformed payloads are allowed.
    """
    cfg = cfg if cfg is not None else _guard_cfg()
    try:
        raw = stream.read(cfg.max_input_bytes + 1)
    except (OSError, UnicodeDecodeError):
        logger.debug("Failed to read hook payload", exc_info=True)
        return HookResult()

    if len(raw) > cfg.max_input_bytes:
        logger.warning("Hook payload exceeds %d bytes, allowing", cfg.max_input_bytes)
        return HookResult()

    hook_input = chezguard.guard.rules.parse_payload(raw)
    if hook_input is None:
        return HookResult()
    return main(hook_input, cfg)
