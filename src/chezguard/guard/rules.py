"""Command guard: decide whether a proposed chezmoi command may run.

Two rules, both evaluated on every guarded command and accumulated in
order:

1. Force flag: ``--force`` / ``-f`` anywhere in the command.
2. Unscoped apply: ``chezmoi apply`` / ``chezmoi update`` with no file
   target once flags are stripped.

Anything the guard cannot interpret (malformed JSON, other tools, commands
that never mention chezmoi) is allowed.
"""

from __future__ import annotations

import dataclasses
import enum
import json
import logging

import chezguard.config
import chezguard.guard.config
import chezguard.guard.words

logger = logging.getLogger("chezguard.guard")

EXIT_ALLOW = 0
EXIT_BLOCK = 2


class Decision(enum.Enum):
    ALLOW = "allow"
    BLOCK = "block"


@dataclasses.dataclass(frozen=True)
class Request:
    """A single PreToolUse invocation request."""

    tool_name: str = ""
    command: str = ""
    description: str = ""
    file_path: str = ""
    cwd: str = ""

    @classmethod
    def from_payload(cls, payload: dict) -> Request:
        """Build a request from the hook payload, defaulting missing fields."""
        tool_input = payload.get("tool_input")
        if not isinstance(tool_input, dict):
            tool_input = {}

        def _str(mapping: dict, key: str) -> str:
            value = mapping.get(key, "")
            return value if isinstance(value, str) else ""

        return cls(
            tool_name=_str(payload, "tool_name"),
            command=_str(tool_input, "command"),
            description=_str(tool_input, "description"),
            file_path=_str(tool_input, "file_path"),
            cwd=_str(payload, "cwd"),
        )


@dataclasses.dataclass(frozen=True)
class Verdict:
    decision: Decision
    reasons: tuple[str, ...] = ()

    @classmethod
    def allow(cls) -> Verdict:
        return cls(Decision.ALLOW)

    @classmethod
    def block(cls, reasons: list[str]) -> Verdict:
        return cls(Decision.BLOCK, tuple(reasons))

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW

    @property
    def exit_code(self) -> int:
        return EXIT_ALLOW if self.allowed else EXIT_BLOCK

    @property
    def message(self) -> str:
        return "\n".join(self.reasons)


def _cfg() -> chezguard.guard.config.GuardConfig:
    return chezguard.config.load("guard")


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def check_force_flag(
    tokens: list[str], cfg: chezguard.guard.config.GuardConfig
) -> list[str]:
    """Refuse force flags, which skip chezmoi's overwrite prompts."""
    force_flags = cfg.force_flags
    if not any(token in force_flags for token in tokens):
        return []
    tool = cfg.guarded_tool
    flags = " or ".join(force_flags)
    return [
        f"Force flag detected: {tool} commands with {flags} are not allowed",
        "   Reason: Force flag bypasses safety checks and can overwrite changes",
    ]


def _scoped_invocations(
    tokens: list[str], cfg: chezguard.guard.config.GuardConfig
) -> list[list[str]]:
    """Return the arguments after each ``<tool> apply|update`` occurrence."""
    subcommands = cfg.scoped_subcommands
    found = []
    for i, token in enumerate(tokens[:-1]):
        if chezguard.guard.words.command_name(token) != cfg.guarded_tool:
            continue
        if tokens[i + 1] in subcommands:
            found.append(tokens[i + 2:])
    return found


def check_unscoped_apply(
    tokens: list[str], cfg: chezguard.guard.config.GuardConfig
) -> list[str]:
    """Require an explicit file target for apply/update."""
    for args in _scoped_invocations(tokens, cfg):
        if chezguard.guard.words.strip_flags(args):
            continue
        tool = cfg.guarded_tool
        return [
            f"No specific files specified: '{tool} apply' must target specific files",
            f"   Allowed: {tool} apply ~/.bashrc",
            f"   Allowed: {tool} apply --dry-run ~/.config/fish/config.fish",
            f"   Blocked: {tool} apply",
            f"   Blocked: {tool} apply --dry-run",
            "",
            f"   Use '{tool} diff' to preview changes before asking me to apply",
        ]
    return []


_RULES = (
    ("force-flag", check_force_flag),
    ("unscoped-apply", check_unscoped_apply),
)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def parse_payload(raw: str) -> dict | None:
    """Decode a hook payload; ``None`` for anything but a JSON object."""
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        logger.debug("Unparseable payload, allowing")
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def evaluate(
    request: Request, cfg: chezguard.guard.config.GuardConfig | None = None
) -> Verdict:
    """Run every rule against a parsed request."""
    cfg = cfg if cfg is not None else _cfg()
    if not cfg.enabled:
        return Verdict.allow()
    if request.tool_name != cfg.shell_tool:
        return Verdict.allow()
    if not chezguard.guard.words.contains_word(request.command, cfg.guarded_tool):
        return Verdict.allow()

    # Quoted commands (bash -c '...') are checked alongside the outer one
    groups = chezguard.guard.words.command_groups(request.command, cfg.guarded_tool)
    reasons: list[str] = []
    for name, rule in _RULES:
        for tokens in groups:
            fired = rule(tokens, cfg)
            if fired:
                logger.info("Rule %s fired for %r", name, request.command)
                reasons.extend(fired)
                break

    if not reasons:
        logger.debug("Allowed %r", request.command)
        return Verdict.allow()
    return Verdict.block(reasons)
