"""chezguard CLI — chezmoi safety hook for Claude Code.

Usage:
    chezguard install          Register the hook in current project
    chezguard install --global Register the hook globally (~/.claude/settings.json)
    chezguard install --remove Remove the hook (add --global for global)
    chezguard check <command>  Evaluate a shell command as the hook would
    chezguard config <cmd>     Guard configuration (get/set/show)
    chezguard hook <event>     Run a hook (called by Claude Code, not users)
"""

from __future__ import annotations

import json
import logging
import pathlib
import sys

_HOOK_EVENTS = {
    "PreToolUse": "chezguard.hooks.pre_tool_use",
}

_HOOK_MATCHERS = {
    "PreToolUse": "Bash|Read|Edit|Write",
}

_HOOK_TIMEOUTS = {
    "PreToolUse": 3000,
}

_HOOK_COMMAND_PREFIX = "chezguard hook "

_GLOBAL_SETTINGS = pathlib.Path.home() / ".claude" / "settings.json"


def _guard_cfg():
    import chezguard.config
    import chezguard.guard.config  # noqa: F401

    return chezguard.config.load("guard")


def _configure_logging(cfg) -> None:
    """Append chezguard logs to the configured file, if any.

    An unwritable log file is skipped; hooks must keep stderr clean.
    """
    pkg_logger = logging.getLogger("chezguard")
    if not cfg.log_file:
        return
    path = pathlib.Path(cfg.log_file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path)
    except OSError:
        return
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
    )
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(getattr(logging, cfg.log_level.upper(), logging.WARNING))


def _is_own_entry(entry: dict) -> bool:
    return any(
        isinstance(h, dict)
        and str(h.get("command", "")).startswith(_HOOK_COMMAND_PREFIX)
        for h in entry.get("hooks", [])
    )


def _merge_hooks_config(hooks: dict, *, remove: bool = False) -> dict:
    """Add (or drop) chezguard entries, leaving other hooks untouched."""
    merged: dict = {}
    for event, entries in hooks.items():
        kept = [e for e in entries if not (isinstance(e, dict) and _is_own_entry(e))]
        if kept:
            merged[event] = kept

    if remove:
        return merged

    for event in _HOOK_EVENTS:
        merged.setdefault(event, []).append(
            {
                "matcher": _HOOK_MATCHERS[event],
                "hooks": [
                    {
                        "type": "command",
                        "command": f"{_HOOK_COMMAND_PREFIX}{event}",
                        "timeout": _HOOK_TIMEOUTS[event],
                    }
                ],
            }
        )
    return merged


def _cmd_install(args: list[str]) -> int:
    """Register or remove the chezguard hook.

    By default writes to .claude/settings.local.json in the current
    project.  Use ``--global`` to write to ~/.claude/settings.json
    instead.
    """
    remove = "--remove" in args
    is_global = "--global" in args

    if is_global:
        settings_path = _GLOBAL_SETTINGS
    else:
        settings_path = pathlib.Path.cwd() / ".claude" / "settings.local.json"

    settings_path.parent.mkdir(parents=True, exist_ok=True)

    settings: dict = {}
    if settings_path.exists():
        try:
            settings = json.loads(settings_path.read_text())
        except json.JSONDecodeError as exc:
            print(f"Cannot parse {settings_path}: {exc}", file=sys.stderr)
            return 1

    hooks = _merge_hooks_config(settings.get("hooks", {}), remove=remove)
    if hooks:
        settings["hooks"] = hooks
    else:
        settings.pop("hooks", None)
    settings_path.write_text(json.dumps(settings, indent=2) + "\n")

    if remove:
        print("chezguard hook removed from", settings_path)
        return 0

    scope = "global" if is_global else "project"
    print(f"chezguard hook registered ({scope}) in {settings_path}")
    print(f"  {len(_HOOK_EVENTS)} hook(s): {', '.join(_HOOK_EVENTS)}")
    return 0


def _cmd_hook(args: list[str]) -> int:
    """Dispatch a hook event. Called by Claude Code, not users."""
    if not args:
        print("Usage: chezguard hook <event>", file=sys.stderr)
        print(f"Events: {', '.join(_HOOK_EVENTS)}", file=sys.stderr)
        return 1

    event = args[0]
    module_name = _HOOK_EVENTS.get(event)
    if module_name is None:
        print(f"Unknown hook event: {event}", file=sys.stderr)
        return 1

    import importlib

    module = importlib.import_module(module_name)

    # Config warnings must not reach stderr before logging is set up
    logging.getLogger("chezguard").addHandler(logging.NullHandler())
    cfg = _guard_cfg()
    _configure_logging(cfg)

    result = module.run(sys.stdin, cfg)
    if result.stdout:
        print(result.stdout)
    if result.stderr:
        sys.stderr.write(result.stderr)
    return result.exit_code


def _cmd_check(args: list[str]) -> int:
    """Evaluate a command string the way the hook would."""
    if args and args[0] == "--":
        args = args[1:]
    if not args:
        print("Usage: chezguard check <command>", file=sys.stderr)
        return 1

    import chezguard.guard.rules

    cfg = _guard_cfg()
    request = chezguard.guard.rules.Request(
        tool_name=cfg.shell_tool, command=" ".join(args)
    )
    verdict = chezguard.guard.rules.evaluate(request, cfg)
    if verdict.allowed:
        print("allow")
    else:
        print(verdict.message)
    return verdict.exit_code


def _cmd_config(args: list[str]) -> int:
    """Guard configuration."""
    import chezguard.config_cli

    return chezguard.config_cli.main(args)


def main() -> None:
    args = sys.argv[1:]
    if not args:
        print(__doc__)
        sys.exit(1)

    cmd = args[0]
    rest = args[1:]

    if cmd == "install":
        sys.exit(_cmd_install(rest))
    elif cmd == "hook":
        sys.exit(_cmd_hook(rest))
    elif cmd == "check":
        sys.exit(_cmd_check(rest))
    elif cmd == "config":
        sys.exit(_cmd_config(rest))
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
