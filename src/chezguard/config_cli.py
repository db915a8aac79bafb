"""``chezguard config`` — inspect and change guard settings.

Usage:
    chezguard config show                          Effective settings
    chezguard config get <section.key>             One effective value
    chezguard config set [--global] <key> <value>  Validate and store a value

List values are given comma-separated: ``force_flags --force,-f``.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import chezguard.config
import chezguard.guard.config  # noqa: F401


def _parse_key(key: str) -> tuple[str, str]:
    section, sep, field = key.partition(".")
    if not sep:
        # Bare keys refer to the guard section
        return "guard", key
    return section, field


def _format(value) -> str:
    if isinstance(value, list):
        return ",".join(value)
    return str(value)


def cmd_show(root: Path | None) -> int:
    for section in chezguard.config.sections():
        cfg = chezguard.config.load(section, root)
        print(f"[{section}]")
        for key in chezguard.config.field_types(type(cfg)):
            print(f"  {key} = {_format(getattr(cfg, key))}")
        print()
    return 0


def cmd_get(key: str, root: Path | None) -> int:
    section, field = _parse_key(key)
    try:
        value = chezguard.config.get_effective(section, field, root)
    except KeyError as exc:
        print(exc.args[0], file=sys.stderr)
        return 1
    print(_format(value))
    return 0


def cmd_set(key: str, value: str, *, global_flag: bool, root: Path | None) -> int:
    section, field = _parse_key(key)
    scope = "global" if global_flag else "local"
    try:
        stored = chezguard.config.set_value(
            section, field, value, scope=scope, root=root
        )
    except KeyError as exc:
        print(exc.args[0], file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Invalid value for {section}.{field}: {exc}", file=sys.stderr)
        return 1
    print(f"Set {section}.{field} = {_format(stored)} ({scope})")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="chezguard config",
        description="Inspect and change chezguard settings.",
    )
    parser.add_argument("--path", type=Path, default=None,
                        help="Dotfiles repo root (default: nearest git root)")
    sub = parser.add_subparsers(dest="subcmd")

    sub.add_parser("show", help="Print effective settings")

    p_get = sub.add_parser("get", help="Print one effective value")
    p_get.add_argument("key", help="section.key or a guard key")

    p_set = sub.add_parser("set", help="Validate and store a value")
    p_set.add_argument("key", help="section.key or a guard key")
    p_set.add_argument("value")
    p_set.add_argument("--global", dest="global_flag", action="store_true")

    args = parser.parse_args(argv)

    if args.subcmd == "show":
        return cmd_show(args.path)
    elif args.subcmd == "get":
        return cmd_get(args.key, args.path)
    elif args.subcmd == "set":
        return cmd_set(
            args.key, args.value, global_flag=args.global_flag, root=args.path
        )
    parser.print_help()
    return 1
