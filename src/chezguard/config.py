"""Layered TOML configuration.

Sections are dataclasses registered with ``@configurable``. ``load()``
starts from the dataclass defaults and applies, in order:

    ~/.config/chezguard/config.toml   global (user-wide)
    .chezguard/config.toml            local  (dotfiles repo root)

Every value is checked against its field's annotation. Values that can be
converted (``"1024"`` for an int, ``"apply,update"`` for a list) are;
anything else is logged and skipped, so a bad file can't break a hook run.
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import tomllib
from typing import Any

logger = logging.getLogger("chezguard.config")

_SECTIONS: dict[str, type] = {}

# Annotation text (``from __future__ import annotations``) → runtime type
_ANNOTATIONS = {
    "bool": bool,
    "int": int,
    "float": float,
    "str": str,
    "list[str]": list,
}


def configurable(section: str):
    """Class decorator registering a dataclass under ``[section]``."""

    def decorator(cls):
        _SECTIONS[section] = cls
        return cls

    return decorator


def sections() -> list[str]:
    return sorted(_SECTIONS)


def _section_cls(section: str) -> type:
    try:
        return _SECTIONS[section]
    except KeyError:
        raise KeyError(f"Unknown config section: {section}") from None


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

def _global_path() -> pathlib.Path:
    return pathlib.Path.home() / ".config" / "chezguard" / "config.toml"


def _local_path(root: pathlib.Path) -> pathlib.Path:
    return root / ".chezguard" / "config.toml"


def find_repo_root(cwd: pathlib.Path) -> pathlib.Path | None:
    """Nearest ancestor of *cwd* (inclusive) holding a ``.git`` directory."""
    current = cwd.resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").is_dir():
            return candidate
    return None


def _root(root: pathlib.Path | None) -> pathlib.Path:
    if root is not None:
        return root
    return find_repo_root(pathlib.Path.cwd()) or pathlib.Path.cwd()


def _read(path: pathlib.Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------

def field_types(cls: type) -> dict[str, type]:
    """Map each field of a config dataclass to its runtime type."""
    types = {}
    for f in dataclasses.fields(cls):
        name = f.type if isinstance(f.type, str) else getattr(f.type, "__name__", "")
        types[f.name] = _ANNOTATIONS.get(name, str)
    return types


def coerce(value: Any, target: type) -> Any:
    """Convert *value* to *target*, raising ``ValueError`` if it can't be."""
    if target is list:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return list(value)
        raise ValueError(f"expected a list of strings, got {value!r}")

    if target is bool:
        if isinstance(value, bool):
            return value
        text = str(value).lower()
        if text in ("true", "1", "yes", "on"):
            return True
        if text in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected a boolean, got {value!r}")

    if isinstance(value, (bool, list, dict)):
        raise ValueError(f"expected {target.__name__}, got {value!r}")
    if target is str:
        if not isinstance(value, str):
            raise ValueError(f"expected a string, got {value!r}")
        return value
    return target(value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load(section: str, root: pathlib.Path | None = None) -> Any:
    """Build *section* from defaults, global TOML, then local TOML."""
    cls = _section_cls(section)
    types = field_types(cls)
    overrides: dict[str, Any] = {}

    for path in (_global_path(), _local_path(_root(root))):
        table = _read(path).get(section, {})
        if not isinstance(table, dict):
            logger.warning("Ignoring non-table [%s] in %s", section, path)
            continue
        for key, value in table.items():
            if key not in types:
                continue
            try:
                overrides[key] = coerce(value, types[key])
            except (TypeError, ValueError) as exc:
                logger.warning("Ignoring %s.%s in %s: %s", section, key, path, exc)

    return cls(**overrides)


def get_effective(section: str, key: str, root: pathlib.Path | None = None) -> Any:
    instance = load(section, root)
    if key not in field_types(type(instance)):
        raise KeyError(f"Unknown key: {section}.{key}")
    return getattr(instance, key)


def set_value(
    section: str,
    key: str,
    value: Any,
    *,
    scope: str = "local",
    root: pathlib.Path | None = None,
) -> Any:
    """Validate *value* and write it to the global or local TOML file.

    Returns the value as stored.
    """
    import tomli_w

    types = field_types(_section_cls(section))
    if key not in types:
        raise KeyError(f"Unknown key: {section}.{key}")
    value = coerce(value, types[key])

    path = _global_path() if scope == "global" else _local_path(_root(root))
    data = _read(path)
    table = data.get(section)
    if not isinstance(table, dict):
        table = data[section] = {}
    table[key] = value
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tomli_w.dumps(data).encode())
    return value
