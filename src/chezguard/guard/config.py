"""Configuration for the chezmoi command guard."""

from __future__ import annotations

import dataclasses

import chezguard.config


@chezguard.config.configurable("guard")
@dataclasses.dataclass
class GuardConfig:
    enabled: bool = True

    # Routing
    shell_tool: str = "Bash"
    guarded_tool: str = "chezmoi"

    # Rules
    scoped_subcommands: list[str] = dataclasses.field(
        default_factory=lambda: ["apply", "update"]
    )
    force_flags: list[str] = dataclasses.field(
        default_factory=lambda: ["--force", "-f"]
    )

    # Stdin payloads above this size are allowed without inspection
    max_input_bytes: int = 4_000_000

    # Read/Edit/Write outside the chezmoi source directory
    context_warning_enabled: bool = True
    source_dir: str = "~/.local/share/chezmoi"

    # Logging (hooks never log to stderr)
    log_file: str = ""
    log_level: str = "WARNING"
