"""Shared utility functions."""

from __future__ import annotations

import os
from pathlib import Path

# Directory suffixes that mark an opaque bundle presented as a single item
PACKAGE_SUFFIXES = frozenset({
    ".app",
    ".appex",
    ".bundle",
    ".framework",
    ".kext",
    ".photoslibrary",
    ".pkg",
    ".plugin",
    ".xcarchive",
})


def xdg_cache_home() -> Path:
    """Return XDG_CACHE_HOME, defaulting to ~/.cache."""
    return Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def xdg_data_home() -> Path:
    """Return XDG_DATA_HOME, defaulting to ~/.local/share."""
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def xdg_state_home() -> Path:
    """Return XDG_STATE_HOME, defaulting to ~/.local/state."""
    return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))


def is_hidden(name: str) -> bool:
    """Dotfiles are hidden."""
    return name.startswith(".")


def is_package_name(name: str) -> bool:
    """Check if a directory name looks like an opaque bundle, e.g. 'Foo.app'."""
    return os.path.splitext(name)[1].lower() in PACKAGE_SUFFIXES


def is_within(path: str, prefix: str) -> bool:
    """Check if *path* is *prefix* itself or lies below it."""
    prefix = prefix.rstrip(os.sep) or os.sep
    if path == prefix:
        return True
    if prefix == os.sep:
        return path.startswith(os.sep)
    return path.startswith(prefix + os.sep)


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"
