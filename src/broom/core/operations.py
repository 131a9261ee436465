"""Operation variants and the directories each one cleans."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from broom.core.reclaimer import Target
from broom.utils import xdg_cache_home, xdg_config_home, xdg_data_home, xdg_state_home


class Operation(str, Enum):
    """Kinds of cleanup; also used as the metrics event kind."""

    SMART = "smart"
    CACHE = "cache"
    LOGS = "logs"
    BROWSERS = "browsers"
    UNINSTALL = "uninstall"
    BIG = "big"
    DUPLICATES = "duplicates"

    @property
    def is_target_based(self) -> bool:
        return self in _TARGET_BASED


_TARGET_BASED = frozenset({Operation.SMART, Operation.CACHE, Operation.LOGS, Operation.BROWSERS})

# Chromium-family browsers: (directory name under ~/.cache and ~/.config)
_CHROMIUM_BROWSERS = (
    "google-chrome",
    "chromium",
    "microsoft-edge",
    "BraveSoftware/Brave-Browser",
)


def _flatpak_apps() -> Path:
    return Path.home() / ".var" / "app"


def cache_targets() -> list[Target]:
    return [
        Target(xdg_cache_home()),
        Target(_flatpak_apps(), "cache"),
        Target(Path.home() / "snap", "common/.cache"),
    ]


def log_targets() -> list[Target]:
    return [
        Target(xdg_data_home() / "xorg"),
        Target(xdg_state_home(), "log"),
        Target(xdg_state_home(), "logs"),
    ]


def browser_targets(aggressive: bool = False) -> list[Target]:
    targets = [Target(xdg_cache_home() / "mozilla" / "firefox", "cache2")]
    for browser in _CHROMIUM_BROWSERS:
        targets.append(Target(xdg_cache_home() / browser, "Cache"))
        config_dir = xdg_config_home() / browser
        targets.append(Target(config_dir, "Code Cache"))
        targets.append(Target(config_dir, "GPUCache"))
        if aggressive:
            targets.append(Target(config_dir, "Service Worker/CacheStorage"))
    return targets


def targets_for(operation: Operation, aggressive: bool = False) -> list[Target]:
    """Return the target list for a directory-based operation.

    Raises:
        ValueError: For operations that work on explicit path lists.
    """
    match operation:
        case Operation.CACHE:
            return cache_targets()
        case Operation.LOGS:
            return log_targets()
        case Operation.BROWSERS:
            return browser_targets(aggressive)
        case Operation.SMART:
            return cache_targets() + log_targets()
    raise ValueError(f"Operation '{operation.value}' has no target directories")
