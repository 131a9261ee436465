"""Best-effort on-disk size estimation."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from broom.utils import is_hidden

log = logging.getLogger(__name__)


def allocated_size(st: os.stat_result) -> int:
    """Bytes allocated on disk, falling back to the logical size."""
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return st.st_size
    return blocks * 512


def estimate_size(path: Path | str, include_hidden: bool = False) -> int:
    """Estimate the disk footprint of a file or directory tree.

    Directories contribute nothing themselves; only regular files are
    summed. Missing or unreadable paths count as 0.
    """
    try:
        st = os.lstat(path)
    except OSError:
        return 0

    if stat.S_ISREG(st.st_mode):
        return allocated_size(st)
    if not stat.S_ISDIR(st.st_mode):
        return 0

    total = 0
    stack: list[Path | str] = [path]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    if not include_hidden and is_hidden(entry.name):
                        continue
                    try:
                        if entry.is_file(follow_symlinks=False):
                            total += allocated_size(entry.stat(follow_symlinks=False))
                        elif entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                    except OSError:
                        log.debug("Cannot stat: %s", entry.path)
        except OSError:
            log.debug("Cannot read directory: %s", current)
    return total
