"""Find files an application leaves behind and stage them for removal."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from broom.core.matcher import PathMatcher
from broom.core.sizing import estimate_size
from broom.models.preview import PreviewNode
from broom.utils import is_within, xdg_cache_home, xdg_config_home, xdg_data_home, xdg_state_home

log = logging.getLogger(__name__)

# Display order of the kind nodes in a plan
KINDS = ("Cache", "Config", "Data", "State", "Sandbox", "Launchers", "Other")


@dataclass(frozen=True, slots=True)
class AppDescriptor:
    """What is known about the application being removed."""

    app_id: str | None = None
    name: str | None = None
    app_path: Path | None = None

    @property
    def title(self) -> str:
        return self.name or self.app_id or (self.app_path.name if self.app_path else "Application")


def _kind_for(path: str) -> str:
    for kind, base in (
        ("Cache", xdg_cache_home()),
        ("Config", xdg_config_home()),
        ("Launchers", xdg_data_home() / "applications"),
        ("Data", xdg_data_home()),
        ("State", xdg_state_home()),
        ("Sandbox", Path.home() / ".var" / "app"),
    ):
        if is_within(path, os.fspath(base)):
            return kind
    return "Other"


def find_remnants(app: AppDescriptor, matcher: PathMatcher | None = None) -> list[Path]:
    """Return existing paths that belong to *app*, without duplicates."""
    matcher = matcher if matcher is not None else PathMatcher()
    home = os.fspath(Path.home())
    sandbox_root = Path.home() / ".var" / "app"
    candidates: list[Path] = []

    if app.app_id:
        candidates += [
            xdg_config_home() / app.app_id,
            xdg_cache_home() / app.app_id,
            xdg_data_home() / app.app_id,
            xdg_state_home() / app.app_id,
            sandbox_root / app.app_id,
            xdg_data_home() / "applications" / f"{app.app_id}.desktop",
        ]
    if app.name:
        candidates += [
            xdg_config_home() / app.name,
            xdg_cache_home() / app.name,
            xdg_data_home() / app.name,
        ]

    needles = [n.lower() for n in (app.app_id, app.name) if n]
    if needles and sandbox_root.is_dir():
        try:
            for child in sorted(sandbox_root.iterdir()):
                lowered = child.name.lower()
                if any(n in lowered for n in needles):
                    candidates.append(child)
        except OSError:
            log.debug("Cannot read %s", sandbox_root)

    found: list[Path] = []
    seen: set[str] = set()
    for path in candidates:
        key = os.fspath(path)
        if key in seen or not os.path.lexists(key):
            continue
        seen.add(key)
        if not is_within(key, home):
            continue
        if matcher.should_exclude(key, identifier=app.app_id):
            log.debug("Excluded: %s", key)
            continue
        found.append(path)

    if app.app_path is not None and os.path.lexists(app.app_path):
        key = os.fspath(app.app_path)
        if key not in seen and not matcher.should_exclude(key, identifier=app.app_id):
            found.append(app.app_path)
    return found


def build_plan(app: AppDescriptor, items: list[tuple[Path, int]]) -> list[PreviewNode]:
    """Build the App -> Kind -> Path tree; empty when nothing was found."""
    buckets: dict[str, list[PreviewNode]] = {}
    for path, size in items:
        kind = "Other" if app.app_path is not None and path == app.app_path else _kind_for(os.fspath(path))
        buckets.setdefault(kind, []).append(PreviewNode(title=os.fspath(path), own_size=size))

    kind_nodes: list[PreviewNode] = []
    for kind in KINDS:
        leaves = buckets.get(kind)
        if leaves:
            leaves.sort(key=lambda n: n.total_size, reverse=True)
            kind_nodes.append(PreviewNode(title=kind, children=leaves))
    if not kind_nodes:
        return []
    return [PreviewNode(title=app.title, detail=app.app_id, children=kind_nodes)]


def plan_uninstall(app: AppDescriptor, matcher: PathMatcher | None = None) -> list[PreviewNode]:
    """Find remnants of *app*, size them and return the selection tree."""
    items = [(path, estimate_size(path, include_hidden=True)) for path in find_remnants(app, matcher)]
    return build_plan(app, items)
