"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

import broom.core.tracker as tracker
from broom.core.trash import Trash


@pytest.fixture
def isolate_storage(tmp_path, monkeypatch):
    """Redirect the cleanup history to a temp directory."""
    history_file = tmp_path / "broom_data" / "history.json"
    history_file.parent.mkdir()
    monkeypatch.setattr(tracker, "history_file", lambda: history_file)
    return history_file


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Fake home directory with XDG base directories inside it."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", staticmethod(lambda: home))
    for var, rel in (
        ("XDG_CACHE_HOME", ".cache"),
        ("XDG_CONFIG_HOME", ".config"),
        ("XDG_DATA_HOME", ".local/share"),
        ("XDG_STATE_HOME", ".local/state"),
    ):
        path = home / rel
        path.mkdir(parents=True)
        monkeypatch.setenv(var, str(path))
    return home


@pytest.fixture
def trash(tmp_path):
    return Trash(tmp_path / "Trash")
