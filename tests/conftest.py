"""Shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

from gator.commands import Session  # noqa: E402
from gator.config import SessionConfig  # noqa: E402
from gator.store import Store  # noqa: E402


@pytest.fixture
def store(tmp_path: Path) -> Store:
    """Fresh SQLite DB for each test."""
    return Store(str(tmp_path / "gator.sqlite3"))


@pytest.fixture
def session_config(tmp_path: Path) -> SessionConfig:
    return SessionConfig(tmp_path / "gatorconfig.json")


@pytest.fixture
def session(session_config: SessionConfig, store: Store) -> Session:
    return Session(config=session_config, store=store)
