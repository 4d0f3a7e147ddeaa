"""
Shared pytest fixtures for tablekv tests.

This module provides:
- In-memory and file-backed SQLite adapters (disconnected after each test)
- A ready-to-use store with its table created
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from tablekv.adapters import SQLiteAdapter
from tablekv.store import KeyValueStore


@pytest.fixture
def sqlite_adapter() -> Iterator[SQLiteAdapter]:
    """In-memory SQLite adapter."""
    adapter = SQLiteAdapter(":memory:")
    yield adapter
    adapter.disconnect()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Path for a file-backed SQLite database."""
    return str(tmp_path / "kv.db")


@pytest.fixture
def store(sqlite_adapter: SQLiteAdapter) -> KeyValueStore:
    """Store over ``kv_store`` with the table already created."""
    kv = KeyValueStore(sqlite_adapter, "kv_store", timeout=2.0)
    kv.init()
    return kv
