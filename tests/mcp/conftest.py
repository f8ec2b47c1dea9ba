"""Fixtures for MCP server tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from plansync.core import DB_FILENAME, PLANSYNC_DIR_NAME, PlanDB, write_config


@pytest.fixture
def mcp_db(tmp_path: Path) -> Generator[PlanDB, None, None]:
    """Set up a PlanDB and patch the MCP module globals."""
    plansync_dir = tmp_path / PLANSYNC_DIR_NAME
    plansync_dir.mkdir()
    write_config(plansync_dir, {"version": 1})

    d = PlanDB(plansync_dir / DB_FILENAME)
    d.initialize()

    import plansync.mcp_server as mcp_mod

    original_db = mcp_mod.db
    original_dir = mcp_mod._plansync_dir
    mcp_mod.db = d
    mcp_mod._plansync_dir = plansync_dir

    yield d

    mcp_mod.db = original_db
    mcp_mod._plansync_dir = original_dir
    d.close()
