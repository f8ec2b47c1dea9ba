"""Shared pytest fixtures for plansync tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from plansync.core import DB_FILENAME, PLANSYNC_DIR_NAME, PlanDB, write_config


@pytest.fixture(autouse=True)
def _no_db_path_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's $PLANSYNC_DB_PATH from leaking into tests."""
    monkeypatch.delenv("PLANSYNC_DB_PATH", raising=False)


@pytest.fixture
def db(tmp_path: Path) -> Generator[PlanDB, None, None]:
    """Fresh PlanDB for each test."""
    d = PlanDB(tmp_path / "plansync.db")
    d.initialize()
    yield d
    d.close()


@pytest.fixture
def populated_db(db: PlanDB) -> PlanDB:
    """PlanDB pre-populated with one representative plan.

    Creates plan "Launch" with:
    - Design (P10), Build (P20, child of Design), Docs (P30)
    - Dependency: Design blocks Docs
    - Fact "Stack" linked to Build
    """
    plan = db.create_plan("Launch", description="Ship it", content="Top-level notes")
    design = db.create_task(plan.id, "Design", priority=10, description="Sketch the API")
    build = db.create_task(plan.id, "Build", priority=20, parent_id=design.id)
    docs = db.create_task(plan.id, "Docs", priority=30)
    db.add_dependency(design.id, docs.id)
    stack = db.create_fact(plan.id, "Stack", description="Python and SQLite")
    db.link_fact(stack.id, build.id)
    # Store IDs for easy access in tests
    db._test_ids: dict[str, int] = {  # type: ignore[attr-defined]
        "plan": plan.id,
        "design": design.id,
        "build": build.id,
        "docs": docs.id,
        "stack": stack.id,
    }
    return db


@pytest.fixture
def plansync_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a plansync project (.plansync/ with config + db).

    Returns the project root (parent of .plansync/).
    """
    plansync_dir = tmp_path / PLANSYNC_DIR_NAME
    plansync_dir.mkdir()
    write_config(plansync_dir, {"version": 1})

    d = PlanDB(plansync_dir / DB_FILENAME)
    d.initialize()
    d.close()
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
