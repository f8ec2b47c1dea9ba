"""Tests for plan CRUD, upsert, and cascading delete."""

from __future__ import annotations

import pytest

from plansync.core import PlanDB
from plansync.errors import NotFoundError, ValidationError


class TestCreatePlan:
    def test_create_and_get(self, db: PlanDB) -> None:
        plan = db.create_plan("Launch", description="Ship it", content="Notes")
        fetched = db.get_plan(plan.id)
        assert fetched.name == "Launch"
        assert fetched.description == "Ship it"
        assert fetched.content == "Notes"
        assert fetched.completed is False
        assert fetched.created_at

    def test_name_is_stripped(self, db: PlanDB) -> None:
        plan = db.create_plan("  Launch  ")
        assert plan.name == "Launch"

    def test_duplicate_name_rejected(self, db: PlanDB) -> None:
        db.create_plan("Launch")
        with pytest.raises(ValidationError, match="already exists"):
            db.create_plan("Launch")

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name_rejected(self, db: PlanDB, name: str) -> None:
        with pytest.raises(ValidationError, match="cannot be empty"):
            db.create_plan(name)

    def test_multiline_name_rejected(self, db: PlanDB) -> None:
        with pytest.raises(ValidationError, match="control characters"):
            db.create_plan("Alpha\nBeta")
        assert db.list_plans() == []

    def test_list_in_creation_order(self, db: PlanDB) -> None:
        db.create_plan("B")
        db.create_plan("A")
        assert [p.name for p in db.list_plans()] == ["B", "A"]


class TestGetPlan:
    def test_missing_plan_raises_not_found(self, db: PlanDB) -> None:
        with pytest.raises(NotFoundError, match="Plan not found: 999"):
            db.get_plan(999)

    def test_not_found_is_a_key_error(self, db: PlanDB) -> None:
        with pytest.raises(KeyError):
            db.get_plan(999)

    def test_get_by_name(self, db: PlanDB) -> None:
        plan = db.create_plan("Launch")
        found = db.get_plan_by_name("Launch")
        assert found is not None
        assert found.id == plan.id
        assert db.get_plan_by_name("Nope") is None


class TestUpdatePlan:
    def test_update_fields(self, db: PlanDB) -> None:
        plan = db.create_plan("Launch")
        updated = db.update_plan(plan.id, description="New", completed=True)
        assert updated.description == "New"
        assert updated.completed is True
        assert updated.name == "Launch"

    def test_rename(self, db: PlanDB) -> None:
        plan = db.create_plan("Launch")
        assert db.update_plan(plan.id, name="Relaunch").name == "Relaunch"
        assert db.get_plan_by_name("Launch") is None

    def test_rename_onto_existing_name_rejected(self, db: PlanDB) -> None:
        db.create_plan("A")
        b = db.create_plan("B")
        with pytest.raises(ValidationError, match="already exists"):
            db.update_plan(b.id, name="A")

    def test_empty_update_rejected(self, db: PlanDB) -> None:
        plan = db.create_plan("Launch")
        with pytest.raises(ValidationError, match="No fields to update"):
            db.update_plan(plan.id)

    def test_update_missing_plan(self, db: PlanDB) -> None:
        with pytest.raises(NotFoundError):
            db.update_plan(42, description="x")


class TestUpsertPlan:
    def test_upsert_creates_then_overwrites(self, db: PlanDB) -> None:
        first = db.upsert_plan("Launch", description="one")
        second = db.upsert_plan("Launch", description="two", completed=True)
        assert first.id == second.id
        assert second.description == "two"
        assert second.completed is True
        assert len(db.list_plans()) == 1


class TestDeletePlan:
    def test_delete_removes_everything_it_owns(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        populated_db.delete_plan(ids["plan"])

        conn = populated_db.conn
        assert populated_db.list_plans() == []
        for table in ("tasks", "facts", "task_dependencies", "fact_links", "task_events"):
            assert conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 0, table

    def test_delete_leaves_other_plans_alone(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        other = populated_db.create_plan("Other")
        kept = populated_db.create_task(other.id, "Keep me")
        populated_db.delete_plan(ids["plan"])
        assert populated_db.get_task(kept.id).name == "Keep me"

    def test_delete_missing_plan(self, db: PlanDB) -> None:
        with pytest.raises(NotFoundError):
            db.delete_plan(1)
