"""Tests for facts and fact-to-task links."""

from __future__ import annotations

import pytest

from plansync.core import PlanDB
from plansync.errors import NotFoundError, ValidationError


class TestFactCrud:
    def test_create_and_list(self, db: PlanDB) -> None:
        plan = db.create_plan("P")
        db.create_fact(plan.id, "Stack", description="Python", content="3.11+")
        db.create_fact(plan.id, "Host")
        facts = db.list_facts(plan.id)
        assert [f.name for f in facts] == ["Stack", "Host"]
        assert facts[0].content == "3.11+"

    def test_duplicate_name_rejected(self, db: PlanDB) -> None:
        plan = db.create_plan("P")
        db.create_fact(plan.id, "Stack")
        with pytest.raises(ValidationError, match="already exists"):
            db.create_fact(plan.id, "Stack")

    def test_update(self, db: PlanDB) -> None:
        plan = db.create_plan("P")
        fact = db.create_fact(plan.id, "Stack")
        updated = db.update_fact(fact.id, name="Tech stack", content="sqlite")
        assert (updated.name, updated.content) == ("Tech stack", "sqlite")

    def test_empty_update_rejected(self, db: PlanDB) -> None:
        plan = db.create_plan("P")
        fact = db.create_fact(plan.id, "Stack")
        with pytest.raises(ValidationError, match="No fields"):
            db.update_fact(fact.id)

    def test_delete_removes_links(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        populated_db.delete_fact(ids["stack"])
        with pytest.raises(NotFoundError, match="Fact not found"):
            populated_db.get_fact(ids["stack"])
        assert populated_db.get_task_facts(ids["build"]) == []

    def test_upsert(self, db: PlanDB) -> None:
        plan = db.create_plan("P")
        first = db.upsert_fact(plan.id, "Stack", description="one")
        second = db.upsert_fact(plan.id, "Stack", description="two")
        assert first.id == second.id
        assert second.description == "two"


class TestFactLinks:
    def test_link_and_query(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        links = populated_db.get_fact_links(ids["stack"])
        assert [(link["task_name"], link["link_type"]) for link in links] == [("Build", "informs")]
        assert [f.name for f in populated_db.get_task_facts(ids["build"])] == ["Stack"]

    def test_duplicate_link_returns_false(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert populated_db.link_fact(ids["stack"], ids["build"]) is False
        assert populated_db.link_fact(ids["stack"], ids["build"], "required_context") is True

    def test_bad_link_type(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        with pytest.raises(ValidationError, match="Invalid link type"):
            populated_db.link_fact(ids["stack"], ids["docs"], "relates")

    def test_cross_plan_link_rejected(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        other = populated_db.create_plan("Other")
        task = populated_db.create_task(other.id, "T")
        with pytest.raises(ValidationError, match="different plans"):
            populated_db.link_fact(ids["stack"], task.id)

    def test_unlink(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        assert populated_db.unlink_fact(ids["stack"], ids["build"], "blocks") is False
        assert populated_db.unlink_fact(ids["stack"], ids["build"]) is True
        assert populated_db.get_fact_links(ids["stack"]) == []
