"""Tests for lessons: creation, scoping, confidence, search, and cascades."""

from __future__ import annotations

import pytest

from plansync.core import PlanDB
from plansync.errors import NotFoundError, ValidationError


class TestCreateLesson:
    def test_defaults(self, db: PlanDB) -> None:
        lesson = db.create_lesson("technique", "Pin dependency versions")
        assert lesson.lesson_type == "technique"
        assert lesson.confidence == 0.5
        assert lesson.times_validated == 0
        assert lesson.plan_id is None
        assert lesson.task_id is None
        assert db.get_lesson(lesson.id) == lesson

    def test_task_scope_implies_plan(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        lesson = populated_db.create_lesson("failure_pattern", "Skipped the design review", task_id=ids["design"])
        assert lesson.plan_id == ids["plan"]
        assert lesson.task_id == ids["design"]

    def test_task_from_another_plan_rejected(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        other = populated_db.create_plan("Other")
        with pytest.raises(ValidationError, match="does not belong"):
            populated_db.create_lesson("constraint", "x", plan_id=other.id, task_id=ids["design"])

    def test_unknown_scope_rejected(self, db: PlanDB) -> None:
        with pytest.raises(NotFoundError):
            db.create_lesson("technique", "x", plan_id=99)
        with pytest.raises(NotFoundError):
            db.create_lesson("technique", "x", task_id=99)

    def test_invalid_type(self, db: PlanDB) -> None:
        with pytest.raises(ValidationError, match="Invalid lesson type"):
            db.create_lesson("hunch", "x")

    @pytest.mark.parametrize("confidence", [-0.1, 1.5, True, "0.5"])
    def test_invalid_confidence(self, db: PlanDB, confidence: object) -> None:
        with pytest.raises(ValidationError, match="Confidence"):
            db.create_lesson("technique", "x", confidence=confidence)  # type: ignore[arg-type]

    def test_blank_content_rejected(self, db: PlanDB) -> None:
        with pytest.raises(ValidationError, match="Lesson content cannot be empty"):
            db.create_lesson("technique", "   ")

    def test_multiline_content_kept(self, db: PlanDB) -> None:
        lesson = db.create_lesson("technique", "Step one\nStep two", trigger_condition="before release")
        assert db.get_lesson(lesson.id).content == "Step one\nStep two"

    def test_missing_lesson(self, db: PlanDB) -> None:
        with pytest.raises(NotFoundError, match="Lesson not found"):
            db.get_lesson(1)


class TestListLessons:
    def test_ordered_by_confidence_then_validations(self, db: PlanDB) -> None:
        low = db.create_lesson("technique", "low", confidence=0.2)
        high = db.create_lesson("technique", "high", confidence=0.9)
        tied = db.create_lesson("constraint", "tied", confidence=0.2)
        db.validate_lesson(tied.id, boost=0.0)
        assert [lesson.id for lesson in db.list_lessons()] == [high.id, tied.id, low.id]

    def test_filters(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        populated_db.create_lesson("technique", "global", confidence=0.9)
        scoped = populated_db.create_lesson("constraint", "scoped", plan_id=ids["plan"], confidence=0.4)
        on_task = populated_db.create_lesson("technique", "on task", task_id=ids["build"], confidence=0.7)

        assert [lesson.id for lesson in populated_db.list_lessons(plan_id=ids["plan"])] == [on_task.id, scoped.id]
        assert [lesson.id for lesson in populated_db.list_lessons(task_id=ids["build"])] == [on_task.id]
        assert [lesson.id for lesson in populated_db.list_lessons(lesson_type="constraint")] == [scoped.id]
        in_band = populated_db.list_lessons(min_confidence=0.4, max_confidence=0.7)
        assert [lesson.id for lesson in in_band] == [on_task.id, scoped.id]

    def test_unknown_plan(self, db: PlanDB) -> None:
        with pytest.raises(NotFoundError):
            db.list_lessons(plan_id=5)


class TestConfidence:
    def test_validate_raises_confidence_and_counts(self, db: PlanDB) -> None:
        lesson = db.create_lesson("success_pattern", "Small PRs", confidence=0.5)
        updated = db.validate_lesson(lesson.id)
        assert updated.confidence == pytest.approx(0.6)
        assert updated.times_validated == 1

    def test_validate_caps_at_one(self, db: PlanDB) -> None:
        lesson = db.create_lesson("success_pattern", "Small PRs", confidence=0.95)
        assert db.validate_lesson(lesson.id, boost=0.2).confidence == 1.0

    def test_invalidate_floors_at_zero(self, db: PlanDB) -> None:
        lesson = db.create_lesson("failure_pattern", "Big bang merges", confidence=0.05)
        updated = db.invalidate_lesson(lesson.id)
        assert updated.confidence == 0.0
        assert updated.times_validated == 0

    def test_missing_lesson(self, db: PlanDB) -> None:
        with pytest.raises(NotFoundError):
            db.validate_lesson(3)
        with pytest.raises(NotFoundError):
            db.invalidate_lesson(3)


class TestSearchLessons:
    def test_matches_trigger_and_content(self, db: PlanDB) -> None:
        by_trigger = db.create_lesson("constraint", "Rate limit is 10/s", trigger_condition="calling the billing api")
        by_content = db.create_lesson("technique", "Mock the billing client in tests")
        db.create_lesson("technique", "Unrelated")
        found = {lesson.id for lesson in db.search_lessons("billing")}
        assert found == {by_trigger.id, by_content.id}

    def test_prefix_match(self, db: PlanDB) -> None:
        lesson = db.create_lesson("technique", "Deployment needs a migration step")
        assert [x.id for x in db.search_lessons("deploy")] == [lesson.id]

    def test_min_confidence(self, db: PlanDB) -> None:
        db.create_lesson("technique", "cache warmup", confidence=0.1)
        strong = db.create_lesson("technique", "cache invalidation", confidence=0.8)
        assert [x.id for x in db.search_lessons("cache", min_confidence=0.5)] == [strong.id]

    def test_blank_query(self, db: PlanDB) -> None:
        with pytest.raises(ValidationError, match="cannot be empty"):
            db.search_lessons("  ")

    def test_search_follows_edits_and_deletes(self, db: PlanDB) -> None:
        lesson = db.create_lesson("technique", "retry with backoff")
        db.delete_lesson(lesson.id)
        assert db.search_lessons("backoff") == []


class TestLessonCascades:
    def test_deleting_task_keeps_lesson_without_task(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        lesson = populated_db.create_lesson("technique", "docs first", task_id=ids["docs"])
        populated_db.delete_task(ids["docs"])
        kept = populated_db.get_lesson(lesson.id)
        assert kept.task_id is None
        assert kept.plan_id == ids["plan"]

    def test_deleting_plan_deletes_its_lessons(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        scoped = populated_db.create_lesson("technique", "scoped", task_id=ids["build"])
        unscoped = populated_db.create_lesson("technique", "global")
        populated_db.delete_plan(ids["plan"])
        with pytest.raises(NotFoundError):
            populated_db.get_lesson(scoped.id)
        assert populated_db.get_lesson(unscoped.id).content == "global"

    def test_import_removing_task_keeps_lesson(self, populated_db: PlanDB) -> None:
        ids = populated_db._test_ids  # type: ignore[attr-defined]
        lesson = populated_db.create_lesson("constraint", "docs need review", task_id=ids["docs"])
        populated_db.import_document({"plan": {"name": "Launch"}, "tasks": [{"name": "Design"}], "facts": []})
        assert populated_db.get_lesson(lesson.id).task_id is None

    def test_delete_lesson(self, db: PlanDB) -> None:
        lesson = db.create_lesson("technique", "x")
        db.delete_lesson(lesson.id)
        with pytest.raises(NotFoundError):
            db.delete_lesson(lesson.id)
