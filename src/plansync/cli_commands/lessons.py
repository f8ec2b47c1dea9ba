"""CLI commands for lessons: lesson add/list/show/validate/invalidate/delete/search."""

from __future__ import annotations

import click

from plansync.cli_common import echo_json, fail, get_db, plan_id_or_exit
from plansync.core import Lesson
from plansync.operations import attempt
from plansync.validation import VALID_LESSON_TYPES

_CONFIDENCE = click.FloatRange(0.0, 1.0)


def _line(lesson: Lesson) -> str:
    scope = f" task {lesson.task_id}" if lesson.task_id is not None else ""
    if lesson.plan_id is not None:
        scope = f" plan {lesson.plan_id}{scope}"
    when = f" [when: {lesson.trigger_condition}]" if lesson.trigger_condition else ""
    return f"{lesson.id:>4} {lesson.confidence:.2f} {lesson.lesson_type:<15}{scope}{when} {lesson.content}"


@click.group("lesson")
def lesson_group() -> None:
    """Record and weigh lessons learned."""


@lesson_group.command("add")
@click.argument("lesson_type", type=click.Choice(sorted(VALID_LESSON_TYPES)))
@click.argument("content")
@click.option("--plan", "plan_ref", default=None, help="Plan id or name the lesson belongs to")
@click.option("--task", "task_id", type=int, default=None, help="Task the lesson was learned on")
@click.option("--when", "trigger_condition", default="", help="Situation in which the lesson applies")
@click.option("--confidence", type=_CONFIDENCE, default=0.5, show_default=True, help="Initial confidence")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add(
    lesson_type: str,
    content: str,
    plan_ref: str | None,
    task_id: int | None,
    trigger_condition: str,
    confidence: float,
    as_json: bool,
) -> None:
    """Record a lesson."""
    with get_db() as db:
        plan_id = plan_id_or_exit(db, plan_ref, as_json) if plan_ref is not None else None
        result = attempt(
            db.create_lesson,
            lesson_type,
            content,
            plan_id=plan_id,
            task_id=task_id,
            trigger_condition=trigger_condition,
            confidence=confidence,
        )
        if not result.ok:
            fail(result, as_json)
        lesson = result.unwrap()
        if as_json:
            echo_json(lesson.to_dict())
        else:
            click.echo(f"Created lesson {lesson.id} ({lesson.lesson_type}, confidence {lesson.confidence:.2f})")


@lesson_group.command("list")
@click.option("--plan", "plan_ref", default=None, help="Only lessons for this plan")
@click.option("--task", "task_id", type=int, default=None, help="Only lessons for this task")
@click.option("--type", "lesson_type", type=click.Choice(sorted(VALID_LESSON_TYPES)), default=None)
@click.option("--min-confidence", type=_CONFIDENCE, default=None)
@click.option("--max-confidence", type=_CONFIDENCE, default=None)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_lessons(
    plan_ref: str | None,
    task_id: int | None,
    lesson_type: str | None,
    min_confidence: float | None,
    max_confidence: float | None,
    as_json: bool,
) -> None:
    """List lessons, most trusted first."""
    with get_db() as db:
        plan_id = plan_id_or_exit(db, plan_ref, as_json) if plan_ref is not None else None
        result = attempt(
            db.list_lessons,
            plan_id=plan_id,
            task_id=task_id,
            lesson_type=lesson_type,
            min_confidence=min_confidence,
            max_confidence=max_confidence,
        )
        if not result.ok:
            fail(result, as_json)
        lessons = result.unwrap()
        if as_json:
            echo_json([lesson.to_dict() for lesson in lessons])
            return
        for lesson in lessons:
            click.echo(_line(lesson))
        click.echo(f"\n{len(lessons)} lessons")


@lesson_group.command("show")
@click.argument("lesson_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(lesson_id: int, as_json: bool) -> None:
    """Show one lesson."""
    with get_db() as db:
        result = attempt(db.get_lesson, lesson_id)
        if not result.ok:
            fail(result, as_json)
        lesson = result.unwrap()
        if as_json:
            echo_json(lesson.to_dict())
            return
        click.echo(f"Lesson {lesson.id}: {lesson.lesson_type}")
        click.echo(f"  Confidence: {lesson.confidence:.2f} (validated {lesson.times_validated}x)")
        if lesson.plan_id is not None:
            click.echo(f"  Plan: {lesson.plan_id}")
        if lesson.task_id is not None:
            click.echo(f"  Task: {lesson.task_id}")
        if lesson.trigger_condition:
            click.echo(f"  When: {lesson.trigger_condition}")
        click.echo(f"\n{lesson.content}")


@lesson_group.command("validate")
@click.argument("lesson_id", type=int)
@click.option("--boost", type=_CONFIDENCE, default=0.1, show_default=True, help="Confidence to add")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def validate(lesson_id: int, boost: float, as_json: bool) -> None:
    """Mark a lesson as having held true."""
    with get_db() as db:
        result = attempt(db.validate_lesson, lesson_id, boost=boost)
        if not result.ok:
            fail(result, as_json)
        lesson = result.unwrap()
        if as_json:
            echo_json(lesson.to_dict())
        else:
            click.echo(f"Lesson {lesson.id}: confidence {lesson.confidence:.2f}, validated {lesson.times_validated}x")


@lesson_group.command("invalidate")
@click.argument("lesson_id", type=int)
@click.option("--penalty", type=_CONFIDENCE, default=0.1, show_default=True, help="Confidence to remove")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def invalidate(lesson_id: int, penalty: float, as_json: bool) -> None:
    """Mark a lesson as having misled."""
    with get_db() as db:
        result = attempt(db.invalidate_lesson, lesson_id, penalty=penalty)
        if not result.ok:
            fail(result, as_json)
        lesson = result.unwrap()
        if as_json:
            echo_json(lesson.to_dict())
        else:
            click.echo(f"Lesson {lesson.id}: confidence {lesson.confidence:.2f}")


@lesson_group.command("delete")
@click.argument("lesson_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def delete(lesson_id: int, as_json: bool) -> None:
    """Delete a lesson."""
    with get_db() as db:
        result = attempt(db.delete_lesson, lesson_id)
        if not result.ok:
            fail(result, as_json)
        if as_json:
            echo_json({"status": "deleted", "id": lesson_id})
        else:
            click.echo(f"Deleted lesson {lesson_id}")


@lesson_group.command("search")
@click.argument("query")
@click.option("--min-confidence", type=_CONFIDENCE, default=0.0)
@click.option("--limit", type=click.IntRange(1, 100), default=50, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def search(query: str, min_confidence: float, limit: int, as_json: bool) -> None:
    """Find lessons whose trigger or content matches QUERY."""
    with get_db() as db:
        result = attempt(db.search_lessons, query, min_confidence=min_confidence, limit=limit)
        if not result.ok:
            fail(result, as_json)
        lessons = result.unwrap()
        if as_json:
            echo_json([lesson.to_dict() for lesson in lessons])
            return
        for lesson in lessons:
            click.echo(_line(lesson))
        if not lessons:
            click.echo("No matching lessons.")


def register(cli: click.Group) -> None:
    """Attach the ``lesson`` group to the top-level group."""
    cli.add_command(lesson_group)
