"""Shared CLI helpers used by ``cli.py`` and ``cli_commands/*.py``.

Provides ``get_db()`` plus the error/JSON output helpers so every command
reports failures the same way without circular imports.
"""

from __future__ import annotations

import json as json_mod
import os
import sys
from typing import Any, NoReturn

import click

from plansync.core import DB_PATH_ENV, PLANSYNC_DIR_NAME, PlanDB, find_plansync_root, resolve_db_path
from plansync.operations import OpResult, resolve_plan


def get_db() -> PlanDB:
    """Discover .plansync/ (or honour $PLANSYNC_DB_PATH) and return an initialized PlanDB."""
    if os.environ.get(DB_PATH_ENV):
        db = PlanDB(resolve_db_path(None))
    else:
        try:
            plansync_dir = find_plansync_root()
        except FileNotFoundError:
            click.echo(f"No {PLANSYNC_DIR_NAME}/ found. Run 'plansync init' first.", err=True)
            sys.exit(1)
        db = PlanDB(resolve_db_path(plansync_dir))
    db.initialize()
    return db


def echo_json(data: Any) -> None:
    click.echo(json_mod.dumps(data, indent=2, default=str))


def fail(result: OpResult[Any], as_json: bool) -> NoReturn:
    """Report a failed operation and exit 1."""
    if as_json:
        echo_json(result.to_error_dict())
    else:
        click.echo(f"Error: {result.error}", err=True)
        valid = (result.details or {}).get("valid_transitions")
        if valid is not None:
            click.echo(f"Valid transitions: {', '.join(valid) or '(none)'}", err=True)
    sys.exit(1)


def plan_id_or_exit(db: PlanDB, ref: str, as_json: bool = False) -> int:
    """Resolve a plan id-or-name argument, exiting with an error if it does not exist."""
    result = resolve_plan(db, ref)
    if not result.ok:
        fail(result, as_json)
    return result.unwrap()
