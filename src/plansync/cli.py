"""CLI for plansync.

Convention-based: discovers .plansync/ by walking up from cwd, unless
$PLANSYNC_DB_PATH names a database file directly.

Usage:
    plansync init                                   # Initialize .plansync/ in cwd
    plansync plan create "Launch" -d "Q3 launch"    # Create a plan
    plansync plan show Launch                       # Plan, tasks, facts, progress
    plansync task create Launch "Write docs" -p 10  # Add a task
    plansync task start 3                           # pending -> in_progress
    plansync add-dep 3 4                            # task 3 blocks task 4
    plansync ready Launch                           # Ready tasks by priority
    plansync next Launch                            # The single next task
    plansync export Launch plan.md                  # Write Markdown document
    plansync import plan.md                         # Sync document into the store
    plansync search "docs"                          # Full-text search
    plansync lesson add technique "Pin versions"    # Record a lesson
    plansync trace add 3 thought "Check the docs"   # Log a reasoning step
"""

from __future__ import annotations

import click

from plansync import __version__
from plansync.cli_commands import admin, facts, lessons, planning, plans, sync, tasks, traces


@click.group()
@click.version_option(version=__version__, prog_name="plansync")
@click.option("--actor", default="cli", help="Actor identity for audit trail (default: cli)")
@click.pass_context
def cli(ctx: click.Context, actor: str) -> None:
    """plansync: task plans with dependencies and Markdown sync."""
    ctx.ensure_object(dict)
    ctx.obj["actor"] = actor


for _module in (admin, plans, tasks, facts, planning, sync, lessons, traces):
    _module.register(cli)


if __name__ == "__main__":
    cli()
