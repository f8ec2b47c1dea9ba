"""MCP server for plansync.

Primary interface for agents. Direct SQLite, no daemon.
Exposes plansync operations as MCP tools; the tool definitions and handlers
live in ``plansync.mcp_tools.*``.

Usage:
    plansync-mcp                              # Auto-discover .plansync/ from cwd
    plansync-mcp --project /path/to/project   # Explicit project root
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from plansync.core import DB_PATH_ENV, PLANSYNC_DIR_NAME, PlanDB, find_plansync_root, resolve_db_path
from plansync.mcp_tools import facts, lessons, planning, plans, sync, tasks, traces
from plansync.mcp_tools.common import _text

server = Server("plansync")
db: PlanDB | None = None
_plansync_dir: Path | None = None
_logger: logging.Logger | None = None


def _collect() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    all_tools: list[Tool] = []
    all_handlers: dict[str, Callable[..., Any]] = {}
    for module in (plans, tasks, facts, planning, sync, lessons, traces):
        module_tools, module_handlers = module.register()
        all_tools.extend(module_tools)
        all_handlers.update(module_handlers)
    return all_tools, all_handlers


_TOOLS, _HANDLERS = _collect()


def _get_db() -> PlanDB:
    if db is None:
        msg = "Database not initialized"
        raise RuntimeError(msg)
    return db


def _get_plansync_dir() -> Path | None:
    return _plansync_dir


def _safe_path(raw: str) -> Path:
    """Resolve a user-supplied path safely within the project root.

    Raises ValueError for paths that escape the project directory or point
    into the .plansync/ data directory.
    """
    if Path(raw).is_absolute():
        msg = f"Absolute paths not allowed: {raw}"
        raise ValueError(msg)

    plansync_dir = _get_plansync_dir()
    if plansync_dir is None:
        msg = "Project directory not initialized"
        raise ValueError(msg)

    # Resolve relative to project root (parent of .plansync/)
    base = plansync_dir.resolve().parent
    resolved = (base / raw).resolve()
    try:
        resolved.relative_to(base)
    except ValueError:
        msg = f"Path escapes project directory: {raw}"
        raise ValueError(msg) from None
    if resolved == plansync_dir.resolve() or plansync_dir.resolve() in resolved.parents:
        msg = f"Path inside {plansync_dir.name}/ not allowed: {raw}"
        raise ValueError(msg)
    return resolved


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@server.list_tools()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_tools() -> list[Tool]:
    return list(_TOOLS)


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    tracker = _get_db()
    t0 = time.monotonic()

    try:
        handler = _HANDLERS.get(name)
        if handler is None:
            result: list[TextContent] = _text({"error": f"Unknown tool: {name}", "code": "unknown_tool"})
        else:
            result = await handler(arguments)
    except Exception:
        if _logger:
            _logger.error("tool_error", extra={"tool": name, "args_data": arguments}, exc_info=True)
        raise
    else:
        duration_ms = round((time.monotonic() - t0) * 1000, 1)
        if _logger:
            _logger.info("tool_call", extra={"tool": name, "args_data": arguments, "duration_ms": duration_ms})
        return result
    finally:
        # Roll back anything a failed mutation left open; successful
        # mutations have already committed.
        if tracker.conn.in_transaction:
            tracker.conn.rollback()


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def _run(project_path: Path | None) -> None:
    global db, _plansync_dir, _logger

    if project_path:
        plansync_dir = project_path / PLANSYNC_DIR_NAME
        if not plansync_dir.is_dir():
            print(f"Error: {plansync_dir} not found. Run 'plansync init' first.", file=sys.stderr)
            sys.exit(1)
    else:
        try:
            plansync_dir = find_plansync_root()
        except FileNotFoundError:
            print(f"Error: No {PLANSYNC_DIR_NAME}/ found. Run 'plansync init' first.", file=sys.stderr)
            sys.exit(1)

    _plansync_dir = plansync_dir
    db_path = resolve_db_path(None) if os.environ.get(DB_PATH_ENV) else resolve_db_path(plansync_dir)
    db = PlanDB(db_path)
    db.initialize()

    from plansync.logging import setup_logging

    _logger = setup_logging(plansync_dir)
    _logger.info("mcp_server_start", extra={"tool": "server", "args_data": {"project": str(plansync_dir.parent)}})

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    import asyncio

    parser = argparse.ArgumentParser(description="plansync MCP server")
    parser.add_argument("--project", type=Path, default=None, help="Project root (auto-discovers .plansync/ if omitted)")
    args = parser.parse_args()

    asyncio.run(_run(args.project))


if __name__ == "__main__":
    main()
