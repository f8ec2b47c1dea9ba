"""MCP tool definitions and handlers, one module per domain.

Each module exposes ``register() -> (tools, handlers)``; ``mcp_server``
aggregates them.
"""
