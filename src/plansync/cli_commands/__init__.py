"""CLI command modules. Each exposes ``register(cli)``."""
