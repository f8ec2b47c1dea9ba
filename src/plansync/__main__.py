"""Allow ``python -m plansync``."""

from plansync.cli import cli

cli()
