"""plansync: task plans with dependency scheduling and Markdown document sync."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("plansync")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from plansync.core import Fact, Plan, PlanDB, Task

__all__ = ["Fact", "Plan", "PlanDB", "Task", "__version__"]
