"""Domain layer definitions."""

from .work_items import OperatorLoad, OperatorRunState, WorkItem

__all__ = [
    "OperatorLoad",
    "OperatorRunState",
    "WorkItem",
]
