from __future__ import annotations

from typing import Iterable

from orchestration.core.schema import PRIORITY_ORDER, ScheduleOptions
from orchestration.domain import WorkItem


def _sort_key(item: WorkItem, options: ScheduleOptions) -> tuple:
    if options.optimize_for_sla:
        if item.sla_deadline is not None:
            sla_key: tuple = (0, item.sla_deadline.timestamp())
        else:
            sla_key = (1, 0.0)
    else:
        sla_key = ()
    duration_key = item.duration_minutes if options.optimize_for_capacity else 0
    return (*sla_key, PRIORITY_ORDER[item.priority], duration_key)


def sort_work_items(items: Iterable[WorkItem], options: ScheduleOptions) -> list[WorkItem]:
    """Return items in placement order.

    Deadline first (only with ``optimize_for_sla``), then priority tier, then shorter
    duration (only with ``optimize_for_capacity``). The sort is stable, so remaining
    ties keep input order.
    """

    return sorted(items, key=lambda item: _sort_key(item, options))
