from __future__ import annotations

from typing import Iterable

from orchestration.core.schema import AlertInput, TaskInput
from orchestration.domain import WorkItem


def collect_work_items(tasks: Iterable[TaskInput], alerts: Iterable[AlertInput]) -> list[WorkItem]:
    """Merge tasks and follow-up alerts into one list, tasks first, input order kept."""

    items: list[WorkItem] = []
    for task in tasks:
        items.append(
            WorkItem(
                id=task.task_id,
                category="task-scheduling",
                priority=task.priority,
                description=task.description,
                duration_minutes=task.estimated_duration_minutes,
                scope=task.scope,
                sla_deadline=task.sla_deadline,
                assigned_operator_id=task.assigned_operator_id,
            )
        )

    for alert in alerts:
        if not alert.requires_follow_up:
            continue
        items.append(
            WorkItem(
                id=alert.alert_id,
                category="alert-follow-up",
                priority=alert.severity,
                description=alert.description,
                duration_minutes=alert.estimated_resolution_minutes,
                scope=alert.scope,
            )
        )
    return items
