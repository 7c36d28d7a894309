from __future__ import annotations

from typing import Iterable

from orchestration.core.schema import (
    AlertInput,
    CapacityWindowInput,
    OperatorAvailability,
    TaskInput,
    TimeRange,
)


class ValidationError(Exception):
    """Raised when scheduling input is malformed."""


def validate_time_range(time_range: TimeRange) -> None:
    if time_range.end < time_range.start:
        raise ValidationError(f"time range ends ({time_range.end.isoformat()}) before it starts ({time_range.start.isoformat()})")


def validate_task(task: TaskInput) -> None:
    if task.estimated_duration_minutes < 0:
        raise ValidationError(f"task {task.task_id} has negative duration {task.estimated_duration_minutes}")


def validate_alert(alert: AlertInput) -> None:
    if alert.estimated_resolution_minutes < 0:
        raise ValidationError(f"alert {alert.alert_id} has negative duration {alert.estimated_resolution_minutes}")


def validate_operator(operator: OperatorAvailability) -> None:
    if operator.available_until <= operator.available_from:
        raise ValidationError(
            f"operator {operator.operator_id} availability window is empty or inverted "
            f"({operator.available_from.isoformat()} -> {operator.available_until.isoformat()})"
        )


def validate_capacity_window(window: CapacityWindowInput) -> None:
    if window.window_end < window.window_start:
        raise ValidationError(f"capacity window {window.window_id} ends before it starts")


def validate_inputs(
    tasks: Iterable[TaskInput],
    alerts: Iterable[AlertInput],
    operators: Iterable[OperatorAvailability],
    capacity_windows: Iterable[CapacityWindowInput],
    time_range: TimeRange,
) -> None:
    """Reject the whole run on the first malformed input."""

    validate_time_range(time_range)
    for task in tasks:
        validate_task(task)
    for alert in alerts:
        validate_alert(alert)
    seen: set[str] = set()
    for operator in operators:
        validate_operator(operator)
        if operator.operator_id in seen:
            raise ValidationError(f"duplicate operator id {operator.operator_id}")
        seen.add(operator.operator_id)
    for window in capacity_windows:
        validate_capacity_window(window)
