import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from orchestration.core.ids import SequentialIdGenerator, fixed_clock
from orchestration.core.schema import (
    AlertInput,
    CapacityWindowInput,
    OperatorAvailability,
    Scope,
    TaskInput,
    TimeRange,
)

T0 = datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc)
NOW = datetime(2025, 1, 6, 7, 0, tzinfo=timezone.utc)


def at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


@pytest.fixture()
def ids():
    return SequentialIdGenerator()


@pytest.fixture()
def clock():
    return fixed_clock(NOW)


@pytest.fixture()
def scope():
    return Scope(tenant_id="tenant-a", facility_id="facility-1")


@pytest.fixture()
def time_range():
    return TimeRange(start=T0, end=at(8 * 60))


@pytest.fixture()
def make_task(scope):
    def _make(task_id: str, priority: str = "medium", duration: int = 30, **kwargs) -> TaskInput:
        kwargs.setdefault("scope", scope)
        return TaskInput(
            task_id=task_id,
            priority=priority,
            description=kwargs.pop("description", f"task {task_id}"),
            estimated_duration_minutes=duration,
            **kwargs,
        )

    return _make


@pytest.fixture()
def make_alert(scope):
    def _make(alert_id: str, severity: str = "high", duration: int = 20, follow_up: bool = True, **kwargs) -> AlertInput:
        kwargs.setdefault("scope", scope)
        return AlertInput(
            alert_id=alert_id,
            severity=severity,
            description=f"alert {alert_id}",
            requires_follow_up=follow_up,
            estimated_resolution_minutes=duration,
            **kwargs,
        )

    return _make


@pytest.fixture()
def make_operator(scope):
    def _make(operator_id: str, minutes: int = 120, start: float = 0, workload: float = 0, **kwargs) -> OperatorAvailability:
        kwargs.setdefault("scope", scope)
        return OperatorAvailability(
            operator_id=operator_id,
            operator_name=kwargs.pop("operator_name", operator_id.upper()),
            available_from=at(start),
            available_until=at(start + minutes),
            current_workload=workload,
            max_capacity=4,
            **kwargs,
        )

    return _make


@pytest.fixture()
def make_window(scope):
    def _make(window_id: str, start: float, end: float, risk: str = "low") -> CapacityWindowInput:
        return CapacityWindowInput(
            window_id=window_id,
            window_start=at(start),
            window_end=at(end),
            projected_capacity=70,
            recommended_workload=5,
            risk_level=risk,
            scope=scope,
        )

    return _make
