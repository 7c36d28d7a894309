"""Run-scoped domain entities for a single scheduling run."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from orchestration.core.schema import Scope


@dataclass(frozen=True, slots=True)
class WorkItem:
    """Uniform representation of a task or an alert requiring follow-up."""

    id: str
    category: str
    priority: str
    description: str
    duration_minutes: int
    scope: Scope
    sla_deadline: datetime | None = None
    assigned_operator_id: str | None = None

    def end_if_started_at(self, start: datetime) -> datetime:
        return start + timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True, slots=True)
class OperatorLoad:
    """Immutable view of an operator's run state, handed to the scorer."""

    current_time: datetime
    total_minutes: int
    utilization: float


@dataclass(slots=True)
class OperatorRunState:
    """Simulated clock and workload of one operator, owned by the slot builder."""

    current_time: datetime
    total_minutes: int = 0
    utilization: float = 0.0

    def snapshot(self) -> OperatorLoad:
        return OperatorLoad(
            current_time=self.current_time,
            total_minutes=self.total_minutes,
            utilization=self.utilization,
        )

    def advance(self, end: datetime, minutes: int, utilization: float) -> None:
        self.current_time = end
        self.total_minutes += minutes
        self.utilization = utilization
