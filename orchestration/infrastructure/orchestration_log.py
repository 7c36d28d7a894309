"""Infrastructure layer for the orchestration audit log."""
from __future__ import annotations

import json
from collections import Counter
from datetime import datetime, timedelta
from typing import Protocol

import pandas as pd

from orchestration.core.ids import Clock, IdGenerator, UUIDIdGenerator, utc_now
from orchestration.core.schema import (
    CapacityMetrics,
    ConflictDistribution,
    LogEntry,
    OrchestrationConflict,
    OrchestrationRecommendation,
    OrchestrationSchedule,
    OrchestrationStatistics,
    PolicyDecision,
    SLAMetrics,
    Scope,
    Trends,
)

DEFAULT_MAX_ENTRIES = 10_000
UNDERUTILIZED_BELOW = 50.0
OVERUTILIZED_ABOVE = 100.0
SLA_AT_RISK_MINUTES = 60.0

CSV_COLUMNS = ["Entry ID", "Entry Type", "Timestamp", "Tenant ID", "Details"]


class OrchestrationLogRepository(Protocol):
    """Persistence contract for the orchestration log."""

    def log_schedule_generated(self, schedule: OrchestrationSchedule) -> LogEntry: ...

    def log_conflict_detected(self, conflict: OrchestrationConflict) -> LogEntry: ...

    def log_recommendation_generated(self, recommendation: OrchestrationRecommendation) -> LogEntry: ...

    def log_policy_decision(self, query_id: str, decision: PolicyDecision) -> LogEntry: ...

    def log_error(self, scope: Scope, error_code: str, message: str, details: dict | None = None) -> LogEntry: ...

    def get_entries(
        self,
        *,
        entry_type: str | None = None,
        tenant_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[LogEntry]: ...

    def find_schedule(self, schedule_id: str) -> OrchestrationSchedule | None: ...

    def get_statistics(self) -> OrchestrationStatistics: ...

    def export_json(self, entries: list[LogEntry] | None = None) -> str: ...

    def export_csv(self, entries: list[LogEntry] | None = None) -> str: ...

    def clear_old_entries(self, retention_days: int = 30) -> int: ...

    def reset(self) -> None: ...


def _percent_change(current: int, previous: int) -> float:
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


def _entry_details(entry: LogEntry) -> str:
    if entry.entry_type == "schedule-generated":
        return f"{entry.slots_generated} slots, {entry.conflicts_detected} conflicts"
    if entry.entry_type == "conflict-detected" and entry.conflict is not None:
        return f"{entry.conflict.conflict_type} - {entry.conflict.severity}"
    if entry.entry_type == "recommendation-generated" and entry.recommendation is not None:
        return f"{entry.recommendation.recommendation_type} - {entry.recommendation.description}"
    if entry.entry_type == "policy-decision":
        return f"{'Allowed' if entry.allowed else 'Denied'} - {entry.reason}"
    if entry.entry_type == "error":
        return f"{entry.error_code} - {entry.message}"
    return ""


class InMemoryOrchestrationLog:
    """Bounded in-memory log; the oldest entry is evicted once the limit is hit."""

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self._entries: list[LogEntry] = []
        self._max_entries = max_entries
        self._clock = clock or utc_now
        self._ids = id_generator or UUIDIdGenerator()

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _append(self, entry_type: str, **fields) -> LogEntry:
        entry = LogEntry(
            entry_id=self._ids.next_id("entry"),
            entry_type=entry_type,
            timestamp=self._clock(),
            **fields,
        )
        self._entries.append(entry)
        if len(self._entries) > self._max_entries:
            del self._entries[0]
        return entry

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def log_schedule_generated(self, schedule: OrchestrationSchedule) -> LogEntry:
        return self._append(
            "schedule-generated",
            schedule=schedule,
            slots_generated=len(schedule.slots),
            conflicts_detected=len(schedule.conflicts),
        )

    def log_conflict_detected(self, conflict: OrchestrationConflict) -> LogEntry:
        return self._append("conflict-detected", conflict=conflict)

    def log_recommendation_generated(self, recommendation: OrchestrationRecommendation) -> LogEntry:
        return self._append("recommendation-generated", recommendation=recommendation)

    def log_policy_decision(self, query_id: str, decision: PolicyDecision) -> LogEntry:
        return self._append(
            "policy-decision",
            query_id=query_id,
            scope=decision.scope,
            allowed=decision.allowed,
            reason=decision.reason,
            violations=list(decision.violations),
            warnings=list(decision.warnings),
        )

    def log_error(self, scope: Scope, error_code: str, message: str, details: dict | None = None) -> LogEntry:
        return self._append("error", scope=scope, error_code=error_code, message=message, details=details or {})

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_entries(
        self,
        *,
        entry_type: str | None = None,
        tenant_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[LogEntry]:
        filtered = list(self._entries)
        if entry_type:
            filtered = [entry for entry in filtered if entry.entry_type == entry_type]
        if tenant_id:
            filtered = [entry for entry in filtered if entry.tenant_id == tenant_id]
        if start_date is not None:
            filtered = [entry for entry in filtered if entry.timestamp >= start_date]
        if end_date is not None:
            filtered = [entry for entry in filtered if entry.timestamp <= end_date]
        if limit:
            filtered = filtered[-limit:]
        return filtered

    def find_schedule(self, schedule_id: str) -> OrchestrationSchedule | None:
        for entry in reversed(self._entries):
            if entry.schedule is not None and entry.schedule.schedule_id == schedule_id:
                return entry.schedule
        return None

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------
    def get_statistics(self) -> OrchestrationStatistics:
        schedule_entries = [e for e in self._entries if e.entry_type == "schedule-generated" and e.schedule]
        conflict_entries = [e for e in self._entries if e.entry_type == "conflict-detected" and e.conflict]
        recommendation_entries = [e for e in self._entries if e.entry_type == "recommendation-generated"]

        schedules = [entry.schedule for entry in schedule_entries]
        all_slots = [slot for schedule in schedules for slot in schedule.slots]

        by_category: Counter[str] = Counter()
        for schedule in schedules:
            for category, summary in schedule.category_summary.items():
                by_category[category] += summary.total_slots
        by_priority: Counter[str] = Counter({"critical": 0, "high": 0, "medium": 0, "low": 0})
        by_priority.update(slot.priority for slot in all_slots)
        by_operator = Counter(slot.operator_id for slot in all_slots)
        by_tenant = Counter(schedule.scope.tenant_id for schedule in schedules)

        conflict_types = Counter(entry.conflict.conflict_type for entry in conflict_entries)
        distribution = ConflictDistribution(
            over_capacity=conflict_types["over-capacity"],
            sla_collision=conflict_types["sla-collision"],
            operator_overload=conflict_types["operator-overload"],
            resource_unavailable=conflict_types["resource-unavailable"],
            schedule_overlap=conflict_types["schedule-overlap"],
        )

        operator_summaries = [summary for schedule in schedules for summary in schedule.operator_summary]
        capacity = CapacityMetrics(
            average_utilization=(
                sum(slot.capacity_utilization for slot in all_slots) / len(all_slots) if all_slots else 0
            ),
            peak_utilization=max((slot.capacity_utilization for slot in all_slots), default=0),
            underutilized_operators=sum(1 for s in operator_summaries if s.capacity_utilization < UNDERUTILIZED_BELOW),
            overutilized_operators=sum(1 for s in operator_summaries if s.capacity_utilization > OVERUTILIZED_ABOVE),
        )

        sla = SLAMetrics(
            slots_within_sla=sum(
                1 for slot in all_slots if slot.sla_deadline is None or (slot.sla_buffer or 0) > SLA_AT_RISK_MINUTES
            ),
            slots_at_risk=sum(
                1
                for slot in all_slots
                if slot.sla_buffer is not None and 0 <= slot.sla_buffer <= SLA_AT_RISK_MINUTES
            ),
            slots_breached=sum(1 for slot in all_slots if slot.sla_buffer is not None and slot.sla_buffer < 0),
        )

        return OrchestrationStatistics(
            total_schedules=len(schedule_entries),
            total_slots=sum(entry.slots_generated or 0 for entry in schedule_entries),
            total_conflicts=len(conflict_entries),
            total_recommendations=len(recommendation_entries),
            by_category=dict(by_category),
            by_priority=dict(by_priority),
            by_operator=dict(by_operator),
            by_tenant=dict(by_tenant),
            conflict_distribution=distribution,
            capacity_metrics=capacity,
            sla_metrics=sla,
            trends=self._trends(schedule_entries, conflict_entries),
        )

    def _trends(self, schedule_entries: list[LogEntry], conflict_entries: list[LogEntry]) -> Trends:
        now = self._clock()
        day = timedelta(days=1)

        def _split(entries: list[LogEntry]) -> tuple[list[LogEntry], list[LogEntry]]:
            current = [e for e in entries if e.timestamp > now - day]
            previous = [e for e in entries if now - 2 * day < e.timestamp <= now - day]
            return current, previous

        def _average_utilization(entries: list[LogEntry]) -> float:
            slots = [slot for entry in entries for slot in entry.schedule.slots]
            return sum(slot.capacity_utilization for slot in slots) / len(slots) if slots else 0.0

        current_schedules, previous_schedules = _split(schedule_entries)
        current_conflicts, previous_conflicts = _split(conflict_entries)
        previous_utilization = _average_utilization(previous_schedules)
        utilization_change = (
            (_average_utilization(current_schedules) - previous_utilization) / previous_utilization * 100
            if previous_utilization
            else 0.0
        )
        return Trends(
            schedules_change=_percent_change(len(current_schedules), len(previous_schedules)),
            conflicts_change=_percent_change(len(current_conflicts), len(previous_conflicts)),
            utilization_change=utilization_change,
        )

    # ------------------------------------------------------------------
    # export and maintenance
    # ------------------------------------------------------------------
    def export_json(self, entries: list[LogEntry] | None = None) -> str:
        rows = [entry.model_dump(mode="json", exclude_none=True) for entry in (entries if entries is not None else self._entries)]
        return json.dumps(rows, indent=2, ensure_ascii=False)

    def export_csv(self, entries: list[LogEntry] | None = None) -> str:
        entries = entries if entries is not None else self._entries
        if not entries:
            return ""
        df = pd.DataFrame(
            [
                [entry.entry_id, entry.entry_type, entry.timestamp.isoformat(), entry.tenant_id, _entry_details(entry)]
                for entry in entries
            ],
            columns=CSV_COLUMNS,
        )
        return df.to_csv(index=False)

    def clear_old_entries(self, retention_days: int = 30) -> int:
        cutoff = self._clock() - timedelta(days=retention_days)
        before = len(self._entries)
        self._entries = [entry for entry in self._entries if entry.timestamp >= cutoff]
        return before - len(self._entries)

    def reset(self) -> None:
        self._entries = []
