from __future__ import annotations

from typing import Sequence

from orchestration.core.rules import DEFAULT_RULES, ScoringRules
from orchestration.core.schema import (
    CATEGORIES,
    CategorySummary,
    OperatorAvailability,
    OperatorSummary,
    OrchestrationSchedule,
    OrchestrationSlot,
    ResultSummary,
)


def summarize_operators(
    slots: Sequence[OrchestrationSlot],
    operators: Sequence[OperatorAvailability],
    rules: ScoringRules = DEFAULT_RULES,
) -> list[OperatorSummary]:
    summaries: list[OperatorSummary] = []
    for operator in operators:
        operator_slots = [slot for slot in slots if slot.operator_id == operator.operator_id]
        total_minutes = sum(slot.duration_minutes for slot in operator_slots)
        at_risk = [
            slot
            for slot in operator_slots
            if slot.sla_buffer is not None and slot.sla_buffer < rules.sla_risk_buffer_minutes
        ]
        summaries.append(
            OperatorSummary(
                operator_id=operator.operator_id,
                operator_name=operator.operator_name,
                total_slots=len(operator_slots),
                total_work_minutes=total_minutes,
                capacity_utilization=total_minutes / operator.available_minutes * 100,
                sla_risk=len(at_risk) / len(operator_slots) * 100 if operator_slots else 0,
            )
        )
    return summaries


def summarize_categories(slots: Sequence[OrchestrationSlot]) -> dict[str, CategorySummary]:
    summary = {category: CategorySummary() for category in CATEGORIES}
    for slot in slots:
        entry = summary[slot.category]
        entry.total_slots += 1
        entry.total_work_minutes += slot.duration_minutes
        if slot.priority == "critical":
            entry.critical_count += 1
        elif slot.priority == "high":
            entry.high_count += 1
    return summary


def sla_risk_score(slots: Sequence[OrchestrationSlot], rules: ScoringRules = DEFAULT_RULES) -> float:
    """0-100: at-risk slots weigh 50, breached slots weigh another 100."""

    with_deadline = [slot for slot in slots if slot.sla_deadline is not None and slot.sla_buffer is not None]
    if not with_deadline:
        return 0.0
    at_risk = sum(1 for slot in with_deadline if slot.sla_buffer < rules.sla_risk_buffer_minutes)
    breached = sum(1 for slot in with_deadline if slot.sla_buffer < 0)
    return min((at_risk * 50 + breached * 100) / len(with_deadline), 100.0)


def summarize_result(schedule: OrchestrationSchedule, rules: ScoringRules = DEFAULT_RULES) -> ResultSummary:
    slots = schedule.slots
    return ResultSummary(
        total_slots=len(slots),
        total_conflicts=len(schedule.conflicts),
        critical_conflicts=sum(1 for conflict in schedule.conflicts if conflict.severity == "critical"),
        total_recommendations=len(schedule.recommendations),
        average_capacity_utilization=(
            sum(slot.capacity_utilization for slot in slots) / len(slots) if slots else 0
        ),
        sla_risk_score=sla_risk_score(slots, rules),
    )
