"""Heuristic improvement suggestions derived from a finished schedule.

Expected-benefit percentages are fixed labels per recommendation type, not
measured outcomes.
"""
from __future__ import annotations

from typing import Sequence

from orchestration.core.ids import Clock, IdGenerator
from orchestration.core.rules import DEFAULT_RULES, ScoringRules
from orchestration.core.schema import (
    ExpectedBenefit,
    OperatorAvailability,
    OrchestrationConflict,
    OrchestrationRecommendation,
    OrchestrationSlot,
    Scope,
)


def operator_utilization(
    slots: Sequence[OrchestrationSlot],
    operators: Sequence[OperatorAvailability],
) -> dict[str, float]:
    minutes: dict[str, int] = {}
    for slot in slots:
        minutes[slot.operator_id] = minutes.get(slot.operator_id, 0) + slot.duration_minutes
    return {
        operator.operator_id: minutes.get(operator.operator_id, 0) / operator.available_minutes * 100
        for operator in operators
    }


def recommend_rebalancing(
    slots: Sequence[OrchestrationSlot],
    operators: Sequence[OperatorAvailability],
    scope: Scope,
    *,
    id_generator: IdGenerator,
    clock: Clock,
    rules: ScoringRules = DEFAULT_RULES,
) -> OrchestrationRecommendation | None:
    utilization = operator_utilization(slots, operators)
    if not utilization:
        return None

    values = list(utilization.values())
    average = sum(values) / len(values)
    variance = sum((value - average) ** 2 for value in values) / len(values)
    if variance <= rules.rebalance_variance:
        return None

    over = {op: value for op, value in utilization.items() if value > average + rules.rebalance_spread}
    under = {op: value for op, value in utilization.items() if value < average - rules.rebalance_spread}
    if not over or not under:
        return None

    most_over = max(over, key=over.__getitem__)
    most_under = min(under, key=under.__getitem__)
    return OrchestrationRecommendation(
        recommendation_id=id_generator.next_id("rec"),
        recommendation_type="rebalance",
        scope=scope,
        description="Workload imbalance detected across operators",
        rationale=f"Utilization variance of {variance:.0f} indicates uneven distribution",
        expected_benefit=ExpectedBenefit(workload_balance=25, capacity_improvement=10),
        suggested_actions=[
            f"Move tasks from {most_over} to {most_under}",
            "Review operator specializations and task assignments",
        ],
        affected_slots=[slot.slot_id for slot in slots if slot.operator_id in over],
        generated_at=clock(),
        confidence_level="high",
    )


def recommend_deferring(
    slots: Sequence[OrchestrationSlot],
    conflicts: Sequence[OrchestrationConflict],
    scope: Scope,
    *,
    id_generator: IdGenerator,
    clock: Clock,
    rules: ScoringRules = DEFAULT_RULES,
) -> OrchestrationRecommendation | None:
    deferrable = [slot for slot in slots if slot.priority == "low" and slot.sla_deadline is None]
    if not conflicts or not deferrable:
        return None

    selected = deferrable[: rules.defer_max_slots]
    return OrchestrationRecommendation(
        recommendation_id=id_generator.next_id("rec"),
        recommendation_type="defer",
        scope=scope,
        description="Defer low-priority tasks to reduce conflicts",
        rationale=f"{len(conflicts)} conflicts detected with {len(deferrable)} low-priority tasks available for deferral",
        expected_benefit=ExpectedBenefit(capacity_improvement=15, sla_improvement=10),
        suggested_actions=[
            f"Defer {len(selected)} low-priority tasks",
            "Reschedule during low-capacity periods",
        ],
        affected_slots=[slot.slot_id for slot in selected],
        generated_at=clock(),
        confidence_level="medium",
    )


def recommend_optimization(
    slots: Sequence[OrchestrationSlot],
    scope: Scope,
    *,
    id_generator: IdGenerator,
    clock: Clock,
    rules: ScoringRules = DEFAULT_RULES,
) -> OrchestrationRecommendation | None:
    outside = [slot for slot in slots if not slot.within_capacity_window]
    if len(outside) <= rules.optimize_min_out_of_window:
        return None

    return OrchestrationRecommendation(
        recommendation_id=id_generator.next_id("rec"),
        recommendation_type="optimize",
        scope=scope,
        description="Align schedule with capacity windows",
        rationale=f"{len(outside)} tasks scheduled outside optimal capacity windows",
        expected_benefit=ExpectedBenefit(capacity_improvement=20),
        suggested_actions=[
            "Reschedule tasks to align with low-risk capacity windows",
            "Review capacity projections for accuracy",
        ],
        affected_slots=[slot.slot_id for slot in outside],
        generated_at=clock(),
        confidence_level="high",
    )


def generate_recommendations(
    slots: Sequence[OrchestrationSlot],
    conflicts: Sequence[OrchestrationConflict],
    operators: Sequence[OperatorAvailability],
    scope: Scope,
    *,
    id_generator: IdGenerator,
    clock: Clock,
    rules: ScoringRules = DEFAULT_RULES,
) -> list[OrchestrationRecommendation]:
    candidates = [
        recommend_rebalancing(slots, operators, scope, id_generator=id_generator, clock=clock, rules=rules),
        recommend_deferring(slots, conflicts, scope, id_generator=id_generator, clock=clock, rules=rules),
        recommend_optimization(slots, scope, id_generator=id_generator, clock=clock, rules=rules),
    ]
    return [recommendation for recommendation in candidates if recommendation is not None]
