"""Structural checks over a finished slot list.

The four checks are independent: a slot may show up in several conflicts and
nothing is deduplicated across conflict types.
"""
from __future__ import annotations

import math
from typing import Sequence

from orchestration.core.ids import Clock, IdGenerator
from orchestration.core.rules import DEFAULT_RULES, ScoringRules
from orchestration.core.schema import (
    ImpactAnalysis,
    OperatorAvailability,
    OrchestrationConflict,
    OrchestrationSlot,
)


def group_slots_by_operator(slots: Sequence[OrchestrationSlot]) -> dict[str, list[OrchestrationSlot]]:
    grouped: dict[str, list[OrchestrationSlot]] = {}
    for slot in slots:
        grouped.setdefault(slot.operator_id, []).append(slot)
    return grouped


def _unique_operators(slots: Sequence[OrchestrationSlot]) -> list[str]:
    return list(dict.fromkeys(slot.operator_id for slot in slots))


def detect_operator_overload(
    slots: Sequence[OrchestrationSlot],
    operators: Sequence[OperatorAvailability],
    *,
    id_generator: IdGenerator,
    clock: Clock,
    rules: ScoringRules = DEFAULT_RULES,
) -> list[OrchestrationConflict]:
    by_operator = group_slots_by_operator(slots)
    conflicts: list[OrchestrationConflict] = []
    for operator in operators:
        operator_slots = by_operator.get(operator.operator_id, [])
        assigned = sum(slot.duration_minutes for slot in operator_slots)
        available = operator.available_minutes
        utilization = assigned / available * 100
        if utilization <= rules.overload_utilization:
            continue
        conflicts.append(
            OrchestrationConflict(
                conflict_id=id_generator.next_id("conflict"),
                conflict_type="operator-overload",
                severity="critical",
                affected_slots=[slot.slot_id for slot in operator_slots],
                description=f"Operator {operator.operator_name or operator.operator_id} overloaded at {utilization:.0f}% capacity",
                impact_analysis=ImpactAnalysis(
                    operators_affected=[operator.operator_id],
                    tasks_delayed=math.ceil((assigned - available) / rules.overload_minutes_per_delayed_task),
                    sla_risk=80,
                    capacity_overage=utilization - 100,
                ),
                resolution_options=[
                    "Redistribute tasks to other operators",
                    "Extend operator availability",
                    "Defer low-priority tasks",
                ],
                recommended_action="Redistribute tasks to other operators",
                detected_at=clock(),
            )
        )
    return conflicts


def detect_sla_collisions(
    slots: Sequence[OrchestrationSlot],
    *,
    id_generator: IdGenerator,
    clock: Clock,
) -> list[OrchestrationConflict]:
    breached = [slot for slot in slots if slot.sla_buffer is not None and slot.sla_buffer < 0]
    if not breached:
        return []
    return [
        OrchestrationConflict(
            conflict_id=id_generator.next_id("conflict"),
            conflict_type="sla-collision",
            severity="critical",
            affected_slots=[slot.slot_id for slot in breached],
            description=f"{len(breached)} tasks scheduled after SLA deadline",
            impact_analysis=ImpactAnalysis(
                operators_affected=_unique_operators(breached),
                tasks_delayed=len(breached),
                sla_risk=100,
                capacity_overage=0,
            ),
            resolution_options=[
                "Reschedule tasks earlier",
                "Assign to faster operators",
                "Escalate for immediate handling",
            ],
            recommended_action="Reschedule tasks earlier",
            detected_at=clock(),
        )
    ]


def detect_over_capacity(
    slots: Sequence[OrchestrationSlot],
    *,
    id_generator: IdGenerator,
    clock: Clock,
    rules: ScoringRules = DEFAULT_RULES,
) -> list[OrchestrationConflict]:
    threshold = rules.over_capacity_utilization
    over = [slot for slot in slots if slot.capacity_utilization > threshold]
    if not over:
        return []
    return [
        OrchestrationConflict(
            conflict_id=id_generator.next_id("conflict"),
            conflict_type="over-capacity",
            severity="high",
            affected_slots=[slot.slot_id for slot in over],
            description=f"{len(over)} slots exceed recommended capacity",
            impact_analysis=ImpactAnalysis(
                operators_affected=_unique_operators(over),
                tasks_delayed=0,
                sla_risk=60,
                capacity_overage=max(slot.capacity_utilization - threshold for slot in over),
            ),
            resolution_options=[
                "Rebalance workload across operators",
                "Defer non-critical tasks",
                "Add operator capacity",
            ],
            recommended_action="Rebalance workload across operators",
            detected_at=clock(),
        )
    ]


def detect_schedule_overlaps(
    slots: Sequence[OrchestrationSlot],
    *,
    id_generator: IdGenerator,
    clock: Clock,
) -> list[OrchestrationConflict]:
    conflicts: list[OrchestrationConflict] = []
    for operator_id, operator_slots in group_slots_by_operator(slots).items():
        for i, first in enumerate(operator_slots):
            for second in operator_slots[i + 1:]:
                if not (first.start_time < second.end_time and second.start_time < first.end_time):
                    continue
                conflicts.append(
                    OrchestrationConflict(
                        conflict_id=id_generator.next_id("conflict"),
                        conflict_type="schedule-overlap",
                        severity="high",
                        affected_slots=[first.slot_id, second.slot_id],
                        description=f"Schedule overlap for operator {operator_id}",
                        impact_analysis=ImpactAnalysis(
                            operators_affected=[operator_id],
                            tasks_delayed=1,
                            sla_risk=50,
                            capacity_overage=0,
                        ),
                        resolution_options=[
                            "Reschedule one task",
                            "Assign one task to different operator",
                        ],
                        recommended_action="Reschedule one task",
                        detected_at=clock(),
                    )
                )
    return conflicts


def detect_conflicts(
    slots: Sequence[OrchestrationSlot],
    operators: Sequence[OperatorAvailability],
    *,
    id_generator: IdGenerator,
    clock: Clock,
    rules: ScoringRules = DEFAULT_RULES,
) -> list[OrchestrationConflict]:
    conflicts: list[OrchestrationConflict] = []
    conflicts.extend(detect_operator_overload(slots, operators, id_generator=id_generator, clock=clock, rules=rules))
    conflicts.extend(detect_sla_collisions(slots, id_generator=id_generator, clock=clock))
    conflicts.extend(detect_over_capacity(slots, id_generator=id_generator, clock=clock, rules=rules))
    conflicts.extend(detect_schedule_overlaps(slots, id_generator=id_generator, clock=clock))
    return conflicts
