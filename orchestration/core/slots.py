from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from orchestration.core.ids import Clock, IdGenerator
from orchestration.core.rules import DEFAULT_RULES, ScoringRules
from orchestration.core.schema import (
    CapacityWindowInput,
    OperatorAvailability,
    OrchestrationSlot,
    ScheduleOptions,
    UnscheduledItem,
)
from orchestration.core.scoring import find_best_operator, find_capacity_window
from orchestration.domain import OperatorRunState, WorkItem


@dataclass
class SlotBuildResult:
    slots: list[OrchestrationSlot] = field(default_factory=list)
    unscheduled: list[UnscheduledItem] = field(default_factory=list)


def _unscheduled_reason(item: WorkItem, operators: Sequence[OperatorAvailability]) -> str:
    if any(operator.scope.tenant_id == item.scope.tenant_id for operator in operators):
        return "no-eligible-operator"
    return "no-operator-in-scope"


def build_slots(
    items: Sequence[WorkItem],
    operators: Sequence[OperatorAvailability],
    capacity_windows: Sequence[CapacityWindowInput],
    options: ScheduleOptions,
    *,
    id_generator: IdGenerator,
    clock: Clock,
    rules: ScoringRules = DEFAULT_RULES,
) -> SlotBuildResult:
    """Place sequenced work items greedily, one operator clock per operator.

    Run state lives only in this call frame. Each operator's clock is advanced
    after its slot is emitted, so slots per operator come out in start order.
    """

    run_state: dict[str, OperatorRunState] = {
        operator.operator_id: OperatorRunState(
            current_time=operator.available_from,
            utilization=operator.current_workload,
        )
        for operator in operators
    }
    result = SlotBuildResult()

    for item in items:
        loads = {operator_id: state.snapshot() for operator_id, state in run_state.items()}
        operator = find_best_operator(item, operators, loads, capacity_windows, options, rules)
        if operator is None:
            result.unscheduled.append(
                UnscheduledItem(
                    work_item_id=item.id,
                    category=item.category,
                    reason=_unscheduled_reason(item, operators),
                )
            )
            continue

        state = run_state[operator.operator_id]
        start = state.current_time
        end = item.end_if_started_at(start)

        window = find_capacity_window(start, end, capacity_windows)
        within_window = window is not None and window.risk_level != "critical"

        utilization = (state.total_minutes + item.duration_minutes) / operator.available_minutes * 100

        sla_buffer = None
        if item.sla_deadline is not None:
            sla_buffer = (item.sla_deadline - end).total_seconds() / 60

        result.slots.append(
            OrchestrationSlot(
                slot_id=id_generator.next_id("slot"),
                start_time=start,
                end_time=end,
                duration_minutes=item.duration_minutes,
                operator_id=operator.operator_id,
                operator_name=operator.operator_name,
                category=item.category,
                work_item_id=item.id,
                work_item_description=item.description,
                priority=item.priority,
                sla_deadline=item.sla_deadline,
                sla_buffer=sla_buffer,
                capacity_utilization=utilization,
                within_capacity_window=within_window,
                scheduled_at=clock(),
            )
        )
        state.advance(end, item.duration_minutes, utilization)

    return result
