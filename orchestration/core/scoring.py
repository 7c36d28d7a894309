"""Operator selection for a single work item.

Scoring is a pure function of the work item, the operator list and a frozen
snapshot of every operator's run state; it never advances any clock.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from orchestration.core.rules import DEFAULT_RULES, ScoringRules
from orchestration.core.schema import CapacityWindowInput, OperatorAvailability, ScheduleOptions
from orchestration.domain import OperatorLoad, WorkItem

logger = logging.getLogger(__name__)

INELIGIBLE = -1.0


@dataclass(frozen=True)
class OperatorScore:
    operator: OperatorAvailability
    score: float


def find_capacity_window(
    start: datetime,
    end: datetime,
    capacity_windows: Iterable[CapacityWindowInput],
) -> CapacityWindowInput | None:
    """First window (in input order) whose span intersects ``[start, end)``."""

    for window in capacity_windows:
        if start < window.window_end and end > window.window_start:
            return window
    return None


def mean_utilization(loads: Mapping[str, OperatorLoad]) -> float:
    if not loads:
        return 0.0
    return sum(load.utilization for load in loads.values()) / len(loads)


def score_operator(
    item: WorkItem,
    operator: OperatorAvailability,
    load: OperatorLoad,
    *,
    average_utilization: float,
    capacity_windows: Sequence[CapacityWindowInput],
    options: ScheduleOptions,
    rules: ScoringRules = DEFAULT_RULES,
) -> float:
    if operator.scope.tenant_id != item.scope.tenant_id:
        return INELIGIBLE

    score = rules.base_score

    if load.utilization > rules.high_utilization_threshold:
        score -= rules.high_utilization_penalty
    elif load.utilization > rules.elevated_utilization_threshold:
        score -= rules.elevated_utilization_penalty

    if options.balance_workload:
        score -= abs(load.utilization - average_utilization) * rules.balance_deviation_weight

    prospective_end = item.end_if_started_at(load.current_time)

    if options.respect_capacity_windows:
        window = find_capacity_window(load.current_time, prospective_end, capacity_windows)
        if window is not None:
            score -= rules.window_risk_penalties.get(window.risk_level, 0.0)

    if item.sla_deadline is not None:
        if prospective_end > item.sla_deadline:
            score -= rules.sla_miss_penalty
        else:
            buffer = (item.sla_deadline - prospective_end).total_seconds() / 60
            if buffer < rules.tight_sla_buffer_minutes:
                score -= rules.tight_sla_penalty

    return score


def score_operators(
    item: WorkItem,
    operators: Sequence[OperatorAvailability],
    loads: Mapping[str, OperatorLoad],
    capacity_windows: Sequence[CapacityWindowInput],
    options: ScheduleOptions,
    rules: ScoringRules = DEFAULT_RULES,
) -> list[OperatorScore]:
    average = mean_utilization(loads)
    return [
        OperatorScore(
            operator=operator,
            score=score_operator(
                item,
                operator,
                loads[operator.operator_id],
                average_utilization=average,
                capacity_windows=capacity_windows,
                options=options,
                rules=rules,
            ),
        )
        for operator in operators
    ]


def find_best_operator(
    item: WorkItem,
    operators: Sequence[OperatorAvailability],
    loads: Mapping[str, OperatorLoad],
    capacity_windows: Sequence[CapacityWindowInput],
    options: ScheduleOptions,
    rules: ScoringRules = DEFAULT_RULES,
) -> OperatorAvailability | None:
    """Pick the highest-scoring operator, or ``None`` when nobody scores above zero.

    A pre-assigned operator is returned without scoring as long as it is in the
    operator list and shares the item's tenant.
    """

    if item.assigned_operator_id:
        for operator in operators:
            if operator.operator_id == item.assigned_operator_id and operator.scope.tenant_id == item.scope.tenant_id:
                return operator

    best: OperatorScore | None = None
    for candidate in score_operators(item, operators, loads, capacity_windows, options, rules):
        if candidate.score <= 0:
            continue
        # strict comparison: the first operator with the top score wins
        if best is None or candidate.score > best.score:
            best = candidate

    if best is None:
        logger.debug("no eligible operator for work item %s", item.id)
        return None
    return best.operator
