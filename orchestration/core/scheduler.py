"""Deterministic workload scheduler.

``generate_schedule`` is a pure function of its inputs plus the injected id
generator and clock: normalize -> sequence -> build slots -> detect conflicts ->
recommend -> summarize. No state survives between runs.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Sequence

from orchestration.core.conflicts import detect_conflicts
from orchestration.core.ids import Clock, IdGenerator, UUIDIdGenerator, utc_now
from orchestration.core.normalizer import collect_work_items
from orchestration.core.recommendations import generate_recommendations
from orchestration.core.rules import DEFAULT_RULES, ScoringRules
from orchestration.core.schema import (
    AlertInput,
    CapacityWindowInput,
    OperatorAvailability,
    OrchestrationSchedule,
    ScheduleOptions,
    ScheduleTimeRange,
    Scope,
    TaskInput,
    TimeRange,
)
from orchestration.core.sequencer import sort_work_items
from orchestration.core.slots import build_slots
from orchestration.core.summary import summarize_categories, summarize_operators
from orchestration.core.validation import validate_inputs

logger = logging.getLogger(__name__)

GENERATED_BY = "orchestration-scheduler"


def schedule_time_range(time_range: TimeRange) -> ScheduleTimeRange:
    return ScheduleTimeRange(
        start=time_range.start,
        end=time_range.end,
        duration_hours=(time_range.end - time_range.start).total_seconds() / 3600,
    )


class OrchestrationScheduler:
    """Builds one schedule per call; holds only its id, clock and rule seams."""

    def __init__(
        self,
        *,
        id_generator: IdGenerator | None = None,
        clock: Clock | None = None,
        rules: ScoringRules | None = None,
    ) -> None:
        self._ids = id_generator or UUIDIdGenerator()
        self._clock = clock or utc_now
        self._rules = rules or DEFAULT_RULES

    @property
    def rules(self) -> ScoringRules:
        return self._rules

    def generate_schedule(
        self,
        tasks: Sequence[TaskInput],
        alerts: Sequence[AlertInput],
        operators: Sequence[OperatorAvailability],
        capacity_windows: Sequence[CapacityWindowInput],
        time_range: TimeRange,
        scope: Scope,
        options: ScheduleOptions | None = None,
    ) -> OrchestrationSchedule:
        options = options or ScheduleOptions()
        validate_inputs(tasks, alerts, operators, capacity_windows, time_range)

        schedule_id = self._ids.next_id("schedule")
        items = sort_work_items(collect_work_items(tasks, alerts), options)
        built = build_slots(
            items,
            operators,
            capacity_windows,
            options,
            id_generator=self._ids,
            clock=self._clock,
            rules=self._rules,
        )
        conflicts = detect_conflicts(built.slots, operators, id_generator=self._ids, clock=self._clock, rules=self._rules)
        recommendations = generate_recommendations(
            built.slots,
            conflicts,
            operators,
            scope,
            id_generator=self._ids,
            clock=self._clock,
            rules=self._rules,
        )

        generated_at = self._clock()
        logger.debug(
            "schedule %s: %d items, %d slots, %d unscheduled, %d conflicts",
            schedule_id,
            len(items),
            len(built.slots),
            len(built.unscheduled),
            len(conflicts),
        )
        return OrchestrationSchedule(
            schedule_id=schedule_id,
            scope=scope,
            time_range=schedule_time_range(time_range),
            slots=built.slots,
            conflicts=conflicts,
            recommendations=recommendations,
            unscheduled=built.unscheduled,
            operator_summary=summarize_operators(built.slots, operators, self._rules),
            category_summary=summarize_categories(built.slots),
            generated_at=generated_at,
            generated_by=GENERATED_BY,
            valid_until=generated_at + timedelta(minutes=self._rules.schedule_validity_minutes),
        )

    def empty_schedule(self, time_range: TimeRange, scope: Scope, generated_by: str = GENERATED_BY) -> OrchestrationSchedule:
        generated_at = self._clock()
        return OrchestrationSchedule(
            schedule_id=self._ids.next_id("schedule"),
            scope=scope,
            time_range=schedule_time_range(time_range),
            category_summary=summarize_categories([]),
            generated_at=generated_at,
            generated_by=generated_by,
            valid_until=generated_at + timedelta(minutes=self._rules.schedule_validity_minutes),
        )


def generate_schedule(
    tasks: Sequence[TaskInput],
    alerts: Sequence[AlertInput],
    operators: Sequence[OperatorAvailability],
    capacity_windows: Sequence[CapacityWindowInput],
    time_range: TimeRange,
    scope: Scope,
    options: ScheduleOptions | None = None,
    *,
    id_generator: IdGenerator | None = None,
    clock: Clock | None = None,
    rules: ScoringRules | None = None,
) -> OrchestrationSchedule:
    scheduler = OrchestrationScheduler(id_generator=id_generator, clock=clock, rules=rules)
    return scheduler.generate_schedule(tasks, alerts, operators, capacity_windows, time_range, scope, options)
