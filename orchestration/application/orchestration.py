"""Application service layer for workload orchestration."""
from __future__ import annotations

import logging
import os
import time

from orchestration.core.ids import Clock, IdGenerator, UUIDIdGenerator, utc_now
from orchestration.core.policy import OrchestrationPolicyEngine
from orchestration.core.rules import ScoringRules, load_rules
from orchestration.core.scheduler import OrchestrationScheduler
from orchestration.core.schema import (
    LogEntry,
    OrchestrationData,
    OrchestrationQuery,
    OrchestrationResult,
    OrchestrationSchedule,
    OrchestrationStatistics,
    PolicyContext,
    ResultMetadata,
    ResultReferences,
)
from orchestration.core.summary import summarize_result
from orchestration.core.validation import ValidationError
from orchestration.infrastructure import InMemoryOrchestrationLog, OrchestrationLogRepository

logger = logging.getLogger(__name__)

SCHEDULE_SOURCES = ["tasks", "alerts", "operators", "capacity-windows", "policy-engine"]


class OrchestrationService:
    """Coordinates policy evaluation, scheduling and audit logging for a query."""

    def __init__(
        self,
        repository: OrchestrationLogRepository,
        *,
        scheduler: OrchestrationScheduler | None = None,
        policy_engine: OrchestrationPolicyEngine | None = None,
        id_generator: IdGenerator | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._repository = repository
        self._ids = id_generator or UUIDIdGenerator()
        self._clock = clock or utc_now
        self._scheduler = scheduler or OrchestrationScheduler(id_generator=self._ids, clock=self._clock)
        self._policy = policy_engine or OrchestrationPolicyEngine(clock=self._clock, id_generator=self._ids)

    @property
    def rules(self) -> ScoringRules:
        return self._scheduler.rules

    # ------------------------------------------------------------------
    # query execution
    # ------------------------------------------------------------------
    def execute_query(
        self,
        query: OrchestrationQuery,
        context: PolicyContext,
        data: OrchestrationData,
    ) -> OrchestrationResult:
        started = time.perf_counter()

        decision = self._policy.evaluate_query_policy(query, context)
        self._repository.log_policy_decision(query.query_id, decision)
        if not decision.allowed:
            logger.warning("query %s denied for user %s: %s", query.query_id, context.user_id, decision.reason)
            return self._failed_result(
                query,
                started,
                error=f"Policy violation: {decision.reason}",
                error_code="POLICY_DENIED",
                sources=["policy-engine"],
            )

        filtered = self._policy.filter_data(data, query, decision)
        try:
            schedule = self._scheduler.generate_schedule(
                filtered.tasks,
                filtered.alerts,
                filtered.operators,
                filtered.capacity_windows,
                query.time_range,
                query.scope,
                query.options,
            )
        except ValidationError as exc:
            logger.warning("query %s rejected: %s", query.query_id, exc)
            self._repository.log_error(
                query.scope,
                "INVALID_INPUT",
                str(exc),
                {"query_id": query.query_id},
            )
            return self._failed_result(query, started, error=str(exc), error_code="INVALID_INPUT", sources=["error"])

        self._repository.log_schedule_generated(schedule)
        for conflict in schedule.conflicts:
            self._repository.log_conflict_detected(conflict)
        for recommendation in schedule.recommendations:
            self._repository.log_recommendation_generated(recommendation)

        summary = summarize_result(schedule, self.rules)
        placed = {slot.work_item_id for slot in schedule.slots}
        references = ResultReferences(
            tasks_scheduled=[task.task_id for task in filtered.tasks if task.task_id in placed],
            alerts_scheduled=[alert.alert_id for alert in filtered.alerts if alert.alert_id in placed],
            capacity_projections_used=[window.window_id for window in filtered.capacity_windows],
        )

        returned = schedule
        if not query.include_conflicts or not query.include_recommendations:
            updates: dict[str, list] = {}
            if not query.include_conflicts:
                updates["conflicts"] = []
            if not query.include_recommendations:
                updates["recommendations"] = []
            returned = schedule.model_copy(update=updates)

        logger.info(
            "query %s scheduled %d slots (%d unscheduled, %d conflicts) for tenant %s",
            query.query_id,
            len(schedule.slots),
            len(schedule.unscheduled),
            len(schedule.conflicts),
            query.scope.tenant_id,
        )
        return OrchestrationResult(
            result_id=self._ids.next_id("result"),
            query=query,
            schedule=returned,
            summary=summary,
            references=references,
            metadata=self._metadata(started, SCHEDULE_SOURCES),
            success=True,
        )

    def _metadata(self, started: float, sources: list[str]) -> ResultMetadata:
        return ResultMetadata(
            computed_at=self._clock(),
            computation_time_ms=round((time.perf_counter() - started) * 1000, 3),
            data_sources_queried=sources,
        )

    def _failed_result(
        self,
        query: OrchestrationQuery,
        started: float,
        *,
        error: str,
        error_code: str,
        sources: list[str],
    ) -> OrchestrationResult:
        return OrchestrationResult(
            result_id=self._ids.next_id("result"),
            query=query,
            schedule=self._scheduler.empty_schedule(query.time_range, query.scope, generated_by=query.requested_by),
            metadata=self._metadata(started, sources),
            success=False,
            error=error,
            error_code=error_code,
        )

    # ------------------------------------------------------------------
    # log access
    # ------------------------------------------------------------------
    def get_schedule(self, schedule_id: str) -> OrchestrationSchedule | None:
        return self._repository.find_schedule(schedule_id)

    def list_visible_schedules(self, context: PolicyContext) -> list[OrchestrationSchedule]:
        entries = self._repository.get_entries(entry_type="schedule-generated")
        return [
            entry.schedule
            for entry in entries
            if entry.schedule is not None and self._policy.evaluate_schedule_visibility(entry.schedule, context)
        ]

    def list_entries(self, **filters) -> list[LogEntry]:
        return self._repository.get_entries(**filters)

    def get_statistics(self) -> OrchestrationStatistics:
        return self._repository.get_statistics()

    def export_log(self, fmt: str, **filters) -> str:
        entries = self._repository.get_entries(**filters)
        if fmt == "csv":
            return self._repository.export_csv(entries)
        return self._repository.export_json(entries)

    def prune_log(self, retention_days: int) -> int:
        removed = self._repository.clear_old_entries(retention_days)
        logger.info("pruned %d log entries older than %d days", removed, retention_days)
        return removed

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()


def _max_entries() -> int:
    value = os.getenv("ORCHESTRATION_LOG_MAX_ENTRIES")
    return int(value) if value else 10_000


_repository = InMemoryOrchestrationLog(max_entries=_max_entries())
_service = OrchestrationService(_repository, scheduler=OrchestrationScheduler(rules=load_rules()))


def get_orchestration_service() -> OrchestrationService:
    """Return the singleton orchestration service for the process."""

    return _service


def reset_orchestration_state() -> None:
    """Reset the in-memory log (used in tests)."""

    _service.reset()
