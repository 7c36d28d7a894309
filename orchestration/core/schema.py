from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import AwareDatetime, BaseModel, Field

Category = Literal[
    "task-scheduling",
    "alert-follow-up",
    "audit-remediation",
    "drift-remediation",
    "governance-issue",
    "documentation-completeness",
    "simulation-mismatch",
    "capacity-aligned-workload",
]
Priority = Literal["critical", "high", "medium", "low"]
RiskLevel = Literal["low", "medium", "high", "critical"]
ConflictType = Literal[
    "over-capacity",
    "sla-collision",
    "operator-overload",
    "resource-unavailable",
    "schedule-overlap",
]
RecommendationType = Literal["rebalance", "defer", "optimize", "escalate", "redistribute"]
ConfidenceLevel = Literal["high", "medium", "low"]
UnscheduledReason = Literal["no-operator-in-scope", "no-eligible-operator"]
LogEntryType = Literal[
    "schedule-generated",
    "conflict-detected",
    "recommendation-generated",
    "policy-decision",
    "error",
]

CATEGORIES: tuple[str, ...] = (
    "task-scheduling",
    "alert-follow-up",
    "audit-remediation",
    "drift-remediation",
    "governance-issue",
    "documentation-completeness",
    "simulation-mismatch",
    "capacity-aligned-workload",
)
PRIORITY_ORDER: dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}


class Scope(BaseModel):
    tenant_id: str
    facility_id: str | None = None
    federation_id: str | None = None


class TimeRange(BaseModel):
    start: AwareDatetime
    end: AwareDatetime


class ScheduleOptions(BaseModel):
    optimize_for_capacity: bool = False
    optimize_for_sla: bool = False
    balance_workload: bool = False
    respect_capacity_windows: bool = False


# ----------------------------------------------------------------------
# inputs
# ----------------------------------------------------------------------
class TaskInput(BaseModel):
    task_id: str
    priority: Priority
    description: str = ""
    estimated_duration_minutes: int
    sla_deadline: AwareDatetime | None = None
    assigned_operator_id: str | None = None
    scope: Scope


class AlertInput(BaseModel):
    alert_id: str
    severity: Priority
    description: str = ""
    requires_follow_up: bool = False
    estimated_resolution_minutes: int
    scope: Scope


class OperatorAvailability(BaseModel):
    operator_id: str
    operator_name: str | None = None
    available_from: AwareDatetime
    available_until: AwareDatetime
    current_workload: float = 0.0
    max_capacity: float = 0.0
    specializations: list[str] = Field(default_factory=list)
    scope: Scope

    @property
    def available_minutes(self) -> float:
        return (self.available_until - self.available_from).total_seconds() / 60


class CapacityWindowInput(BaseModel):
    window_id: str
    window_start: AwareDatetime
    window_end: AwareDatetime
    projected_capacity: float = 0.0
    recommended_workload: int = 0
    risk_level: RiskLevel
    scope: Scope


# ----------------------------------------------------------------------
# schedule outputs
# ----------------------------------------------------------------------
class OrchestrationSlot(BaseModel, frozen=True):
    slot_id: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    operator_id: str
    operator_name: str | None = None
    category: Category
    work_item_id: str
    work_item_description: str
    priority: Priority
    sla_deadline: datetime | None = None
    sla_buffer: float | None = None
    capacity_utilization: float
    within_capacity_window: bool
    scheduled_at: datetime
    scheduled_by: str = "orchestration-scheduler"


class ImpactAnalysis(BaseModel):
    operators_affected: list[str] = Field(default_factory=list)
    tasks_delayed: int = 0
    sla_risk: float = 0
    capacity_overage: float = 0


class OrchestrationConflict(BaseModel):
    conflict_id: str
    conflict_type: ConflictType
    severity: Priority
    affected_slots: list[str]
    description: str
    impact_analysis: ImpactAnalysis
    resolution_options: list[str] = Field(default_factory=list)
    recommended_action: str
    detected_at: datetime


class ExpectedBenefit(BaseModel):
    capacity_improvement: float | None = None
    sla_improvement: float | None = None
    workload_balance: float | None = None


class OrchestrationRecommendation(BaseModel):
    recommendation_id: str
    recommendation_type: RecommendationType
    scope: Scope
    description: str
    rationale: str
    expected_benefit: ExpectedBenefit
    suggested_actions: list[str] = Field(default_factory=list)
    affected_slots: list[str] = Field(default_factory=list)
    generated_at: datetime
    confidence_level: ConfidenceLevel


class OperatorSummary(BaseModel):
    operator_id: str
    operator_name: str | None = None
    total_slots: int = 0
    total_work_minutes: int = 0
    capacity_utilization: float = 0
    sla_risk: float = 0


class CategorySummary(BaseModel):
    total_slots: int = 0
    total_work_minutes: int = 0
    critical_count: int = 0
    high_count: int = 0


class UnscheduledItem(BaseModel):
    work_item_id: str
    category: Category
    reason: UnscheduledReason


class ScheduleTimeRange(BaseModel):
    start: datetime
    end: datetime
    duration_hours: float


class OrchestrationSchedule(BaseModel):
    schedule_id: str
    scope: Scope
    time_range: ScheduleTimeRange
    slots: list[OrchestrationSlot] = Field(default_factory=list)
    conflicts: list[OrchestrationConflict] = Field(default_factory=list)
    recommendations: list[OrchestrationRecommendation] = Field(default_factory=list)
    unscheduled: list[UnscheduledItem] = Field(default_factory=list)
    operator_summary: list[OperatorSummary] = Field(default_factory=list)
    category_summary: dict[str, CategorySummary] = Field(default_factory=dict)
    generated_at: datetime
    generated_by: str = "orchestration-scheduler"
    valid_until: datetime


# ----------------------------------------------------------------------
# query, policy and result envelope
# ----------------------------------------------------------------------
class OrchestrationQuery(BaseModel):
    query_id: str
    description: str = ""
    scope: Scope
    time_range: TimeRange
    categories: list[Category] | None = None
    operator_ids: list[str] | None = None
    priorities: list[Priority] | None = None
    include_conflicts: bool = True
    include_recommendations: bool = True
    options: ScheduleOptions = Field(default_factory=ScheduleOptions)
    requested_by: str
    requested_at: datetime | None = None


class PolicyContext(BaseModel):
    user_id: str
    user_tenant_id: str
    user_federation_id: str | None = None
    permissions: list[str] = Field(default_factory=list)


class PolicyDecision(BaseModel):
    allowed: bool
    reason: str
    scope: Scope
    restrictions: list[str] = Field(default_factory=list)
    restricted_categories: list[str] = Field(default_factory=list)
    violations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    evaluated_at: datetime
    policy_version: str = "1.0.0"


class OrchestrationData(BaseModel):
    tasks: list[TaskInput] = Field(default_factory=list)
    alerts: list[AlertInput] = Field(default_factory=list)
    operators: list[OperatorAvailability] = Field(default_factory=list)
    capacity_windows: list[CapacityWindowInput] = Field(default_factory=list)


class ResultSummary(BaseModel):
    total_slots: int = 0
    total_conflicts: int = 0
    critical_conflicts: int = 0
    total_recommendations: int = 0
    average_capacity_utilization: float = 0
    sla_risk_score: float = 0


class ResultReferences(BaseModel):
    tasks_scheduled: list[str] = Field(default_factory=list)
    alerts_scheduled: list[str] = Field(default_factory=list)
    capacity_projections_used: list[str] = Field(default_factory=list)
    metrics_used: list[str] = Field(default_factory=list)
    real_time_signals_used: list[str] = Field(default_factory=list)


class ResultMetadata(BaseModel):
    computed_at: datetime
    computation_time_ms: float = 0
    data_sources_queried: list[str] = Field(default_factory=list)


class OrchestrationResult(BaseModel):
    result_id: str
    query: OrchestrationQuery
    schedule: OrchestrationSchedule
    summary: ResultSummary = Field(default_factory=ResultSummary)
    references: ResultReferences = Field(default_factory=ResultReferences)
    metadata: ResultMetadata
    success: bool
    error: str | None = None
    error_code: Literal["POLICY_DENIED", "INVALID_INPUT"] | None = None


# ----------------------------------------------------------------------
# log entries and statistics
# ----------------------------------------------------------------------
class LogEntry(BaseModel):
    entry_id: str
    entry_type: LogEntryType
    timestamp: datetime
    schedule: OrchestrationSchedule | None = None
    slots_generated: int | None = None
    conflicts_detected: int | None = None
    conflict: OrchestrationConflict | None = None
    recommendation: OrchestrationRecommendation | None = None
    query_id: str | None = None
    scope: Scope | None = None
    allowed: bool | None = None
    reason: str | None = None
    violations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    error_code: str | None = None
    message: str | None = None
    details: dict = Field(default_factory=dict)

    @property
    def tenant_id(self) -> str:
        if self.entry_type == "schedule-generated" and self.schedule is not None:
            return self.schedule.scope.tenant_id
        if self.entry_type in {"policy-decision", "error"} and self.scope is not None:
            return self.scope.tenant_id
        return ""


class ConflictDistribution(BaseModel):
    over_capacity: int = 0
    sla_collision: int = 0
    operator_overload: int = 0
    resource_unavailable: int = 0
    schedule_overlap: int = 0


class CapacityMetrics(BaseModel):
    average_utilization: float = 0
    peak_utilization: float = 0
    underutilized_operators: int = 0
    overutilized_operators: int = 0


class SLAMetrics(BaseModel):
    slots_within_sla: int = 0
    slots_at_risk: int = 0
    slots_breached: int = 0


class Trends(BaseModel):
    schedules_change: float = 0
    conflicts_change: float = 0
    utilization_change: float = 0


class OrchestrationStatistics(BaseModel):
    total_schedules: int = 0
    total_slots: int = 0
    total_conflicts: int = 0
    total_recommendations: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)
    by_operator: dict[str, int] = Field(default_factory=dict)
    by_tenant: dict[str, int] = Field(default_factory=dict)
    conflict_distribution: ConflictDistribution = Field(default_factory=ConflictDistribution)
    capacity_metrics: CapacityMetrics = Field(default_factory=CapacityMetrics)
    sla_metrics: SLAMetrics = Field(default_factory=SLAMetrics)
    trends: Trends = Field(default_factory=Trends)
