"""Tenant, federation and permission rules evaluated before a scheduling run."""
from __future__ import annotations

from orchestration.core.ids import Clock, IdGenerator, UUIDIdGenerator, utc_now
from orchestration.core.schema import (
    OrchestrationData,
    OrchestrationQuery,
    OrchestrationSchedule,
    OrchestrationSlot,
    PolicyContext,
    PolicyDecision,
)

POLICY_VERSION = "1.0.0"
LONG_RANGE_HOURS = 168

CROSS_TENANT_READ = "orchestration:cross-tenant-read"
FEDERATION_ADMIN = "orchestration:federation-admin"
VIEW_ALL_OPERATORS = "orchestration:view-all-operators"
VIEW_TEAM_OPERATORS = "orchestration:view-team-operators"
LONG_RANGE_SCHEDULE = "orchestration:long-range-schedule"

CATEGORY_PERMISSIONS: dict[str, str] = {
    "audit-remediation": "orchestration:view-audit-remediation",
    "governance-issue": "orchestration:view-governance-issues",
    "capacity-aligned-workload": "orchestration:view-capacity-aligned",
}
# capacity-aligned-workload only gates queries, not individual slots
SLOT_CATEGORY_PERMISSIONS: dict[str, str] = {
    "audit-remediation": CATEGORY_PERMISSIONS["audit-remediation"],
    "governance-issue": CATEGORY_PERMISSIONS["governance-issue"],
}


def _federation_permission(federation_id: str) -> str:
    return f"orchestration:federation:{federation_id}"


class OrchestrationPolicyEngine:
    def __init__(self, *, clock: Clock | None = None, id_generator: IdGenerator | None = None) -> None:
        self._clock = clock or utc_now
        self._ids = id_generator or UUIDIdGenerator()

    # ------------------------------------------------------------------
    # query evaluation
    # ------------------------------------------------------------------
    def evaluate_query_policy(self, query: OrchestrationQuery, context: PolicyContext) -> PolicyDecision:
        violations: list[str] = []
        warnings: list[str] = []
        restrictions: list[str] = []
        permissions = set(context.permissions)

        if not self._validate_tenant_isolation(query.scope.tenant_id, context):
            violations.append("User cannot access schedules for other tenants")

        if query.scope.federation_id and not self.can_access_federation(query.scope.federation_id, context):
            violations.append("User does not have federation access")

        if query.operator_ids and not self._validate_operator_access(query.operator_ids, context):
            violations.append("User cannot view schedules for specified operators")

        hours = (query.time_range.end - query.time_range.start).total_seconds() / 3600
        if hours > LONG_RANGE_HOURS:
            if LONG_RANGE_SCHEDULE in permissions:
                warnings.append("Long-range schedules may have reduced accuracy")
            else:
                violations.append("Long-range schedules (>7 days) require special permission")

        restricted = [
            category
            for category in (query.categories or [])
            if category in CATEGORY_PERMISSIONS and CATEGORY_PERMISSIONS[category] not in permissions
        ]
        if restricted:
            restrictions.append(f"Categories restricted: {', '.join(restricted)}")

        allowed = not violations
        return PolicyDecision(
            allowed=allowed,
            reason="Query authorized" if allowed else f"Policy violations: {'; '.join(violations)}",
            scope=query.scope,
            restrictions=restrictions,
            restricted_categories=restricted,
            violations=violations,
            warnings=warnings,
            evaluated_at=self._clock(),
            policy_version=POLICY_VERSION,
        )

    def _validate_tenant_isolation(self, tenant_id: str, context: PolicyContext) -> bool:
        if FEDERATION_ADMIN in context.permissions:
            return True
        return self.can_access_tenant(tenant_id, context)

    def _validate_operator_access(self, operator_ids: list[str], context: PolicyContext) -> bool:
        if VIEW_ALL_OPERATORS in context.permissions or VIEW_TEAM_OPERATORS in context.permissions:
            return True
        return len(operator_ids) == 1 and operator_ids[0] == context.user_id

    # ------------------------------------------------------------------
    # visibility
    # ------------------------------------------------------------------
    def can_access_tenant(self, tenant_id: str, context: PolicyContext) -> bool:
        if CROSS_TENANT_READ in context.permissions:
            return True
        return tenant_id == context.user_tenant_id

    def can_access_federation(self, federation_id: str, context: PolicyContext) -> bool:
        if FEDERATION_ADMIN in context.permissions:
            return True
        if context.user_federation_id == federation_id:
            return True
        return _federation_permission(federation_id) in context.permissions

    def evaluate_schedule_visibility(self, schedule: OrchestrationSchedule, context: PolicyContext) -> bool:
        if not self.can_access_tenant(schedule.scope.tenant_id, context):
            return False
        if schedule.scope.federation_id and not self.can_access_federation(schedule.scope.federation_id, context):
            return False
        return True

    def evaluate_slot_visibility(self, slot: OrchestrationSlot, context: PolicyContext) -> bool:
        permissions = context.permissions
        if (
            VIEW_ALL_OPERATORS not in permissions
            and VIEW_TEAM_OPERATORS not in permissions
            and slot.operator_id != context.user_id
        ):
            return False
        required = SLOT_CATEGORY_PERMISSIONS.get(slot.category)
        return required is None or required in permissions

    # ------------------------------------------------------------------
    # data filtering and audit
    # ------------------------------------------------------------------
    def filter_data(
        self,
        data: OrchestrationData,
        query: OrchestrationQuery,
        decision: PolicyDecision,
    ) -> OrchestrationData:
        """Restrict the input snapshot to what the query may schedule."""

        tenant_id = query.scope.tenant_id
        categories = [c for c in (query.categories or []) if c not in decision.restricted_categories]
        # an explicit category filter that lost every entry to restrictions selects nothing
        category_filter = categories if query.categories else None
        priorities = set(query.priorities or [])
        operator_ids = set(query.operator_ids or [])

        def _category_allowed(category: str) -> bool:
            return category_filter is None or category in category_filter

        tasks = [
            task
            for task in data.tasks
            if task.scope.tenant_id == tenant_id
            and _category_allowed("task-scheduling")
            and (not priorities or task.priority in priorities)
        ]
        alerts = [
            alert
            for alert in data.alerts
            if alert.scope.tenant_id == tenant_id
            and _category_allowed("alert-follow-up")
            and (not priorities or alert.severity in priorities)
        ]
        operators = [
            operator
            for operator in data.operators
            if operator.scope.tenant_id == tenant_id and (not operator_ids or operator.operator_id in operator_ids)
        ]
        windows = [
            window
            for window in data.capacity_windows
            if window.scope.tenant_id == tenant_id
            and window.window_end >= query.time_range.start
            and window.window_start <= query.time_range.end
        ]
        return OrchestrationData(tasks=tasks, alerts=alerts, operators=operators, capacity_windows=windows)

    def create_audit_entry(
        self,
        query: OrchestrationQuery,
        decision: PolicyDecision,
        context: PolicyContext,
    ) -> dict[str, object]:
        return {
            "audit_id": self._ids.next_id("audit"),
            "timestamp": self._clock().isoformat(),
            "user_id": context.user_id,
            "tenant_id": context.user_tenant_id,
            "query_id": query.query_id,
            "query_scope": query.scope.model_dump(),
            "decision": {
                "allowed": decision.allowed,
                "reason": decision.reason,
                "violations": list(decision.violations),
                "warnings": list(decision.warnings),
                "restrictions": list(decision.restrictions),
            },
            "policy_version": decision.policy_version,
        }
