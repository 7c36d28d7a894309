import pytest

from conftest import NOW, T0, at
from orchestration.core.ids import SequentialIdGenerator, fixed_clock
from orchestration.core.policy import OrchestrationPolicyEngine
from orchestration.core.schema import (
    OrchestrationData,
    OrchestrationQuery,
    OrchestrationSlot,
    PolicyContext,
    Scope,
    TimeRange,
)


@pytest.fixture()
def engine():
    return OrchestrationPolicyEngine(clock=fixed_clock(NOW), id_generator=SequentialIdGenerator())


def _query(scope: Scope, hours: float = 8, **kwargs) -> OrchestrationQuery:
    return OrchestrationQuery(
        query_id="q1",
        scope=scope,
        time_range=TimeRange(start=T0, end=at(hours * 60)),
        requested_by="planner",
        **kwargs,
    )


def _context(**kwargs) -> PolicyContext:
    kwargs.setdefault("user_id", "planner")
    kwargs.setdefault("user_tenant_id", "tenant-a")
    return PolicyContext(**kwargs)


def test_same_tenant_query_is_authorized(engine, scope):
    decision = engine.evaluate_query_policy(_query(scope), _context())

    assert decision.allowed
    assert decision.reason == "Query authorized"
    assert decision.policy_version == "1.0.0"
    assert decision.evaluated_at == NOW


def test_other_tenant_is_denied_without_cross_tenant_permission(engine):
    query = _query(Scope(tenant_id="tenant-b"))

    denied = engine.evaluate_query_policy(query, _context())
    assert not denied.allowed
    assert denied.reason == "Policy violations: User cannot access schedules for other tenants"

    assert engine.evaluate_query_policy(query, _context(permissions=["orchestration:cross-tenant-read"])).allowed
    assert engine.evaluate_query_policy(query, _context(permissions=["orchestration:federation-admin"])).allowed


def test_federation_access(engine):
    query = _query(Scope(tenant_id="tenant-a", federation_id="fed-1"))

    assert not engine.evaluate_query_policy(query, _context()).allowed
    assert engine.evaluate_query_policy(query, _context(user_federation_id="fed-1")).allowed
    assert engine.evaluate_query_policy(query, _context(permissions=["orchestration:federation:fed-1"])).allowed


def test_operator_filter_requires_permission(engine, scope):
    own = _query(scope, operator_ids=["planner"])
    others = _query(scope, operator_ids=["op-1", "op-2"])

    assert engine.evaluate_query_policy(own, _context()).allowed
    assert not engine.evaluate_query_policy(others, _context()).allowed
    assert engine.evaluate_query_policy(others, _context(permissions=["orchestration:view-team-operators"])).allowed


def test_long_range_schedule(engine, scope):
    query = _query(scope, hours=200)

    denied = engine.evaluate_query_policy(query, _context())
    assert denied.violations == ["Long-range schedules (>7 days) require special permission"]

    allowed = engine.evaluate_query_policy(query, _context(permissions=["orchestration:long-range-schedule"]))
    assert allowed.allowed
    assert allowed.warnings == ["Long-range schedules may have reduced accuracy"]


def test_restricted_categories_are_restrictions_not_violations(engine, scope):
    query = _query(scope, categories=["task-scheduling", "audit-remediation", "governance-issue"])
    decision = engine.evaluate_query_policy(query, _context(permissions=["orchestration:view-governance-issues"]))

    assert decision.allowed
    assert decision.restricted_categories == ["audit-remediation"]
    assert decision.restrictions == ["Categories restricted: audit-remediation"]


def test_filter_data_applies_tenant_category_priority_and_window_filters(
    engine, scope, make_task, make_alert, make_operator, make_window
):
    other = Scope(tenant_id="tenant-b")
    data = OrchestrationData(
        tasks=[make_task("t-high", "high"), make_task("t-low", "low"), make_task("t-other", "high", scope=other)],
        alerts=[make_alert("a1", "high")],
        operators=[make_operator("op-1"), make_operator("op-2"), make_operator("op-x", scope=other)],
        capacity_windows=[make_window("inside", 60, 120), make_window("after", 9 * 60, 10 * 60)],
    )
    query = _query(scope, categories=["task-scheduling"], priorities=["high"], operator_ids=["op-2"])
    decision = engine.evaluate_query_policy(query, _context(permissions=["orchestration:view-all-operators"]))
    filtered = engine.filter_data(data, query, decision)

    assert [t.task_id for t in filtered.tasks] == ["t-high"]
    assert filtered.alerts == []
    assert [o.operator_id for o in filtered.operators] == ["op-2"]
    assert [w.window_id for w in filtered.capacity_windows] == ["inside"]


def test_fully_restricted_category_filter_selects_nothing(engine, scope, make_task):
    query = _query(scope, categories=["audit-remediation"])
    decision = engine.evaluate_query_policy(query, _context())
    filtered = engine.filter_data(OrchestrationData(tasks=[make_task("t1")]), query, decision)

    assert filtered.tasks == []


def test_slot_visibility(engine):
    slot = OrchestrationSlot(
        slot_id="s1",
        start_time=T0,
        end_time=at(30),
        duration_minutes=30,
        operator_id="op-1",
        category="governance-issue",
        work_item_id="w1",
        work_item_description="",
        priority="high",
        capacity_utilization=25,
        within_capacity_window=True,
        scheduled_at=NOW,
    )

    assert not engine.evaluate_slot_visibility(slot, _context(user_id="op-1"))
    assert engine.evaluate_slot_visibility(slot, _context(user_id="op-1", permissions=["orchestration:view-governance-issues"]))
    assert not engine.evaluate_slot_visibility(
        slot, _context(user_id="someone", permissions=["orchestration:view-governance-issues"])
    )


def test_audit_entry(engine, scope):
    query = _query(scope)
    context = _context()
    entry = engine.create_audit_entry(query, engine.evaluate_query_policy(query, context), context)

    assert entry["audit_id"] == "audit-00001"
    assert entry["decision"]["allowed"] is True
    assert entry["query_scope"]["tenant_id"] == "tenant-a"
