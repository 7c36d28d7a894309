from datetime import timedelta

import pytest

from conftest import T0, at
from orchestration.core.ids import SequentialIdGenerator, fixed_clock
from orchestration.core.normalizer import collect_work_items
from orchestration.core.schema import AlertInput, ScheduleOptions, Scope, TaskInput, TimeRange
from orchestration.core.scheduler import OrchestrationScheduler, generate_schedule
from orchestration.core.sequencer import sort_work_items
from orchestration.core.validation import ValidationError


@pytest.fixture()
def scheduler(ids, clock):
    return OrchestrationScheduler(id_generator=ids, clock=clock)


def test_critical_item_is_placed_before_low_item(scheduler, make_task, make_operator, time_range, scope):
    tasks = [make_task("low-1", "low"), make_task("crit-1", "critical")]
    schedule = scheduler.generate_schedule(tasks, [], [make_operator("op-1")], [], time_range, scope)

    by_item = {slot.work_item_id: slot for slot in schedule.slots}
    assert by_item["crit-1"].start_time == T0
    assert by_item["low-1"].start_time == at(30)
    assert [slot.work_item_id for slot in schedule.slots] == ["crit-1", "low-1"]


def test_item_that_cannot_meet_its_sla_is_not_placed(scheduler, make_task, make_operator, time_range, scope):
    task = make_task("late", "high", duration=60, sla_deadline=at(30))
    schedule = scheduler.generate_schedule([task], [], [make_operator("op-1")], [], time_range, scope)

    assert schedule.slots == []
    assert [(item.work_item_id, item.reason) for item in schedule.unscheduled] == [("late", "no-eligible-operator")]


def test_overloaded_operator_produces_single_overload_conflict(make_task, make_operator, time_range, scope, ids, clock):
    tasks = [make_task(f"t{i}", "medium", assigned_operator_id="op-1") for i in range(3)]
    schedule = generate_schedule(
        tasks, [], [make_operator("op-1", minutes=60)], [], time_range, scope, id_generator=ids, clock=clock
    )

    overloads = [c for c in schedule.conflicts if c.conflict_type == "operator-overload"]
    assert len(overloads) == 1
    assert set(overloads[0].affected_slots) == {slot.slot_id for slot in schedule.slots}
    assert len(schedule.slots) == 3
    assert overloads[0].impact_analysis.tasks_delayed == 1
    assert overloads[0].impact_analysis.operators_affected == ["op-1"]


def test_only_eligible_operator_is_overloaded_by_scored_items(scheduler, make_task, make_operator, time_range, scope):
    tasks = [make_task(f"t{i}", "medium") for i in range(3)]
    operators = [make_operator("op-1", minutes=60), make_operator("op-x", scope=Scope(tenant_id="tenant-b"))]
    schedule = scheduler.generate_schedule(tasks, [], operators, [], time_range, scope)

    assert schedule.unscheduled == []
    assert [slot.operator_id for slot in schedule.slots] == ["op-1"] * 3
    last = schedule.slots[-1]
    assert (last.start_time, last.end_time) == (at(60), at(90))
    assert last.start_time >= operators[0].available_until

    overloads = [c for c in schedule.conflicts if c.conflict_type == "operator-overload"]
    assert len(overloads) == 1
    assert overloads[0].affected_slots == [slot.slot_id for slot in schedule.slots]
    assert overloads[0].impact_analysis.tasks_delayed == 1


def test_slot_fields_follow_operator_clock(scheduler, make_task, make_operator, time_range, scope):
    tasks = [
        make_task("a", "high", duration=45, sla_deadline=at(200)),
        make_task("b", "medium", duration=15),
    ]
    schedule = scheduler.generate_schedule(tasks, [], [make_operator("op-1", minutes=120)], [], time_range, scope)

    first, second = schedule.slots
    assert first.end_time == at(45)
    assert first.sla_buffer == pytest.approx(155)
    assert first.capacity_utilization == pytest.approx(37.5)
    assert second.start_time == first.end_time
    assert second.sla_buffer is None
    assert second.capacity_utilization == pytest.approx(50.0)


def test_slots_respect_tenant_isolation(scheduler, make_task, make_operator, time_range, scope):
    other = Scope(tenant_id="tenant-b")
    tasks = [make_task("mine", "high"), make_task("theirs", "high", scope=other)]
    operators = [make_operator("op-a"), make_operator("op-b", scope=other)]
    schedule = scheduler.generate_schedule(tasks, [], operators, [], time_range, scope)

    tenants = {op.operator_id: op.scope.tenant_id for op in operators}
    items = {task.task_id: task.scope.tenant_id for task in tasks}
    assert len(schedule.slots) == 2
    for slot in schedule.slots:
        assert tenants[slot.operator_id] == items[slot.work_item_id]


def test_preassigned_operator_from_other_tenant_is_ignored(scheduler, make_task, make_operator, time_range, scope):
    other = Scope(tenant_id="tenant-b")
    task = make_task("t1", "high", assigned_operator_id="op-b")
    operators = [make_operator("op-b", scope=other), make_operator("op-a")]
    schedule = scheduler.generate_schedule([task], [], operators, [], time_range, scope)

    assert [slot.operator_id for slot in schedule.slots] == ["op-a"]


def test_item_without_operator_in_tenant_is_reported(scheduler, make_task, make_operator, time_range, scope):
    task = make_task("orphan", "high", scope=Scope(tenant_id="tenant-z"))
    schedule = scheduler.generate_schedule([task], [], [make_operator("op-a")], [], time_range, scope)

    assert schedule.slots == []
    assert schedule.unscheduled[0].reason == "no-operator-in-scope"


def test_operator_start_times_are_monotonic(scheduler, make_task, make_alert, make_operator, time_range, scope):
    tasks = [make_task(f"t{i}", ["critical", "high", "medium", "low"][i % 4], duration=10 + i) for i in range(12)]
    alerts = [make_alert("a1"), make_alert("a2", follow_up=False)]
    operators = [make_operator("op-1", minutes=480), make_operator("op-2", minutes=480)]
    options = ScheduleOptions(balance_workload=True, optimize_for_capacity=True)
    schedule = scheduler.generate_schedule(tasks, alerts, operators, [], time_range, scope, options)

    for operator in operators:
        own = [slot for slot in schedule.slots if slot.operator_id == operator.operator_id]
        assert all(a.end_time <= b.start_time for a, b in zip(own, own[1:]))
        assert all(slot.start_time >= operator.available_from for slot in own)
    assert not [c for c in schedule.conflicts if c.conflict_type == "schedule-overlap"]
    assert len(schedule.slots) == 13


def test_sla_buffer_can_be_negative_for_preassigned_items(scheduler, make_task, make_operator, time_range, scope):
    task = make_task("late", "high", duration=60, sla_deadline=at(30), assigned_operator_id="op-1")
    schedule = scheduler.generate_schedule([task], [], [make_operator("op-1")], [], time_range, scope)

    (slot,) = schedule.slots
    assert slot.sla_buffer == pytest.approx(-30)
    assert slot.sla_buffer == (slot.sla_deadline - slot.end_time).total_seconds() / 60
    sla = [c for c in schedule.conflicts if c.conflict_type == "sla-collision"]
    assert len(sla) == 1 and sla[0].affected_slots == [slot.slot_id]


def test_identical_inputs_give_identical_schedules(make_task, make_operator, make_window, time_range, scope):
    tasks = [make_task(f"t{i}", "high" if i % 2 else "low", duration=20 + i) for i in range(8)]
    operators = [make_operator("op-1", minutes=240), make_operator("op-2", minutes=90)]
    windows = [make_window("w1", 0, 60, "high"), make_window("w2", 60, 240, "low")]
    options = ScheduleOptions(balance_workload=True, respect_capacity_windows=True, optimize_for_sla=True)

    def _run():
        return generate_schedule(
            tasks,
            [],
            operators,
            windows,
            time_range,
            scope,
            options,
            id_generator=SequentialIdGenerator(),
            clock=fixed_clock(T0),
        ).model_dump_json()

    assert _run() == _run()


def test_schedule_metadata(scheduler, make_task, make_operator, time_range, scope):
    schedule = scheduler.generate_schedule([make_task("t1")], [], [make_operator("op-1")], [], time_range, scope)

    assert schedule.schedule_id == "schedule-00001"
    assert schedule.slots[0].slot_id == "slot-00001"
    assert schedule.time_range.duration_hours == 8
    assert schedule.valid_until - schedule.generated_at == timedelta(hours=1)
    assert set(schedule.category_summary) >= {"task-scheduling", "alert-follow-up", "governance-issue"}
    assert schedule.category_summary["task-scheduling"].total_slots == 1


def test_invalid_operator_window_fails_the_run(scheduler, make_task, make_operator, time_range, scope):
    operator = make_operator("op-1")
    broken = operator.model_copy(update={"available_until": operator.available_from - timedelta(minutes=5)})
    with pytest.raises(ValidationError, match="op-1"):
        scheduler.generate_schedule([make_task("t1")], [], [broken], [], time_range, scope)


def test_negative_duration_fails_the_run(scheduler, make_task, make_operator, time_range, scope):
    with pytest.raises(ValidationError, match="negative duration"):
        scheduler.generate_schedule([make_task("t1", duration=-5)], [], [make_operator("op-1")], [], time_range, scope)


def test_inverted_time_range_fails_the_run(scheduler, make_operator, scope):
    with pytest.raises(ValidationError):
        scheduler.generate_schedule([], [], [make_operator("op-1")], [], TimeRange(start=at(60), end=T0), scope)


def test_duplicate_operator_ids_fail_the_run(scheduler, make_operator, time_range, scope):
    with pytest.raises(ValidationError, match="duplicate"):
        scheduler.generate_schedule([], [], [make_operator("op-1"), make_operator("op-1")], [], time_range, scope)


def test_normalizer_keeps_only_follow_up_alerts(make_task, make_alert):
    items = collect_work_items([make_task("t1", "low")], [make_alert("a1", "critical"), make_alert("a2", follow_up=False)])

    assert [(item.id, item.category, item.priority) for item in items] == [
        ("t1", "task-scheduling", "low"),
        ("a1", "alert-follow-up", "critical"),
    ]


def test_work_item_category_comes_from_its_source():
    assert "category" not in TaskInput.model_fields
    assert "category" not in AlertInput.model_fields


def test_sequencer_orders_by_deadline_then_priority_then_duration(make_task):
    tasks = [
        make_task("no-sla-critical", "critical", duration=30),
        make_task("late-sla", "low", duration=30, sla_deadline=at(300)),
        make_task("early-sla", "low", duration=30, sla_deadline=at(100)),
        make_task("medium-long", "medium", duration=90),
        make_task("medium-short", "medium", duration=10),
    ]
    items = collect_work_items(tasks, [])

    by_sla = sort_work_items(items, ScheduleOptions(optimize_for_sla=True, optimize_for_capacity=True))
    assert [item.id for item in by_sla] == [
        "early-sla",
        "late-sla",
        "no-sla-critical",
        "medium-short",
        "medium-long",
    ]

    by_priority = sort_work_items(items, ScheduleOptions())
    assert [item.id for item in by_priority] == [
        "no-sla-critical",
        "medium-long",
        "medium-short",
        "late-sla",
        "early-sla",
    ]
