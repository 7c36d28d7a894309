from __future__ import annotations

from pathlib import Path

import pandas as pd

from orchestration.core.schema import OrchestrationSchedule

SLOT_COLUMNS = [
    "slot_id",
    "operator_id",
    "operator_name",
    "work_item_id",
    "category",
    "priority",
    "start_time",
    "end_time",
    "duration_minutes",
    "sla_deadline",
    "sla_buffer",
    "capacity_utilization",
    "within_capacity_window",
]


def slot_rows(schedule: OrchestrationSchedule) -> list[dict]:
    rows = []
    for slot in schedule.slots:
        data = slot.model_dump(mode="json")
        rows.append({column: data.get(column) for column in SLOT_COLUMNS})
    return rows


def export_schedule_csv(path: Path, schedule: OrchestrationSchedule) -> Path:
    df = pd.DataFrame(slot_rows(schedule), columns=SLOT_COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
