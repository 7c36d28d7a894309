from __future__ import annotations

from pathlib import Path

from openpyxl import Workbook

from orchestration.core.schema import OrchestrationSchedule
from orchestration.exporters.schedule_csv import SLOT_COLUMNS, slot_rows

CONFLICT_COLUMNS = ["conflict_id", "conflict_type", "severity", "affected_slots", "description", "recommended_action"]


def export_schedule_xlsx(path: Path, schedule: OrchestrationSchedule) -> Path:
    """Write slots and conflicts of ``schedule`` to a two-sheet workbook."""

    wb = Workbook()
    slots_ws = wb.active
    slots_ws.title = "Slots"
    slots_ws.append(SLOT_COLUMNS)
    for row in slot_rows(schedule):
        slots_ws.append([row[column] for column in SLOT_COLUMNS])

    conflicts_ws = wb.create_sheet("Conflicts")
    conflicts_ws.append(CONFLICT_COLUMNS)
    for conflict in schedule.conflicts:
        conflicts_ws.append(
            [
                conflict.conflict_id,
                conflict.conflict_type,
                conflict.severity,
                ", ".join(conflict.affected_slots),
                conflict.description,
                conflict.recommended_action,
            ]
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path
