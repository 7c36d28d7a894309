from __future__ import annotations

import os
from pathlib import Path

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse, PlainTextResponse
from pydantic import AwareDatetime, BaseModel, Field

from orchestration.application import get_orchestration_service
from orchestration.core.schema import (
    OrchestrationData,
    OrchestrationQuery,
    OrchestrationResult,
    PolicyContext,
)
from orchestration.exporters.schedule_csv import export_schedule_csv
from orchestration.exporters.schedule_xlsx import export_schedule_xlsx

router = APIRouter(prefix="/orchestration", tags=["orchestration"])


class ScheduleRequest(BaseModel):
    query: OrchestrationQuery
    context: PolicyContext
    data: OrchestrationData = Field(default_factory=OrchestrationData)


class PruneRequest(BaseModel):
    retention_days: int = Field(default=30, ge=0)


def _export_root() -> Path:
    env_root = os.getenv("ORCHESTRATION_EXPORT_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path.cwd() / "exports"


@router.post("/schedules")
async def create_schedule(payload: ScheduleRequest) -> OrchestrationResult:
    service = get_orchestration_service()
    result = service.execute_query(payload.query, payload.context, payload.data)
    if result.error_code == "POLICY_DENIED":
        raise HTTPException(status_code=403, detail=result.error)
    if result.error_code == "INVALID_INPUT":
        raise HTTPException(status_code=422, detail=result.error)
    return result


@router.get("/schedules/{schedule_id}/export")
async def export_schedule(schedule_id: str, format: str = Query(default="csv")) -> FileResponse:
    if format not in {"csv", "xlsx"}:
        raise HTTPException(status_code=400, detail="format must be csv or xlsx")
    service = get_orchestration_service()
    schedule = service.get_schedule(schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="schedule not found")

    target = _export_root() / f"{Path(schedule_id).name}.{format}"
    if format == "csv":
        export_schedule_csv(target, schedule)
        return FileResponse(target, media_type="text/csv", filename=target.name)
    export_schedule_xlsx(target, schedule)
    return FileResponse(
        target,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=target.name,
    )


@router.get("/log")
async def list_log_entries(
    entry_type: str | None = Query(default=None),
    tenant_id: str | None = Query(default=None),
    start_date: AwareDatetime | None = Query(default=None),
    end_date: AwareDatetime | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
) -> dict:
    service = get_orchestration_service()
    entries = service.list_entries(
        entry_type=entry_type,
        tenant_id=tenant_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return {"items": [entry.model_dump(mode="json", exclude_none=True) for entry in entries]}


@router.get("/log/export")
async def export_log(
    format: str = Query(default="json"),
    entry_type: str | None = Query(default=None),
    tenant_id: str | None = Query(default=None),
) -> PlainTextResponse:
    if format not in {"json", "csv"}:
        raise HTTPException(status_code=400, detail="format must be json or csv")
    service = get_orchestration_service()
    body = service.export_log(format, entry_type=entry_type, tenant_id=tenant_id)
    media_type = "text/csv" if format == "csv" else "application/json"
    return PlainTextResponse(body, media_type=media_type)


@router.post("/log/prune")
async def prune_log(payload: PruneRequest) -> dict:
    service = get_orchestration_service()
    removed = service.prune_log(payload.retention_days)
    return {"removed": removed}


@router.get("/statistics")
async def get_statistics() -> dict:
    service = get_orchestration_service()
    return service.get_statistics().model_dump(mode="json")
