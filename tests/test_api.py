import csv
import io
import json

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from conftest import T0
from orchestration.application import reset_orchestration_state
from scripts.make_sample_request import build_request


@pytest.fixture(autouse=True)
def reset_state():
    reset_orchestration_state()
    yield
    reset_orchestration_state()


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("ORCHESTRATION_EXPORT_ROOT", str(tmp_path / "exports"))
    from orchestration.app import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def _schedule(client, **overrides):
    body = build_request("tenant-a", T0, operators=2, tasks=6)
    body["query"].update(overrides)
    return client.post("/api/orchestration/schedules", json=body)


def test_end_to_end_schedule_and_exports(client, tmp_path):
    # 1. generate a schedule
    response = _schedule(client)
    assert response.status_code == 200
    result = response.json()
    assert result["success"] is True
    schedule = result["schedule"]
    assert len(schedule["slots"]) == 7
    assert sorted(result["references"]["tasks_scheduled"]) == sorted(f"task-{i}" for i in range(1, 7))
    assert result["references"]["alerts_scheduled"] == ["alert-1"]
    assert result["summary"]["total_slots"] == 7
    assert {slot["operator_id"] for slot in schedule["slots"]} <= {"op-1", "op-2"}

    schedule_id = schedule["schedule_id"]

    # 2. export the slots as csv
    response = client.get(f"/api/orchestration/schedules/{schedule_id}/export", params={"format": "csv"})
    assert response.status_code == 200
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert len(rows) == 7
    assert {row["work_item_id"] for row in rows} >= {"task-1", "alert-1"}
    assert (tmp_path / "exports" / f"{schedule_id}.csv").exists()

    # 3. export the slots as xlsx
    response = client.get(f"/api/orchestration/schedules/{schedule_id}/export", params={"format": "xlsx"})
    assert response.status_code == 200
    workbook = load_workbook(tmp_path / "exports" / f"{schedule_id}.xlsx")
    assert workbook.sheetnames == ["Slots", "Conflicts"]
    assert workbook["Slots"].max_row == 8

    # 4. the audit log holds the decision and the schedule
    response = client.get("/api/orchestration/log", params={"entry_type": "schedule-generated"})
    assert response.status_code == 200
    items = response.json()["items"]
    assert len(items) == 1
    assert items[0]["schedule"]["schedule_id"] == schedule_id

    # 5. statistics reflect the run
    stats = client.get("/api/orchestration/statistics").json()
    assert stats["total_schedules"] == 1
    assert stats["total_slots"] == 7
    assert stats["by_tenant"] == {"tenant-a": 1}


def test_denied_query_returns_403(client):
    body = build_request("tenant-a", T0, operators=1, tasks=1)
    body["context"]["user_tenant_id"] = "tenant-b"

    response = client.post("/api/orchestration/schedules", json=body)
    assert response.status_code == 403
    assert "other tenants" in response.json()["detail"]

    entries = client.get("/api/orchestration/log").json()["items"]
    assert [entry["entry_type"] for entry in entries] == ["policy-decision"]
    assert entries[0]["allowed"] is False


def test_invalid_input_returns_422(client):
    body = build_request("tenant-a", T0, operators=1, tasks=1)
    body["data"]["tasks"][0]["estimated_duration_minutes"] = -10

    response = client.post("/api/orchestration/schedules", json=body)
    assert response.status_code == 422
    assert "negative duration" in response.json()["detail"]

    errors = client.get("/api/orchestration/log", params={"entry_type": "error"}).json()["items"]
    assert errors[0]["error_code"] == "INVALID_INPUT"


def test_naive_timestamps_are_rejected(client):
    body = build_request("tenant-a", T0, operators=1, tasks=1)
    body["query"]["time_range"]["start"] = "2025-01-06T08:00:00"

    response = client.post("/api/orchestration/schedules", json=body)
    assert response.status_code == 422


def test_include_flags_strip_lists(client):
    response = _schedule(client, include_conflicts=False, include_recommendations=False)
    assert response.status_code == 200
    schedule = response.json()["schedule"]
    assert schedule["conflicts"] == []
    assert schedule["recommendations"] == []


def test_export_unknown_schedule_and_bad_format(client):
    assert client.get("/api/orchestration/schedules/missing/export").status_code == 404
    assert client.get("/api/orchestration/schedules/missing/export", params={"format": "pdf"}).status_code == 400
    assert client.get("/api/orchestration/log/export", params={"format": "xml"}).status_code == 400


def test_log_export_and_prune(client):
    _schedule(client)

    response = client.get("/api/orchestration/log/export", params={"format": "json"})
    assert response.status_code == 200
    entries = json.loads(response.text)
    assert entries[0]["entry_type"] == "policy-decision"

    response = client.get("/api/orchestration/log/export", params={"format": "csv", "tenant_id": "tenant-a"})
    assert response.status_code == 200
    assert response.text.splitlines()[0] == "Entry ID,Entry Type,Timestamp,Tenant ID,Details"

    response = client.post("/api/orchestration/log/prune", json={"retention_days": 30})
    assert response.json() == {"removed": 0}
    assert client.post("/api/orchestration/log/prune", json={"retention_days": -1}).status_code == 422


def test_root_landing(client):
    payload = client.get("/").json()
    assert payload["message"] == "Workload Orchestration API"
    assert payload["schedules"] == "/api/orchestration/schedules"
    assert payload["statistics"] == "/api/orchestration/statistics"


def test_log_date_filters_require_timezone(client):
    _schedule(client)

    response = client.get("/api/orchestration/log", params={"start_date": "2020-01-01T00:00:00"})
    assert response.status_code == 422

    response = client.get("/api/orchestration/log", params={"start_date": "2020-01-01T00:00:00+00:00"})
    assert response.status_code == 200
    assert response.json()["items"]

    response = client.get("/api/orchestration/log", params={"end_date": "2020-01-01T00:00:00Z"})
    assert response.status_code == 200
    assert response.json()["items"] == []


def test_cors_is_off_unless_origins_are_configured(monkeypatch):
    from orchestration.app import create_app

    monkeypatch.delenv("API_CORS_ORIGINS", raising=False)
    with TestClient(create_app()) as test_client:
        response = test_client.get("/", headers={"Origin": "http://planner.local"})
        assert "access-control-allow-origin" not in response.headers

    monkeypatch.setenv("API_CORS_ORIGINS", "http://planner.local, http://other.local")
    with TestClient(create_app()) as test_client:
        response = test_client.get("/", headers={"Origin": "http://planner.local"})
        assert response.headers["access-control-allow-origin"] == "http://planner.local"
