#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def build_request(tenant: str, start: datetime, operators: int, tasks: int) -> dict:
    scope = {"tenant_id": tenant}
    end = start + timedelta(hours=8)
    priorities = ["critical", "high", "medium", "low"]
    return {
        "query": {
            "query_id": "sample-query",
            "description": "Sample shift schedule",
            "scope": scope,
            "time_range": {"start": _iso(start), "end": _iso(end)},
            "options": {
                "optimize_for_sla": True,
                "optimize_for_capacity": True,
                "balance_workload": True,
                "respect_capacity_windows": True,
            },
            "requested_by": "sample-script",
        },
        "context": {
            "user_id": "planner",
            "user_tenant_id": tenant,
            "permissions": ["orchestration:view-all-operators"],
        },
        "data": {
            "tasks": [
                {
                    "task_id": f"task-{index + 1}",
                    "priority": priorities[index % len(priorities)],
                    "description": f"Sample task {index + 1}",
                    "estimated_duration_minutes": 30 + 15 * (index % 3),
                    "sla_deadline": _iso(start + timedelta(hours=2 + index)) if index % 2 == 0 else None,
                    "scope": scope,
                }
                for index in range(tasks)
            ],
            "alerts": [
                {
                    "alert_id": "alert-1",
                    "severity": "high",
                    "description": "Humidity drift in room 2",
                    "requires_follow_up": True,
                    "estimated_resolution_minutes": 20,
                    "scope": scope,
                }
            ],
            "operators": [
                {
                    "operator_id": f"op-{index + 1}",
                    "operator_name": f"Operator {index + 1}",
                    "available_from": _iso(start),
                    "available_until": _iso(end),
                    "current_workload": 0,
                    "max_capacity": 4,
                    "scope": scope,
                }
                for index in range(operators)
            ],
            "capacity_windows": [
                {
                    "window_id": "window-morning",
                    "window_start": _iso(start),
                    "window_end": _iso(start + timedelta(hours=4)),
                    "projected_capacity": 70,
                    "recommended_workload": 10,
                    "risk_level": "low",
                    "scope": scope,
                }
            ],
        },
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample request body for POST /api/orchestration/schedules")
    parser.add_argument("--output", required=True, help="Output file path (.json)")
    parser.add_argument("--tenant", default="tenant-demo", help="Tenant id")
    parser.add_argument("--start", default="2025-01-06T08:00:00+00:00", help="Shift start, ISO 8601 with offset")
    parser.add_argument("--operators", type=int, default=2, help="Number of operators")
    parser.add_argument("--tasks", type=int, default=6, help="Number of tasks")
    args = parser.parse_args()

    start = datetime.fromisoformat(args.start)
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps(build_request(args.tenant, start, args.operators, args.tasks), indent=2),
        encoding="utf-8",
    )
    print(f"Sample schedule request written: {output}")


if __name__ == "__main__":
    main()
