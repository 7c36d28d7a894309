"""House rules for operator scoring, conflict thresholds and recommendations.

The defaults below are the fixed penalty constants of the scheduler. A YAML file
(``config/scoring_rules.yaml`` or ``ORCHESTRATION_RULES_PATH``) may override any of
them; keys that are absent keep their default.
"""
from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

BASE_SCORE = 100.0
HIGH_UTILIZATION_THRESHOLD = 80.0
HIGH_UTILIZATION_PENALTY = 40.0
ELEVATED_UTILIZATION_THRESHOLD = 60.0
ELEVATED_UTILIZATION_PENALTY = 20.0
BALANCE_DEVIATION_WEIGHT = 0.5
WINDOW_RISK_PENALTIES = {"critical": 50.0, "high": 30.0, "medium": 10.0, "low": 0.0}
SLA_MISS_PENALTY = 100.0
TIGHT_SLA_BUFFER_MINUTES = 30.0
TIGHT_SLA_PENALTY = 20.0

OVERLOAD_UTILIZATION = 100.0
OVERLOAD_MINUTES_PER_DELAYED_TASK = 30
OVER_CAPACITY_UTILIZATION = 90.0

REBALANCE_VARIANCE = 400.0
REBALANCE_SPREAD = 15.0
DEFER_MAX_SLOTS = 5
OPTIMIZE_MIN_OUT_OF_WINDOW = 5

SLA_RISK_BUFFER_MINUTES = 60.0
SCHEDULE_VALIDITY_MINUTES = 60


class ScoringRules(BaseModel):
    base_score: float = BASE_SCORE
    high_utilization_threshold: float = HIGH_UTILIZATION_THRESHOLD
    high_utilization_penalty: float = HIGH_UTILIZATION_PENALTY
    elevated_utilization_threshold: float = ELEVATED_UTILIZATION_THRESHOLD
    elevated_utilization_penalty: float = ELEVATED_UTILIZATION_PENALTY
    balance_deviation_weight: float = BALANCE_DEVIATION_WEIGHT
    window_risk_penalties: dict[str, float] = dict(WINDOW_RISK_PENALTIES)
    sla_miss_penalty: float = SLA_MISS_PENALTY
    tight_sla_buffer_minutes: float = TIGHT_SLA_BUFFER_MINUTES
    tight_sla_penalty: float = TIGHT_SLA_PENALTY

    overload_utilization: float = OVERLOAD_UTILIZATION
    overload_minutes_per_delayed_task: int = OVERLOAD_MINUTES_PER_DELAYED_TASK
    over_capacity_utilization: float = OVER_CAPACITY_UTILIZATION

    rebalance_variance: float = REBALANCE_VARIANCE
    rebalance_spread: float = REBALANCE_SPREAD
    defer_max_slots: int = DEFER_MAX_SLOTS
    optimize_min_out_of_window: int = OPTIMIZE_MIN_OUT_OF_WINDOW

    sla_risk_buffer_minutes: float = SLA_RISK_BUFFER_MINUTES
    schedule_validity_minutes: int = SCHEDULE_VALIDITY_MINUTES


DEFAULT_RULES = ScoringRules()


def _rules_path() -> Path:
    env_path = os.getenv("ORCHESTRATION_RULES_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return CONFIG_DIR / "scoring_rules.yaml"


def load_rules(path: Path | None = None) -> ScoringRules:
    path = path or _rules_path()
    if not path.exists():
        return ScoringRules()
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    return ScoringRules(**data)
