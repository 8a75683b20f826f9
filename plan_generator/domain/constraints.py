"""Domain-level validation rules for plan generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from plan_generator.domain.models import MERGE_STRATEGIES, PlanRequest


@dataclass(frozen=True)
class PlannerConfig:
    days_per_year: int
    default_seasonality_percentage: float
    pass1_max_idle_rounds: int
    pass2_stall_rounds: int
    algorithm_version: str
    random_seed: Optional[int] = None


def validate_planner_config(config: PlannerConfig) -> None:
    if config.days_per_year <= 0:
        raise ValueError("days_per_year must be > 0")
    if config.default_seasonality_percentage < 0.0:
        raise ValueError("default_seasonality_percentage must be >= 0")
    if config.pass1_max_idle_rounds <= 0:
        raise ValueError("pass1_max_idle_rounds must be > 0")
    if config.pass2_stall_rounds <= 0:
        raise ValueError("pass2_stall_rounds must be > 0")
    if not config.algorithm_version.strip():
        raise ValueError("algorithm_version must be non-empty")


def validate_plan_request(request: PlanRequest) -> None:
    if request.annual_target <= 0:
        raise ValueError("annual_target must be > 0")
    if request.max_events_per_week <= 0:
        raise ValueError("max_events_per_week must be > 0")
    if request.end_date < request.start_date:
        raise ValueError("end_date must not be before start_date")
    if request.merge_strategy not in MERGE_STRATEGIES:
        raise ValueError(
            f"merge_strategy must be one of {', '.join(MERGE_STRATEGIES)}"
        )
