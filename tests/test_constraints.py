"""Tests for planner configuration and plan request validation."""

from __future__ import annotations

from datetime import date

import pytest

from plan_generator.domain.constraints import (
    PlannerConfig,
    validate_plan_request,
    validate_planner_config,
)
from plan_generator.domain.models import PlanRequest


def valid_config(**overrides) -> PlannerConfig:
    """Return a valid baseline PlannerConfig, optionally overriding fields."""
    defaults = {
        "days_per_year": 365,
        "default_seasonality_percentage": 8.33,
        "pass1_max_idle_rounds": 3,
        "pass2_stall_rounds": 2,
        "algorithm_version": "1.0",
        "random_seed": None,
    }
    defaults.update(overrides)
    return PlannerConfig(**defaults)


def valid_request(**overrides) -> PlanRequest:
    defaults = {
        "account_id": 1,
        "carrier_id": 1,
        "product_id": 1,
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 3, 31),
        "annual_target": 1200,
        "max_events_per_week": 5,
        "merge_strategy": "add",
        "requested_by": 7,
    }
    defaults.update(overrides)
    return PlanRequest(**defaults)


# --- Planner config ---

def test_valid_config_passes() -> None:
    validate_planner_config(valid_config())


def test_days_per_year_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_planner_config(valid_config(days_per_year=0))


def test_negative_default_seasonality_raises() -> None:
    with pytest.raises(ValueError):
        validate_planner_config(valid_config(default_seasonality_percentage=-0.1))


def test_zero_default_seasonality_passes() -> None:
    validate_planner_config(valid_config(default_seasonality_percentage=0.0))


def test_pass1_idle_rounds_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_planner_config(valid_config(pass1_max_idle_rounds=0))


def test_pass2_stall_rounds_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_planner_config(valid_config(pass2_stall_rounds=0))


def test_blank_algorithm_version_raises() -> None:
    with pytest.raises(ValueError):
        validate_planner_config(valid_config(algorithm_version="  "))


# --- Plan request ---

def test_valid_request_passes() -> None:
    validate_plan_request(valid_request())


def test_single_day_period_passes() -> None:
    """start == end is a one-day period."""
    request = valid_request(start_date=date(2025, 5, 5), end_date=date(2025, 5, 5))
    validate_plan_request(request)
    assert request.days_in_period == 1


def test_end_before_start_raises() -> None:
    with pytest.raises(ValueError):
        validate_plan_request(
            valid_request(start_date=date(2025, 3, 1), end_date=date(2025, 2, 28))
        )


def test_annual_target_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_plan_request(valid_request(annual_target=0))


def test_max_events_per_week_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_plan_request(valid_request(max_events_per_week=0))


def test_unknown_merge_strategy_raises() -> None:
    with pytest.raises(ValueError):
        validate_plan_request(valid_request(merge_strategy="append"))


def test_replace_merge_strategy_passes() -> None:
    validate_plan_request(valid_request(merge_strategy="replace"))


def test_days_in_period_is_inclusive() -> None:
    assert valid_request().days_in_period == 90
