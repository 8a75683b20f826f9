"""Proportional volume distribution over months and destination cities."""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import date

from plan_generator.domain.models import (
    TIERS,
    City,
    CityAllocation,
    ClassificationMatrix,
    SeasonalityProfile,
)
from plan_generator.utils.logger import get_logger


logger = get_logger(__name__)

# Float products like 1200 * 30 / 100 can land a hair above the integer.
_CEIL_PRECISION = 9


def ceil_count(value: float) -> int:
    return max(0, math.ceil(round(value, _CEIL_PRECISION)))


def compute_period_total(annual_target: int, days_in_period: int, days_per_year: int = 365) -> int:
    """Scale an annual target to a period of `days_in_period` days, rounding up."""
    return ceil_count(annual_target * days_in_period / days_per_year)


def months_in_range(start_date: date, end_date: date) -> list[date]:
    """Return the first day of every calendar month intersecting [start, end]."""
    months: list[date] = []
    current = start_date.replace(day=1)
    last = end_date.replace(day=1)
    while current <= last:
        months.append(current)
        if current.month == 12:
            current = current.replace(year=current.year + 1, month=1)
        else:
            current = current.replace(month=current.month + 1)
    return months


def distribute_by_month(
    total_events: int,
    seasonality: SeasonalityProfile,
    start_date: date,
    end_date: date,
) -> dict[date, int]:
    """Spread `total_events` across the months of the period by seasonality weight.

    Boundary months count fully regardless of how many of their days fall in
    the period. Each month is rounded up independently, so the result may sum
    to more than `total_events`.
    """
    months = months_in_range(start_date, end_date)
    weight_sum = sum(seasonality.weight_for(month.month) for month in months)
    if weight_sum <= 0.0:
        logger.warning(
            "Seasonality weights are zero for period | start=%s | end=%s",
            start_date.isoformat(),
            end_date.isoformat(),
        )
        return {month: 0 for month in months}

    allocation = {
        month: ceil_count(total_events * seasonality.weight_for(month.month) / weight_sum)
        for month in months
    }
    logger.debug(
        "Monthly distribution computed | total=%s | months=%s | allocated=%s",
        total_events,
        len(months),
        sum(allocation.values()),
    )
    return allocation


def group_cities_by_tier(cities: list[City]) -> dict[str, list[City]]:
    grouped: dict[str, list[City]] = defaultdict(list)
    for city in sorted(cities, key=lambda item: item.city_id):
        if city.active:
            grouped[city.tier].append(city)
    return grouped


def compute_tier_shares(month_events: int, matrix: ClassificationMatrix) -> dict[str, dict[str, float]]:
    """Un-rounded volume per destination tier, keyed by origin tier."""
    shares: dict[str, dict[str, float]] = {}
    for destination_tier in TIERS:
        row = matrix.row_for(destination_tier)
        shares[destination_tier] = {
            origin_tier: month_events * row.pct_from(origin_tier) / 100.0
            for origin_tier in TIERS
        }
    return shares


def compute_city_shares(
    tier_share: dict[str, float],
    city_count: int,
) -> list[dict[str, float]]:
    """Split one tier's un-rounded volume evenly over `city_count` cities."""
    tier_total = sum(tier_share.values())
    if city_count <= 0:
        return []
    if tier_total <= 0.0:
        return [{origin_tier: 0.0 for origin_tier in TIERS} for _ in range(city_count)]
    per_city = tier_total / city_count
    return [
        {
            origin_tier: per_city * tier_share[origin_tier] / tier_total
            for origin_tier in TIERS
        }
        for _ in range(city_count)
    ]


def distribute_by_classification(
    month_events: int,
    matrix: ClassificationMatrix,
    cities: list[City],
) -> list[CityAllocation]:
    """Split a month's volume over active cities and their required origin tiers.

    Tiers with no active city are dropped rather than redistributed.
    """
    cities_by_tier = group_cities_by_tier(cities)
    tier_shares = compute_tier_shares(month_events, matrix)

    allocations: list[CityAllocation] = []
    for destination_tier in TIERS:
        tier_cities = cities_by_tier.get(destination_tier, [])
        if not tier_cities:
            continue
        city_shares = compute_city_shares(tier_shares[destination_tier], len(tier_cities))
        for city, share in zip(tier_cities, city_shares):
            allocations.append(
                CityAllocation(
                    city=city,
                    from_a=ceil_count(share["A"]),
                    from_b=ceil_count(share["B"]),
                    from_c=ceil_count(share["C"]),
                )
            )
    return allocations
