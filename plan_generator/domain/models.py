"""Domain models for allocation plan generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional


TIERS: tuple[str, ...] = ("A", "B", "C")

MERGE_STRATEGIES: tuple[str, ...] = ("add", "replace")

PLAN_STATUS_DRAFT = "draft"
PLAN_STATUS_MERGED = "merged"


@dataclass(frozen=True)
class PlanRequest:
    account_id: int
    carrier_id: int
    product_id: int
    start_date: date
    end_date: date
    annual_target: int
    max_events_per_week: int
    merge_strategy: str
    requested_by: int

    @property
    def days_in_period(self) -> int:
        return (self.end_date - self.start_date).days + 1


@dataclass(frozen=True)
class SeasonalityProfile:
    """Twelve relative monthly weights, January first."""

    percentages: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.percentages) != 12:
            raise ValueError("seasonality profile must hold exactly 12 values")

    @classmethod
    def flat(cls, percentage: float) -> "SeasonalityProfile":
        return cls(percentages=tuple(percentage for _ in range(12)))

    def weight_for(self, month: int) -> float:
        return float(self.percentages[month - 1])


@dataclass(frozen=True)
class ClassificationRow:
    destination_tier: str
    pct_from_a: float
    pct_from_b: float
    pct_from_c: float

    def pct_from(self, origin_tier: str) -> float:
        return {
            "A": self.pct_from_a,
            "B": self.pct_from_b,
            "C": self.pct_from_c,
        }[origin_tier]


@dataclass(frozen=True)
class ClassificationMatrix:
    rows: dict[str, ClassificationRow]

    @classmethod
    def from_rows(
        cls,
        rows: list[ClassificationRow],
        default_percentage: float = 100.0 / 3,
    ) -> "ClassificationMatrix":
        """Index rows by destination tier, filling unconfigured tiers with equal thirds."""
        indexed = {row.destination_tier: row for row in rows}
        for tier in TIERS:
            if tier not in indexed:
                indexed[tier] = ClassificationRow(
                    destination_tier=tier,
                    pct_from_a=default_percentage,
                    pct_from_b=default_percentage,
                    pct_from_c=default_percentage,
                )
        return cls(rows=indexed)

    def row_for(self, destination_tier: str) -> ClassificationRow:
        return self.rows[destination_tier]


@dataclass(frozen=True)
class City:
    city_id: int
    name: str
    tier: str
    active: bool = True


@dataclass(frozen=True)
class Node:
    code: str
    city_id: int
    tier: str
    active: bool = True
    has_active_operator: bool = True


@dataclass(frozen=True)
class CityAllocation:
    """Events a destination city must receive, split by required origin tier."""

    city: City
    from_a: int
    from_b: int
    from_c: int

    def count_from(self, origin_tier: str) -> int:
        return {"A": self.from_a, "B": self.from_b, "C": self.from_c}[origin_tier]

    @property
    def total(self) -> int:
        return self.from_a + self.from_b + self.from_c


@dataclass(frozen=True)
class GeneratedEvent:
    origin_node_code: str
    destination_node_code: str
    scheduled_date: date
    origin_city_id: int
    destination_city_id: int


@dataclass(frozen=True)
class UnassignedCity:
    city_id: int
    city_name: str
    unassigned_events: int
    by_origin_tier: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "city_id": self.city_id,
            "city_name": self.city_name,
            "unassigned_events": self.unassigned_events,
            "by_origin_tier": dict(self.by_origin_tier),
        }


@dataclass(frozen=True)
class DraftPlan:
    request: PlanRequest
    calculated_events: int
    events: list[GeneratedEvent]
    unassigned: list[UnassignedCity]
    status: str = PLAN_STATUS_DRAFT
    generation_params: dict[str, Any] = field(default_factory=dict)
    plan_id: Optional[int] = None

    @property
    def total_unassigned(self) -> int:
        return sum(city.unassigned_events for city in self.unassigned)


@dataclass(frozen=True)
class PlanSummary:
    """Persisted plan header as listed from storage."""

    plan_id: int
    account_id: int
    carrier_id: int
    product_id: int
    start_date: date
    end_date: date
    annual_target: int
    calculated_events: int
    max_events_per_week: int
    unassigned_events: int
    unassigned_breakdown: list[UnassignedCity]
    merge_strategy: str
    status: str
    created_by: int
    generation_params: dict[str, Any]
    created_at: str
    merged_at: Optional[str]
    event_count: int


@dataclass(frozen=True)
class MergeResult:
    plan_id: int
    merge_strategy: str
    inserted_events: int
    replaced_events: int
