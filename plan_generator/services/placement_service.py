"""Capacity-aware placement of city volume onto concrete origin/destination nodes.

Each destination city's (from A, from B, from C) triple is placed as three
sub-problems sharing one `PlacementState`: the round-robin cursor continues
where the previous origin tier stopped, and weekly counters accumulate across
tiers so a node's weekly load reflects everything scheduled into it. Callers
keep one state per city across months, since an ISO week can straddle two.

Placement runs in two passes. Pass 1 honors `max_events_per_week` per
destination node and ISO week; it stops after a configurable number of
consecutive full rounds without a placement. Pass 2 ignores the weekly cap and
only requires a compatible origin. Whatever is still left is reported as
unassigned, so placed + unassigned always equals the requested count.
"""

from __future__ import annotations

import calendar
import random
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from plan_generator.domain.models import TIERS, CityAllocation, GeneratedEvent, Node
from plan_generator.utils.logger import get_logger


logger = get_logger(__name__)

DEFAULT_PASS1_MAX_IDLE_ROUNDS = 3
DEFAULT_PASS2_STALL_ROUNDS = 2


@dataclass
class PlacementState:
    node_index: int = 0
    weekly_counts: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PlacementResult:
    events: list[GeneratedEvent]
    unassigned: int
    pass1_placed: int
    pass2_placed: int


@dataclass(frozen=True)
class CityPlacementResult:
    events: list[GeneratedEvent]
    unassigned_by_tier: dict[str, int]

    @property
    def unassigned(self) -> int:
        return sum(self.unassigned_by_tier.values())


class OriginSelector:
    """Uniform random choice among active nodes of a given tier."""

    def __init__(self, topology: list[Node], rng: random.Random) -> None:
        self._rng = rng
        by_tier: dict[str, list[Node]] = defaultdict(list)
        for node in sorted(topology, key=lambda item: item.code):
            if node.active and node.has_active_operator:
                by_tier[node.tier].append(node)
        self._by_tier = dict(by_tier)

    def candidates(self, tier: str, exclude_code: str) -> list[Node]:
        return [node for node in self._by_tier.get(tier, []) if node.code != exclude_code]

    def pick(self, tier: str, exclude_code: str) -> Optional[Node]:
        candidates = self.candidates(tier, exclude_code)
        if not candidates:
            return None
        return self._rng.choice(candidates)


def week_key(scheduled_date: date, node_code: str) -> str:
    iso_year, iso_week, _ = scheduled_date.isocalendar()
    return f"{node_code}:{iso_year}-W{iso_week:02d}"


def month_window(month: date) -> tuple[date, date]:
    last_day = calendar.monthrange(month.year, month.month)[1]
    return month.replace(day=1), month.replace(day=last_day)


def clamp_window(month: date, start_date: date, end_date: date) -> tuple[date, date]:
    """Restrict a month's days to the part lying inside [start_date, end_date]."""
    first, last = month_window(month)
    return max(first, start_date), min(last, end_date)


def pick_scheduled_date(window: tuple[date, date], rng: random.Random) -> date:
    first, last = window
    span_days = (last - first).days + 1
    return first + timedelta(days=rng.randrange(span_days))


def sort_destination_nodes(nodes: list[Node]) -> list[Node]:
    return sorted(nodes, key=lambda node: node.code)


def _build_event(origin: Node, destination: Node, scheduled_date: date) -> GeneratedEvent:
    return GeneratedEvent(
        origin_node_code=origin.code,
        destination_node_code=destination.code,
        scheduled_date=scheduled_date,
        origin_city_id=origin.city_id,
        destination_city_id=destination.city_id,
    )


def place_sub_count(
    *,
    count: int,
    origin_tier: str,
    destination_nodes: list[Node],
    origins: OriginSelector,
    max_events_per_week: int,
    window: tuple[date, date],
    rng: random.Random,
    state: PlacementState,
    pass1_max_idle_rounds: int = DEFAULT_PASS1_MAX_IDLE_ROUNDS,
    pass2_stall_rounds: int = DEFAULT_PASS2_STALL_ROUNDS,
) -> PlacementResult:
    """Place `count` units whose origin must belong to `origin_tier`.

    `destination_nodes` must already be sorted by code.
    """
    if count <= 0 or not destination_nodes:
        return PlacementResult(events=[], unassigned=max(0, count), pass1_placed=0, pass2_placed=0)

    node_total = len(destination_nodes)
    events: list[GeneratedEvent] = []
    remaining = count

    idle_rounds = 0
    visits_in_round = 0
    placed_in_round = 0
    while remaining > 0 and idle_rounds < pass1_max_idle_rounds:
        node = destination_nodes[state.node_index % node_total]
        state.node_index += 1
        visits_in_round += 1

        origin = origins.pick(origin_tier, node.code)
        if origin is not None:
            scheduled = pick_scheduled_date(window, rng)
            key = week_key(scheduled, node.code)
            current = state.weekly_counts.get(key, 0)
            if current < max_events_per_week:
                state.weekly_counts[key] = current + 1
                events.append(_build_event(origin, node, scheduled))
                remaining -= 1
                placed_in_round += 1

        if visits_in_round == node_total:
            idle_rounds = 0 if placed_in_round else idle_rounds + 1
            visits_in_round = 0
            placed_in_round = 0

    pass1_placed = len(events)

    stall_limit = pass2_stall_rounds * node_total
    stalled = 0
    while remaining > 0 and stalled < stall_limit:
        node = destination_nodes[state.node_index % node_total]
        state.node_index += 1

        origin = origins.pick(origin_tier, node.code)
        if origin is None:
            stalled += 1
            continue
        stalled = 0

        scheduled = pick_scheduled_date(window, rng)
        key = week_key(scheduled, node.code)
        state.weekly_counts[key] = state.weekly_counts.get(key, 0) + 1
        events.append(_build_event(origin, node, scheduled))
        remaining -= 1

    pass2_placed = len(events) - pass1_placed
    if pass2_placed:
        logger.debug(
            "Weekly cap exceeded in best-effort pass | origin_tier=%s | placed=%s",
            origin_tier,
            pass2_placed,
        )
    return PlacementResult(
        events=events,
        unassigned=remaining,
        pass1_placed=pass1_placed,
        pass2_placed=pass2_placed,
    )


def place_city(
    *,
    allocation: CityAllocation,
    destination_nodes: list[Node],
    origins: OriginSelector,
    max_events_per_week: int,
    window: tuple[date, date],
    rng: random.Random,
    pass1_max_idle_rounds: int = DEFAULT_PASS1_MAX_IDLE_ROUNDS,
    pass2_stall_rounds: int = DEFAULT_PASS2_STALL_ROUNDS,
    state: Optional[PlacementState] = None,
) -> CityPlacementResult:
    """Place one city's monthly triple onto its destination nodes.

    Pass the same `state` for every month of a run so ISO weeks spanning a
    month boundary share one weekly counter.
    """
    sorted_nodes = sort_destination_nodes(
        [node for node in destination_nodes if node.active and node.has_active_operator]
    )
    if state is None:
        state = PlacementState()
    events: list[GeneratedEvent] = []
    unassigned_by_tier: dict[str, int] = {}

    for origin_tier in TIERS:
        result = place_sub_count(
            count=allocation.count_from(origin_tier),
            origin_tier=origin_tier,
            destination_nodes=sorted_nodes,
            origins=origins,
            max_events_per_week=max_events_per_week,
            window=window,
            rng=rng,
            state=state,
            pass1_max_idle_rounds=pass1_max_idle_rounds,
            pass2_stall_rounds=pass2_stall_rounds,
        )
        events.extend(result.events)
        unassigned_by_tier[origin_tier] = result.unassigned

    return CityPlacementResult(events=events, unassigned_by_tier=unassigned_by_tier)
