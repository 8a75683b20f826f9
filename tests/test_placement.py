from __future__ import annotations

import random
from collections import Counter
from datetime import date

import pytest

from plan_generator.domain.models import City, CityAllocation, Node
from plan_generator.services.placement_service import (
    OriginSelector,
    PlacementState,
    clamp_window,
    month_window,
    place_city,
    place_sub_count,
    week_key,
)


ONE_WEEK = (date(2025, 9, 1), date(2025, 9, 7))


def _node(code: str, city_id: int, tier: str) -> Node:
    return Node(code=code, city_id=city_id, tier=tier)


def _place(
    *,
    count: int,
    origin_tier: str,
    destinations: list[Node],
    topology: list[Node],
    max_events_per_week: int,
    window: tuple[date, date] = ONE_WEEK,
    seed: int = 11,
):
    rng = random.Random(seed)
    return place_sub_count(
        count=count,
        origin_tier=origin_tier,
        destination_nodes=sorted(destinations, key=lambda node: node.code),
        origins=OriginSelector(topology, rng),
        max_events_per_week=max_events_per_week,
        window=window,
        rng=rng,
        state=PlacementState(),
    )


# --- Week keys and windows ---

def test_week_key_uses_iso_monday_weeks():
    assert week_key(date(2025, 9, 1), "MAD-001") == "MAD-001:2025-W36"
    assert week_key(date(2025, 9, 7), "MAD-001") == "MAD-001:2025-W36"
    assert week_key(date(2025, 9, 8), "MAD-001") == "MAD-001:2025-W37"


def test_week_key_uses_iso_year():
    assert week_key(date(2024, 12, 30), "BCN-002") == "BCN-002:2025-W01"


def test_month_window_handles_leap_february():
    assert month_window(date(2024, 2, 1)) == (date(2024, 2, 1), date(2024, 2, 29))


def test_clamp_window_restricts_to_period():
    assert clamp_window(date(2025, 3, 1), date(2025, 3, 10), date(2025, 6, 30)) == (
        date(2025, 3, 10),
        date(2025, 3, 31),
    )


# --- Two-pass placement ---

def test_single_node_over_capacity_falls_back_to_best_effort_pass():
    destination = _node("DST-001", 1, "A")
    origin = _node("ORG-001", 2, "A")

    result = _place(
        count=10,
        origin_tier="A",
        destinations=[destination],
        topology=[destination, origin],
        max_events_per_week=1,
    )

    assert result.pass1_placed == 1
    assert result.pass2_placed == 9
    assert result.unassigned == 0
    assert len(result.events) == 10
    assert {event.destination_node_code for event in result.events} == {"DST-001"}
    assert {event.origin_node_code for event in result.events} == {"ORG-001"}


def test_pass_one_respects_weekly_capacity_when_sufficient():
    destinations = [_node(f"DST-{index}", 1, "B") for index in range(1, 5)]
    origins = [_node("ORG-1", 2, "C"), _node("ORG-2", 3, "C")]

    result = _place(
        count=8,
        origin_tier="C",
        destinations=destinations,
        topology=destinations + origins,
        max_events_per_week=2,
    )

    assert result.pass1_placed == 8
    assert result.pass2_placed == 0
    loads = Counter(
        week_key(event.scheduled_date, event.destination_node_code) for event in result.events
    )
    assert max(loads.values()) <= 2


def test_origin_is_never_the_destination_node():
    lonely = _node("ONLY-001", 1, "A")

    result = _place(
        count=4,
        origin_tier="A",
        destinations=[lonely],
        topology=[lonely],
        max_events_per_week=10,
    )

    assert result.events == []
    assert result.unassigned == 4


def test_missing_origin_tier_leaves_everything_unassigned():
    destinations = [_node("DST-1", 1, "A"), _node("DST-2", 1, "A")]

    result = _place(
        count=5,
        origin_tier="C",
        destinations=destinations,
        topology=destinations,
        max_events_per_week=3,
    )

    assert result.events == []
    assert result.unassigned == 5


def test_no_destination_nodes_leaves_everything_unassigned():
    result = _place(
        count=6,
        origin_tier="A",
        destinations=[],
        topology=[_node("ORG-1", 2, "A")],
        max_events_per_week=3,
    )
    assert result.events == []
    assert result.unassigned == 6


@pytest.mark.parametrize("count", [0, 1, 7, 40])
@pytest.mark.parametrize("max_events_per_week", [1, 3, 50])
def test_placed_plus_unassigned_equals_requested(count, max_events_per_week):
    destinations = [_node("DST-1", 1, "B"), _node("DST-2", 1, "B"), _node("DST-3", 1, "B")]
    topology = destinations + [_node("ORG-1", 2, "A")]

    for origin_tier in ("A", "B", "C"):
        result = _place(
            count=count,
            origin_tier=origin_tier,
            destinations=destinations,
            topology=topology,
            max_events_per_week=max_events_per_week,
            window=(date(2025, 4, 1), date(2025, 4, 30)),
        )
        assert len(result.events) + result.unassigned == count


def test_scheduled_dates_stay_inside_window():
    destinations = [_node("DST-1", 1, "A")]
    topology = destinations + [_node("ORG-1", 2, "A")]
    window = (date(2025, 2, 10), date(2025, 2, 20))

    result = _place(
        count=30,
        origin_tier="A",
        destinations=destinations,
        topology=topology,
        max_events_per_week=100,
        window=window,
    )

    assert all(window[0] <= event.scheduled_date <= window[1] for event in result.events)


# --- Determinism ---

def test_destination_visit_order_is_lexicographic_regardless_of_input_order():
    shuffled = [_node("C-3", 1, "A"), _node("A-1", 1, "A"), _node("B-2", 1, "A")]
    origins = [_node("ORG-1", 2, "B")]
    rng = random.Random(3)

    result = place_sub_count(
        count=3,
        origin_tier="B",
        destination_nodes=sorted(shuffled, key=lambda node: node.code),
        origins=OriginSelector(shuffled + origins, rng),
        max_events_per_week=10,
        window=ONE_WEEK,
        rng=rng,
        state=PlacementState(),
    )

    assert [event.destination_node_code for event in result.events] == ["A-1", "B-2", "C-3"]


def test_place_city_sorts_nodes_and_continues_cursor_across_tiers():
    city = City(city_id=1, name="Madrid", tier="A")
    destinations = [_node("N3", 1, "A"), _node("N1", 1, "A"), _node("N2", 1, "A")]
    topology = destinations + [_node("OB-1", 2, "B"), _node("OC-1", 3, "C")]
    rng = random.Random(5)

    result = place_city(
        allocation=CityAllocation(city=city, from_a=1, from_b=1, from_c=1),
        destination_nodes=destinations,
        origins=OriginSelector(topology, rng),
        max_events_per_week=10,
        window=ONE_WEEK,
        rng=rng,
    )

    assert [event.destination_node_code for event in result.events] == ["N1", "N2", "N3"]
    assert result.unassigned == 0


def test_fixed_seed_reproduces_exact_placements():
    destinations = [_node("DST-1", 1, "A"), _node("DST-2", 1, "A")]
    topology = destinations + [_node(f"ORG-{index}", 2, "A") for index in range(5)]

    first = _place(
        count=12,
        origin_tier="A",
        destinations=destinations,
        topology=topology,
        max_events_per_week=2,
        window=(date(2025, 6, 1), date(2025, 6, 30)),
        seed=42,
    )
    second = _place(
        count=12,
        origin_tier="A",
        destinations=list(reversed(destinations)),
        topology=list(reversed(topology)),
        max_events_per_week=2,
        window=(date(2025, 6, 1), date(2025, 6, 30)),
        seed=42,
    )

    assert first == second


def test_city_without_nodes_reports_every_tier_unassigned():
    city = City(city_id=9, name="Nowhere", tier="C")
    rng = random.Random(1)

    result = place_city(
        allocation=CityAllocation(city=city, from_a=3, from_b=2, from_c=1),
        destination_nodes=[],
        origins=OriginSelector([_node("ORG-1", 2, "A")], rng),
        max_events_per_week=5,
        window=ONE_WEEK,
        rng=rng,
    )

    assert result.events == []
    assert result.unassigned_by_tier == {"A": 3, "B": 2, "C": 1}
    assert result.unassigned == 6


def test_shared_state_carries_weekly_load_across_month_windows():
    destination = _node("DST-001", 1, "A")
    origin = _node("ORG-001", 2, "A")
    rng = random.Random(9)
    origins = OriginSelector([destination, origin], rng)
    state = PlacementState()

    june = place_sub_count(
        count=2,
        origin_tier="A",
        destination_nodes=[destination],
        origins=origins,
        max_events_per_week=1,
        window=(date(2025, 6, 30), date(2025, 6, 30)),
        rng=rng,
        state=state,
    )
    july = place_sub_count(
        count=2,
        origin_tier="A",
        destination_nodes=[destination],
        origins=origins,
        max_events_per_week=1,
        window=(date(2025, 7, 1), date(2025, 7, 6)),
        rng=rng,
        state=state,
    )

    assert june.pass1_placed == 1
    assert july.pass1_placed == 0
    assert july.pass2_placed == 2
    assert state.weekly_counts == {"DST-001:2025-W27": 4}
