from __future__ import annotations

from collections import Counter

import pytest

from trackmeet_core import (
    Entry,
    HeatAssignment,
    SeedingError,
    SeedingInvariantError,
    SeedingRule,
    assign,
    center_out_lanes,
    group_by_heat,
    rule_from_preset,
)
from trackmeet_core.seeding import _check_invariants


def _entries(count: int, clubs: int = 0) -> list[Entry]:
    return [
        Entry(
            entry_id=f"E{i}",
            seed_performance=10_000 + i * 10,
            club_id=f"C{i % clubs}" if clubs else None,
        )
        for i in range(count)
    ]


def _heats(out) -> dict[int, list[str]]:
    return {h: [a.entry_id for a in rows] for h, rows in group_by_heat(out).items()}


def _heat_sets(out) -> dict[int, set[str]]:
    return {h: set(ids) for h, ids in _heats(out).items()}


def _assert_structure(out, entries, rule):
    assert not isinstance(out, SeedingError)
    active_ids = sorted(e.entry_id for e in entries if e.is_active)
    assert sorted(a.entry_id for a in out) == active_ids
    heats = group_by_heat(out)
    assert sorted(heats) == list(range(1, len(heats) + 1))
    sizes = [len(rows) for rows in heats.values()]
    assert max(sizes) - min(sizes) <= 1
    for rows in heats.values():
        lanes = [a.lane_or_position for a in rows]
        assert len(set(lanes)) == len(lanes)
        assert all(1 <= lane <= rule.lane_count for lane in lanes)
        assert len(rows) <= rule.lane_count
        assert all(a.heat_size_actual == len(rows) for a in rows)


@pytest.mark.parametrize("distribution", ["ranked_zigzag", "random", "club_separated"])
@pytest.mark.parametrize("lane_count", [6, 8, 9])
def test_structural_invariants_hold_for_all_sizes(distribution, lane_count):
    for count in range(1, 31):
        entries = _entries(count, clubs=3)
        rule = SeedingRule(lane_count=lane_count, distribution=distribution, random_seed=count)
        out = assign(entries, rule)
        _assert_structure(out, entries, rule)


def test_heat_count_defaults_to_ceiling_of_entries_over_lanes():
    out = assign(_entries(17), SeedingRule(lane_count=8))
    assert len(group_by_heat(out)) == 3
    assert sorted(len(rows) for rows in group_by_heat(out).values()) == [5, 6, 6]


def test_zigzag_deals_serpentine_across_heats():
    out = assign(_entries(9), SeedingRule(lane_count=8, heat_count=3))
    assert _heat_sets(out) == {
        1: {"E0", "E5", "E6"},
        2: {"E1", "E4", "E7"},
        3: {"E2", "E3", "E8"},
    }


def test_fastest_entries_are_spread_over_heats():
    for count, lane_count in [(6, 3), (16, 8), (18, 6), (25, 9)]:
        out = assign(_entries(count), SeedingRule(lane_count=lane_count))
        heats = group_by_heat(out)
        heat_of = {a.entry_id: a.heat_number for a in out}
        top = [f"E{i}" for i in range(len(heats))]
        assert len({heat_of[e] for e in top}) == len(heats)


def test_unseeded_entries_go_last_in_original_order():
    entries = [
        Entry("A"),
        Entry("B", seed_performance=11_000),
        Entry("C"),
        Entry("D", seed_performance=10_500),
    ]
    out = assign(entries, SeedingRule(lane_count=8, lane_policy="sequential"))
    assert [(a.entry_id, a.lane_or_position) for a in out] == [
        ("D", 1),
        ("B", 2),
        ("A", 3),
        ("C", 4),
    ]


def test_marks_seed_descending():
    entries = [
        Entry("A", seed_performance=700),
        Entry("B", seed_performance=650),
        Entry("C", seed_performance=720),
    ]
    rule = SeedingRule(lane_count=12, lane_policy="sequential", seed_order="descending")
    out = assign(entries, rule)
    assert [a.entry_id for a in out] == ["C", "A", "B"]


def test_center_out_lane_order():
    assert center_out_lanes(8) == [4, 5, 3, 6, 2, 7, 1, 8]
    assert center_out_lanes(9) == [5, 6, 4, 7, 3, 8, 2, 9, 1]
    assert center_out_lanes(6) == [3, 4, 2, 5, 1, 6]
    assert center_out_lanes(1) == [1]


def test_center_out_gives_fastest_the_middle_lanes():
    out = assign(_entries(4), SeedingRule(lane_count=8, lane_policy="center_out"))
    lanes = {a.entry_id: a.lane_or_position for a in out}
    assert lanes == {"E0": 4, "E1": 5, "E2": 3, "E3": 6}


def test_field_event_capacity_numbers_positions_in_seed_order():
    entries = [Entry(f"E{i}", seed_performance=700 - i * 10) for i in range(5)]
    out = assign(entries, SeedingRule(lane_count=20, seed_order="descending"))
    lanes = {a.entry_id: a.lane_or_position for a in out}
    assert lanes == {"E0": 1, "E1": 2, "E2": 3, "E3": 4, "E4": 5}

    grouped = SeedingRule(lane_count=12, lane_policy="ranked_groups", seed_order="descending")
    assert [a.lane_or_position for a in assign(entries, grouped)] == [1, 2, 3, 4, 5]


def test_ranked_groups_draw_within_lane_groups():
    rule = SeedingRule(
        lane_count=8, lane_policy="ranked_groups", race_type="straight", random_seed=7
    )
    out = assign(_entries(8), rule)
    lanes = {a.entry_id: a.lane_or_position for a in out}
    assert {lanes[f"E{i}"] for i in range(4)} == {3, 4, 5, 6}
    assert {lanes["E4"], lanes["E5"]} == {2, 7}
    assert {lanes["E6"], lanes["E7"]} == {1, 8}


def test_distance_races_use_sequential_positions():
    rule = SeedingRule(lane_count=12, lane_policy="ranked_groups", race_type="distance")
    out = assign(_entries(10), rule)
    assert [a.lane_or_position for a in out] == list(range(1, 11))


def test_withdrawn_entries_are_not_seeded():
    entries = _entries(5) + [Entry("W", seed_performance=9_000, status="withdrawn")]
    out = assign(entries, SeedingRule(lane_count=8))
    assert "W" not in {a.entry_id for a in out}
    assert len(out) == 5


def test_club_separation_swaps_within_tier():
    entries = [
        Entry("A", seed_performance=100, club_id="X"),
        Entry("B", seed_performance=110, club_id="Y"),
        Entry("C", seed_performance=120, club_id="Y"),
        Entry("D", seed_performance=130, club_id="X"),
    ]
    plain = assign(entries, SeedingRule(lane_count=2))
    assert _heat_sets(plain) == {1: {"A", "D"}, 2: {"B", "C"}}

    separated = assign(entries, SeedingRule(lane_count=2, distribution="club_separated"))
    assert _heat_sets(separated) == {1: {"A", "C"}, 2: {"B", "D"}}

    flagged = assign(entries, SeedingRule(lane_count=2, club_separation=True))
    assert _heat_sets(flagged) == _heat_sets(separated)


def test_club_separation_is_best_effort():
    entries = [Entry(f"E{i}", seed_performance=100 + i, club_id="X") for i in range(6)]
    rule = SeedingRule(lane_count=3, distribution="club_separated")
    out = assign(entries, rule)
    _assert_structure(out, entries, rule)
    assert _heat_sets(out) == _heat_sets(assign(entries, SeedingRule(lane_count=3)))


def test_club_separation_reduces_conflicts():
    entries = _entries(24, clubs=3)
    rule = SeedingRule(lane_count=8, distribution="club_separated")

    def conflicts(out):
        heat_of = {a.entry_id: a.heat_number for a in out}
        counts = Counter((heat_of[e.entry_id], e.club_id) for e in entries)
        return sum(n - 1 for n in counts.values() if n > 1)

    assert conflicts(assign(entries, rule)) <= conflicts(assign(entries, SeedingRule(lane_count=8)))


def test_no_active_entries():
    out = assign([Entry("W", status="withdrawn")], SeedingRule())
    assert isinstance(out, SeedingError)
    assert out.kind == "no_eligible_entries"
    assert isinstance(assign([], SeedingRule()), SeedingError)


def test_invalid_capacity():
    out = assign(_entries(3), SeedingRule(lane_count=0))
    assert isinstance(out, SeedingError)
    assert out.kind == "invalid_capacity"


@pytest.mark.parametrize("heat_count", [0, 6])
def test_explicit_heat_count_out_of_range(heat_count):
    out = assign(_entries(5), SeedingRule(lane_count=8, heat_count=heat_count))
    assert isinstance(out, SeedingError)
    assert out.kind == "invalid_heat_count"


def test_explicit_heat_count_cannot_overflow_lanes():
    out = assign(_entries(20), SeedingRule(lane_count=8, heat_count=2))
    assert isinstance(out, SeedingError)
    assert out.kind == "invalid_heat_count"


def test_explicit_heat_count_is_used():
    out = assign(_entries(8), SeedingRule(lane_count=8, heat_count=2))
    assert sorted(len(rows) for rows in group_by_heat(out).values()) == [4, 4]


def test_duplicate_entry_ids_are_rejected():
    out = assign([Entry("A", 100), Entry("A", 110)], SeedingRule())
    assert isinstance(out, SeedingError)
    assert out.kind == "duplicate_entry"


def test_seeded_strategies_are_deterministic():
    entries = _entries(23, clubs=4)
    for rule in (
        SeedingRule(lane_count=8),
        SeedingRule(lane_count=8, distribution="club_separated"),
        rule_from_preset("club_simplified"),
        rule_from_preset("wa_standard", random_seed=11),
    ):
        assert assign(entries, rule) == assign(entries, rule)


def test_random_strategy_is_valid_and_reproducible_with_seed():
    entries = _entries(19)
    rule = rule_from_preset("school_basic", random_seed=3)
    out = assign(entries, rule)
    _assert_structure(out, entries, rule)
    assert out == assign(entries, rule)

    unseeded = rule_from_preset("school_basic")
    _assert_structure(assign(entries, unseeded), entries, unseeded)


def test_assign_does_not_mutate_input():
    entries = _entries(10, clubs=2)
    snapshot = list(entries)
    assign(entries, SeedingRule(lane_count=4, distribution="club_separated"))
    assert entries == snapshot


def test_invariant_check_flags_lane_collision():
    entries = [Entry("A", 100), Entry("B", 110)]
    broken = [
        HeatAssignment("A", 1, 4, 2),
        HeatAssignment("B", 1, 4, 2),
    ]
    with pytest.raises(SeedingInvariantError):
        _check_invariants(broken, entries, 1, SeedingRule(lane_count=8))
