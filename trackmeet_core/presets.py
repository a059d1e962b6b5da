"""Seeding rules and named presets.

Presets are data: every preset is just a SeedingRule bundle plus labels, and
the seeding engine runs one algorithm parameterized by the rule. Lane groups
and qualification tables follow World Athletics Technical Rules 20.3-20.8.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Literal

Distribution = Literal["ranked_zigzag", "random", "club_separated"]
LanePolicy = Literal["center_out", "sequential", "ranked_groups", "draw"]
RaceType = Literal["straight", "200m_300m", "400m_relay_800m", "distance"]
SeedOrder = Literal["ascending", "descending"]
PresetId = Literal["wa_standard", "club_simplified", "school_basic"]

STANDARD_LANE_COUNTS = (6, 8, 9)


@dataclass(frozen=True)
class SeedingRule:
    # Lanes per heat, or position capacity for non-lane events.
    lane_count: int = 8
    heat_count: int | None = None
    distribution: Distribution = "ranked_zigzag"
    club_separation: bool = False
    lane_policy: LanePolicy = "center_out"
    race_type: RaceType = "straight"
    # "ascending" for times (lower is better), "descending" for marks.
    seed_order: SeedOrder = "ascending"
    random_seed: int | None = None

    @property
    def separates_clubs(self) -> bool:
        return self.club_separation or self.distribution == "club_separated"


@dataclass(frozen=True)
class QualificationRule:
    by_place: int
    by_time: int


@dataclass(frozen=True)
class SeedingPreset:
    id: PresetId
    name: str
    description: str
    rule: SeedingRule
    qualification: QualificationRule


SEEDING_PRESETS: dict[str, SeedingPreset] = {
    "wa_standard": SeedingPreset(
        id="wa_standard",
        name="World Athletics Standard",
        description="Zigzag distribution, lane draw by ranking groups and club separation",
        rule=SeedingRule(
            lane_count=8,
            distribution="club_separated",
            club_separation=True,
            lane_policy="ranked_groups",
        ),
        qualification=QualificationRule(by_place=3, by_time=2),
    ),
    "club_simplified": SeedingPreset(
        id="club_simplified",
        name="Club Meet (Simplified)",
        description="Zigzag distribution with lanes by seed from the centre outwards",
        rule=SeedingRule(
            lane_count=6,
            distribution="ranked_zigzag",
            lane_policy="center_out",
        ),
        qualification=QualificationRule(by_place=3, by_time=0),
    ),
    "school_basic": SeedingPreset(
        id="school_basic",
        name="School Competition",
        description="Random heat and lane assignment",
        rule=SeedingRule(
            lane_count=6,
            distribution="random",
            lane_policy="draw",
        ),
        qualification=QualificationRule(by_place=2, by_time=2),
    ),
}


def get_preset(preset_id: str) -> SeedingPreset:
    try:
        return SEEDING_PRESETS[preset_id]
    except KeyError:
        raise ValueError(
            f"unknown seeding preset {preset_id!r}, expected one of {sorted(SEEDING_PRESETS)}"
        ) from None


def rule_from_preset(preset_id: str, **overrides) -> SeedingRule:
    """Build a SeedingRule from a named preset, overriding individual fields.

    Example:
        rule_from_preset("wa_standard", lane_count=9, race_type="200m_300m")
    """
    return replace(get_preset(preset_id).rule, **overrides)


def recommended_preset(competition_kind: str) -> str:
    kind = (competition_kind or "").lower()
    if "championship" in kind or "mester" in kind or kind.startswith("nm"):
        return "wa_standard"
    if "school" in kind or "skole" in kind:
        return "school_basic"
    return "club_simplified"


def race_type_for_event(event_name: str) -> RaceType:
    """Classify an event name into the race type used for lane groups."""
    name = (event_name or "").lower()
    is_relay = "relay" in name or "stafett" in name
    if "800" in name and not is_relay:
        return "distance"
    for distance in ("1500", "3000", "5000", "10000", "mile"):
        if distance in name:
            return "distance"
    if is_relay:
        return "400m_relay_800m"
    if "60" in name or "100" in name:
        return "straight"
    if "200" in name or "300" in name:
        return "200m_300m"
    if "400" in name:
        return "400m_relay_800m"
    return "straight"


# Lane groups in ranking order: the best-ranked athletes draw among the first
# group, the next athletes among the second, and so on.
LANE_GROUPS: dict[tuple[int, str], tuple[tuple[int, ...], ...]] = {
    (8, "straight"): ((3, 4, 5, 6), (2, 7), (1, 8)),
    (8, "200m_300m"): ((5, 6, 7), (3, 4, 8), (1, 2)),
    (8, "400m_relay_800m"): ((4, 5, 6, 7), (3, 8), (1, 2)),
    (9, "straight"): ((4, 5, 6), (3, 7), (2, 8), (1, 9)),
    (9, "200m_300m"): ((5, 6, 7, 8), (3, 4, 9), (1, 2)),
    (9, "400m_relay_800m"): ((5, 6, 7), (4, 8), (3, 9), (1, 2)),
    (6, "straight"): ((3, 4), (2, 5), (1, 6)),
    (6, "200m_300m"): ((3, 4), (2, 5), (1, 6)),
    (6, "400m_relay_800m"): ((3, 4, 5), (2, 6), (1,)),
}


def lane_groups_for(lane_count: int, race_type: str) -> tuple[tuple[int, ...], ...] | None:
    """Return lane groups for a standard track, or None when there is no table."""
    return LANE_GROUPS.get((lane_count, race_type))


# Heats -> final, keyed by number of heats.
TWO_ROUND_QUALIFICATION: dict[int, QualificationRule] = {
    2: QualificationRule(by_place=4, by_time=0),
    3: QualificationRule(by_place=2, by_time=2),
    4: QualificationRule(by_place=2, by_time=0),
    5: QualificationRule(by_place=1, by_time=3),
    6: QualificationRule(by_place=1, by_time=2),
}
# Heats -> semi-finals, keyed by number of heats.
HEATS_TO_SEMI_QUALIFICATION: dict[int, QualificationRule] = {
    4: QualificationRule(by_place=3, by_time=4),
    5: QualificationRule(by_place=3, by_time=1),
    6: QualificationRule(by_place=2, by_time=4),
    8: QualificationRule(by_place=2, by_time=0),
}
# Semi-finals -> final, keyed by number of semi-finals.
SEMI_TO_FINAL_QUALIFICATION: dict[int, QualificationRule] = {
    2: QualificationRule(by_place=4, by_time=0),
    3: QualificationRule(by_place=2, by_time=2),
}


@dataclass(frozen=True)
class RoundStructure:
    rounds: int
    heats_per_round: tuple[int, ...]
    qualification: tuple[QualificationRule, ...]


def round_structure(
    athlete_count: int, lane_count: int, target_final_size: int = 8
) -> RoundStructure:
    """Propose a round structure (final only, heats+final, or heats+semis+final)."""
    if lane_count < 1:
        raise ValueError("lane_count must be at least 1")
    if athlete_count <= lane_count:
        return RoundStructure(rounds=1, heats_per_round=(1,), qualification=())

    heat_count = math.ceil(athlete_count / lane_count)
    if athlete_count <= lane_count * 3:
        q_rule = TWO_ROUND_QUALIFICATION.get(heat_count) or QualificationRule(
            by_place=target_final_size // heat_count,
            by_time=target_final_size % heat_count,
        )
        return RoundStructure(
            rounds=2, heats_per_round=(heat_count, 1), qualification=(q_rule,)
        )

    target_semi_size = 16
    semi_count = math.ceil(target_semi_size / lane_count)
    to_semi = HEATS_TO_SEMI_QUALIFICATION.get(heat_count) or QualificationRule(
        by_place=2, by_time=max(0, target_semi_size - heat_count * 2)
    )
    to_final = SEMI_TO_FINAL_QUALIFICATION.get(semi_count) or QualificationRule(
        by_place=3, by_time=2
    )
    return RoundStructure(
        rounds=3,
        heats_per_round=(heat_count, semi_count, 1),
        qualification=(to_semi, to_final),
    )
