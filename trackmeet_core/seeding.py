"""Heat and lane seeding engine (pure, no persistence).

assign() partitions the active entries of an event into heats and gives every
entry a lane or position number:

1. Heat count: the rule's explicit heat_count, else ceil(active / lane_count).
2. Distribution:
   - ranked_zigzag: entries sorted best-first by seed performance (unseeded
     entries last, in their original order) are dealt in a serpentine
     pattern: heat 1..H, then H..1, and so on.
   - random: entries are shuffled and dealt round-robin.
   - club_separated: ranked_zigzag followed by a best-effort repair pass that
     swaps same-club pairs apart within the same or an adjacent zigzag pass.
3. Lanes inside each heat follow the rule's lane policy, best seed first, on
   6, 8 or 9 lane tracks. Any other capacity gets positions 1..n.
4. Structural invariants are checked before returning; a violation raises
   SeedingInvariantError because it can only come from a bug in steps 1-3.

Input problems are returned as SeedingError values, never raised. The result
is always a complete assignment for the event, so callers persisting it can
replace any previous assignment in one step.
"""
from __future__ import annotations

import logging
import math
import random
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Literal, Sequence

from .presets import STANDARD_LANE_COUNTS, SeedingRule, lane_groups_for
from .types import Entry

logger = logging.getLogger(__name__)

SeedingErrorKind = Literal[
    "no_eligible_entries",
    "invalid_capacity",
    "invalid_heat_count",
    "duplicate_entry",
]


@dataclass
class SeedingError:
    """Represents a rejected seeding request (input problem, not a defect)."""

    kind: SeedingErrorKind
    message: str | None = None


class SeedingInvariantError(RuntimeError):
    """Raised when a produced assignment breaks a structural invariant."""


@dataclass(frozen=True)
class HeatAssignment:
    entry_id: str
    heat_number: int
    lane_or_position: int
    heat_size_actual: int


@dataclass
class _Slot:
    entry: Entry
    # 0-based position in the seed ordering.
    rank: int
    heat: int = 0
    # Zigzag pass (or round-robin round) the entry was dealt in.
    tier: int = 0


def _active_entries(entries: Sequence[Entry]) -> list[Entry]:
    return [entry for entry in entries if entry.is_active]


def _seed_ordered(active: Sequence[Entry], rule: SeedingRule) -> list[Entry]:
    sign = -1 if rule.seed_order == "descending" else 1
    indexed = list(enumerate(active))
    indexed.sort(
        key=lambda pair: (
            pair[1].seed_performance is None,
            sign * pair[1].seed_performance if pair[1].seed_performance is not None else 0,
            pair[0],
        )
    )
    return [entry for _, entry in indexed]


def compute_heat_count(active_count: int, rule: SeedingRule) -> int | SeedingError:
    """Resolve the number of heats for active_count entries under rule."""
    if rule.lane_count < 1:
        return SeedingError(
            kind="invalid_capacity",
            message=f"lane_count must be at least 1, got {rule.lane_count}",
        )
    if active_count == 0:
        return SeedingError(kind="no_eligible_entries", message="no active entries to seed")
    if rule.heat_count is None:
        return math.ceil(active_count / rule.lane_count)

    heat_count = rule.heat_count
    if heat_count < 1 or heat_count > active_count:
        return SeedingError(
            kind="invalid_heat_count",
            message=f"heat_count must be between 1 and {active_count}, got {heat_count}",
        )
    if math.ceil(active_count / heat_count) > rule.lane_count:
        return SeedingError(
            kind="invalid_heat_count",
            message=(
                f"{heat_count} heats cannot hold {active_count} entries "
                f"with {rule.lane_count} lanes per heat"
            ),
        )
    return heat_count


def _deal_zigzag(ordered: Sequence[Entry], heat_count: int) -> list[_Slot]:
    slots: list[_Slot] = []
    for rank, entry in enumerate(ordered):
        tier, offset = divmod(rank, heat_count)
        heat = offset if tier % 2 == 0 else heat_count - 1 - offset
        slots.append(_Slot(entry=entry, rank=rank, heat=heat, tier=tier))
    return slots


def _deal_round_robin(
    ordered: Sequence[Entry], heat_count: int, rng: random.Random
) -> list[_Slot]:
    ranks = {entry.entry_id: rank for rank, entry in enumerate(ordered)}
    shuffled = list(ordered)
    rng.shuffle(shuffled)
    slots: list[_Slot] = []
    for position, entry in enumerate(shuffled):
        tier, heat = divmod(position, heat_count)
        slots.append(_Slot(entry=entry, rank=ranks[entry.entry_id], heat=heat, tier=tier))
    return slots


def _separate_clubs(slots: list[_Slot], heat_count: int) -> int:
    """Swap same-club entries into different heats where a clean swap exists.

    Only entries dealt in the same or an adjacent pass are swap candidates, so
    heat strength stays balanced. Each entry is visited once. Returns the number
    of conflicts left unresolved.
    """
    if heat_count < 2:
        return 0
    clubs_by_heat: dict[int, Counter] = defaultdict(Counter)
    for slot in slots:
        if slot.entry.club_id is not None:
            clubs_by_heat[slot.heat][slot.entry.club_id] += 1

    unresolved = 0
    for slot in sorted(slots, key=lambda s: s.rank):
        club = slot.entry.club_id
        if club is None or clubs_by_heat[slot.heat][club] < 2:
            continue
        # The best-ranked member of a club keeps its heat; later ones move.
        if not any(
            other.heat == slot.heat and other.entry.club_id == club and other.rank < slot.rank
            for other in slots
        ):
            continue
        candidate = _find_swap(slot, slots, clubs_by_heat)
        if candidate is None:
            unresolved += 1
            continue
        logger.debug(
            f"Club separation: swapping {slot.entry.entry_id} (heat {slot.heat + 1}) "
            f"with {candidate.entry.entry_id} (heat {candidate.heat + 1})"
        )
        clubs_by_heat[slot.heat][club] -= 1
        clubs_by_heat[candidate.heat][club] += 1
        if candidate.entry.club_id is not None:
            clubs_by_heat[candidate.heat][candidate.entry.club_id] -= 1
            clubs_by_heat[slot.heat][candidate.entry.club_id] += 1
        slot.heat, candidate.heat = candidate.heat, slot.heat
    return unresolved


def _find_swap(
    slot: _Slot, slots: Sequence[_Slot], clubs_by_heat: dict[int, Counter]
) -> _Slot | None:
    club = slot.entry.club_id
    candidates = [
        other
        for other in slots
        if other.heat != slot.heat
        and abs(other.tier - slot.tier) <= 1
        and other.entry.club_id != club
    ]
    candidates.sort(key=lambda o: (abs(o.tier - slot.tier), abs(o.rank - slot.rank), o.heat))
    for other in candidates:
        if clubs_by_heat[other.heat][club] > 0:
            continue
        other_club = other.entry.club_id
        if other_club is not None and clubs_by_heat[slot.heat][other_club] > 0:
            continue
        return other
    return None


def center_out_lanes(lane_count: int) -> list[int]:
    """Lanes ordered from the centre outwards: 8 lanes -> 4,5,3,6,2,7,1,8."""
    start = (lane_count + 1) // 2
    order = [start]
    step = 1
    while len(order) < lane_count:
        for lane in (start + step, start - step):
            if 1 <= lane <= lane_count and len(order) < lane_count:
                order.append(lane)
        step += 1
    return order


def _lanes_for_heat(size: int, rule: SeedingRule, rng: random.Random) -> list[int]:
    """Lanes for a heat of `size` entries, in seed order (best first).

    Only standard tracks (6, 8 or 9 lanes) get centre-out or grouped lanes;
    any other capacity is a list of positions and is numbered 1..n.
    """
    if rule.race_type == "distance" or rule.lane_policy == "sequential":
        return list(range(1, size + 1))
    if rule.lane_policy == "draw":
        return rng.sample(range(1, rule.lane_count + 1), size)
    if rule.lane_count not in STANDARD_LANE_COUNTS:
        return list(range(1, size + 1))
    if rule.lane_policy == "ranked_groups":
        groups = lane_groups_for(rule.lane_count, rule.race_type)
        if groups is not None:
            lanes: list[int] = []
            for group in groups:
                drawn = list(group)
                rng.shuffle(drawn)
                lanes.extend(drawn)
            return lanes[:size]
    return center_out_lanes(rule.lane_count)[:size]


def _check_invariants(
    assignments: Sequence[HeatAssignment],
    active: Sequence[Entry],
    heat_count: int,
    rule: SeedingRule,
) -> None:
    ids = [a.entry_id for a in assignments]
    if sorted(ids) != sorted(e.entry_id for e in active):
        raise SeedingInvariantError("every active entry must receive exactly one assignment")

    by_heat: dict[int, list[HeatAssignment]] = defaultdict(list)
    for a in assignments:
        by_heat[a.heat_number].append(a)
    if sorted(by_heat) != list(range(1, heat_count + 1)):
        raise SeedingInvariantError(f"heat numbers are not contiguous: {sorted(by_heat)}")

    sizes = []
    for heat_number, members in by_heat.items():
        lanes = [a.lane_or_position for a in members]
        if len(set(lanes)) != len(lanes):
            raise SeedingInvariantError(f"lane collision in heat {heat_number}: {lanes}")
        if any(lane < 1 or lane > rule.lane_count for lane in lanes):
            raise SeedingInvariantError(f"lane out of range in heat {heat_number}: {lanes}")
        if len(members) > rule.lane_count:
            raise SeedingInvariantError(f"heat {heat_number} exceeds {rule.lane_count} lanes")
        if any(a.heat_size_actual != len(members) for a in members):
            raise SeedingInvariantError(f"heat {heat_number} size mismatch")
        sizes.append(len(members))
    if max(sizes) - min(sizes) > 1:
        raise SeedingInvariantError(f"heats are unbalanced: {sizes}")


def assign(
    entries: Sequence[Entry], rule: SeedingRule
) -> tuple[HeatAssignment, ...] | SeedingError:
    """
    Seed an event's entries into heats and lanes.

    Args:
      entries: the event's entry pool; only active entries are seeded.
      rule: seeding configuration (see presets.SeedingRule).

    Returns:
      Assignments ordered by heat then lane, or a SeedingError.
    """
    active = _active_entries(entries)
    seen: set[str] = set()
    for entry in active:
        if entry.entry_id in seen:
            return SeedingError(kind="duplicate_entry", message=f"duplicate entry {entry.entry_id}")
        seen.add(entry.entry_id)

    heat_count = compute_heat_count(len(active), rule)
    if isinstance(heat_count, SeedingError):
        logger.debug(f"Seeding rejected: {heat_count.kind} ({heat_count.message})")
        return heat_count
    logger.debug(
        f"Seeding {len(active)} entries into {heat_count} heat(s) "
        f"using {rule.distribution}/{rule.lane_policy}"
    )

    rng = random.Random(rule.random_seed)
    ordered = _seed_ordered(active, rule)
    if rule.distribution == "random":
        slots = _deal_round_robin(ordered, heat_count, rng)
    else:
        slots = _deal_zigzag(ordered, heat_count)

    if rule.separates_clubs:
        unresolved = _separate_clubs(slots, heat_count)
        if unresolved:
            logger.warning(f"Club separation left {unresolved} same-club conflict(s) in place")

    heats: dict[int, list[_Slot]] = defaultdict(list)
    for slot in slots:
        heats[slot.heat].append(slot)

    assignments: list[HeatAssignment] = []
    for heat_idx in sorted(heats):
        members = sorted(heats[heat_idx], key=lambda s: s.rank)
        lanes = _lanes_for_heat(len(members), rule, rng)
        for slot, lane in zip(members, lanes):
            assignments.append(
                HeatAssignment(
                    entry_id=slot.entry.entry_id,
                    heat_number=heat_idx + 1,
                    lane_or_position=lane,
                    heat_size_actual=len(members),
                )
            )
    assignments.sort(key=lambda a: (a.heat_number, a.lane_or_position))

    _check_invariants(assignments, active, heat_count, rule)
    return tuple(assignments)


def group_by_heat(assignments: Sequence[HeatAssignment]) -> dict[int, list[HeatAssignment]]:
    """Group assignments per heat number, each heat ordered by lane."""
    grouped: dict[int, list[HeatAssignment]] = {}
    for a in sorted(assignments, key=lambda a: (a.heat_number, a.lane_or_position)):
        grouped.setdefault(a.heat_number, []).append(a)
    return grouped
