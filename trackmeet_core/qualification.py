"""Advancement from heats to the next round (track events).

determine_qualifiers() applies a "first N in each heat (Q) plus the next M
fastest (q)" rule to per-heat rankings. seed_next_round() turns the qualifiers
into an entry pool for the next round: heat winners by time, then second
places by time, and so on, followed by the time qualifiers by time.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping, Sequence

from .presets import QualificationRule
from .types import Entry, RankedResult

QualifiedBy = Literal["Q", "q"]


@dataclass(frozen=True)
class Qualifier:
    entry_id: str
    heat_number: int
    place: int
    time_ms: int
    qualified_by: QualifiedBy


def determine_qualifiers(
    heats: Mapping[int, Sequence[RankedResult]],
    by_place: int,
    by_time: int = 0,
) -> tuple[Qualifier, ...]:
    """
    Select qualifiers from ranked heat results.

    Args:
      heats: heat number -> rank_track() output for that heat.
      by_place: places per heat that qualify directly (Q).
      by_time: further qualifiers by fastest time across heats (q).

    Unranked results (DNS/DNF/DQ/FS) never qualify. When times tie on the last
    q spot, the earlier heat advances.
    """
    if by_place < 0 or by_time < 0:
        raise ValueError("by_place and by_time must be non-negative")

    qualifiers: list[Qualifier] = []
    candidates: list[Qualifier] = []
    for heat_number in sorted(heats):
        for row in heats[heat_number]:
            if row.place is None or row.best_value is None:
                continue
            if row.place <= by_place:
                qualifiers.append(
                    Qualifier(row.entry_id, heat_number, row.place, row.best_value, "Q")
                )
            else:
                candidates.append(
                    Qualifier(row.entry_id, heat_number, row.place, row.best_value, "q")
                )
    candidates.sort(key=lambda q: (q.time_ms, q.heat_number, q.place))
    qualifiers.extend(candidates[:by_time])
    return tuple(qualifiers)


def apply_rule(
    heats: Mapping[int, Sequence[RankedResult]], rule: QualificationRule
) -> tuple[Qualifier, ...]:
    return determine_qualifiers(heats, rule.by_place, rule.by_time)


def seed_next_round(
    qualifiers: Sequence[Qualifier],
    clubs: Mapping[str, str | None] | None = None,
) -> tuple[Entry, ...]:
    """Entry pool for the next round; seed_performance is the 1-based ranking."""
    clubs = clubs or {}
    by_place: dict[int, list[Qualifier]] = {}
    time_qualifiers: list[Qualifier] = []
    for q in qualifiers:
        if q.qualified_by == "Q":
            by_place.setdefault(q.place, []).append(q)
        else:
            time_qualifiers.append(q)

    ordered: list[Qualifier] = []
    for place in sorted(by_place):
        ordered.extend(sorted(by_place[place], key=lambda q: (q.time_ms, q.heat_number)))
    ordered.extend(sorted(time_qualifiers, key=lambda q: (q.time_ms, q.heat_number)))

    return tuple(
        Entry(entry_id=q.entry_id, seed_performance=ranking, club_id=clubs.get(q.entry_id))
        for ranking, q in enumerate(ordered, start=1)
    )
