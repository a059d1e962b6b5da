"""Results ranking for track and horizontal/throw events.

Places use competition ranking: equal performances share a place and the next
distinct performance takes its 1-based position in the sorted list (1, 1, 3).
Records without a valid performance are returned unranked (place=None) after
the ranked ones, in input order. Ranking never fails on partial data.
"""
from __future__ import annotations

import math
from typing import Callable, Hashable, Sequence, TypeVar

from .types import FieldRecord, PerformanceRecord, RankedResult, TrackRecord

T = TypeVar("T")

FIELD_UNRANKED_STATUSES = frozenset({"NM", "ND"})


class RankingConfig:
    """Ranking constants shared by all disciplines"""

    # Marks with a following wind above this are not legal for records.
    LEGAL_WIND_LIMIT_MPS = 2.0
    # Non-retire outcomes allowed at one height in vertical jumps.
    MAX_ATTEMPTS_PER_HEIGHT = 3


def assign_places(items: Sequence[T], sort_key: Callable[[T], Hashable]) -> list[tuple[T, int]]:
    """Sort items by sort_key (best first) and attach competition-ranking places."""
    ordered = sorted(items, key=sort_key)
    placed: list[tuple[T, int]] = []
    for position, item in enumerate(ordered, start=1):
        if placed and sort_key(item) == sort_key(placed[-1][0]):
            placed.append((item, placed[-1][1]))
        else:
            placed.append((item, position))
    return placed


def _require(records: Sequence[PerformanceRecord], record_type: type) -> None:
    for record in records:
        if not isinstance(record, record_type):
            raise TypeError(
                f"expected {record_type.__name__}, got {type(record).__name__}"
            )


def _has_valid_time(record: TrackRecord) -> bool:
    return record.status == "finished" and record.time_ms is not None and record.time_ms > 0


def rank_track(records: Sequence[TrackRecord]) -> tuple[RankedResult, ...]:
    """Rank a track race by time, fastest first."""
    _require(records, TrackRecord)
    finished = [r for r in records if _has_valid_time(r)]
    rows = [
        RankedResult(
            entry_id=record.entry_id,
            place=place,
            status=record.status,
            best_value=record.time_ms,
            tie_break_key=(record.time_ms,),
        )
        for record, place in assign_places(finished, lambda r: r.time_ms)
    ]
    rows.extend(
        RankedResult(
            entry_id=record.entry_id,
            place=None,
            status=record.status,
            best_value=None,
            tie_break_key=(),
        )
        for record in records
        if not _has_valid_time(record)
    )
    return tuple(rows)


def valid_marks(record: FieldRecord) -> list[int]:
    """Valid marks of a field record, best first."""
    return sorted((a.distance_cm for a in record.attempts if a.is_valid), reverse=True)


def best_legal_mark(record: FieldRecord) -> int | None:
    legal = [
        a.distance_cm
        for a in record.attempts
        if a.is_valid
        and (a.wind_mps is None or a.wind_mps <= RankingConfig.LEGAL_WIND_LIMIT_MPS)
    ]
    return max(legal) if legal else None


def rank_field(records: Sequence[FieldRecord]) -> tuple[RankedResult, ...]:
    """
    Rank a horizontal jump or throw by best mark with countback.

    Equal best marks are separated by the second-best mark, then the third,
    and so on; an athlete with a further valid mark beats one without. Retired
    athletes keep the marks they achieved. NM/ND are never ranked.
    """
    _require(records, FieldRecord)
    marks = {id(r): valid_marks(r) for r in records}
    ranked = [
        r for r in records if r.status not in FIELD_UNRANKED_STATUSES and marks[id(r)]
    ]
    ranked_ids = {id(r) for r in ranked}
    depth = max((len(marks[id(r)]) for r in ranked), default=0)

    def countback_key(record: FieldRecord) -> tuple[float, ...]:
        own = marks[id(record)]
        return tuple(-m for m in own) + (math.inf,) * (depth - len(own))

    rows = [
        RankedResult(
            entry_id=record.entry_id,
            place=place,
            status=record.status,
            best_value=marks[id(record)][0],
            tie_break_key=tuple(marks[id(record)]),
            best_legal_value=best_legal_mark(record),
        )
        for record, place in assign_places(ranked, countback_key)
    ]
    rows.extend(
        RankedResult(
            entry_id=record.entry_id,
            place=None,
            status=record.status,
            best_value=marks[id(record)][0] if marks[id(record)] else None,
            tie_break_key=(),
            best_legal_value=best_legal_mark(record),
        )
        for record in records
        if id(record) not in ranked_ids
    )
    return tuple(rows)
