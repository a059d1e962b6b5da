"""Type definitions for entries, performance records and ranked results."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping

EntryStatus = Literal["active", "withdrawn"]

# Track: only "finished" carries a time.
TrackStatus = Literal["finished", "DNS", "DNF", "DQ", "FS"]
# Horizontal jumps and throws.
FieldStatus = Literal["active", "complete", "retired", "NM", "ND"]
# High jump / pole vault.
VerticalStatus = Literal["active", "eliminated", "retired", "NH"]
VerticalOutcome = Literal["clear", "fail", "pass", "retire"]


@dataclass(frozen=True)
class Entry:
    """An entry in an event's pool.

    seed_performance is a time in milliseconds (lower is better) or a mark in
    centimeters (higher is better); the SeedingRule says which.
    """

    entry_id: str
    seed_performance: int | None = None
    club_id: str | None = None
    bib_number: int | None = None
    status: EntryStatus = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"


EntryPool = tuple[Entry, ...]


@dataclass(frozen=True)
class TrackRecord:
    entry_id: str
    status: TrackStatus
    time_ms: int | None = None
    # Informational only.
    reaction_time_ms: int | None = None
    discipline: Literal["track"] = "track"


@dataclass(frozen=True)
class FieldAttempt:
    distance_cm: int | None = None
    is_foul: bool = False
    is_pass: bool = False
    wind_mps: float | None = None

    @property
    def is_valid(self) -> bool:
        return not self.is_foul and not self.is_pass and self.distance_cm is not None


@dataclass(frozen=True)
class FieldRecord:
    entry_id: str
    status: FieldStatus = "active"
    attempts: tuple[FieldAttempt, ...] = ()
    discipline: Literal["field"] = "field"


@dataclass(frozen=True)
class VerticalRecord:
    """Per-entry projection of a vertical competition."""

    entry_id: str
    status: VerticalStatus
    attempts_by_height: Mapping[int, tuple[VerticalOutcome, ...]]
    discipline: Literal["vertical"] = "vertical"

    @property
    def best_height(self) -> int | None:
        cleared = [h for h, outcomes in self.attempts_by_height.items() if "clear" in outcomes]
        return max(cleared) if cleared else None


PerformanceRecord = TrackRecord | FieldRecord | VerticalRecord


@dataclass(frozen=True)
class RankedResult:
    entry_id: str
    place: int | None
    status: str
    best_value: int | None
    # Values the place was decided on, for display: (time,), marks best first,
    # or (height, fails at height, total fails). Equal keys share a place.
    tie_break_key: tuple
    best_legal_value: int | None = None

    @property
    def is_ranked(self) -> bool:
        return self.place is not None
