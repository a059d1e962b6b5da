"""High jump / pole vault attempt tracking and ranking.

The competition is an append-only attempt log. VerticalState is immutable:
record_attempt() and undo_last_attempt() return a new state with a bumped
version and leave the given one untouched, so keeping earlier versions is all
that "undo" needs, and a persisted log can be replayed into the same state.

Per-entry status is derived from the log:
- retired: a "retire" outcome was recorded; nothing may follow it.
- eliminated: three "fail" outcomes at one height without a "clear" there.
- active: otherwise.
A finished athlete (eliminated or retired) without any cleared height is
reported as NH.

Ranking: best cleared height (desc), then fewer fails at that height, then
fewer fails in total. Athletes still equal share a place.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Literal, Sequence

from .ranking import RankingConfig, assign_places
from .types import RankedResult, VerticalOutcome, VerticalRecord, VerticalStatus

logger = logging.getLogger(__name__)

OUTCOMES: frozenset[str] = frozenset({"clear", "fail", "pass", "retire"})

RecordingErrorKind = Literal[
    "already_cleared",
    "athlete_eliminated",
    "too_many_attempts",
    "athlete_retired",
    "unknown_entry",
    "invalid_attempt",
    "nothing_to_undo",
]


@dataclass
class RecordingError:
    """Represents a rejected attempt; the state it was applied to is unchanged."""

    kind: RecordingErrorKind
    message: str | None = None


@dataclass(frozen=True)
class VerticalAttempt:
    entry_id: str
    height_cm: int
    outcome: VerticalOutcome


@dataclass(frozen=True)
class VerticalState:
    entry_ids: tuple[str, ...]
    attempts: tuple[VerticalAttempt, ...] = ()
    version: int = 0

    def attempts_for(self, entry_id: str) -> tuple[VerticalAttempt, ...]:
        return tuple(a for a in self.attempts if a.entry_id == entry_id)

    def outcomes_at(self, entry_id: str, height_cm: int) -> tuple[VerticalOutcome, ...]:
        return tuple(
            a.outcome
            for a in self.attempts
            if a.entry_id == entry_id and a.height_cm == height_cm
        )

    def status_of(self, entry_id: str) -> VerticalStatus:
        return _derive_status(self.attempts_for(entry_id))


def _group_by_height(attempts: Iterable[VerticalAttempt]) -> dict[int, tuple[VerticalOutcome, ...]]:
    grouped: dict[int, list[VerticalOutcome]] = {}
    for attempt in attempts:
        grouped.setdefault(attempt.height_cm, []).append(attempt.outcome)
    return {height: tuple(grouped[height]) for height in sorted(grouped)}


def _derive_status(attempts: Sequence[VerticalAttempt]) -> VerticalStatus:
    if any(a.outcome == "retire" for a in attempts):
        return "retired"
    for outcomes in _group_by_height(attempts).values():
        if outcomes.count("fail") >= RankingConfig.MAX_ATTEMPTS_PER_HEIGHT and "clear" not in outcomes:
            return "eliminated"
    return "active"


def start_vertical(entry_ids: Iterable[str]) -> VerticalState:
    """Create an empty competition for the given entries."""
    ids = tuple(entry_ids)
    if len(set(ids)) != len(ids):
        raise ValueError("entry ids must be unique within an event")
    return VerticalState(entry_ids=ids)


def record_attempt(
    state: VerticalState,
    entry_id: str,
    height_cm: int,
    outcome: VerticalOutcome,
) -> VerticalState | RecordingError:
    """Append one attempt outcome, or explain why it cannot be recorded."""
    if entry_id not in state.entry_ids:
        return RecordingError(kind="unknown_entry", message=f"unknown entry {entry_id}")
    if outcome not in OUTCOMES:
        return RecordingError(kind="invalid_attempt", message=f"unknown outcome {outcome!r}")
    if isinstance(height_cm, bool) or not isinstance(height_cm, int) or height_cm <= 0:
        return RecordingError(kind="invalid_attempt", message=f"invalid height {height_cm!r}")

    status = state.status_of(entry_id)
    if status == "eliminated":
        return RecordingError(kind="athlete_eliminated", message=f"{entry_id} is eliminated")
    if status == "retired":
        return RecordingError(kind="athlete_retired", message=f"{entry_id} has retired")

    if outcome != "retire":
        at_height = state.outcomes_at(entry_id, height_cm)
        if "clear" in at_height:
            return RecordingError(
                kind="already_cleared",
                message=f"{entry_id} already cleared {height_cm}",
            )
        taken = sum(1 for o in at_height if o != "retire")
        if taken >= RankingConfig.MAX_ATTEMPTS_PER_HEIGHT:
            return RecordingError(
                kind="too_many_attempts",
                message=f"{entry_id} has no attempts left at {height_cm}",
            )

    new_state = replace(
        state,
        attempts=state.attempts + (VerticalAttempt(entry_id, height_cm, outcome),),
        version=state.version + 1,
    )
    logger.debug(
        f"Recorded {outcome} for {entry_id} at {height_cm} (v{new_state.version}, "
        f"status={new_state.status_of(entry_id)})"
    )
    return new_state


def undo_last_attempt(
    state: VerticalState, entry_id: str | None = None
) -> VerticalState | RecordingError:
    """Drop the most recent attempt (of entry_id, if given).

    Undoing the third fail at a height makes the athlete active again.
    """
    for idx in range(len(state.attempts) - 1, -1, -1):
        if entry_id is None or state.attempts[idx].entry_id == entry_id:
            removed = state.attempts[idx]
            logger.debug(
                f"Undo {removed.outcome} for {removed.entry_id} at {removed.height_cm}"
            )
            return replace(
                state,
                attempts=state.attempts[:idx] + state.attempts[idx + 1 :],
                version=state.version + 1,
            )
    return RecordingError(kind="nothing_to_undo")


def replay(
    entry_ids: Iterable[str], attempts: Iterable[VerticalAttempt]
) -> VerticalState | RecordingError:
    """Rebuild a state from a persisted attempt log, validating every step."""
    state: VerticalState | RecordingError = start_vertical(entry_ids)
    for position, attempt in enumerate(attempts):
        state = record_attempt(state, attempt.entry_id, attempt.height_cm, attempt.outcome)
        if isinstance(state, RecordingError):
            return RecordingError(
                kind=state.kind, message=f"attempt #{position + 1}: {state.message}"
            )
    return state


def vertical_records(state: VerticalState) -> tuple[VerticalRecord, ...]:
    """Per-entry view of the competition, in registration order."""
    records: list[VerticalRecord] = []
    for entry_id in state.entry_ids:
        attempts = state.attempts_for(entry_id)
        by_height = _group_by_height(attempts)
        status = _derive_status(attempts)
        cleared = any("clear" in outcomes for outcomes in by_height.values())
        if status != "active" and not cleared:
            status = "NH"
        records.append(
            VerticalRecord(entry_id=entry_id, status=status, attempts_by_height=by_height)
        )
    return tuple(records)


def _fail_counts(record: VerticalRecord, up_to_best_only: bool) -> tuple[int, int]:
    best = record.best_height
    at_best = record.attempts_by_height.get(best, ()).count("fail") if best is not None else 0
    total = sum(
        outcomes.count("fail")
        for height, outcomes in record.attempts_by_height.items()
        if not up_to_best_only or (best is not None and height <= best)
    )
    return at_best, total


def rank_vertical_records(
    records: Sequence[VerticalRecord], *, misses_up_to_best_only: bool = False
) -> tuple[RankedResult, ...]:
    """Rank per-entry vertical records (see rank_vertical)."""
    keyed: dict[str, tuple[int, int, int]] = {}
    ranked: list[VerticalRecord] = []
    for record in records:
        best = record.best_height
        if best is None or record.status == "NH":
            continue
        at_best, total = _fail_counts(record, misses_up_to_best_only)
        keyed[record.entry_id] = (best, at_best, total)
        ranked.append(record)

    rows = [
        RankedResult(
            entry_id=record.entry_id,
            place=place,
            status=record.status,
            best_value=record.best_height,
            tie_break_key=keyed[record.entry_id],
        )
        for record, place in assign_places(
            ranked,
            lambda r: (-keyed[r.entry_id][0], keyed[r.entry_id][1], keyed[r.entry_id][2]),
        )
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
        if record.entry_id not in keyed
    )
    return tuple(rows)


def rank_vertical(
    state: VerticalState, *, misses_up_to_best_only: bool = False
) -> tuple[RankedResult, ...]:
    """
    Live or final standings of a vertical competition.

    Args:
      state: competition state.
      misses_up_to_best_only: count total fails only at heights up to the best
        cleared height (fails above it are ignored), as some federations do.
    """
    return rank_vertical_records(
        vertical_records(state), misses_up_to_best_only=misses_up_to_best_only
    )
