"""
Input validation schemas using Pydantic v2
Turns raw caller payloads (entries, rules, results) into engine types
"""

import logging
import re
from typing import List, Literal, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .presets import SeedingRule, rule_from_preset
from .types import Entry, FieldAttempt, FieldRecord, TrackRecord
from .vertical import VerticalAttempt

logger = logging.getLogger(__name__)

# ==================== TIME / MARK HELPERS ====================

_TIME_RE = re.compile(r"^\d+(:\d{1,2}){0,2}(\.\d+)?$")


def parse_time_to_ms(value: str) -> int:
    """Parse "10.45", "1:45.32" or "2:09:45" into milliseconds."""
    text = (value or "").strip()
    if not _TIME_RE.match(text):
        raise ValueError(f"invalid time {value!r}, expected ss.xx, m:ss.xx or h:mm:ss")
    parts = text.split(":")
    seconds = float(parts[-1])
    minutes = int(parts[-2]) if len(parts) >= 2 else 0
    hours = int(parts[-3]) if len(parts) == 3 else 0
    return round((hours * 3600 + minutes * 60 + seconds) * 1000)


def format_ms_to_time(ms: int) -> str:
    """Format milliseconds for display: 10.45, 1:45.32, 2:09:45.

    Rounds half up to hundredths below one hour and to whole seconds above,
    before splitting into fields, so 59 999 ms reads 1:00.00.
    """
    hundredths = (ms + 5) // 10
    if hundredths < 6000:
        return f"{hundredths // 100}.{hundredths % 100:02d}"
    if hundredths < 360_000:
        minutes, rest = divmod(hundredths, 6000)
        return f"{minutes}:{rest // 100:02d}.{rest % 100:02d}"
    hours, rest = divmod((ms + 500) // 1000, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def parse_mark_to_cm(value: str) -> int:
    """Parse a mark in meters ("7.45", "7,45") into centimeters."""
    text = (value or "").strip().replace(",", ".")
    try:
        meters = float(text)
    except ValueError:
        raise ValueError(f"invalid mark {value!r}, expected meters like 7.45")
    if meters < 0:
        raise ValueError("mark cannot be negative")
    return round(meters * 100)


# ==================== SCHEMAS ====================


class EntryInput(BaseModel):
    """Entry as delivered by the registration store"""

    entry_id: str = Field(..., alias="entryId", min_length=1, max_length=64)
    bib_number: Optional[int] = Field(None, alias="bibNumber", ge=0, le=99999)
    seed_performance: Optional[int] = Field(
        None, alias="seedPerformance", ge=0, description="ms for times, cm for marks"
    )
    club_id: Optional[str] = Field(None, alias="clubId", max_length=255)
    status: Literal["active", "withdrawn"] = "active"

    @field_validator("entry_id")
    @classmethod
    def validate_entry_id(cls, v: str) -> str:
        v = InputSanitizer.sanitize_string(v, 64)
        if not v:
            raise ValueError("entryId cannot be empty")
        return v

    @field_validator("club_id")
    @classmethod
    def validate_club_id(cls, v: Optional[str]) -> Optional[str]:
        """Blank clubs mean no club"""
        if v is None:
            return v
        v = InputSanitizer.sanitize_string(v, 255)
        return v or None

    def to_entry(self) -> Entry:
        return Entry(
            entry_id=self.entry_id,
            seed_performance=self.seed_performance,
            club_id=self.club_id,
            bib_number=self.bib_number,
            status=self.status,
        )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SeedingRuleInput(BaseModel):
    """Seeding request: optional preset plus per-field overrides"""

    preset: Optional[str] = Field(None, max_length=50)
    lane_count: Optional[int] = Field(None, alias="laneCount", ge=1, le=99)
    heat_count: Optional[int] = Field(None, alias="heatCount", ge=1, le=999)
    distribution: Optional[Literal["ranked_zigzag", "random", "club_separated"]] = None
    club_separation: Optional[bool] = Field(None, alias="clubSeparation")
    lane_policy: Optional[Literal["center_out", "sequential", "ranked_groups", "draw"]] = Field(
        None, alias="lanePolicy"
    )
    race_type: Optional[Literal["straight", "200m_300m", "400m_relay_800m", "distance"]] = Field(
        None, alias="raceType"
    )
    seed_order: Optional[Literal["ascending", "descending"]] = Field(None, alias="seedOrder")
    random_seed: Optional[int] = Field(None, alias="randomSeed")

    def to_rule(self) -> SeedingRule:
        overrides = self.model_dump(exclude_none=True, exclude={"preset"})
        if self.preset:
            return rule_from_preset(self.preset, **overrides)
        return SeedingRule(**overrides)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class TrackResultInput(BaseModel):
    """Track result; time may be given in ms or as a display string"""

    entry_id: str = Field(..., alias="entryId", min_length=1, max_length=64)
    status: Literal["finished", "DNS", "DNF", "DQ", "FS"] = "finished"
    time_ms: Optional[int] = Field(None, alias="timeMs", gt=0, le=86_400_000)
    time: Optional[str] = Field(None, max_length=20, description="e.g. '10.45' or '1:45.32'")
    reaction_time_ms: Optional[int] = Field(None, alias="reactionTimeMs", ge=0, le=10_000)

    @model_validator(mode="after")
    def resolve_time(self) -> Self:
        if self.time_ms is None and self.time:
            self.time_ms = parse_time_to_ms(self.time)
        return self

    def to_record(self) -> TrackRecord:
        return TrackRecord(
            entry_id=self.entry_id,
            status=self.status,
            time_ms=self.time_ms,
            reaction_time_ms=self.reaction_time_ms,
        )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class FieldAttemptInput(BaseModel):
    distance_cm: Optional[int] = Field(None, alias="distanceCm", ge=0, le=200_000)
    mark: Optional[str] = Field(None, max_length=20, description="meters, e.g. '7.45'")
    is_foul: bool = Field(False, alias="isFoul")
    is_pass: bool = Field(False, alias="isPass")
    wind_mps: Optional[float] = Field(None, alias="wind", ge=-20.0, le=20.0)

    @model_validator(mode="after")
    def validate_attempt(self) -> Self:
        """An attempt is exactly one of: mark, foul, pass"""
        if self.distance_cm is None and self.mark:
            self.distance_cm = parse_mark_to_cm(self.mark)
        if self.is_foul and self.is_pass:
            raise ValueError("attempt cannot be both foul and pass")
        if not self.is_foul and not self.is_pass and self.distance_cm is None:
            raise ValueError("attempt needs a distance unless it is a foul or pass")
        return self

    def to_attempt(self) -> FieldAttempt:
        return FieldAttempt(
            distance_cm=None if (self.is_foul or self.is_pass) else self.distance_cm,
            is_foul=self.is_foul,
            is_pass=self.is_pass,
            wind_mps=self.wind_mps,
        )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class FieldResultInput(BaseModel):
    entry_id: str = Field(..., alias="entryId", min_length=1, max_length=64)
    status: Literal["active", "complete", "retired", "NM", "ND"] = "active"
    attempts: List[FieldAttemptInput] = Field(default_factory=list, max_length=12)

    def to_record(self) -> FieldRecord:
        return FieldRecord(
            entry_id=self.entry_id,
            status=self.status,
            attempts=tuple(a.to_attempt() for a in self.attempts),
        )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Scoreboard codes used by officials.
_OUTCOME_CODES = {"o": "clear", "x": "fail", "-": "pass", "r": "retire"}


class VerticalAttemptInput(BaseModel):
    entry_id: str = Field(..., alias="entryId", min_length=1, max_length=64)
    height_cm: Optional[int] = Field(None, alias="heightCm", gt=0, le=1000)
    height: Optional[str] = Field(None, max_length=10, description="meters, e.g. '1.85'")
    outcome: Literal["clear", "fail", "pass", "retire"]

    @field_validator("outcome", mode="before")
    @classmethod
    def normalize_outcome(cls, v):
        """Accept O / X / - / r scoreboard codes"""
        if isinstance(v, str):
            return _OUTCOME_CODES.get(v.strip().lower(), v.strip().lower())
        return v

    @model_validator(mode="after")
    def resolve_height(self) -> Self:
        if self.height_cm is None:
            if not self.height:
                raise ValueError("attempt requires heightCm or height")
            self.height_cm = parse_mark_to_cm(self.height)
        return self

    def to_attempt(self) -> VerticalAttempt:
        return VerticalAttempt(
            entry_id=self.entry_id, height_cm=self.height_cm, outcome=self.outcome
        )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InputSanitizer:
    """Utility class for input sanitization and parsing"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        value = value.strip()
        value = value[:max_length]
        # Remove null bytes
        value = value.replace("\0", "")

        return value

    @staticmethod
    def _validate(model_cls, payload: dict):
        try:
            return model_cls.model_validate(payload)
        except Exception as e:
            logger.warning(f"{model_cls.__name__} validation failed: {e}")
            raise ValueError(f"Invalid {model_cls.__name__}: {str(e)}")

    @staticmethod
    def parse_entries(raw: List[dict]) -> tuple[Entry, ...]:
        return tuple(InputSanitizer._validate(EntryInput, item).to_entry() for item in raw)

    @staticmethod
    def parse_rule(raw: dict) -> SeedingRule:
        parsed = InputSanitizer._validate(SeedingRuleInput, raw)
        try:
            return parsed.to_rule()
        except (TypeError, ValueError) as e:
            logger.warning(f"SeedingRuleInput validation failed: {e}")
            raise ValueError(f"Invalid SeedingRuleInput: {str(e)}")

    @staticmethod
    def parse_track_records(raw: List[dict]) -> tuple[TrackRecord, ...]:
        return tuple(
            InputSanitizer._validate(TrackResultInput, item).to_record() for item in raw
        )

    @staticmethod
    def parse_field_records(raw: List[dict]) -> tuple[FieldRecord, ...]:
        return tuple(
            InputSanitizer._validate(FieldResultInput, item).to_record() for item in raw
        )

    @staticmethod
    def parse_vertical_attempts(raw: List[dict]) -> tuple[VerticalAttempt, ...]:
        return tuple(
            InputSanitizer._validate(VerticalAttemptInput, item).to_attempt() for item in raw
        )


# ==================== EXPORT ====================

__all__ = [
    "EntryInput",
    "SeedingRuleInput",
    "TrackResultInput",
    "FieldAttemptInput",
    "FieldResultInput",
    "VerticalAttemptInput",
    "InputSanitizer",
    "parse_time_to_ms",
    "format_ms_to_time",
    "parse_mark_to_cm",
]
