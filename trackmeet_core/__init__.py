from .presets import (
    SEEDING_PRESETS,
    QualificationRule,
    RoundStructure,
    SeedingPreset,
    SeedingRule,
    get_preset,
    race_type_for_event,
    recommended_preset,
    round_structure,
    rule_from_preset,
)
from .qualification import Qualifier, determine_qualifiers, seed_next_round
from .ranking import RankingConfig, rank_field, rank_track
from .seeding import (
    HeatAssignment,
    SeedingError,
    SeedingInvariantError,
    assign,
    center_out_lanes,
    group_by_heat,
)
from .types import (
    Entry,
    EntryPool,
    FieldAttempt,
    FieldRecord,
    PerformanceRecord,
    RankedResult,
    TrackRecord,
    VerticalRecord,
)
from .validation import InputSanitizer, format_ms_to_time, parse_mark_to_cm, parse_time_to_ms
from .vertical import (
    RecordingError,
    VerticalAttempt,
    VerticalState,
    rank_vertical,
    rank_vertical_records,
    record_attempt,
    replay,
    start_vertical,
    undo_last_attempt,
    vertical_records,
)

__all__ = [
    "Entry",
    "EntryPool",
    "FieldAttempt",
    "FieldRecord",
    "PerformanceRecord",
    "RankedResult",
    "TrackRecord",
    "VerticalRecord",
    "SEEDING_PRESETS",
    "QualificationRule",
    "RoundStructure",
    "SeedingPreset",
    "SeedingRule",
    "get_preset",
    "race_type_for_event",
    "recommended_preset",
    "round_structure",
    "rule_from_preset",
    "HeatAssignment",
    "SeedingError",
    "SeedingInvariantError",
    "assign",
    "center_out_lanes",
    "group_by_heat",
    "RankingConfig",
    "rank_track",
    "rank_field",
    "RecordingError",
    "VerticalAttempt",
    "VerticalState",
    "start_vertical",
    "record_attempt",
    "undo_last_attempt",
    "replay",
    "vertical_records",
    "rank_vertical",
    "rank_vertical_records",
    "Qualifier",
    "determine_qualifiers",
    "seed_next_round",
    "InputSanitizer",
    "parse_time_to_ms",
    "format_ms_to_time",
    "parse_mark_to_cm",
]
