"""
Workouts module - canonical workout model, parsing and persistence.

This module provides:
- Amount/time parsers and the score interpreter
- Movement canonicalizer
- Schema adapters (structured and legacy rows) and extraction intake
- Raw-text generator
- Workout repository and in-memory collection
"""
from wodlog.services.workouts.types import (
    Amount,
    AmountKind,
    DescriptiveElement,
    ExtractedData,
    MovementElement,
    SchemaKind,
    ScoreElement,
    ScoreMetadata,
    ScoreName,
    ScoreType,
    ValidationResult,
    ValidationWarning,
    Workout,
)
from wodlog.services.workouts.parsing import parse_amount, parse_time
from wodlog.services.workouts.movements import canonicalize
from wodlog.services.workouts.adapter import (
    PersistableWorkout,
    denormalize,
    detect_schema,
    from_legacy,
    from_structured,
    get_adapter,
    normalize,
)
from wodlog.services.workouts.intake import convert_legacy_to_structured, normalize_edit, normalize_extraction
from wodlog.services.workouts.raw_text import generate_raw_text
from wodlog.services.workouts.collection import WorkoutCollection
from wodlog.services.workouts.repository import (
    MigrationStats,
    WorkoutExistsError,
    WorkoutNotFoundError,
    WorkoutRepository,
    WorkoutStoreError,
)

__all__ = [
    # Data structures
    "Amount",
    "AmountKind",
    "DescriptiveElement",
    "ExtractedData",
    "MovementElement",
    "SchemaKind",
    "ScoreElement",
    "ScoreMetadata",
    "ScoreName",
    "ScoreType",
    "ValidationResult",
    "ValidationWarning",
    "Workout",
    # Parsers
    "parse_amount",
    "parse_time",
    "canonicalize",
    # Adapters
    "PersistableWorkout",
    "denormalize",
    "detect_schema",
    "from_legacy",
    "from_structured",
    "get_adapter",
    "normalize",
    "normalize_extraction",
    "normalize_edit",
    "convert_legacy_to_structured",
    "generate_raw_text",
    # Stores
    "WorkoutCollection",
    "WorkoutRepository",
    "MigrationStats",
    "WorkoutStoreError",
    "WorkoutNotFoundError",
    "WorkoutExistsError",
]
