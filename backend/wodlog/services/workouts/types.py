"""
Canonical workout data structures.

This is the intermediate representation every schema is adapted into.
Parsing, raw-text generation and analytics all work with this format.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Union

from wodlog.services.workouts.parsing import Number, is_number, parse_amount, to_float, to_int


class SchemaKind(str, Enum):
    """Persisted schema a workout came from."""
    STRUCTURED = "structured"
    LEGACY = "legacy"


class AmountKind(str, Enum):
    """Tag of an Amount value."""
    LITERAL = "literal"  # plain number, e.g. 21
    SCHEME = "scheme"    # written scheme, e.g. "21-15-9", "5x5"


class ScoreName(str, Enum):
    """Closed set of score names."""
    SET_1 = "Set 1"
    SET_2 = "Set 2"
    SET_3 = "Set 3"
    SET_4 = "Set 4"
    SET_5 = "Set 5"
    ROUND_1 = "Round 1"
    ROUND_2 = "Round 2"
    ROUND_3 = "Round 3"
    ROUND_4 = "Round 4"
    ROUND_5 = "Round 5"
    ROUND_6 = "Round 6"
    ROUND_7 = "Round 7"
    ROUND_8 = "Round 8"
    ROUND_9 = "Round 9"
    ROUND_10 = "Round 10"
    FINISH_TIME = "Finish Time"
    TOTAL = "Total"
    TIME_CAP = "Time Cap"
    WEIGHT = "Weight"
    OTHER = "Other"

    @classmethod
    def round(cls, number: int) -> "ScoreName":
        """Round N score name, or Other past Round 10."""
        try:
            return cls(f"Round {number}")
        except ValueError:
            return cls.OTHER


class ScoreType(str, Enum):
    """Score value kinds. "rounds" is not one: round scores are reps."""
    TIME = "time"
    REPS = "reps"
    WEIGHT = "weight"
    OTHER = "other"


DESCRIPTIVE_TYPES = ("rest", "repeat", "instruction")


@dataclass
class ValidationWarning:
    """Soft validation finding; never blocks normalization."""
    field: str
    message: str
    severity: str = "warning"  # error | warning

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message, "severity": self.severity}


@dataclass
class ValidationResult:
    """Outcome of a validation pass."""
    is_valid: bool
    warnings: List[ValidationWarning] = field(default_factory=list)


# ========================================
# Workout elements
# ========================================

@dataclass(frozen=True)
class Amount:
    """
    Movement amount as a tagged value.

    `raw` is what the athlete wrote (kept for display), `total` is the
    rep count it stands for. Parsed once at the normalization boundary.
    """
    kind: AmountKind
    raw: Union[Number, str]
    total: Number

    @classmethod
    def parse(cls, value: Any) -> "Amount":
        """Build an Amount from an untrusted value (never raises)."""
        if is_number(value):
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            return cls(AmountKind.LITERAL, value, value)

        if isinstance(value, str):
            text = value.strip()
            # "21" and 21 are the same amount
            if text.isascii() and text.isdigit() and str(int(text)) == text:
                number = int(text)
                return cls(AmountKind.LITERAL, number, number)
            return cls(AmountKind.SCHEME, text, parse_amount(text))

        return cls(AmountKind.SCHEME, "", 0)

    @property
    def display(self) -> str:
        return str(self.raw)

    def __str__(self) -> str:
        return self.display


@dataclass
class MovementElement:
    """One exercise line, e.g. "21-15-9 Thruster 95"."""
    kind: ClassVar[str] = "movement"

    amount: Amount
    exercise: str
    unit: Optional[str] = None

    def line(self) -> str:
        """Render as "amount exercise unit", skipping empty parts."""
        parts = [self.amount.display, self.exercise, self.unit or ""]
        return " ".join(part for part in parts if part)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "movement": {
                "amount": self.amount.raw,
                "exercise": self.exercise,
                "unit": self.unit,
            },
        }


@dataclass
class DescriptiveElement:
    """Non-movement annotation, e.g. "Rest 3:00"."""
    kind: ClassVar[str] = "descriptive"

    text: str
    type: Optional[str] = None  # rest | repeat | instruction
    duration: Optional[int] = None  # seconds

    def line(self) -> str:
        return self.text

    def to_dict(self) -> Dict[str, Any]:
        descriptive: Dict[str, Any] = {"text": self.text, "type": self.type}
        if self.duration is not None:
            descriptive["duration"] = self.duration
        return {"type": self.kind, "descriptive": descriptive}


WorkoutElement = Union[MovementElement, DescriptiveElement]


# ========================================
# Score elements
# ========================================

@dataclass
class ScoreMetadata:
    """
    Interpreted score details. Every field is optional; None means the
    value was not written and could not be derived.
    """
    time_in_seconds: Optional[int] = None
    total_reps: Optional[int] = None
    rounds: Optional[int] = None
    reps_into_next_round: Optional[int] = None
    weight: Optional[float] = None
    unit: Optional[str] = None
    start_time: Optional[str] = None  # M:SS
    stop_time: Optional[str] = None   # M:SS
    round_time: Optional[int] = None  # seconds

    # Wire (camelCase) name for each field
    WIRE_NAMES: ClassVar[Dict[str, str]] = {
        "time_in_seconds": "timeInSeconds",
        "total_reps": "totalReps",
        "rounds": "rounds",
        "reps_into_next_round": "repsIntoNextRound",
        "weight": "weight",
        "unit": "unit",
        "start_time": "startTime",
        "stop_time": "stopTime",
        "round_time": "roundTime",
    }

    _INT_FIELDS: ClassVar[tuple] = (
        "time_in_seconds", "total_reps", "rounds", "reps_into_next_round", "round_time",
    )

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ScoreMetadata"]:
        """
        Read metadata from a camelCase (or snake_case) mapping.

        Values that cannot be coerced are dropped. Returns None when
        nothing usable is left.
        """
        if not isinstance(data, Mapping):
            return None

        metadata = cls()
        for attr, wire in cls.WIRE_NAMES.items():
            value = data.get(wire, data.get(attr))
            if value is None or isinstance(value, bool):
                continue
            if attr in cls._INT_FIELDS:
                setattr(metadata, attr, to_int(value))
            elif attr == "weight":
                setattr(metadata, attr, to_float(value))
            elif isinstance(value, (str, int, float)):
                setattr(metadata, attr, str(value).strip() or None)

        return None if metadata.is_empty() else metadata

    def is_empty(self) -> bool:
        return all(getattr(self, attr) is None for attr in self.WIRE_NAMES)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase mapping with absent fields omitted."""
        return {
            wire: getattr(self, attr)
            for attr, wire in self.WIRE_NAMES.items()
            if getattr(self, attr) is not None
        }


@dataclass
class ScoreElement:
    """One score/result line, e.g. "Finish Time: 12:34"."""
    name: ScoreName
    type: ScoreType
    value: Union[str, Number]
    metadata: Optional[ScoreMetadata] = None

    def line(self) -> str:
        return f"{self.name.value}: {self.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name.value,
            "type": self.type.value,
            "value": self.value,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


# ========================================
# Workout
# ========================================

@dataclass
class ExtractedData:
    """Legacy-compatible flat projection consumed by search and old clients."""
    type: str = "unknown"  # time | reps | unknown
    rounds: Optional[int] = None
    movements: List[str] = field(default_factory=list)
    # Legacy lists keep their positions; None marks an unreadable entry
    times: Optional[List[Optional[Number]]] = None
    reps: Optional[List[Optional[Number]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "rounds": self.rounds,
            "movements": list(self.movements),
            "times": list(self.times) if self.times is not None else None,
            "reps": list(self.reps) if self.reps is not None else None,
        }


@dataclass
class Workout:
    """
    Canonical workout.

    Structured workouts carry ordered element collections; legacy workouts
    only carry the flat `extracted_data`. Both always carry the projection
    (`name`, `raw_text`, `extracted_data`).
    """
    id: str
    date: datetime
    schema: SchemaKind
    name: str
    privacy: str = "public"
    confidence: float = 0.0
    title: Optional[str] = None
    description: Optional[str] = None
    workout_elements: List[WorkoutElement] = field(default_factory=list)
    score_elements: List[ScoreElement] = field(default_factory=list)
    raw_text: List[str] = field(default_factory=list)
    extracted_data: ExtractedData = field(default_factory=ExtractedData)
    user_id: Optional[str] = None
    image_url: Optional[str] = None

    # Soft findings from normalization; not part of workout identity
    warnings: List[ValidationWarning] = field(default_factory=list, compare=False)

    @property
    def is_structured(self) -> bool:
        return self.schema == SchemaKind.STRUCTURED

    def movements(self) -> Iterator[MovementElement]:
        """Movement elements in workout order."""
        for element in self.workout_elements:
            if isinstance(element, MovementElement):
                yield element

    def max_rounds(self) -> Optional[int]:
        """Largest `rounds` metadata across all scores, or None."""
        rounds = [
            score.metadata.rounds
            for score in self.score_elements
            if score.metadata and score.metadata.rounds is not None
        ]
        return max(rounds) if rounds else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "id": self.id,
            "schema": self.schema.value,
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "date": self.date.isoformat(),
            "privacy": self.privacy,
            "confidence": self.confidence,
            "userId": self.user_id,
            "imageUrl": self.image_url,
            "workoutElements": [el.to_dict() for el in self.workout_elements],
            "scoreElements": [el.to_dict() for el in self.score_elements],
            "rawText": list(self.raw_text),
            "extractedData": self.extracted_data.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }
