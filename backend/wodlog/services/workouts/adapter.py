"""
Schema Adapters - convert persisted workout rows into the canonical Workout.

Two schemas live side by side in the workouts table:
- structured: title/description on the root row plus ordered
  `workout_elements` / `score_elements` child rows
- legacy: flat movements/times/reps/rounds/type columns, no children

A row mapping is what `WorkoutRecord.to_dict()` returns: root columns
plus the child rows embedded as lists.
"""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from wodlog.core.logging import get_logger, log_validation_warnings
from wodlog.services.workouts.parsing import Number, is_number, to_float, to_int
from wodlog.services.workouts.raw_text import generate_raw_text
from wodlog.services.workouts.scoring import coerce_score_name, coerce_score_type
from wodlog.services.workouts.types import (
    DESCRIPTIVE_TYPES,
    Amount,
    DescriptiveElement,
    ExtractedData,
    MovementElement,
    SchemaKind,
    ScoreElement,
    ScoreMetadata,
    ScoreType,
    ValidationWarning,
    Workout,
    WorkoutElement,
)

logger = get_logger(__name__)

LEGACY_COLUMNS = ("movements", "times", "reps")


@dataclass
class PersistableWorkout:
    """
    Rows to write for one workout.

    `workout_elements` / `score_elements` are None when the stored child
    rows must be left untouched (legacy writes).
    """
    root: Dict[str, Any]
    workout_elements: Optional[List[Dict[str, Any]]] = None
    score_elements: Optional[List[Dict[str, Any]]] = None

    @property
    def schema(self) -> SchemaKind:
        return detect_schema(self.root)

    def to_row(self) -> Dict[str, Any]:
        """Single row mapping with the child rows embedded."""
        row = dict(self.root)
        row["workout_elements"] = list(self.workout_elements or [])
        row["score_elements"] = list(self.score_elements or [])
        return row


def detect_schema(row: Mapping[str, Any]) -> SchemaKind:
    """
    Decide which schema a persisted row uses.

    Structured if `title` is set, or if none of the legacy columns are;
    legacy otherwise.
    """
    if row.get("title") is not None:
        return SchemaKind.STRUCTURED
    if all(row.get(column) is None for column in LEGACY_COLUMNS):
        return SchemaKind.STRUCTURED
    return SchemaKind.LEGACY


# ========================================
# Lenient field coercion
# ========================================

def text_or_none(value: Any) -> Optional[str]:
    """Stripped text, or None for blanks and non-text values."""
    if is_number(value):
        return str(value)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def coerce_date(value: Any, default: Optional[datetime] = None) -> datetime:
    """Timezone-aware UTC datetime; naive values are taken as UTC."""
    parsed: Optional[datetime] = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            parsed = None

    if parsed is None:
        return default or datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def coerce_confidence(value: Any) -> float:
    """Confidence clamped to [0, 1]; unreadable values become 0."""
    number = to_float(value)
    if number is None:
        return 0.0
    return min(max(number, 0.0), 1.0)


def coerce_privacy(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() == "private":
        return "private"
    return "public"


def coerce_id(value: Any) -> str:
    text = text_or_none(value) if not isinstance(value, uuid.UUID) else str(value)
    return text or str(uuid.uuid4())


def coerce_descriptive_type(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip().lower() in DESCRIPTIVE_TYPES:
        return value.strip().lower()
    return None


def coerce_score_value(value: Any) -> Union[str, Number]:
    if value is None:
        return ""
    if isinstance(value, str) or is_number(value):
        return value
    return str(value)


def string_list(value: Any) -> List[str]:
    """List of strings from a JSON list (non-strings dropped)."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def line_list(value: Any) -> List[str]:
    """Legacy movement lines as stored; non-strings become "" in place."""
    if not isinstance(value, list):
        return []
    return [item if isinstance(item, str) else "" for item in value]


def number_list(value: Any) -> Optional[List[Optional[Number]]]:
    """
    Legacy times/reps as stored; None stays None.

    Non-numeric entries become None in place, so reps[i] still belongs
    to movements[i].
    """
    if not isinstance(value, list):
        return None
    return [item if is_number(item) else None for item in value]


# ========================================
# Projection
# ========================================

def build_extracted_data(
    workout_elements: List[WorkoutElement],
    score_elements: List[ScoreElement],
) -> ExtractedData:
    """Legacy-compatible flat projection of a structured workout."""
    movements = [
        element.line()
        for element in workout_elements
        if isinstance(element, MovementElement)
    ]

    times = [
        score.metadata.time_in_seconds
        for score in score_elements
        if score.type == ScoreType.TIME
        and score.metadata and score.metadata.time_in_seconds is not None
    ]
    reps = [
        score.metadata.total_reps
        for score in score_elements
        if score.type == ScoreType.REPS
        and score.metadata and score.metadata.total_reps is not None
    ]
    rounds = [
        score.metadata.rounds
        for score in score_elements
        if score.metadata and score.metadata.rounds is not None
    ]

    if any(score.type == ScoreType.TIME for score in score_elements):
        workout_type = "time"
    elif any(score.type == ScoreType.REPS for score in score_elements):
        workout_type = "reps"
    else:
        workout_type = "unknown"

    return ExtractedData(
        type=workout_type,
        rounds=max(rounds) if rounds else None,
        movements=movements,
        times=times or None,
        reps=reps or None,
    )


def default_name(raw_text: List[str], workout_type: str, rounds: Optional[int]) -> str:
    """
    Display name for a legacy workout saved without one.

    First non-blank raw text line, else "{rounds}-{Type} Workout" or
    "{Type} Workout" (an unknown type reads as "Workout").
    """
    for line in raw_text:
        if line.strip():
            return line.strip()

    if not workout_type or workout_type.lower() == "unknown":
        type_label = "Workout"
    else:
        type_label = workout_type[:1].upper() + workout_type[1:]

    if rounds and rounds > 0:
        return f"{rounds}-{type_label} Workout"
    return f"{type_label} Workout"


# ========================================
# Child rows
# ========================================

def _ordered(rows: Any, order_key: str) -> List[Mapping[str, Any]]:
    if not isinstance(rows, list):
        return []
    mappings = [row for row in rows if isinstance(row, Mapping)]
    return sorted(mappings, key=lambda row: to_int(row.get(order_key)) or 0)


def element_from_row(row: Mapping[str, Any]) -> Optional[WorkoutElement]:
    element_type = row.get("element_type")
    if element_type == "movement":
        return MovementElement(
            amount=Amount.parse(row.get("amount")),
            exercise=text_or_none(row.get("exercise")) or "",
            unit=text_or_none(row.get("unit")),
        )
    if element_type == "descriptive":
        return DescriptiveElement(
            text=text_or_none(row.get("descriptive_text")) or "",
            type=coerce_descriptive_type(row.get("descriptive_type")),
            duration=to_int(row.get("descriptive_duration")),
        )
    logger.warning("Skipping workout element with unknown type", element_type=element_type)
    return None


def element_to_row(element: WorkoutElement, order: int) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "element_order": order,
        "element_type": element.kind,
        "amount": None,
        "exercise": None,
        "unit": None,
        "descriptive_text": None,
        "descriptive_type": None,
        "descriptive_duration": None,
    }
    if isinstance(element, MovementElement):
        row["amount"] = element.amount.raw
        row["exercise"] = element.exercise
        row["unit"] = element.unit
    else:
        row["descriptive_text"] = element.text
        row["descriptive_type"] = element.type
        row["descriptive_duration"] = element.duration
    return row


def score_from_row(row: Mapping[str, Any]) -> Tuple[ScoreElement, List[ValidationWarning]]:
    warnings: List[ValidationWarning] = []

    name, name_warning = coerce_score_name(row.get("name"))
    score_type, type_warning = coerce_score_type(row.get("score_type", row.get("type")))
    warnings.extend(w for w in (name_warning, type_warning) if w)

    score = ScoreElement(
        name=name,
        type=score_type,
        value=coerce_score_value(row.get("value")),
        metadata=ScoreMetadata.from_dict(row.get("metadata")),
    )
    return score, warnings


def score_to_row(score: ScoreElement, order: int) -> Dict[str, Any]:
    return {
        "score_order": order,
        "name": score.name.value,
        "score_type": score.type.value,
        "value": score.value,
        "metadata": score.metadata.to_dict() if score.metadata else None,
    }


# ========================================
# Schema adapters
# ========================================

class SchemaAdapter(ABC):
    """Converts between one persisted schema and the canonical Workout."""

    schema: SchemaKind

    @abstractmethod
    def to_workout(self, row: Mapping[str, Any]) -> Workout:
        """
        Build the canonical workout from a row mapping.

        Args:
            row: Root columns with child rows embedded

        Returns:
            Canonical Workout (never raises on malformed fields)
        """
        pass

    @abstractmethod
    def to_persistable(self, workout: Workout) -> PersistableWorkout:
        """Rows to write for a canonical workout."""
        pass

    def _root_row(self, workout: Workout) -> Dict[str, Any]:
        """Columns shared by both schemas."""
        return {
            "id": workout.id,
            "user_id": workout.user_id,
            "date": workout.date,
            "privacy": workout.privacy,
            "confidence": workout.confidence,
            "image_url": workout.image_url,
            "name": workout.name,
            "raw_text": list(workout.raw_text),
        }

    def _common_fields(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": coerce_id(row.get("id")),
            "date": coerce_date(row.get("date")),
            "privacy": coerce_privacy(row.get("privacy")),
            "confidence": coerce_confidence(row.get("confidence")),
            "user_id": text_or_none(row.get("user_id")),
            "image_url": text_or_none(row.get("image_url")),
        }


class StructuredSchemaAdapter(SchemaAdapter):
    """Root title/description plus ordered element collections."""

    schema = SchemaKind.STRUCTURED

    def to_workout(self, row: Mapping[str, Any]) -> Workout:
        warnings: List[ValidationWarning] = []

        workout_elements: List[WorkoutElement] = []
        for element_row in _ordered(row.get("workout_elements"), "element_order"):
            element = element_from_row(element_row)
            if element is not None:
                workout_elements.append(element)

        score_elements: List[ScoreElement] = []
        for score_row in _ordered(row.get("score_elements"), "score_order"):
            score, score_warnings = score_from_row(score_row)
            score_elements.append(score)
            warnings.extend(score_warnings)

        title = text_or_none(row.get("title"))
        workout = Workout(
            schema=self.schema,
            name=text_or_none(row.get("name")) or title or "Workout",
            title=title,
            description=text_or_none(row.get("description")),
            workout_elements=workout_elements,
            score_elements=score_elements,
            extracted_data=build_extracted_data(workout_elements, score_elements),
            warnings=warnings,
            **self._common_fields(row),
        )

        stored_text = string_list(row.get("raw_text"))
        workout.raw_text = stored_text or generate_raw_text(workout)
        return workout

    def to_persistable(self, workout: Workout) -> PersistableWorkout:
        root = self._root_row(workout)
        root.update({
            "title": workout.title,
            "description": workout.description,
            # Flat columns are cleared so the row keeps detecting as structured
            "workout_type": None,
            "rounds": None,
            "movements": None,
            "times": None,
            "reps": None,
        })
        return PersistableWorkout(
            root=root,
            workout_elements=[
                element_to_row(element, order)
                for order, element in enumerate(workout.workout_elements)
            ],
            score_elements=[
                score_to_row(score, order)
                for order, score in enumerate(workout.score_elements)
            ],
        )


class LegacySchemaAdapter(SchemaAdapter):
    """Flat movements/times/reps columns, no element collections."""

    schema = SchemaKind.LEGACY

    def to_workout(self, row: Mapping[str, Any]) -> Workout:
        workout_type = text_or_none(row.get("workout_type", row.get("type"))) or "unknown"
        extracted = ExtractedData(
            type=workout_type,
            rounds=to_int(row.get("rounds")),
            movements=line_list(row.get("movements")),
            times=number_list(row.get("times")),
            reps=number_list(row.get("reps")),
        )
        raw_text = string_list(row.get("raw_text"))

        return Workout(
            schema=self.schema,
            name=text_or_none(row.get("name")) or default_name(raw_text, extracted.type, extracted.rounds),
            raw_text=raw_text,
            extracted_data=extracted,
            **self._common_fields(row),
        )

    def to_persistable(self, workout: Workout) -> PersistableWorkout:
        extracted = workout.extracted_data
        root = self._root_row(workout)
        root.update({
            "title": None,
            "description": None,
            "workout_type": extracted.type,
            "rounds": extracted.rounds,
            # Always a list so the row keeps detecting as legacy
            "movements": list(extracted.movements),
            "times": list(extracted.times) if extracted.times is not None else None,
            "reps": list(extracted.reps) if extracted.reps is not None else None,
        })
        return PersistableWorkout(root=root)


# Adapter registry
_ADAPTERS = {
    SchemaKind.STRUCTURED: StructuredSchemaAdapter,
    SchemaKind.LEGACY: LegacySchemaAdapter,
}


def get_adapter(schema: SchemaKind) -> SchemaAdapter:
    """Get the adapter for a schema kind."""
    return _ADAPTERS[SchemaKind(schema)]()


def from_structured(row: Mapping[str, Any]) -> Workout:
    return StructuredSchemaAdapter().to_workout(row)


def from_legacy(row: Mapping[str, Any]) -> Workout:
    return LegacySchemaAdapter().to_workout(row)


def normalize(raw: Union[Mapping[str, Any], PersistableWorkout, Workout]) -> Workout:
    """
    Rebuild the canonical workout from persisted data.

    Args:
        raw: Row mapping (see module docstring) or PersistableWorkout

    Returns:
        Canonical Workout; malformed input degrades to defaults
    """
    if isinstance(raw, Workout):
        return raw
    if isinstance(raw, PersistableWorkout):
        raw = raw.to_row()
    if not isinstance(raw, Mapping):
        logger.warning("Normalizing non-mapping workout row", row_type=type(raw).__name__)
        raw = {}

    schema = detect_schema(raw)
    workout = get_adapter(schema).to_workout(raw)

    logger.debug(
        "Normalized workout row",
        workout_id=workout.id,
        schema=schema.value,
        elements=len(workout.workout_elements),
        scores=len(workout.score_elements),
    )
    if workout.warnings:
        log_validation_warnings(logger, workout.id, workout.warnings)

    return workout


def denormalize(workout: Workout) -> PersistableWorkout:
    """Rows to persist for a canonical workout (inverse of normalize)."""
    return get_adapter(workout.schema).to_persistable(workout)
