"""
Extraction intake - builds canonical workouts from untrusted payloads.

Accepts what the whiteboard extraction service (or a manual edit) sends:
- structured: {title, description?, workout[], score[], confidence, date?, privacy?}
- legacy flat: {name?, rawText, type, rounds, movements, times, reps, confidence}
  (flat or nested under "extractedData")

Also converts legacy workouts into the structured schema (migration).
"""
import re
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from wodlog.core.logging import get_logger, log_validation_warnings
from wodlog.services.workouts.adapter import (
    build_extracted_data,
    coerce_confidence,
    coerce_date,
    coerce_descriptive_type,
    coerce_id,
    coerce_privacy,
    coerce_score_value,
    default_name,
    line_list,
    number_list,
    string_list,
    text_or_none,
)
from wodlog.services.workouts.movements import canonicalize, split_movement_line
from wodlog.services.workouts.parsing import format_seconds, parse_mmss, to_int
from wodlog.services.workouts.raw_text import generate_raw_text
from wodlog.services.workouts.scoring import (
    coerce_score_name,
    coerce_score_type,
    enrich_score,
    reps_per_round_from_amounts,
    validate_score_element,
)
from wodlog.services.workouts.types import (
    Amount,
    DescriptiveElement,
    ExtractedData,
    MovementElement,
    SchemaKind,
    ScoreElement,
    ScoreMetadata,
    ScoreName,
    ScoreType,
    ValidationWarning,
    Workout,
    WorkoutElement,
)

logger = get_logger(__name__)

_CLOCK = re.compile(r"(\d+:\d{2})")


def is_structured_payload(payload: Mapping[str, Any]) -> bool:
    """Structured unless the payload only carries legacy flat fields."""
    for key in ("workout", "score", "workoutElements", "scoreElements", "title"):
        if payload.get(key) is not None:
            return True
    flat = payload.get("extractedData")
    flat = flat if isinstance(flat, Mapping) else payload
    return all(flat.get(key) is None for key in ("movements", "times", "reps"))


def normalize_extraction(
    payload: Any,
    now: Optional[datetime] = None,
    user_id: Optional[str] = None,
) -> Workout:
    """
    Build a canonical workout from an extraction payload.

    Args:
        payload: Decoded JSON from the extraction service or the editor
        now: Date used when the payload carries none
        user_id: Owner, overrides any userId in the payload

    Returns:
        Canonical Workout with raw text and projection filled in;
        soft findings are attached as `warnings` (never raises)
    """
    if not isinstance(payload, Mapping):
        logger.warning("Extraction payload is not an object", payload_type=type(payload).__name__)
        payload = {}

    if is_structured_payload(payload):
        workout = _structured_from_payload(payload, now)
    else:
        workout = _legacy_from_payload(payload, now)

    if user_id is not None:
        workout.user_id = user_id

    logger.info(
        "Normalized extraction payload",
        workout_id=workout.id,
        schema=workout.schema.value,
        elements=len(workout.workout_elements),
        scores=len(workout.score_elements),
        confidence=workout.confidence,
        warnings=len(workout.warnings),
    )
    if workout.warnings:
        log_validation_warnings(logger, workout.id, workout.warnings)

    return workout


def normalize_edit(payload: Any, existing: Workout, user_id: Optional[str] = None) -> Workout:
    """
    Build the replacement for a stored workout from an edit payload.

    The edit replaces content wholesale. Identity (id, owner, image) comes
    from the stored workout; date, privacy and confidence are kept unless
    the payload sets them.
    """
    fields = payload if isinstance(payload, Mapping) else {}
    workout = normalize_extraction(payload, now=existing.date, user_id=user_id or existing.user_id)

    workout.id = existing.id
    if workout.image_url is None:
        workout.image_url = existing.image_url
    if fields.get("privacy") is None:
        workout.privacy = existing.privacy
    if _payload_confidence(fields) is None:
        workout.confidence = existing.confidence

    return workout


def _payload_confidence(payload: Mapping[str, Any]) -> Any:
    confidence = payload.get("confidence")
    metadata = payload.get("metadata")
    if confidence is None and isinstance(metadata, Mapping):
        confidence = metadata.get("confidence")
    return confidence


def _common_fields(payload: Mapping[str, Any], now: Optional[datetime]) -> dict:
    return {
        "id": coerce_id(payload.get("id")),
        "date": coerce_date(payload.get("date"), default=now),
        "privacy": coerce_privacy(payload.get("privacy")),
        "confidence": coerce_confidence(_payload_confidence(payload)),
        "user_id": text_or_none(payload.get("userId", payload.get("user_id"))),
        "image_url": text_or_none(payload.get("imageUrl", payload.get("image_url"))),
    }


# ========================================
# Structured payloads
# ========================================

def _list_field(payload: Mapping[str, Any], *keys: str) -> Tuple[List[Any], Optional[ValidationWarning]]:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        if isinstance(value, list):
            return value, None
        return [], ValidationWarning(
            field=keys[0],
            message=f'"{key}" is not a list; ignored',
        )
    return [], None


def parse_workout_element(item: Any) -> Tuple[Optional[WorkoutElement], List[ValidationWarning]]:
    """One workout element from its payload form."""
    if not isinstance(item, Mapping):
        return None, [ValidationWarning(field="workout", message="Workout element is not an object; skipped")]

    element_type = item.get("type")
    if element_type not in ("movement", "descriptive"):
        # Infer from the payload shape
        if isinstance(item.get("movement"), Mapping) or "exercise" in item:
            element_type = "movement"
        elif isinstance(item.get("descriptive"), Mapping) or "text" in item:
            element_type = "descriptive"

    if element_type == "movement":
        data = item.get("movement")
        data = data if isinstance(data, Mapping) else item
        exercise = text_or_none(data.get("exercise")) or ""
        warnings = []
        if not exercise:
            warnings.append(ValidationWarning(field="workout.movement.exercise", message="Movement has no exercise"))
        return MovementElement(
            amount=Amount.parse(data.get("amount")),
            exercise=exercise,
            unit=text_or_none(data.get("unit")),
        ), warnings

    if element_type == "descriptive":
        data = item.get("descriptive")
        data = data if isinstance(data, Mapping) else item
        text = text_or_none(data.get("text")) or ""
        descriptive_type = coerce_descriptive_type(data.get("type"))
        duration = to_int(data.get("duration"))
        if duration is None and descriptive_type == "rest":
            # "Rest 3:00" -> 180
            match = _CLOCK.search(text)
            duration = parse_mmss(match.group(1)) if match else None
        return DescriptiveElement(text=text, type=descriptive_type, duration=duration), []

    return None, [ValidationWarning(
        field="workout.type",
        message=f'Unknown workout element type "{element_type}"; skipped',
    )]


def parse_score_element(item: Any) -> Tuple[Optional[ScoreElement], List[ValidationWarning]]:
    """One score element from its payload form (before enrichment)."""
    if not isinstance(item, Mapping):
        return None, [ValidationWarning(field="score", message="Score element is not an object; skipped")]

    warnings: List[ValidationWarning] = []
    name, name_warning = coerce_score_name(item.get("name"))
    score_type, type_warning = coerce_score_type(item.get("type"))
    warnings.extend(w for w in (name_warning, type_warning) if w)

    return ScoreElement(
        name=name,
        type=score_type,
        value=coerce_score_value(item.get("value")),
        metadata=ScoreMetadata.from_dict(item.get("metadata")),
    ), warnings


def _structured_from_payload(payload: Mapping[str, Any], now: Optional[datetime]) -> Workout:
    warnings: List[ValidationWarning] = []

    raw_elements, warning = _list_field(payload, "workout", "workoutElements")
    if warning:
        warnings.append(warning)
    workout_elements: List[WorkoutElement] = []
    for item in raw_elements:
        element, element_warnings = parse_workout_element(item)
        warnings.extend(element_warnings)
        if element is not None:
            workout_elements.append(element)

    reps_per_round = reps_per_round_from_amounts([
        element.amount.total
        for element in workout_elements
        if isinstance(element, MovementElement)
    ]) or None

    raw_scores, warning = _list_field(payload, "score", "scoreElements")
    if warning:
        warnings.append(warning)
    score_elements: List[ScoreElement] = []
    for item in raw_scores:
        score, score_warnings = parse_score_element(item)
        warnings.extend(score_warnings)
        if score is None:
            continue
        score, enrich_warnings = enrich_score(score, reps_per_round)
        warnings.extend(enrich_warnings)
        warnings.extend(validate_score_element(score, reps_per_round).warnings)
        score_elements.append(score)

    title = text_or_none(payload.get("title")) or "Workout"
    workout = Workout(
        schema=SchemaKind.STRUCTURED,
        name=title,
        title=title,
        description=text_or_none(payload.get("description")),
        workout_elements=workout_elements,
        score_elements=score_elements,
        extracted_data=build_extracted_data(workout_elements, score_elements),
        warnings=warnings,
        **_common_fields(payload, now),
    )
    workout.raw_text = generate_raw_text(workout)
    return workout


# ========================================
# Legacy payloads
# ========================================

def _legacy_from_payload(payload: Mapping[str, Any], now: Optional[datetime]) -> Workout:
    flat = payload.get("extractedData")
    flat = flat if isinstance(flat, Mapping) else payload

    raw_text = payload.get("rawText", payload.get("raw_text"))
    if isinstance(raw_text, str):
        raw_text = raw_text.splitlines()
    raw_text = string_list(raw_text)

    extracted = ExtractedData(
        type=text_or_none(flat.get("type")) or "unknown",
        rounds=to_int(flat.get("rounds")),
        movements=line_list(flat.get("movements")),
        times=number_list(flat.get("times")),
        reps=number_list(flat.get("reps")),
    )

    return Workout(
        schema=SchemaKind.LEGACY,
        name=text_or_none(payload.get("name")) or default_name(raw_text, extracted.type, extracted.rounds),
        raw_text=raw_text,
        extracted_data=extracted,
        **_common_fields(payload, now),
    )


# ========================================
# Legacy -> structured conversion
# ========================================

def convert_legacy_to_structured(workout: Workout) -> Workout:
    """
    Convert a legacy workout into the structured schema.

    - "21 Thrusters" -> movement amount 21, exercise canonicalized
    - times[i] -> time score "Finish Time" (i = 0) / "Round i+1"
    - reps[i]  -> reps score "Total" (i = 0) / "Round i+1"
      (None entries produce no score)
    - title: legacy name, else the first three exercises joined by " & ",
      else "Workout"

    Structured workouts are returned unchanged.
    """
    if workout.is_structured:
        return workout

    extracted = workout.extracted_data

    workout_elements: List[WorkoutElement] = []
    for line in extracted.movements:
        if not line.strip():
            continue
        amount_text, exercise = split_movement_line(line)
        workout_elements.append(MovementElement(
            amount=Amount.parse(amount_text or 0),
            exercise=canonicalize(exercise).normalized,
        ))

    # Empty slots are skipped; names keep the stored position
    score_elements: List[ScoreElement] = []
    for index, seconds in enumerate(extracted.times or []):
        if seconds is None:
            continue
        score_elements.append(ScoreElement(
            name=ScoreName.FINISH_TIME if index == 0 else ScoreName.round(index + 1),
            type=ScoreType.TIME,
            value=format_seconds(seconds),
            metadata=ScoreMetadata(time_in_seconds=int(seconds)),
        ))
    for index, reps in enumerate(extracted.reps or []):
        if reps is None:
            continue
        score_elements.append(ScoreElement(
            name=ScoreName.TOTAL if index == 0 else ScoreName.round(index + 1),
            type=ScoreType.REPS,
            value=str(reps),
            metadata=ScoreMetadata(total_reps=int(reps)),
        ))

    title = text_or_none(workout.name)
    # A synthesized "{Type} Workout" name is not a real title
    if title == default_name([], extracted.type, extracted.rounds):
        title = None
    if not title:
        exercises = [element.exercise for element in workout_elements if element.exercise][:3]
        title = " & ".join(exercises) or "Workout"

    converted = Workout(
        id=workout.id,
        date=workout.date,
        schema=SchemaKind.STRUCTURED,
        name=title,
        privacy=workout.privacy,
        confidence=workout.confidence,
        title=title,
        workout_elements=workout_elements,
        score_elements=score_elements,
        extracted_data=build_extracted_data(workout_elements, score_elements),
        user_id=workout.user_id,
        image_url=workout.image_url,
    )
    converted.raw_text = generate_raw_text(converted)

    logger.info(
        "Converted legacy workout",
        workout_id=workout.id,
        title=title,
        elements=len(workout_elements),
        scores=len(score_elements),
    )
    return converted
