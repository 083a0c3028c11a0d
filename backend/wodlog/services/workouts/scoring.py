"""
Score Interpreter - derives and validates score metadata.

- AMRAP totals (rounds x reps per round + reps into next round)
- Round time windows for rounds with rest (stop - start)
- Time-cap policy (capped scores are reps, named "Time Cap")
- Soft validation of score consistency

Nothing in here raises on bad input; problems become ValidationWarnings.
"""
import re
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Tuple

from wodlog.core.config import settings
from wodlog.services.workouts.parsing import (
    is_number,
    parse_mmss,
    parse_time,
    parse_time_detailed,
    to_float,
)
from wodlog.services.workouts.types import (
    ScoreElement,
    ScoreMetadata,
    ScoreName,
    ScoreType,
    ValidationResult,
    ValidationWarning,
)

_ROUNDS_PLUS_REPS = re.compile(r"^(\d+)\s*rounds?\s*\+\s*(\d+)\s*reps?$", re.IGNORECASE)
_PLAIN_INT = re.compile(r"^\d+$")
_MMSS_FORMAT = re.compile(r"^\d+:\d{2}$")


# ========================================
# Arithmetic
# ========================================

def amrap_total_reps(rounds: int, reps_per_round: int, reps_into_next_round: int = 0) -> int:
    """
    Total reps of an AMRAP score.

    8 rounds of a 40-rep round plus 25 reps -> 8 * 40 + 25 = 345
    """
    rounds = max(int(rounds or 0), 0)
    reps_per_round = max(int(reps_per_round or 0), 0)
    reps_into_next_round = max(int(reps_into_next_round or 0), 0)
    return rounds * reps_per_round + reps_into_next_round


def compute_round_time(start_time: Any, stop_time: Any) -> Optional[int]:
    """Round time in seconds from written start/stop stamps, or None."""
    start = parse_time(start_time)
    stop = parse_time(stop_time)
    if start is None or stop is None:
        return None
    return stop - start


def parse_rounds_plus_reps(value: Any) -> Optional[Tuple[int, int]]:
    """Parse "3 rounds + 15 reps" into (3, 15)."""
    if not isinstance(value, str):
        return None
    match = _ROUNDS_PLUS_REPS.match(value.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


@dataclass
class RoundTimeCheck:
    """Comparison of a written round time against stop - start."""
    is_valid: bool
    calculated_round_time: int
    discrepancy: Optional[int] = None


def validate_round_time(
    start_time: Any,
    stop_time: Any,
    written_round_time: Optional[int] = None,
    tolerance: Optional[int] = None,
) -> RoundTimeCheck:
    """
    Verify that roundTime = stopTime - startTime.

    Args:
        start_time: Start stamp (M:SS)
        stop_time: Stop stamp (M:SS)
        written_round_time: Round time written on the board, in seconds
        tolerance: Allowed discrepancy in seconds

    Returns:
        RoundTimeCheck (invalid with calculated 0 if stamps do not parse)
    """
    if tolerance is None:
        tolerance = settings.ROUND_TIME_TOLERANCE_SECONDS

    calculated = compute_round_time(start_time, stop_time)
    if calculated is None:
        return RoundTimeCheck(is_valid=False, calculated_round_time=0)

    if written_round_time is None:
        return RoundTimeCheck(is_valid=True, calculated_round_time=calculated)

    discrepancy = abs(calculated - written_round_time)
    return RoundTimeCheck(
        is_valid=discrepancy <= tolerance,
        calculated_round_time=calculated,
        discrepancy=discrepancy,
    )


def auto_correct_round_time(
    start_time: Any,
    stop_time: Any,
    written_round_time: Optional[int] = None,
    max_correction: int = 5,
) -> int:
    """
    Pick the round time to trust.

    The calculated value wins when the written one is missing or within
    `max_correction` seconds; a larger gap keeps the written value.
    """
    check = validate_round_time(start_time, stop_time, written_round_time)

    if check.is_valid or written_round_time is None:
        return check.calculated_round_time

    if check.discrepancy is not None and check.discrepancy <= max_correction:
        return check.calculated_round_time

    return written_round_time


# ========================================
# Enum coercion
# ========================================

def coerce_score_name(value: Any) -> Tuple[ScoreName, Optional[ValidationWarning]]:
    """Map a written score name onto the closed enum (unknown -> Other)."""
    if isinstance(value, ScoreName):
        return value, None
    if isinstance(value, str):
        text = " ".join(value.split())
        for name in ScoreName:
            if name.value.lower() == text.lower():
                return name, None
    return ScoreName.OTHER, ValidationWarning(
        field="name",
        message=f'Invalid score name: "{value}". Using "Other"',
        severity="warning",
    )


def coerce_score_type(value: Any) -> Tuple[ScoreType, Optional[ValidationWarning]]:
    """Map a written score type onto the enum; "rounds" becomes reps."""
    if isinstance(value, ScoreType):
        return value, None
    text = value.strip().lower() if isinstance(value, str) else ""
    if text in ("rounds", "round"):
        return ScoreType.REPS, ValidationWarning(
            field="type",
            message='Score type "rounds" is not valid; rounds are scored as reps',
            severity="warning",
        )
    for score_type in ScoreType:
        if score_type.value == text:
            return score_type, None
    return ScoreType.OTHER, ValidationWarning(
        field="type",
        message=f'Invalid score type: "{value}". Using "other"',
        severity="warning",
    )


# ========================================
# Time cap / enrichment
# ========================================

def apply_time_cap(score: ScoreElement, reps_per_round: Optional[int] = None) -> ScoreElement:
    """
    Convert a capped score to the time-cap form.

    A capped time-based workout is scored by reps: name "Time Cap",
    type reps, totalReps from the AMRAP rule when rounds are known.
    """
    metadata = replace(score.metadata) if score.metadata else ScoreMetadata()

    parsed = parse_rounds_plus_reps(score.value)
    if parsed and metadata.rounds is None:
        metadata.rounds, metadata.reps_into_next_round = parsed

    if metadata.rounds is not None and reps_per_round:
        metadata.total_reps = amrap_total_reps(
            metadata.rounds, reps_per_round, metadata.reps_into_next_round or 0
        )
    elif metadata.total_reps is None:
        metadata.total_reps = _plain_int(score.value)

    return ScoreElement(
        name=ScoreName.TIME_CAP,
        type=ScoreType.REPS,
        value=score.value,
        metadata=None if metadata.is_empty() else metadata,
    )


def enrich_score(
    score: ScoreElement,
    reps_per_round: Optional[int] = None,
) -> Tuple[ScoreElement, List[ValidationWarning]]:
    """
    Fill derivable metadata without overwriting anything written.

    - time scores: timeInSeconds from the value
    - rounds with rest: roundTime from start/stop
    - reps scores: rounds/repsIntoNextRound from "N rounds + M reps",
      totalReps from the AMRAP rule or a plain integer value

    Returns:
        (enriched score, warnings)
    """
    warnings: List[ValidationWarning] = []

    if score.name == ScoreName.TIME_CAP and score.type != ScoreType.REPS:
        warnings.append(ValidationWarning(
            field="type",
            message="Time Cap scores are scored by reps",
            severity="warning",
        ))
        score = apply_time_cap(score, reps_per_round)

    metadata = replace(score.metadata) if score.metadata else ScoreMetadata()

    if score.type == ScoreType.TIME and metadata.time_in_seconds is None:
        parsed_time = parse_time_detailed(score.value)
        metadata.time_in_seconds = parsed_time.seconds
        if parsed_time.ambiguous:
            warnings.append(ValidationWarning(
                field="value",
                message=(
                    f'Time "{score.value}" has no colon and 4+ digits; '
                    f"read as {parsed_time.seconds}s"
                ),
                severity="warning",
            ))

    if metadata.start_time and metadata.stop_time and metadata.round_time is None:
        metadata.round_time = compute_round_time(metadata.start_time, metadata.stop_time)

    if score.type == ScoreType.REPS:
        parsed = parse_rounds_plus_reps(score.value)
        if parsed and metadata.rounds is None:
            metadata.rounds, metadata.reps_into_next_round = parsed
        if metadata.total_reps is None:
            if metadata.rounds is not None and reps_per_round:
                metadata.total_reps = amrap_total_reps(
                    metadata.rounds, reps_per_round, metadata.reps_into_next_round or 0
                )
            else:
                metadata.total_reps = _plain_int(score.value)

    enriched = replace(score, metadata=None if metadata.is_empty() else metadata)
    return enriched, warnings


def _plain_int(value: Any) -> Optional[int]:
    if is_number(value):
        return int(value)
    if isinstance(value, str) and _PLAIN_INT.match(value.strip()):
        return int(value.strip())
    return None


# ========================================
# Validation
# ========================================

def validate_score_type(score: ScoreElement) -> ValidationResult:
    """Check that the value format matches the score type."""
    warnings: List[ValidationWarning] = []
    value_str = str(score.value)
    metadata = score.metadata

    if score.type == ScoreType.TIME:
        parsed = parse_time(score.value)
        if parsed is None and not _MMSS_FORMAT.match(value_str):
            warnings.append(ValidationWarning(
                field="value",
                message=f'Time value "{score.value}" doesn\'t match time format (MM:SS)',
            ))
        if metadata and metadata.time_in_seconds is not None and parsed is not None:
            if abs(parsed - metadata.time_in_seconds) > 1:
                warnings.append(ValidationWarning(
                    field="metadata.timeInSeconds",
                    message=(
                        f"timeInSeconds ({metadata.time_in_seconds}) doesn't match "
                        f"parsed value ({parsed})"
                    ),
                ))

    elif score.type == ScoreType.REPS:
        if not _PLAIN_INT.match(value_str.strip()) and not parse_rounds_plus_reps(value_str):
            warnings.append(ValidationWarning(
                field="value",
                message=f'Reps value "{score.value}" doesn\'t match expected format',
            ))

    elif score.type == ScoreType.WEIGHT:
        number = to_float(score.value)
        if number is None:
            warnings.append(ValidationWarning(
                field="value",
                message=f'Weight value "{score.value}" is not a valid number',
                severity="error",
            ))
        elif metadata and metadata.weight is not None and abs(number - metadata.weight) > 0.01:
            warnings.append(ValidationWarning(
                field="metadata.weight",
                message=f"weight ({metadata.weight}) doesn't match value ({number})",
            ))

    return ValidationResult(
        is_valid=not any(w.severity == "error" for w in warnings),
        warnings=warnings,
    )


def validate_amrap_total_reps(score: ScoreElement, reps_per_round: int) -> ValidationResult:
    """Compare written totalReps against rounds x reps per round + extra reps."""
    metadata = score.metadata
    if score.type != ScoreType.REPS or not metadata:
        return ValidationResult(is_valid=True)

    if None in (metadata.rounds, metadata.reps_into_next_round, metadata.total_reps):
        return ValidationResult(is_valid=True)

    calculated = amrap_total_reps(metadata.rounds, reps_per_round, metadata.reps_into_next_round)
    if abs(calculated - metadata.total_reps) <= settings.AMRAP_TOLERANCE_REPS:
        return ValidationResult(is_valid=True)

    return ValidationResult(is_valid=False, warnings=[ValidationWarning(
        field="metadata.totalReps",
        message=(
            f"totalReps ({metadata.total_reps}) doesn't match calculation: "
            f"{metadata.rounds} rounds x {reps_per_round} reps/round + "
            f"{metadata.reps_into_next_round} reps = {calculated}"
        ),
    )])


def validate_round_time_calculation(score: ScoreElement) -> ValidationResult:
    """Check a written roundTime against its start/stop stamps."""
    metadata = score.metadata
    if not metadata or not metadata.start_time or not metadata.stop_time:
        return ValidationResult(is_valid=True)

    warnings: List[ValidationWarning] = []
    if parse_mmss(metadata.start_time) is None or parse_mmss(metadata.stop_time) is None:
        warnings.append(ValidationWarning(
            field="metadata.startTime",
            message=(
                f"Start/stop times ({metadata.start_time}, {metadata.stop_time}) "
                "are not in M:SS format"
            ),
        ))

    check = validate_round_time(metadata.start_time, metadata.stop_time, metadata.round_time)
    if not check.is_valid and check.discrepancy is not None:
        warnings.append(ValidationWarning(
            field="metadata.roundTime",
            message=(
                f"roundTime ({metadata.round_time}) doesn't match calculated time "
                f"({check.calculated_round_time}s). Discrepancy: {check.discrepancy}s"
            ),
        ))

    return ValidationResult(is_valid=check.is_valid, warnings=warnings)


def validate_score_element(
    score: ScoreElement,
    reps_per_round: Optional[int] = None,
) -> ValidationResult:
    """
    Validate a complete score element.

    Args:
        score: Score element to validate
        reps_per_round: Reps in one round (enables the AMRAP check)

    Returns:
        ValidationResult; only "error" severities make it invalid
    """
    warnings: List[ValidationWarning] = []

    warnings.extend(validate_score_type(score).warnings)

    if reps_per_round is not None and score.type == ScoreType.REPS:
        warnings.extend(validate_amrap_total_reps(score, reps_per_round).warnings)

    warnings.extend(validate_round_time_calculation(score).warnings)

    return ValidationResult(
        is_valid=not any(w.severity == "error" for w in warnings),
        warnings=warnings,
    )


def reps_per_round_from_amounts(totals: List[Any]) -> int:
    """Sum of movement rep totals, i.e. the reps in one round."""
    return sum(int(total) for total in totals if is_number(total))

