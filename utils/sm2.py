"""SM-2 scheduling of vocabulary chunks."""
import logging
from datetime import date
from typing import Optional, Tuple

from models.progress import ChunkStatus, UserChunkState
from models.review import ReviewOutcome

from .confidence import DEFAULT_CONFIDENCE_RULES, calculate_confidence, review_signal
from .dates import add_days
from .errors import ValidationError
from .mastery import DEFAULT_MASTERY_RULES, next_status_after_failure, next_status_after_success

logger = logging.getLogger(__name__)

DEFAULT_SRS_RULES = {
    "initial_ease_factor": 2.5,
    "min_ease_factor": 1.3,
    "max_ease_factor": 2.5,
    "failure_ease_penalty": 0.2,
    "first_interval": 1,
    "second_interval": 6,
    "max_interval_days": 180,
}


def quality_from_outcome(outcome: ReviewOutcome) -> int:
    """SM-2 quality of a review: the explicit grade, else derived from the counters."""
    if outcome.grade is not None:
        return outcome.grade
    if not outcome.correct:
        return 0
    if outcome.used_help:
        return 3
    if outcome.wrong_attempts > 0:
        return 4
    return 5


def _clamp_ease(value: float, rules: dict) -> float:
    clamped = min(rules["max_ease_factor"], max(rules["min_ease_factor"], value))
    if clamped != value:
        logger.debug("Clamped ease factor %.3f to %.2f", value, clamped)
    return round(clamped, 2)


def update_sm2(
    interval: int,
    ease_factor: float,
    quality: int,
    repetitions: int,
    base_date: Optional[date] = None,
    rules: Optional[dict] = None,
) -> Tuple[int, float, int, date]:
    """Update SM-2 parameters and compute the new due date.

    Returns ``(interval, ease_factor, repetitions, due_date)``.
    """
    rules = rules or DEFAULT_SRS_RULES
    if not 0 <= quality <= 5:
        raise ValidationError(f"quality must be between 0 and 5, got {quality}")

    if quality < 3:
        new_repetitions = 0
        new_interval = rules["first_interval"]
        new_ef = _clamp_ease(ease_factor - rules["failure_ease_penalty"], rules)
    else:
        new_repetitions = repetitions + 1
        new_ef = _clamp_ease(
            ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)), rules
        )
        if new_repetitions == 1:
            new_interval = rules["first_interval"]
        elif new_repetitions == 2:
            new_interval = rules["second_interval"]
        else:
            new_interval = max(1, round(interval * new_ef))
        new_interval = min(rules["max_interval_days"], new_interval)

    anchor = base_date or date.today()
    return new_interval, new_ef, new_repetitions, add_days(anchor, new_interval)


def record_review(
    state: UserChunkState,
    outcome: ReviewOutcome,
    today: Optional[date] = None,
    rules: Optional[dict] = None,
    mastery_rules: Optional[dict] = None,
    confidence_rules: Optional[dict] = None,
) -> UserChunkState:
    """Apply one review to a chunk and return its next SRS state.

    The input state is left untouched; a complete replacement is returned.
    """
    today = today or date.today()
    quality = quality_from_outcome(outcome)
    correct = outcome.is_correct
    clean = outcome.is_clean

    interval, ease_factor, repetitions, next_review = update_sm2(
        state.interval, state.ease_factor, quality, state.repetitions, today, rules
    )
    if correct:
        status = next_status_after_success(
            state.status, repetitions, ease_factor, quality, mastery_rules or DEFAULT_MASTERY_RULES
        )
    else:
        status = next_status_after_failure(state.status)

    total_encounters = state.total_encounters + 1
    correct_first_try = state.correct_first_try + (1 if clean else 0)
    wrong_attempts = state.wrong_attempts + outcome.wrong_attempts + (0 if correct else 1)
    help_used_count = state.help_used_count + (1 if outcome.used_help else 0)
    confidence = calculate_confidence(
        state.confidence_score,
        correct_first_try,
        total_encounters,
        help_used_count,
        review_signal(correct, clean),
        confidence_rules or DEFAULT_CONFIDENCE_RULES,
    )

    if status != state.status:
        if status == ChunkStatus.ACQUIRED:
            logger.info("Chunk %s acquired by user %s", state.chunk_id, state.user_id)
        elif status == ChunkStatus.FRAGILE:
            logger.info("Chunk %s became fragile for user %s", state.chunk_id, state.user_id)

    return state.model_copy(update={
        "status": status,
        "ease_factor": ease_factor,
        "interval": interval,
        "next_review_date": next_review,
        "repetitions": repetitions,
        "total_encounters": total_encounters,
        "correct_first_try": correct_first_try,
        "wrong_attempts": wrong_attempts,
        "help_used_count": help_used_count,
        "confidence_score": confidence,
        "first_encountered_in": state.first_encountered_in or outcome.lesson_id,
        "last_encountered_in": outcome.lesson_id or state.last_encountered_in,
        "first_encountered_at": state.first_encountered_at or today,
        "last_encountered_at": today,
    })
