import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_RULES = {
    "initial": 0.5,
    "recent_alpha": 0.3,
    "history_weight": 0.5,
    "help_penalty_step": 0.05,
    "help_penalty_cap": 0.2,
}

CLEAN_SIGNAL = 1.0
ASSISTED_SIGNAL = 0.5
FAILED_SIGNAL = 0.0


def review_signal(correct: bool, clean: bool) -> float:
    if not correct:
        return FAILED_SIGNAL
    return CLEAN_SIGNAL if clean else ASSISTED_SIGNAL


def calculate_confidence(
    previous: float,
    correct_first_try: int,
    total_encounters: int,
    help_used_count: int,
    signal: float,
    rules: Optional[dict] = None,
) -> float:
    """Blend lifetime accuracy with a moving average of recent reviews.

    The counters are the already-updated values including this review. A clean
    review always moves the score at least as far up as the moving average
    does, a failure at least as far down, and a helped answer never raises it.
    """
    rules = rules or DEFAULT_CONFIDENCE_RULES
    if total_encounters <= 0:
        return rules["initial"]

    help_penalty = min(rules["help_penalty_cap"], help_used_count * rules["help_penalty_step"])
    accuracy = correct_first_try / total_encounters - help_penalty
    recent = previous + rules["recent_alpha"] * (signal - previous)
    weight = rules["history_weight"]
    raw = weight * accuracy + (1 - weight) * recent

    if signal >= CLEAN_SIGNAL:
        score = max(raw, recent)
    elif signal <= FAILED_SIGNAL:
        score = min(raw, recent)
    else:
        score = min(previous, raw)

    clamped = max(0.0, min(1.0, score))
    if clamped != score:
        logger.debug("Clamped confidence %.3f to %.3f", score, clamped)
    return round(clamped, 4)
