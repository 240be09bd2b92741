from typing import Iterable, Optional

from models.progress import ChunkStatus

DEFAULT_MASTERY_RULES = {
    "acquire_min_repetitions": 3,
    "acquire_min_ease_factor": 2.0,
    "fragile_recovery_quality": 4,
}

TOPIC_HEALTH_WEIGHTS = {
    ChunkStatus.ACQUIRED: 100,
    ChunkStatus.LEARNING: 70,
    ChunkStatus.NEW: 50,
    ChunkStatus.FRAGILE: 30,
}


def next_status_after_failure(status: ChunkStatus) -> ChunkStatus:
    """A lapse makes known chunks fragile; anything else is (still) being learned."""
    if status in (ChunkStatus.ACQUIRED, ChunkStatus.FRAGILE):
        return ChunkStatus.FRAGILE
    return ChunkStatus.LEARNING


def next_status_after_success(
    status: ChunkStatus,
    repetitions: int,
    ease_factor: float,
    quality: int,
    rules: Optional[dict] = None,
) -> ChunkStatus:
    rules = rules or DEFAULT_MASTERY_RULES
    if status == ChunkStatus.ACQUIRED:
        return ChunkStatus.ACQUIRED
    if status == ChunkStatus.FRAGILE:
        if quality >= rules["fragile_recovery_quality"]:
            return ChunkStatus.ACQUIRED
        return ChunkStatus.FRAGILE
    if (
        repetitions >= rules["acquire_min_repetitions"]
        and ease_factor >= rules["acquire_min_ease_factor"]
    ):
        return ChunkStatus.ACQUIRED
    return ChunkStatus.LEARNING


def calculate_topic_health(statuses: Iterable[ChunkStatus]) -> int:
    """Average status weight (0-100) of a topic's chunks; 50 when there are none."""
    weights = [TOPIC_HEALTH_WEIGHTS[ChunkStatus(status)] for status in statuses]
    if not weights:
        return 50
    return round(sum(weights) / len(weights))


def mastery_percent(acquired: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round((acquired / total) * 100, 1)
