"""Loading, reviewing and saving learners' chunk progress."""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date
from typing import Callable, Iterable, List, Optional, TypeVar

from db.database import update_versioned
from models.chunk import Chunk, ChunkCreate
from models.progress import ChunkStatus, UserChunkState
from models.review import BatchEncounterResult, ReviewOutcome
from utils.dates import parse_date
from utils.errors import ConcurrencyConflict, NotFoundError, ValidationError
from utils.mastery import calculate_topic_health
from utils.sm2 import DEFAULT_SRS_RULES, record_review

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_CHUNK_COLUMNS = (
    "status",
    "ease_factor",
    "interval",
    "next_review_date",
    "repetitions",
    "total_encounters",
    "correct_first_try",
    "wrong_attempts",
    "help_used_count",
    "confidence_score",
    "first_encountered_in",
    "last_encountered_in",
    "first_encountered_at",
    "last_encountered_at",
)

# Path segments the review routes use after the user id
RESERVED_CHUNK_IDS = frozenset({"batch", "decay-overdue", "due", "fragile", "topic-health"})

# Lesson star rating -> signal recorded for every chunk of the lesson
STAR_RATING_OUTCOMES = {
    3: {"correct": True, "used_help": False},
    2: {"correct": True, "used_help": True},
    1: {"correct": False, "used_help": False},
}


def with_retry(operation: Callable[[], T], max_retries: int = 3) -> T:
    """Run a load-compute-save operation, re-running it on a stale write."""
    attempt = 0
    while True:
        try:
            return operation()
        except ConcurrencyConflict:
            attempt += 1
            if attempt > max_retries:
                raise
            logger.warning("Concurrent update detected, retrying (%s/%s)", attempt, max_retries)


def chunk_id_for(payload: ChunkCreate) -> str:
    """The given id, or ``language:text`` with slashes replaced so it fits in a URL path."""
    if payload.id is None:
        text = payload.text.strip().lower().replace("/", "-")
        return f"{payload.target_language}:{text}"
    if "/" in payload.id or payload.id in RESERVED_CHUNK_IDS:
        raise ValidationError(f"Chunk id {payload.id!r} is not allowed")
    return payload.id


def create_chunk(conn: sqlite3.Connection, payload: ChunkCreate) -> Chunk:
    chunk_id = chunk_id_for(payload)
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM chunks WHERE id = ?", (chunk_id,))
    if cursor.fetchone():
        raise ValidationError(f"Chunk {chunk_id} already exists")
    cursor.execute(
        """
        INSERT INTO chunks (
            id, text, translation, chunk_type, target_language, native_language,
            difficulty, frequency, base_interval, slots, topics
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            chunk_id,
            payload.text,
            payload.translation,
            payload.chunk_type.value,
            payload.target_language,
            payload.native_language,
            payload.difficulty,
            payload.frequency,
            payload.base_interval,
            json.dumps(payload.slots) if payload.slots is not None else None,
            json.dumps(payload.topics),
        ),
    )
    conn.commit()
    return get_chunk(conn, chunk_id)


def get_chunk(conn: sqlite3.Connection, chunk_id: str) -> Chunk:
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM chunks WHERE id = ?", (chunk_id,))
    row = cursor.fetchone()
    if not row:
        raise NotFoundError(f"Chunk {chunk_id} not found")
    data = dict(row)
    data["slots"] = json.loads(data["slots"]) if data["slots"] else None
    data["topics"] = json.loads(data["topics"] or "[]")
    return Chunk.model_validate(data)


def _row_to_state(row: sqlite3.Row) -> UserChunkState:
    data = dict(row)
    for column in ("next_review_date", "first_encountered_at", "last_encountered_at"):
        data[column] = parse_date(data[column])
    data.pop("updated_at", None)
    return UserChunkState.model_validate(data)


def get_user_chunk(conn: sqlite3.Connection, user_id: str, chunk_id: str) -> Optional[UserChunkState]:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT * FROM user_chunks WHERE user_id = ? AND chunk_id = ?",
        (user_id, chunk_id),
    )
    row = cursor.fetchone()
    if not row:
        return None
    return _row_to_state(row)


def create_user_chunk(
    conn: sqlite3.Connection,
    user_id: str,
    chunk_id: str,
    rules: Optional[dict] = None,
) -> UserChunkState:
    """Insert the state of a chunk the learner meets for the first time."""
    rules = rules or DEFAULT_SRS_RULES
    get_chunk(conn, chunk_id)
    state = UserChunkState(
        user_id=user_id,
        chunk_id=chunk_id,
        ease_factor=rules["initial_ease_factor"],
    )
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT OR IGNORE INTO user_chunks (user_id, chunk_id, status, ease_factor, interval, repetitions, confidence_score)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (user_id, chunk_id, state.status.value, state.ease_factor, state.interval, state.repetitions, state.confidence_score),
    )
    conn.commit()
    return get_user_chunk(conn, user_id, chunk_id)


def _column_value(value):
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, ChunkStatus):
        return value.value
    return value


def save_user_chunk(conn: sqlite3.Connection, state: UserChunkState) -> UserChunkState:
    """Write ``state`` if nobody else wrote the row since it was loaded."""
    values = {column: _column_value(getattr(state, column)) for column in USER_CHUNK_COLUMNS}
    new_version = update_versioned(
        conn,
        "user_chunks",
        {"user_id": state.user_id, "chunk_id": state.chunk_id},
        values,
        state.version,
    )
    return state.model_copy(update={"version": new_version})


def log_review(
    conn: sqlite3.Connection,
    user_id: str,
    chunk_id: str,
    outcome: ReviewOutcome,
    review_date: date,
) -> None:
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO chunk_reviews (
            user_id, chunk_id, review_date, correct, grade, used_help,
            wrong_attempts, time_to_answer_ms, lesson_id
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            user_id,
            chunk_id,
            review_date.isoformat(),
            int(outcome.is_correct),
            outcome.grade,
            int(outcome.used_help),
            outcome.wrong_attempts,
            outcome.time_to_answer_ms,
            outcome.lesson_id,
        ),
    )


def record_chunk_review(
    conn: sqlite3.Connection,
    user_id: str,
    chunk_id: str,
    outcome: ReviewOutcome,
    today: Optional[date] = None,
    config: Optional[dict] = None,
) -> UserChunkState:
    """Load (or create) the learner's chunk state, apply the review, save it."""
    config = config or {}
    today = today or date.today()
    srs_rules = config.get("srs") or DEFAULT_SRS_RULES

    def attempt() -> UserChunkState:
        state = get_user_chunk(conn, user_id, chunk_id)
        if state is None:
            state = create_user_chunk(conn, user_id, chunk_id, srs_rules)
        updated = record_review(
            state,
            outcome,
            today,
            srs_rules,
            config.get("mastery"),
            config.get("confidence"),
        )
        try:
            saved = save_user_chunk(conn, updated)
            log_review(conn, user_id, chunk_id, outcome, today)
            conn.commit()
        except ConcurrencyConflict:
            conn.rollback()
            raise
        return saved

    return with_retry(attempt, config.get("store", {}).get("max_retries", 3))


def record_batch_encounters(
    conn: sqlite3.Connection,
    user_id: str,
    chunk_ids: Iterable[str],
    star_rating: int,
    today: Optional[date] = None,
    config: Optional[dict] = None,
    lesson_id: Optional[str] = None,
) -> BatchEncounterResult:
    """Apply a lesson's star rating to every chunk met in that lesson.

    A chunk that cannot be updated is counted as failed and skipped.
    """
    result = BatchEncounterResult()
    outcome = ReviewOutcome(lesson_id=lesson_id, **STAR_RATING_OUTCOMES[star_rating])
    for chunk_id in chunk_ids:
        previous = get_user_chunk(conn, user_id, chunk_id)
        previous_status = previous.status if previous else ChunkStatus.NEW
        try:
            state = record_chunk_review(conn, user_id, chunk_id, outcome, today, config)
        except (NotFoundError, ConcurrencyConflict) as exc:
            logger.warning("Failed to record encounter for chunk %s: %s", chunk_id, exc)
            result.failed += 1
            continue
        result.updated += 1
        if state.status != previous_status:
            if state.status == ChunkStatus.ACQUIRED:
                result.graduated.append(chunk_id)
            elif state.status == ChunkStatus.FRAGILE:
                result.became_fragile.append(chunk_id)
    if result.graduated:
        logger.info("%s chunk(s) graduated to acquired for user %s", len(result.graduated), user_id)
    return result


def get_due_chunks(
    conn: sqlite3.Connection,
    user_id: str,
    today: Optional[date] = None,
    limit: int = 10,
) -> List[UserChunkState]:
    """Chunks whose review date has come, most overdue first."""
    today = today or date.today()
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT * FROM user_chunks
        WHERE user_id = ? AND next_review_date IS NOT NULL AND next_review_date <= ?
        ORDER BY next_review_date ASC, chunk_id ASC
        LIMIT ?
        """,
        (user_id, today.isoformat(), limit),
    )
    return [_row_to_state(row) for row in cursor.fetchall()]


def get_chunks_by_status(
    conn: sqlite3.Connection,
    user_id: str,
    status: ChunkStatus,
    limit: int = 100,
) -> List[UserChunkState]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT * FROM user_chunks
        WHERE user_id = ? AND status = ?
        ORDER BY confidence_score ASC, chunk_id ASC
        LIMIT ?
        """,
        (user_id, ChunkStatus(status).value, limit),
    )
    return [_row_to_state(row) for row in cursor.fetchall()]


def decay_overdue_chunks(
    conn: sqlite3.Connection,
    user_id: str,
    today: Optional[date] = None,
    config: Optional[dict] = None,
) -> int:
    """Record a missed review for every acquired chunk past its review date.

    The lapse turns those chunks fragile. Returns how many were decayed.
    """
    today = today or date.today()
    decayed = 0
    for state in get_chunks_by_status(conn, user_id, ChunkStatus.ACQUIRED):
        if state.next_review_date is None or state.next_review_date >= today:
            continue
        try:
            record_chunk_review(conn, user_id, state.chunk_id, ReviewOutcome(correct=False), today, config)
        except ConcurrencyConflict as exc:
            logger.warning("Skipped decaying chunk %s: %s", state.chunk_id, exc)
            continue
        decayed += 1
    if decayed:
        logger.info("Decayed %s overdue chunk(s) to fragile for user %s", decayed, user_id)
    return decayed


def get_topic_health(conn: sqlite3.Connection, user_id: str, topic: Optional[str] = None) -> int:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT uc.status, c.topics
        FROM user_chunks uc
        JOIN chunks c ON c.id = uc.chunk_id
        WHERE uc.user_id = ?
        """,
        (user_id,),
    )
    statuses = [
        row["status"]
        for row in cursor.fetchall()
        if topic is None or topic in json.loads(row["topics"] or "[]")
    ]
    return calculate_topic_health(statuses)


def replay_reviews(
    conn: sqlite3.Connection,
    user_id: str,
    chunk_id: str,
    config: Optional[dict] = None,
) -> Optional[UserChunkState]:
    """Rebuild a chunk's state from its review log, in the order reviews happened."""
    config = config or {}
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT review_date, correct, grade, used_help, wrong_attempts, time_to_answer_ms, lesson_id
        FROM chunk_reviews
        WHERE user_id = ? AND chunk_id = ?
        ORDER BY review_date ASC, id ASC
        """,
        (user_id, chunk_id),
    )
    rows = cursor.fetchall()
    if not rows:
        return None
    srs_rules = config.get("srs") or DEFAULT_SRS_RULES
    state = UserChunkState(user_id=user_id, chunk_id=chunk_id, ease_factor=srs_rules["initial_ease_factor"])
    for row in rows:
        outcome = ReviewOutcome(
            correct=bool(row["correct"]),
            grade=row["grade"],
            used_help=bool(row["used_help"]),
            wrong_attempts=row["wrong_attempts"],
            time_to_answer_ms=row["time_to_answer_ms"],
            lesson_id=row["lesson_id"],
        )
        state = record_review(
            state,
            outcome,
            parse_date(row["review_date"]),
            srs_rules,
            config.get("mastery"),
            config.get("confidence"),
        )
    return state
