from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from config import load_config
from db.database import get_db
from models.progress import ChunkStatus, UserChunkState
from models.review import BatchEncounterCreate, BatchEncounterResult, ReviewOutcome
from utils.progress import (
    decay_overdue_chunks,
    get_chunks_by_status,
    get_due_chunks,
    get_topic_health,
    record_batch_encounters,
    record_chunk_review,
)

router = APIRouter()

@router.get("/{user_id}/due", response_model=List[UserChunkState])
async def due_chunks(
    user_id: str,
    limit: int = Query(default=10, ge=1, le=100),
    today: Optional[date] = Query(default=None),
    conn = Depends(get_db),
):
    """Chunks due for review, most overdue first."""
    return get_due_chunks(conn, user_id, today, limit)

@router.get("/{user_id}/fragile", response_model=List[UserChunkState])
async def fragile_chunks(
    user_id: str,
    limit: int = Query(default=5, ge=1, le=100),
    conn = Depends(get_db),
):
    return get_chunks_by_status(conn, user_id, ChunkStatus.FRAGILE, limit)

@router.get("/{user_id}/topic-health")
async def topic_health(user_id: str, topic: Optional[str] = Query(default=None), conn = Depends(get_db)):
    return {"user_id": user_id, "topic": topic, "health": get_topic_health(conn, user_id, topic)}

@router.post("/{user_id}/decay-overdue")
async def decay_overdue(user_id: str, today: Optional[date] = Query(default=None), conn = Depends(get_db)):
    """Turn acquired chunks whose review date passed into fragile ones."""
    decayed = decay_overdue_chunks(conn, user_id, today, load_config())
    return {"user_id": user_id, "decayed": decayed}

@router.post("/{user_id}/batch", response_model=BatchEncounterResult)
async def submit_batch(
    user_id: str,
    payload: BatchEncounterCreate,
    today: Optional[date] = Query(default=None),
    conn = Depends(get_db),
):
    """Record a finished lesson's star rating for all of its chunks."""
    return record_batch_encounters(
        conn, user_id, payload.chunk_ids, payload.star_rating, today, load_config(), payload.lesson_id
    )

@router.post("/{user_id}/{chunk_id}", response_model=UserChunkState)
async def submit_review(
    user_id: str,
    chunk_id: str,
    outcome: ReviewOutcome,
    today: Optional[date] = Query(default=None),
    conn = Depends(get_db),
):
    """Apply one review to the learner's chunk and return its new schedule."""
    return record_chunk_review(conn, user_id, chunk_id, outcome, today, load_config())
