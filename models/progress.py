from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ChunkStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    ACQUIRED = "acquired"
    FRAGILE = "fragile"


class UserChunkState(BaseModel):
    """Per-learner SRS state of one chunk (a ``user_chunks`` row)."""

    user_id: str
    chunk_id: str
    status: ChunkStatus = ChunkStatus.NEW
    ease_factor: float = Field(default=2.5, ge=1.3, le=2.5)
    interval: int = Field(default=0, ge=0)
    next_review_date: Optional[date] = None
    repetitions: int = Field(default=0, ge=0)
    total_encounters: int = Field(default=0, ge=0)
    correct_first_try: int = Field(default=0, ge=0)
    wrong_attempts: int = Field(default=0, ge=0)
    help_used_count: int = Field(default=0, ge=0)
    confidence_score: float = Field(default=0.5, ge=0.0, le=1.0)
    first_encountered_in: Optional[str] = None
    last_encountered_in: Optional[str] = None
    first_encountered_at: Optional[date] = None
    last_encountered_at: Optional[date] = None
    version: int = Field(default=0, ge=0)

    class Config:
        from_attributes = True
