from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ChunkType(str, Enum):
    POLYWORD = "polyword"
    COLLOCATION = "collocation"
    UTTERANCE = "utterance"
    SENTENCE = "sentence"
    FRAME = "frame"


class ChunkBase(BaseModel):
    text: str = Field(min_length=1)
    translation: str
    chunk_type: ChunkType
    target_language: str
    native_language: str
    difficulty: int = Field(default=1, ge=1, le=5)
    frequency: int = Field(default=0, ge=0)
    base_interval: int = Field(default=1, ge=1)
    slots: Optional[List[str]] = None  # frame variables, e.g. ["noun"]
    topics: List[str] = Field(default_factory=list)


class ChunkCreate(ChunkBase):
    id: Optional[str] = None


class Chunk(ChunkBase):
    id: str

    class Config:
        from_attributes = True
