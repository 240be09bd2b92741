from .chunk import Chunk, ChunkCreate, ChunkType
from .progress import ChunkStatus, UserChunkState
from .review import BatchEncounterCreate, BatchEncounterResult, ReviewOutcome
from .tree import GiftCreate, GiftType, GridPosition, LessonReward, TreeCreate, TreeStatus, UserTreeState

__all__ = [
    'Chunk', 'ChunkCreate', 'ChunkType', 'ChunkStatus', 'UserChunkState',
    'BatchEncounterCreate', 'BatchEncounterResult', 'ReviewOutcome',
    'GiftCreate', 'GiftType', 'GridPosition', 'LessonReward', 'TreeCreate', 'TreeStatus', 'UserTreeState',
]
