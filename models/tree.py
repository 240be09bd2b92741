from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from utils.growth import calculate_growth_stage


class TreeStatus(str, Enum):
    SEED = "seed"
    GROWING = "growing"
    BLOOMED = "bloomed"
    DYING = "dying"
    DEAD = "dead"


class GiftType(str, Enum):
    WATER_DROP = "water_drop"
    SPARKLE = "sparkle"
    SEED = "seed"
    RIBBON = "ribbon"
    GOLDEN_FLOWER = "golden_flower"


class GridPosition(BaseModel):
    x: int = 0
    y: int = 0


class TreeCreate(BaseModel):
    skill_path_id: str
    name: str = ""
    position: GridPosition = Field(default_factory=GridPosition)


class UserTreeState(BaseModel):
    """A learner's tree for one skill path (a ``user_trees`` row)."""

    user_id: str
    skill_path_id: str
    name: str = ""
    status: TreeStatus = TreeStatus.SEED
    health: int = Field(default=100, ge=0, le=100)
    sun_drops_earned: int = Field(default=0, ge=0)
    last_refresh_date: date
    buffer_days: int = Field(default=0, ge=0)
    lessons_completed: int = Field(default=0, ge=0)
    position: GridPosition = Field(default_factory=GridPosition)
    died_on: Optional[date] = None
    version: int = Field(default=0, ge=0)

    class Config:
        from_attributes = True

    @computed_field
    @property
    def growth_stage(self) -> int:
        return calculate_growth_stage(self.sun_drops_earned)

    @computed_field
    @property
    def is_dead(self) -> bool:
        return self.status == TreeStatus.DEAD


class LessonReward(BaseModel):
    sun_drops: int = Field(ge=0)


class GiftCreate(BaseModel):
    gift_type: GiftType
