from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class ReviewOutcome(BaseModel):
    """Result of one review of a chunk.

    Either ``correct`` or an SM-2 ``grade`` (0-5) must be given. When both are
    present they have to agree: a grade of 3 or more is a correct answer.
    """

    correct: Optional[bool] = None
    grade: Optional[int] = Field(default=None, ge=0, le=5)
    used_help: bool = False
    wrong_attempts: int = Field(default=0, ge=0)
    time_to_answer_ms: Optional[int] = Field(default=None, ge=0)
    lesson_id: Optional[str] = None

    @model_validator(mode="after")
    def check_correct_matches_grade(self):
        if self.correct is None and self.grade is None:
            raise ValueError("Either 'correct' or 'grade' is required")
        if self.correct is not None and self.grade is not None:
            if (self.grade >= 3) != self.correct:
                raise ValueError("'grade' and 'correct' disagree")
        return self

    @property
    def is_correct(self) -> bool:
        if self.grade is not None:
            return self.grade >= 3
        return bool(self.correct)

    @property
    def is_clean(self) -> bool:
        """Correct on the first try without help."""
        return self.is_correct and not self.used_help and self.wrong_attempts == 0


class BatchEncounterCreate(BaseModel):
    """Lesson-end rating applied to every chunk met in the lesson."""

    chunk_ids: List[str]
    star_rating: int = Field(ge=1, le=3)
    lesson_id: Optional[str] = None


class BatchEncounterResult(BaseModel):
    updated: int = 0
    failed: int = 0
    graduated: List[str] = Field(default_factory=list)
    became_fragile: List[str] = Field(default_factory=list)
