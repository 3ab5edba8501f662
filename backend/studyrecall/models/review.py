from __future__ import annotations

from datetime import datetime, timezone
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_EASE_FACTOR = 1.3


class Quality(IntEnum):
    """Self-graded recall quality for one review (0 = blank, 5 = instant)."""

    BLACKOUT = 0
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4
    PERFECT = 5

    @property
    def remembered(self) -> bool:
        return self >= Quality.GOOD


class ReviewState(BaseModel):
    """Scheduling state of one flashcard. Immutable; updates return a new instance."""

    model_config = ConfigDict(frozen=True)

    ease_factor: float = Field(ge=MIN_EASE_FACTOR)
    interval_days: int = Field(ge=0)
    next_review_date: datetime
    review_count: int = Field(ge=0)
    correct_count: int = Field(ge=0)
    last_reviewed_at: datetime | None = None

    @field_validator("next_review_date", "last_reviewed_at")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _check_counts(self) -> ReviewState:
        if self.correct_count > self.review_count:
            raise ValueError(
                f"correct_count ({self.correct_count}) exceeds "
                f"review_count ({self.review_count})"
            )
        return self


class CardReview(BaseModel):
    id: str
    review: ReviewState


class ReviewProgress(BaseModel):
    retention_rate: float      # 0–100
    days_to_mastery: float     # heuristic projection, not a guarantee
    is_mastered: bool
