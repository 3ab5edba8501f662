from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from studyrecall.models.review import Quality, ReviewProgress, ReviewState
from studyrecall.services.spaced_repetition import coerce_quality


class FlashcardCreate(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    topic: str | None = None


class FlashcardUpdate(BaseModel):
    question: str | None = Field(default=None, min_length=1)
    answer: str | None = Field(default=None, min_length=1)
    topic: str | None = None


class Flashcard(BaseModel):
    id: str
    question: str
    answer: str
    topic: str | None
    review: ReviewState     # initial state when the card was never reviewed
    created_at: str
    updated_at: str


class FlashcardList(BaseModel):
    items: list[Flashcard]
    total: int


class ReviewRequest(BaseModel):
    quality: Quality  # 0=Blackout, 1=Again, 2=Hard, 3=Good, 4=Easy, 5=Perfect

    @field_validator("quality", mode="before")
    @classmethod
    def _validate_quality(cls, value: object) -> Quality:
        # Bools and numeric strings would pass lax enum validation
        return coerce_quality(value)


class ReviewResult(BaseModel):
    id: str
    quality: Quality
    review: ReviewState
    progress: ReviewProgress


class TopicStats(BaseModel):
    topic: str | None
    total: int
    due: int


class DeckStats(BaseModel):
    total_cards: int
    due_now: int
    mastered: int
    average_retention: float
    per_topic: list[TopicStats]
