from studyrecall.models.flashcard import (
    DeckStats,
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    ReviewRequest,
    ReviewResult,
    TopicStats,
)
from studyrecall.models.review import CardReview, Quality, ReviewProgress, ReviewState

__all__ = [
    "CardReview",
    "DeckStats",
    "Flashcard",
    "FlashcardCreate",
    "FlashcardList",
    "FlashcardUpdate",
    "Quality",
    "ReviewProgress",
    "ReviewRequest",
    "ReviewResult",
    "ReviewState",
    "TopicStats",
]
