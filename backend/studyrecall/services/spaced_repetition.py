"""
SM-2 style spaced-repetition scheduler.

Pure functions over immutable ReviewState values. Nothing here touches the
database or keeps state between calls; the caller loads states, asks which
are due, grades a card and persists whatever calculate_next_review returns.

Functions that depend on the clock take an optional ``now``. When omitted the
UTC clock is read exactly once per call.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from studyrecall.models.review import (
    MIN_EASE_FACTOR,
    CardReview,
    Quality,
    ReviewProgress,
    ReviewState,
)

logger = logging.getLogger(__name__)

INITIAL_EASE_FACTOR = 2.5
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 3
MASTERY_RETENTION = 90.0    # percent
MASTERY_CONFIDENCE = 0.99


class InvalidQualityError(ValueError):
    """Raised when a review grade is not an integer in 0–5."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _resolve_now(now: datetime | None) -> datetime:
    if now is None:
        return _utcnow()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def coerce_quality(value: object) -> Quality:
    """Validate a raw grade. Bools and non-integral numbers are rejected."""
    if isinstance(value, Quality):
        return value
    if isinstance(value, bool):
        raise InvalidQualityError(f"quality must be an integer 0-5, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidQualityError(f"quality must be an integer 0-5, got {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise InvalidQualityError(f"quality must be an integer 0-5, got {value!r}")
    try:
        return Quality(value)
    except ValueError as e:
        raise InvalidQualityError(f"quality must be between 0 and 5, got {value}") from e


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def initialize_review(now: datetime | None = None) -> ReviewState:
    """Return the review state for a newly created flashcard."""
    now = _resolve_now(now)
    return ReviewState(
        ease_factor=INITIAL_EASE_FACTOR,
        interval_days=FIRST_INTERVAL_DAYS,
        next_review_date=now + timedelta(days=FIRST_INTERVAL_DAYS),
        review_count=0,
        correct_count=0,
    )


def _next_ease_factor(ease_factor: float, quality: Quality) -> float:
    miss = 5 - quality
    new_ease = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(new_ease, MIN_EASE_FACTOR)


def _next_interval(current: ReviewState, quality: Quality, new_ease: float) -> int:
    if not quality.remembered:
        # Forgotten cards always go back to daily review
        return FIRST_INTERVAL_DAYS
    if current.review_count == 0:
        return FIRST_INTERVAL_DAYS
    if current.review_count == 1:
        return SECOND_INTERVAL_DAYS
    return max(1, _round_half_up(current.interval_days * new_ease))


def calculate_next_review(
    current: ReviewState,
    quality: Quality | int,
    now: datetime | None = None,
) -> ReviewState:
    """
    Apply one graded review to ``current`` and return the new state.

    The ease factor moves on every review (+0.1 for a perfect grade, down to
    -0.8 for a blank) and never drops below 1.3. The interval resets to one
    day on a failed recall; successful recalls step 1 day, 3 days, then grow
    by the ease factor. The next due date counts from ``now``, not from the
    previous due date.

    Raises InvalidQualityError if ``quality`` is not an integer in 0–5.
    """
    grade = coerce_quality(quality)
    now = _resolve_now(now)

    new_ease = _next_ease_factor(current.ease_factor, grade)
    new_interval = _next_interval(current, grade, new_ease)

    updated = ReviewState(
        ease_factor=new_ease,
        interval_days=new_interval,
        next_review_date=now + timedelta(days=new_interval),
        review_count=current.review_count + 1,
        correct_count=current.correct_count + (1 if grade.remembered else 0),
        last_reviewed_at=now,
    )
    logger.debug(
        "Review graded %d: ease %.2f -> %.2f, interval %d -> %d days",
        grade,
        current.ease_factor,
        updated.ease_factor,
        current.interval_days,
        updated.interval_days,
    )
    return updated


def select_due_cards(
    cards: Iterable[CardReview | tuple[str, ReviewState]],
    now: datetime | None = None,
) -> list[str]:
    """Return ids of cards whose next review date has passed, in input order."""
    now = _resolve_now(now)
    due: list[str] = []
    for card in cards:
        if isinstance(card, CardReview):
            card_id, state = card.id, card.review
        else:
            card_id, state = card
        if state.next_review_date <= now:
            due.append(card_id)
    return due


def retention_rate(state: ReviewState) -> float:
    """Percentage of reviews graded as remembered; 0 for an unreviewed card."""
    if state.review_count == 0:
        return 0.0
    return 100.0 * state.correct_count / state.review_count


def estimate_days_to_mastery(state: ReviewState) -> float:
    """
    Rough number of days until the card counts as mastered.

    Treats each review as an independent trial that succeeds with probability
    ``retention / 100`` and asks how many reviews it takes to cross a 99%
    confidence bound, then spaces the remaining ones by the current interval.
    Cards at or above 90% retention are already mastered.
    """
    retention = retention_rate(state)
    if retention >= MASTERY_RETENTION:
        return 0.0

    miss_log = math.log(1 - retention / 100)
    if miss_log == 0:
        # Zero retention: the bound is unbounded below and clamps to 0.
        return 0.0

    reviews_needed = math.ceil(math.log(MASTERY_CONFIDENCE) / miss_log)
    spacing = max(state.interval_days, 1)
    return float(max(0, (reviews_needed - state.review_count) * spacing))


def review_progress(state: ReviewState) -> ReviewProgress:
    retention = retention_rate(state)
    return ReviewProgress(
        retention_rate=retention,
        days_to_mastery=estimate_days_to_mastery(state),
        is_mastered=retention >= MASTERY_RETENTION,
    )
