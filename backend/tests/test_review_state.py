from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from studyrecall.models.flashcard import ReviewRequest
from studyrecall.models.review import Quality, ReviewState
from studyrecall.services.spaced_repetition import calculate_next_review, initialize_review


def test_json_round_trip_preserves_all_fields(now):
    state = calculate_next_review(initialize_review(now=now), Quality.GOOD, now=now)

    restored = ReviewState.model_validate_json(state.model_dump_json())

    assert restored == state
    assert restored.ease_factor == state.ease_factor
    assert restored.interval_days == state.interval_days
    assert restored.next_review_date == state.next_review_date
    assert restored.review_count == state.review_count
    assert restored.correct_count == state.correct_count
    assert restored.last_reviewed_at == state.last_reviewed_at


def test_naive_timestamps_are_read_as_utc():
    state = ReviewState(
        ease_factor=2.5,
        interval_days=1,
        next_review_date=datetime(2024, 1, 2, 8, 0),
        review_count=0,
        correct_count=0,
    )
    assert state.next_review_date == datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc)


def test_offset_timestamps_are_normalised_to_utc():
    plus_two = timezone(timedelta(hours=2))
    state = ReviewState(
        ease_factor=2.5,
        interval_days=1,
        next_review_date=datetime(2024, 1, 2, 10, 0, tzinfo=plus_two),
        review_count=0,
        correct_count=0,
    )
    assert state.next_review_date.tzinfo == timezone.utc
    assert state.next_review_date.hour == 8


def test_ease_below_minimum_rejected(now):
    with pytest.raises(ValidationError):
        ReviewState(
            ease_factor=1.2,
            interval_days=1,
            next_review_date=now,
            review_count=0,
            correct_count=0,
        )


def test_correct_count_cannot_exceed_review_count(now):
    with pytest.raises(ValidationError):
        ReviewState(
            ease_factor=2.5,
            interval_days=1,
            next_review_date=now,
            review_count=1,
            correct_count=2,
        )


def test_review_state_is_frozen(now):
    state = initialize_review(now=now)
    with pytest.raises(ValidationError):
        state.review_count = 5


def test_quality_remembered_threshold():
    assert [q for q in Quality if q.remembered] == [Quality.GOOD, Quality.EASY, Quality.PERFECT]


@pytest.mark.parametrize("bad", [-1, 6, 2.5, True, "4"])
def test_review_request_rejects_invalid_quality(bad):
    with pytest.raises(ValidationError):
        ReviewRequest(quality=bad)


def test_review_request_accepts_integral_grades():
    assert ReviewRequest(quality=4).quality is Quality.EASY
    assert ReviewRequest(quality=Quality.HARD).quality is Quality.HARD
