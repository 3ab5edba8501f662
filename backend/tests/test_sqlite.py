from datetime import timedelta

import pytest

from studyrecall.db.sqlite import (
    create_flashcard,
    delete_flashcard,
    get_flashcard,
    list_all_flashcards,
    list_flashcards,
    save_review_state,
    update_flashcard_content,
)
from studyrecall.models.flashcard import FlashcardCreate, FlashcardUpdate
from studyrecall.models.review import Quality
from studyrecall.services.spaced_repetition import calculate_next_review, initialize_review


@pytest.mark.asyncio
async def test_create_and_get_flashcard(db, now):
    review = initialize_review(now=now)
    card = await create_flashcard(
        db, FlashcardCreate(question="What is ATP?", answer="Energy currency", topic="bio"), review
    )

    fetched = await get_flashcard(db, card.id)
    assert fetched is not None
    assert fetched.question == "What is ATP?"
    assert fetched.topic == "bio"
    assert fetched.review == review


@pytest.mark.asyncio
async def test_review_state_round_trips_through_sqlite(db, now):
    card = await create_flashcard(
        db, FlashcardCreate(question="q", answer="a"), initialize_review(now=now)
    )
    state = calculate_next_review(card.review, Quality.PERFECT, now=now)
    state = calculate_next_review(state, Quality.HARD, now=now + timedelta(days=1))

    updated = await save_review_state(db, card.id, state)

    assert updated is not None
    assert updated.review == state
    assert updated.review.last_reviewed_at == now + timedelta(days=1)


@pytest.mark.asyncio
async def test_list_flashcards_filters_by_topic(db, now):
    for topic in ("bio", "chem", "bio"):
        await create_flashcard(
            db, FlashcardCreate(question=topic, answer="a", topic=topic), initialize_review(now=now)
        )

    items, total = await list_flashcards(db, topic="bio")
    assert total == 2
    assert [c.topic for c in items] == ["bio", "bio"]

    everything = await list_all_flashcards(db)
    assert [c.question for c in everything] == ["bio", "chem", "bio"]


@pytest.mark.asyncio
async def test_update_flashcard_content_keeps_unset_fields(db, now):
    card = await create_flashcard(
        db, FlashcardCreate(question="q", answer="a", topic="math"), initialize_review(now=now)
    )

    updated = await update_flashcard_content(db, card.id, FlashcardUpdate(answer="b"))

    assert updated is not None
    assert (updated.question, updated.answer, updated.topic) == ("q", "b", "math")
    assert await update_flashcard_content(db, "missing", FlashcardUpdate(answer="x")) is None


@pytest.mark.asyncio
async def test_delete_flashcard_removes_review_state(db, now):
    card = await create_flashcard(
        db, FlashcardCreate(question="q", answer="a"), initialize_review(now=now)
    )

    assert await delete_flashcard(db, card.id) is True
    assert await get_flashcard(db, card.id) is None

    cursor = await db.execute(
        "SELECT COUNT(*) FROM flashcard_reviews WHERE flashcard_id = ?", (card.id,)
    )
    assert (await cursor.fetchone())[0] == 0
    assert await delete_flashcard(db, card.id) is False


@pytest.mark.asyncio
async def test_card_without_review_row_reads_as_new(db):
    await db.execute(
        "INSERT INTO flashcards (id, question, answer) VALUES ('legacy', 'q', 'a')"
    )
    await db.commit()

    card = await get_flashcard(db, "legacy")

    assert card is not None
    assert card.review.review_count == 0
    assert card.review.ease_factor == 2.5


@pytest.mark.asyncio
async def test_update_flashcard_content_clears_topic_with_explicit_none(db, now):
    card = await create_flashcard(
        db, FlashcardCreate(question="q", answer="a", topic="math"), initialize_review(now=now)
    )

    untouched = await update_flashcard_content(db, card.id, FlashcardUpdate(question="q2"))
    assert untouched is not None and untouched.topic == "math"

    cleared = await update_flashcard_content(db, card.id, FlashcardUpdate(topic=None))
    assert cleared is not None
    assert cleared.topic is None
    assert cleared.question == "q2"
