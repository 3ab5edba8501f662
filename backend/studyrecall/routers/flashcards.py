"""
Flashcard & spaced repetition router.

Endpoints:
  POST   /flashcards/               — create a card with a fresh review state
  GET    /flashcards/               — list cards (optionally filtered by topic)
  GET    /flashcards/due            — cards due for review now, creation order
  GET    /flashcards/stats          — deck summary (total, due, mastered, per-topic)
  GET    /flashcards/{id}           — single card
  GET    /flashcards/{id}/progress  — retention rate and days-to-mastery estimate
  POST   /flashcards/{id}/review    — submit a 0–5 quality grade, run SM-2, persist
  PATCH  /flashcards/{id}           — edit question / answer / topic
  DELETE /flashcards/{id}           — delete card and its review state
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from studyrecall.config import settings
from studyrecall.db.sqlite import (
    create_flashcard,
    delete_flashcard,
    get_db,
    get_flashcard,
    list_all_flashcards,
    list_flashcards,
    save_review_state,
    update_flashcard_content,
)
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
from studyrecall.models.review import CardReview, ReviewProgress
from studyrecall.services.spaced_repetition import (
    calculate_next_review,
    initialize_review,
    retention_rate,
    review_progress,
    select_due_cards,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=Flashcard, status_code=201)
async def create_card(
    body: FlashcardCreate, db: aiosqlite.Connection = Depends(get_db)
) -> Flashcard:
    card = await create_flashcard(db, body, initialize_review())
    logger.info("Created flashcard %s (topic=%s)", card.id, card.topic)
    return card


@router.get("/", response_model=FlashcardList)
async def list_cards(
    topic: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    """List all flashcards, optionally filtered by topic."""
    items, total = await list_flashcards(db, topic=topic, offset=offset, limit=limit)
    return FlashcardList(items=items, total=total)


@router.get("/due", response_model=FlashcardList)
async def get_due(
    limit: int | None = Query(default=None, ge=1, le=settings.max_due_limit),
    topic: str | None = Query(default=None),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    """Return cards due for review now, in creation order."""
    cards = await list_all_flashcards(db, topic=topic)
    now = datetime.now(timezone.utc)
    due_ids = set(
        select_due_cards((CardReview(id=c.id, review=c.review) for c in cards), now=now)
    )
    due = [c for c in cards if c.id in due_ids]
    items = due[: limit or settings.default_due_limit]
    return FlashcardList(items=items, total=len(due))


@router.get("/stats", response_model=DeckStats)
async def deck_stats(db: aiosqlite.Connection = Depends(get_db)) -> DeckStats:
    """Return summary statistics: total cards, due now, mastery, per-topic breakdown."""
    cards = await list_all_flashcards(db)
    now = datetime.now(timezone.utc)
    due_ids = set(
        select_due_cards(((c.id, c.review) for c in cards), now=now)
    )

    totals: Counter[str | None] = Counter(c.topic for c in cards)
    due_by_topic: Counter[str | None] = Counter(
        c.topic for c in cards if c.id in due_ids
    )
    per_topic = [
        TopicStats(topic=topic, total=count, due=due_by_topic[topic])
        for topic, count in sorted(totals.items(), key=lambda kv: kv[0] or "")
    ]

    progress = [review_progress(c.review) for c in cards]
    reviewed = [c.review for c in cards if c.review.review_count > 0]
    average = (
        sum(retention_rate(r) for r in reviewed) / len(reviewed) if reviewed else 0.0
    )

    return DeckStats(
        total_cards=len(cards),
        due_now=len(due_ids),
        mastered=sum(1 for p in progress if p.is_mastered),
        average_retention=average,
        per_topic=per_topic,
    )


@router.get("/{card_id}", response_model=Flashcard)
async def get_card(
    card_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    card = await get_flashcard(db, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return card


@router.get("/{card_id}/progress", response_model=ReviewProgress)
async def get_progress(
    card_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> ReviewProgress:
    card = await get_flashcard(db, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return review_progress(card.review)


@router.post("/{card_id}/review", response_model=ReviewResult)
async def review_card(
    card_id: str,
    body: ReviewRequest,
    db: aiosqlite.Connection = Depends(get_db),
) -> ReviewResult:
    """Submit a quality grade for a flashcard. Runs SM-2 and stores the new state."""
    card = await get_flashcard(db, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")

    now = datetime.now(timezone.utc)
    new_state = calculate_next_review(card.review, body.quality, now=now)

    updated = await save_review_state(db, card_id, new_state)
    if not updated:
        raise HTTPException(status_code=500, detail="Failed to update flashcard")

    logger.info(
        "Reviewed flashcard %s: quality=%d interval=%d reviews=%d",
        card_id,
        body.quality,
        updated.review.interval_days,
        updated.review.review_count,
    )
    return ReviewResult(
        id=card_id,
        quality=body.quality,
        review=updated.review,
        progress=review_progress(updated.review),
    )


@router.patch("/{card_id}", response_model=Flashcard)
async def edit_card(
    card_id: str,
    body: FlashcardUpdate,
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    updated = await update_flashcard_content(db, card_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return updated


@router.delete("/{card_id}", status_code=204)
async def delete_card(
    card_id: str,
    db: aiosqlite.Connection = Depends(get_db),
) -> None:
    deleted = await delete_flashcard(db, card_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    logger.info("Deleted flashcard %s", card_id)
