import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from studyrecall.config import settings
from studyrecall.models.flashcard import Flashcard, FlashcardCreate, FlashcardUpdate
from studyrecall.models.review import ReviewState
from studyrecall.services.spaced_repetition import initialize_review

_db_path: Path | None = None

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS flashcards (
    id          TEXT PRIMARY KEY,
    question    TEXT NOT NULL,
    answer      TEXT NOT NULL,
    topic       TEXT,
    created_at  TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_flashcards_topic ON flashcards(topic);

CREATE TABLE IF NOT EXISTS flashcard_reviews (
    flashcard_id     TEXT PRIMARY KEY REFERENCES flashcards(id) ON DELETE CASCADE,
    ease_factor      REAL NOT NULL DEFAULT 2.5,
    interval_days    INTEGER NOT NULL DEFAULT 1,
    next_review_date TEXT NOT NULL,
    review_count     INTEGER NOT NULL DEFAULT 0,
    correct_count    INTEGER NOT NULL DEFAULT 0,
    last_reviewed_at TEXT,
    updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_reviews_next ON flashcard_reviews(next_review_date);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""

_CARD_SELECT = """
SELECT f.id, f.question, f.answer, f.topic, f.created_at, f.updated_at,
       r.ease_factor, r.interval_days, r.next_review_date,
       r.review_count, r.correct_count, r.last_reviewed_at
FROM flashcards f
LEFT JOIN flashcard_reviews r ON r.flashcard_id = f.id
"""


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _row_to_review(row: aiosqlite.Row) -> ReviewState:
    d = dict(row)
    if d["next_review_date"] is None:
        # Card stored without a review row: treat as freshly initialised
        return initialize_review()
    return ReviewState(
        ease_factor=d["ease_factor"],
        interval_days=d["interval_days"],
        next_review_date=d["next_review_date"],
        review_count=d["review_count"],
        correct_count=d["correct_count"],
        last_reviewed_at=d["last_reviewed_at"],
    )


def _row_to_flashcard(row: aiosqlite.Row) -> Flashcard:
    return Flashcard(
        id=row["id"],
        question=row["question"],
        answer=row["answer"],
        topic=row["topic"],
        review=_row_to_review(row),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# --- Flashcards ---


async def create_flashcard(
    db: aiosqlite.Connection, card: FlashcardCreate, review: ReviewState
) -> Flashcard:
    card_id = str(uuid.uuid4())
    now = _now()
    await db.execute(
        """INSERT INTO flashcards (id, question, answer, topic, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (card_id, card.question, card.answer, card.topic, now, now),
    )
    await _write_review(db, card_id, review)
    await db.commit()
    return await get_flashcard(db, card_id)  # type: ignore[return-value]


async def get_flashcard(db: aiosqlite.Connection, card_id: str) -> Flashcard | None:
    cursor = await db.execute(_CARD_SELECT + " WHERE f.id = ?", (card_id,))
    row = await cursor.fetchone()
    return _row_to_flashcard(row) if row else None


async def list_flashcards(
    db: aiosqlite.Connection,
    topic: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Flashcard], int]:
    if topic:
        cursor = await db.execute(
            _CARD_SELECT
            + " WHERE f.topic = ? ORDER BY f.created_at ASC, f.rowid ASC LIMIT ? OFFSET ?",
            (topic, limit, offset),
        )
        count_cursor = await db.execute(
            "SELECT COUNT(*) FROM flashcards WHERE topic = ?", (topic,)
        )
    else:
        cursor = await db.execute(
            _CARD_SELECT + " ORDER BY f.created_at ASC, f.rowid ASC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        count_cursor = await db.execute("SELECT COUNT(*) FROM flashcards")
    rows = await cursor.fetchall()
    count_row = await count_cursor.fetchone()
    total = count_row[0] if count_row else 0
    return [_row_to_flashcard(r) for r in rows], total


async def list_all_flashcards(
    db: aiosqlite.Connection, topic: str | None = None
) -> list[Flashcard]:
    """Every card (optionally of one topic) in creation order, for due selection and stats."""
    if topic:
        cursor = await db.execute(
            _CARD_SELECT + " WHERE f.topic = ? ORDER BY f.created_at ASC, f.rowid ASC",
            (topic,),
        )
    else:
        cursor = await db.execute(
            _CARD_SELECT + " ORDER BY f.created_at ASC, f.rowid ASC"
        )
    rows = await cursor.fetchall()
    return [_row_to_flashcard(r) for r in rows]


async def update_flashcard_content(
    db: aiosqlite.Connection,
    card_id: str,
    update: FlashcardUpdate,
) -> Flashcard | None:
    card = await get_flashcard(db, card_id)
    if not card:
        return None
    new_q = update.question if update.question is not None else card.question
    new_a = update.answer if update.answer is not None else card.answer
    # An explicit null clears the topic; an omitted field keeps it
    new_topic = update.topic if "topic" in update.model_fields_set else card.topic
    now = _now()
    await db.execute(
        "UPDATE flashcards SET question = ?, answer = ?, topic = ?, updated_at = ? WHERE id = ?",
        (new_q, new_a, new_topic, now, card_id),
    )
    await db.commit()
    return await get_flashcard(db, card_id)


async def delete_flashcard(db: aiosqlite.Connection, card_id: str) -> bool:
    cursor = await db.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
    await db.commit()
    return (cursor.rowcount or 0) > 0


# --- Review state ---


async def _write_review(
    db: aiosqlite.Connection, card_id: str, review: ReviewState
) -> None:
    last_reviewed = (
        review.last_reviewed_at.isoformat() if review.last_reviewed_at else None
    )
    await db.execute(
        """INSERT INTO flashcard_reviews
           (flashcard_id, ease_factor, interval_days, next_review_date,
            review_count, correct_count, last_reviewed_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)
           ON CONFLICT(flashcard_id) DO UPDATE SET
               ease_factor = excluded.ease_factor,
               interval_days = excluded.interval_days,
               next_review_date = excluded.next_review_date,
               review_count = excluded.review_count,
               correct_count = excluded.correct_count,
               last_reviewed_at = excluded.last_reviewed_at,
               updated_at = excluded.updated_at""",
        (
            card_id,
            review.ease_factor,
            review.interval_days,
            review.next_review_date.isoformat(),
            review.review_count,
            review.correct_count,
            last_reviewed,
            _now(),
        ),
    )


async def save_review_state(
    db: aiosqlite.Connection, card_id: str, review: ReviewState
) -> Flashcard | None:
    await _write_review(db, card_id, review)
    await db.commit()
    return await get_flashcard(db, card_id)
