from datetime import datetime, timezone

import aiosqlite
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from studyrecall import create_app
from studyrecall.config import settings
from studyrecall.db.sqlite import init_sqlite


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db(tmp_path):
    await init_sqlite(tmp_path)
    async with aiosqlite.connect(tmp_path / settings.sqlite_filename) as conn:
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        yield conn


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", tmp_path / "data")
    with TestClient(create_app()) as test_client:
        yield test_client
