from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import build_engine, build_sessionmaker, init_db
from main import create_app
from store import BookingStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    # Each test gets its own SQLite file; nothing touches ./appointments.db.
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'appointments.db'}")


@pytest.fixture
def client(settings: Settings):
    with TestClient(create_app(settings)) as c:
        yield c


@asynccontextmanager
async def open_store(settings: Settings) -> AsyncIterator[BookingStore]:
    engine = build_engine(settings.database_url)
    await init_db(engine)
    async_session = build_sessionmaker(engine)
    try:
        async with async_session() as session:
            yield BookingStore(session, settings.booking_dates)
    finally:
        await engine.dispose()
