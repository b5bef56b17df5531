from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./appointments.db"
DEFAULT_FRONTEND_URL = "https://uniformshop-production.up.railway.app"
DEFAULT_BOOKING_DATES = (
    "2026-01-19",
    "2026-01-20",
    "2026-01-21",
    "2026-01-22",
    "2026-01-23",
)


def _parse_booking_dates(raw: str) -> tuple[str, ...]:
    # BOOKING_DATES is a comma-separated list of ISO dates, e.g.
    #   BOOKING_DATES=2026-01-19,2026-01-20
    parts = [p.strip() for p in raw.split(",")]
    parts = [p for p in parts if p]

    result: list[str] = []
    for p in parts:
        try:
            date.fromisoformat(p)
        except ValueError as e:
            raise RuntimeError(f"Invalid BOOKING_DATES value: {p!r}. Expected YYYY-MM-DD.") from e
        if p not in result:
            result.append(p)

    if not result:
        raise RuntimeError("BOOKING_DATES is empty. Provide at least one date.")

    return tuple(result)


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    port: int = 3001
    environment: str = "development"

    # CORS origins
    frontend_url: str = DEFAULT_FRONTEND_URL
    dev_origin: str = "http://localhost:3000"

    booking_dates: tuple[str, ...] = DEFAULT_BOOKING_DATES

    sql_echo: bool = False
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def allowed_origins(self) -> list[str]:
        if self.is_production:
            return [self.frontend_url]
        return [self.dev_origin]


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    try:
        port = int(os.getenv("PORT", "3001"))
    except ValueError as e:
        raise RuntimeError(f"Invalid PORT value: {os.getenv('PORT')!r}") from e

    echo_raw = os.getenv("SQL_ECHO", "0").strip().lower()

    booking_dates_raw = os.getenv("BOOKING_DATES")
    booking_dates = (
        _parse_booking_dates(booking_dates_raw) if booking_dates_raw else DEFAULT_BOOKING_DATES
    )

    return Settings(
        database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        port=port,
        environment=os.getenv("APP_ENV", "development").strip().lower(),
        frontend_url=os.getenv("FRONTEND_URL") or DEFAULT_FRONTEND_URL,
        dev_origin=os.getenv("DEV_ORIGIN") or "http://localhost:3000",
        booking_dates=booking_dates,
        sql_echo=echo_raw in {"1", "true", "yes"},
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
