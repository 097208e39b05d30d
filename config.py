"""Configuration for Bracket Desk."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'competitions.db'}",
)


def _parse_int(value: str | None, default: int) -> int:
    if not value:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_origins(value: str) -> list[str]:
    if not value:
        return ["*"]
    return [x.strip() for x in value.split(",") if x.strip()]


# Entry-time minimums (the engines themselves only require 2)
MIN_BRACKET_PARTICIPANTS = _parse_int(os.getenv("MIN_BRACKET_PARTICIPANTS"), 2)
MIN_ROUND_ROBIN_PARTICIPANTS = _parse_int(os.getenv("MIN_ROUND_ROBIN_PARTICIPANTS"), 3)

# Unsaved drafts idle this long (seconds) are dropped; 0 keeps them until saved or discarded
DRAFT_MAX_IDLE_SECONDS = _parse_int(os.getenv("DRAFT_MAX_IDLE_SECONDS"), 24 * 60 * 60)

# Web API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = _parse_int(os.getenv("API_PORT"), 8000)
CORS_ORIGINS = _parse_origins(os.getenv("CORS_ORIGINS", ""))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
