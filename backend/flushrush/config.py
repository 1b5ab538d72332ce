from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:3001",
    "https://flush-rush.onrender.com",
)
DEFAULT_ALLOWED_ORIGIN_REGEX = r".*\.(vercel\.app|onrender\.com)"


def _optional_int(raw: str | None) -> int | None:
    value = str(raw or "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class Settings:
    def __init__(self) -> None:
        self.ws_port = int(os.getenv("WS_PORT", "3001"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
        raw_origins = os.getenv("CORS_ALLOWED_ORIGINS", "").strip()
        if raw_origins:
            self.allowed_origins = tuple(
                origin.strip() for origin in raw_origins.split(",") if origin.strip()
            )
        else:
            self.allowed_origins = DEFAULT_ALLOWED_ORIGINS
        self.allowed_origin_regex = (
            os.getenv("CORS_ALLOWED_ORIGIN_REGEX", DEFAULT_ALLOWED_ORIGIN_REGEX).strip() or None
        )
        self.random_seed = _optional_int(os.getenv("RANDOM_SEED"))


settings = Settings()
