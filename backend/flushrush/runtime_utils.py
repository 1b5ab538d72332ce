from __future__ import annotations

import re
import time
import uuid
from typing import Any

from .runtime_constants import (
    DEFAULT_ROOM_ID,
    MAX_AVATAR_LENGTH,
    MAX_PLAYER_NAME_LENGTH,
)


def now_ms() -> int:
    return int(time.time() * 1000)


def random_id() -> str:
    return str(uuid.uuid4())


def short_id() -> str:
    return uuid.uuid4().hex[:9]


def resolve_room_id(raw: str | None) -> str:
    # Ids are opaque: any non-empty string names its own room.
    return raw or DEFAULT_ROOM_ID


def sanitize_player_name(raw: Any) -> str:
    value = str(raw or "").strip()
    return re.sub(r"\s+", " ", value)[:MAX_PLAYER_NAME_LENGTH].strip()


def sanitize_avatar(raw: Any) -> str | None:
    if raw is None:
        return None
    value = str(raw).strip()[:MAX_AVATAR_LENGTH]
    return value or None
