from __future__ import annotations

from .runtime_types import MiniGameType, SabotageKind, SabotageType

DEFAULT_ROOM_ID = "default"
MAX_ROOM_ID_LENGTH = 128
MAX_PLAYER_NAME_LENGTH = 24
MAX_AVATAR_LENGTH = 256

HEARTBEAT_INTERVAL_MS = 1_000
ENERGY_TICK_INTERVAL_MS = 1_000
ENERGY_REGEN_PER_TICK = 2
MAX_ENERGY = 100
STARTING_ENERGY = 100

MINI_GAME_MIN_DELAY_MS = 10_000
MINI_GAME_MAX_DELAY_MS = 20_000
MINI_GAME_DURATION_MS = 15_000
MINI_GAME_TYPES: tuple[MiniGameType, MiniGameType, MiniGameType] = (
    "plunger-toss",
    "toilet-paper-dash",
    "soap-bubble-match",
)

LEADER_WIN_CHANCE = 0.2

SABOTAGE_CATALOG: dict[SabotageType, SabotageKind] = {
    "mystery-smell": SabotageKind(cost=20, duration_ms=5_000),
    "phantom-flush": SabotageKind(cost=30, duration_ms=4_000),
    "drip-of-doom": SabotageKind(cost=25, duration_ms=6_000),
}

# Timers owned by the room state machine; effect expiry timers live apart.
ROOM_TIMER_KEYS = ("heartbeat", "miniGame", "miniGameEnd", "energy")

JOIN_FAILED_MESSAGE = "Failed to join game"
