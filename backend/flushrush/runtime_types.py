from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal, Protocol

GameState = Literal["lobby", "playing", "ended"]
MiniGameType = Literal["plunger-toss", "toilet-paper-dash", "soap-bubble-match"]
SabotageType = Literal["mystery-smell", "phantom-flush", "drip-of-doom"]


class TimerHandle(Protocol):
    def cancel(self, msg: Any | None = None) -> bool: ...

    def done(self) -> bool: ...


class Scheduler(Protocol):
    def now_ms(self) -> int: ...

    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str | None = None,
    ) -> TimerHandle: ...

    def call_every(
        self,
        interval_ms: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str | None = None,
    ) -> TimerHandle: ...


class Transport(Protocol):
    def register(self, connection_id: str, websocket: Any) -> None: ...

    def unregister(self, connection_id: str) -> None: ...

    async def send(self, connection_id: str, message: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class SabotageKind:
    cost: int
    duration_ms: int


@dataclass
class SabotageEffect:
    id: str
    type: str
    started_at: int
    duration: int
    attacker_id: str


@dataclass
class PlayerState:
    id: str
    name: str
    avatar: str | None
    position: int
    energy: int = 100
    score: float = 0
    is_connected: bool = True
    sabotage_effects: list[SabotageEffect] = field(default_factory=list)


@dataclass
class MiniGame:
    type: str
    start_time: int
    duration: int
    participants: list[str]
    scores: dict[str, float] = field(default_factory=dict)


@dataclass
class RoomRuntime:
    room_id: str
    state: GameState = "lobby"
    players: dict[str, PlayerState] = field(default_factory=dict)
    current_mini_game: MiniGame | None = None
    elapsed_seconds: int = 0
    winner_id: str | None = None
    timers: dict[str, TimerHandle | None] = field(default_factory=dict)
    effect_timers: dict[str, TimerHandle] = field(default_factory=dict)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
