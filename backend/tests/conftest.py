from __future__ import annotations

import random
from typing import Any, Awaitable, Callable

import pytest

from flushrush.runtime import FlushRushRuntime
from flushrush.runtime_types import PlayerState, RoomRuntime


class RecordingTransport:
    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []

    def register(self, connection_id: str, websocket: Any) -> None:
        pass

    def unregister(self, connection_id: str) -> None:
        pass

    async def send(self, connection_id: str, message: dict[str, Any]) -> None:
        self.sent.append((connection_id, message))

    def messages(
        self,
        message_type: str | None = None,
        to: str | None = None,
    ) -> list[dict[str, Any]]:
        return [
            message
            for connection_id, message in self.sent
            if (message_type is None or message.get("type") == message_type)
            and (to is None or connection_id == to)
        ]

    def recipients(self, message_type: str) -> list[str]:
        return [
            connection_id
            for connection_id, message in self.sent
            if message.get("type") == message_type
        ]

    def clear(self) -> None:
        self.sent.clear()


class ManualTimer:
    def __init__(
        self,
        due: float,
        seq: int,
        callback: Callable[[], Awaitable[None]],
        interval: float | None,
        name: str | None,
    ) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.interval = interval
        self.name = name
        self.fired = 0
        self._done = False
        self._cancelled = False

    def cancel(self, msg: Any | None = None) -> bool:
        if self._done:
            return False
        self._done = True
        self._cancelled = True
        return True

    def cancelled(self) -> bool:
        return self._cancelled

    def done(self) -> bool:
        return self._done


class ManualScheduler:
    """Virtual clock: timers fire only inside ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._timers: list[ManualTimer] = []

    def now_ms(self) -> int:
        return int(self.now)

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def call_later(self, delay_ms, callback, *, name=None) -> ManualTimer:
        timer = ManualTimer(self.now + max(0.0, float(delay_ms)), self._next_seq(), callback, None, name)
        self._timers.append(timer)
        return timer

    def call_every(self, interval_ms, callback, *, name=None) -> ManualTimer:
        interval = float(interval_ms)
        timer = ManualTimer(self.now + interval, self._next_seq(), callback, interval, name)
        self._timers.append(timer)
        return timer

    def pending(self) -> list[ManualTimer]:
        return [timer for timer in self._timers if not timer.done()]

    async def advance(self, ms: float) -> None:
        target = self.now + ms
        while True:
            due = [timer for timer in self._timers if not timer.done() and timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda item: (item.due, item.seq))
            self.now = timer.due
            timer.fired += 1
            if timer.interval is None:
                timer._done = True
            else:
                timer.due += timer.interval
                timer.seq = self._next_seq()
            await timer.callback()
        self.now = target
        self._timers = [timer for timer in self._timers if not timer.done()]


class ScriptedRandom(random.Random):
    """Returns queued values from random(), then a fixed default."""

    def __init__(self, *values: float, default: float = 0.5) -> None:
        super().__init__(0)
        self.values = list(values)
        self.default = default

    def queue(self, *values: float) -> None:
        self.values.extend(values)

    def random(self) -> float:
        if self.values:
            return self.values.pop(0)
        return self.default


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture()
def runtime(transport, scheduler, rng) -> FlushRushRuntime:
    return FlushRushRuntime(transport=transport, scheduler=scheduler, rng=rng)


@pytest.fixture()
def join(runtime):
    async def _join(connection_id: str, name: str | None = None, room_id: str | None = "ROOM1") -> PlayerState:
        payload: dict[str, Any] = {"type": "join", "name": name or connection_id}
        if room_id is not None:
            payload["roomId"] = room_id
        player = await runtime.join(connection_id, payload)
        assert player is not None
        return player

    return _join


def positions(room: RoomRuntime) -> dict[str, int]:
    return {player_id: player.position for player_id, player in room.players.items()}
