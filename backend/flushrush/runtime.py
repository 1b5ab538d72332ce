from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from typing import Any, Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from .config import settings
from .runtime_constants import JOIN_FAILED_MESSAGE, ROOM_TIMER_KEYS
from .runtime_message_handlers import handle_message as handle_room_message
from .runtime_minigame_flow import (
    record_score as record_room_score,
    resolve_mini_game as resolve_room_mini_game,
    schedule_next_mini_game as schedule_room_next_mini_game,
    trigger_mini_game as trigger_room_mini_game,
)
from .runtime_phase_flow import (
    check_victory_condition as check_room_victory_condition,
    heartbeat_tick as room_heartbeat_tick,
    regenerate_energy as regenerate_room_energy,
    start_game as start_room_game,
)
from .runtime_players import (
    add_player as add_room_player,
    move_player_forward as move_room_player_forward,
    rebalance_positions as rebalance_room_positions,
    remove_player as remove_room_player,
)
from .runtime_sabotage import apply_sabotage as apply_room_sabotage
from .runtime_sabotage import expire_effect as expire_room_effect
from .runtime_state_builders import (
    build_game_state_payload,
    build_player_payload,
    build_players_payload,
)
from .runtime_timers import TimerScheduler
from .runtime_transport import WebSocketTransport
from .runtime_types import PlayerState, RoomRuntime, SabotageEffect, Scheduler, TimerHandle, Transport
from .runtime_utils import now_ms, random_id, resolve_room_id
from .schemas.messages import JoinRequest

logger = logging.getLogger(__name__)

RoomCallback = Callable[[RoomRuntime], Awaitable[Any]]


class FlushRushRuntime:
    def __init__(
        self,
        transport: Transport | None = None,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.rooms: dict[str, RoomRuntime] = {}
        self.connection_rooms: dict[str, str] = {}
        self.rooms_lock = asyncio.Lock()
        self.transport: Transport = transport or WebSocketTransport()
        self.scheduler: Scheduler = scheduler or TimerScheduler()
        self.rng = rng or random.Random(settings.random_seed)
        # Effect timers of deleted rooms run on as no-ops until they fire.
        self._detached_effect_timers: list[TimerHandle] = []
        self.started_at = time.monotonic()
        self._ws_stats: dict[str, int] = {
            "connectAttempts": 0,
            "disconnects": 0,
            "joins": 0,
            "joinRejected": 0,
            "sendFailures": 0,
            "messageReceived": 0,
            "pingReceived": 0,
            "activeConnections": 0,
            "peakConnections": 0,
        }

    @property
    def active_rooms_count(self) -> int:
        return len(self.rooms)

    @property
    def total_players(self) -> int:
        return sum(len(room.players) for room in self.rooms.values())

    def _increment_stat(self, key: str, amount: int = 1) -> None:
        self._ws_stats[key] = int(self._ws_stats.get(key, 0)) + amount

    def _on_connect(self) -> None:
        active_connections = int(self._ws_stats.get("activeConnections", 0)) + 1
        self._ws_stats["activeConnections"] = active_connections
        if active_connections > int(self._ws_stats.get("peakConnections", 0)):
            self._ws_stats["peakConnections"] = active_connections

    def _on_disconnect(self) -> None:
        self._increment_stat("disconnects")
        active_connections = max(0, int(self._ws_stats.get("activeConnections", 0)) - 1)
        self._ws_stats["activeConnections"] = active_connections

    def _log_ws_event(self, event: str, level: int = logging.INFO, **fields: object) -> None:
        logger.log(
            level,
            "ws.%s %s",
            event,
            json.dumps(fields, ensure_ascii=False, separators=(",", ":")),
        )

    def status(self) -> dict[str, Any]:
        return {
            "rooms": self.active_rooms_count,
            "totalPlayers": self.total_players,
            "uptime": round(time.monotonic() - self.started_at, 3),
        }

    async def get_ws_stats(self) -> dict[str, Any]:
        async with self.rooms_lock:
            room_summaries = [
                {
                    "roomId": room.room_id,
                    "players": len(room.players),
                    "state": room.state,
                }
                for room in self.rooms.values()
            ]

        room_summaries.sort(key=lambda item: int(item.get("players", 0)), reverse=True)

        return {
            "generatedAt": now_ms(),
            "activeRooms": len(room_summaries),
            "stats": dict(self._ws_stats),
            "rooms": room_summaries[:50],
        }

    # ---- Room registry ----

    def get_room(self, room_id: str) -> RoomRuntime | None:
        return self.rooms.get(room_id)

    def room_for_connection(self, connection_id: str) -> RoomRuntime | None:
        room_id = self.connection_rooms.get(connection_id)
        if room_id is None:
            return None
        return self.rooms.get(room_id)

    async def get_or_create_room(self, room_id: str | None = None) -> RoomRuntime:
        normalized_room_id = resolve_room_id(room_id)
        async with self.rooms_lock:
            room = self.rooms.get(normalized_room_id)
            if room is None:
                room = RoomRuntime(room_id=normalized_room_id)
                self.rooms[normalized_room_id] = room
                self._log_ws_event("room_created", roomId=normalized_room_id)
            return room

    async def _drop_room_if_empty(self, room: RoomRuntime) -> bool:
        async with self.rooms_lock:
            if room.players or self.rooms.get(room.room_id) is not room:
                return False
            self.rooms.pop(room.room_id, None)
        self._clear_timers(room)
        self._detach_effect_timers(room)
        self._log_ws_event("room_empty", roomId=room.room_id)
        return True

    async def join(self, connection_id: str, data: dict[str, Any]) -> PlayerState | None:
        try:
            request = JoinRequest.model_validate(data)
        except ValidationError:
            await self._reject_join(connection_id, code="INVALID_JOIN_PAYLOAD")
            return None

        if connection_id in self.connection_rooms:
            await self.leave(connection_id, reason="rejoin")

        room: RoomRuntime | None = None
        try:
            while True:
                room = await self.get_or_create_room(request.roomId)
                async with room.lock:
                    # The room may have been emptied and dropped while we waited.
                    if self.rooms.get(room.room_id) is not room:
                        continue
                    player = await add_room_player(
                        self,
                        room,
                        connection_id,
                        request.name,
                        request.avatar,
                    )
                    self.connection_rooms[connection_id] = room.room_id
                    await self._send_to(
                        connection_id,
                        {"type": "player-joined", "player": build_player_payload(player)},
                    )
                    await self._send_to(
                        connection_id,
                        {"type": "game-state-update", **build_game_state_payload(room)},
                    )
                self._increment_stat("joins")
                return player
        except Exception:
            logger.exception("Error joining game for connection %s", connection_id)
            if room is not None:
                await self._discard_failed_join(room, connection_id)
            await self._reject_join(connection_id, code="JOIN_FAILED")
            return None

    async def _reject_join(self, connection_id: str, code: str) -> None:
        self._increment_stat("joinRejected")
        await self._send_to(connection_id, {"type": "error", "message": JOIN_FAILED_MESSAGE})
        self._log_ws_event(
            "join_rejected",
            level=logging.WARNING,
            peerId=connection_id,
            code=code,
        )

    async def _discard_failed_join(self, room: RoomRuntime, connection_id: str) -> None:
        if self.connection_rooms.get(connection_id) == room.room_id:
            self.connection_rooms.pop(connection_id, None)
        async with room.lock:
            if room.players.pop(connection_id, None) is not None:
                self._rebalance_positions(room)
        await self._drop_room_if_empty(room)

    async def leave(self, connection_id: str, reason: str = "leave") -> bool:
        room_id = self.connection_rooms.pop(connection_id, None)
        if room_id is None:
            return False
        room = self.rooms.get(room_id)
        if room is None:
            return False

        async with room.lock:
            removed = await remove_room_player(self, room, connection_id, reason=reason)

        await self._drop_room_if_empty(room)
        return removed is not None

    async def shutdown(self) -> None:
        async with self.rooms_lock:
            rooms = list(self.rooms.values())
            self.rooms.clear()
            self.connection_rooms.clear()

        for room in rooms:
            self._clear_timers(room)
            self._detach_effect_timers(room)
            room.effect_timers.clear()

        for task in self._detached_effect_timers:
            if not task.done():
                task.cancel()
        self._detached_effect_timers.clear()

        self._ws_stats["activeConnections"] = 0

    # ---- Connection handling ----

    async def handle_websocket(self, websocket: WebSocket) -> None:
        await websocket.accept()

        connection_id = random_id()
        self._increment_stat("connectAttempts")
        self._on_connect()
        self.transport.register(connection_id, websocket)
        await self._send_to(connection_id, {"type": "connected", "connectionId": connection_id})
        self._log_ws_event("connect", peerId=connection_id)

        disconnect_code: int | None = None
        disconnect_reason = "unknown"

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if not isinstance(data, dict):
                    continue
                try:
                    await self.handle_message(connection_id, data)
                except Exception:
                    logger.exception(
                        "Failed to handle %s from connection %s",
                        data.get("type"),
                        connection_id,
                    )
        except WebSocketDisconnect as exc:
            disconnect_code = exc.code
            disconnect_reason = "websocket_disconnect"
        except Exception:
            disconnect_reason = "server_error"
            logger.exception("Unexpected websocket error for connection %s", connection_id)
        finally:
            await self.leave(connection_id, reason=disconnect_reason)
            self.transport.unregister(connection_id)
            self._on_disconnect()
            self._log_ws_event(
                "disconnect",
                peerId=connection_id,
                reason=disconnect_reason,
                closeCode=disconnect_code,
            )

    async def handle_message(self, connection_id: str, data: dict[str, Any]) -> None:
        self._increment_stat("messageReceived")
        message_type = data.get("type")

        if message_type == "ping":
            self._increment_stat("pingReceived")
            await self._send_to(connection_id, {"type": "pong", "serverTime": now_ms()})
            return

        if message_type == "join":
            await self.join(connection_id, data)
            return

        if message_type == "leave":
            room_id = self.connection_rooms.get(connection_id)
            if await self.leave(connection_id):
                await self._send_to(connection_id, {"type": "left", "roomId": room_id})
            return

        room = self.room_for_connection(connection_id)
        if room is None:
            return

        async with room.lock:
            player = room.players.get(connection_id)
            if player is None:
                return
            await handle_room_message(self, room, player, data)

    # ---- Emission ----

    async def _send_to(self, connection_id: str, data: dict[str, Any]) -> None:
        try:
            await self.transport.send(connection_id, data)
        except Exception as exc:
            # Connection may already be closed.
            self._increment_stat("sendFailures")
            logger.debug("[SEND_FAIL] peer=%s reason=%s", connection_id, repr(exc))

    async def _emit_room(self, room: RoomRuntime, message_type: str, payload: dict[str, Any]) -> None:
        message = {"type": message_type, **payload}
        for connection_id in list(room.players.keys()):
            await self._send_to(connection_id, message)

    async def _broadcast_players(self, room: RoomRuntime) -> None:
        await self._emit_room(room, "players-update", {"players": build_players_payload(room)})

    async def _broadcast_game_state(self, room: RoomRuntime) -> None:
        await self._emit_room(room, "game-state-update", build_game_state_payload(room))

    # ---- Timers ----

    def _cancel_timer(self, room: RoomRuntime, key: str) -> None:
        task = room.timers.get(key)
        if task and not task.done():
            task.cancel()
        room.timers[key] = None

    def _clear_timers(self, room: RoomRuntime) -> None:
        for key in ROOM_TIMER_KEYS:
            self._cancel_timer(room, key)

    def _detach_effect_timers(self, room: RoomRuntime) -> None:
        pending = [task for task in self._detached_effect_timers if not task.done()]
        pending.extend(task for task in room.effect_timers.values() if not task.done())
        self._detached_effect_timers = pending

    def _schedule_timer(
        self,
        room: RoomRuntime,
        key: str,
        delay_ms: float,
        callback: RoomCallback,
    ) -> None:
        self._cancel_timer(room, key)

        async def runner() -> None:
            async with room.lock:
                await callback(room)

        room.timers[key] = self.scheduler.call_later(
            delay_ms,
            runner,
            name=f"{room.room_id}:{key}",
        )

    def _schedule_interval(
        self,
        room: RoomRuntime,
        key: str,
        interval_ms: float,
        callback: RoomCallback,
    ) -> None:
        self._cancel_timer(room, key)

        async def runner() -> None:
            async with room.lock:
                await callback(room)

        room.timers[key] = self.scheduler.call_every(
            interval_ms,
            runner,
            name=f"{room.room_id}:{key}",
        )

    def _schedule_effect_expiry(
        self,
        room: RoomRuntime,
        target_id: str,
        effect: SabotageEffect,
    ) -> None:
        effect_id = effect.id

        async def runner() -> None:
            async with room.lock:
                await expire_room_effect(self, room, target_id, effect_id)

        room.effect_timers[effect_id] = self.scheduler.call_later(
            effect.duration,
            runner,
            name=f"{room.room_id}:effect:{effect_id}",
        )

    # ---- Randomness ----

    def _random_item(self, items: list[Any]) -> Any:
        if not items:
            return None
        index = min(len(items) - 1, int(self.rng.random() * len(items)))
        return items[index]

    def _random_between(self, low: float, high: float) -> float:
        return low + self.rng.random() * (high - low)

    def _roll(self, probability: float) -> bool:
        return self.rng.random() < probability

    # ---- Room engine delegates ----

    def _rebalance_positions(self, room: RoomRuntime) -> None:
        rebalance_room_positions(room)

    async def _start_game(self, room: RoomRuntime) -> bool:
        return await start_room_game(self, room)

    async def _heartbeat_tick(self, room: RoomRuntime) -> None:
        await room_heartbeat_tick(self, room)

    async def _regenerate_energy(self, room: RoomRuntime) -> None:
        await regenerate_room_energy(self, room)

    def _schedule_next_mini_game(self, room: RoomRuntime) -> None:
        schedule_room_next_mini_game(self, room)

    async def _trigger_mini_game(self, room: RoomRuntime) -> bool:
        return await trigger_room_mini_game(self, room)

    async def _resolve_mini_game(self, room: RoomRuntime) -> str | None:
        return await resolve_room_mini_game(self, room)

    async def _record_score(self, room: RoomRuntime, player_id: str, score: float) -> bool:
        return await record_room_score(self, room, player_id, score)

    async def _move_player_forward(self, room: RoomRuntime, player_id: str) -> bool:
        return await move_room_player_forward(self, room, player_id)

    async def _check_victory_condition(self, room: RoomRuntime) -> bool:
        return await check_room_victory_condition(self, room)

    async def _apply_sabotage(
        self,
        room: RoomRuntime,
        attacker_id: str,
        target_id: str,
        sabotage_type: str,
    ) -> bool:
        return await apply_room_sabotage(self, room, attacker_id, target_id, sabotage_type)
