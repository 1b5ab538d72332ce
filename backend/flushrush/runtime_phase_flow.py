from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .runtime_constants import (
    ENERGY_REGEN_PER_TICK,
    ENERGY_TICK_INTERVAL_MS,
    HEARTBEAT_INTERVAL_MS,
    LEADER_WIN_CHANCE,
    MAX_ENERGY,
)
from .runtime_players import find_player_at
from .runtime_state_builders import build_player_payload, build_players_payload

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .runtime import FlushRushRuntime
    from .runtime_types import PlayerState, RoomRuntime


async def start_game(runtime: "FlushRushRuntime", room: "RoomRuntime") -> bool:
    if room.state != "lobby":
        return False

    room.state = "playing"
    room.elapsed_seconds = 0
    room.winner_id = None

    runtime._schedule_interval(room, "heartbeat", HEARTBEAT_INTERVAL_MS, runtime._heartbeat_tick)
    runtime._schedule_next_mini_game(room)
    runtime._schedule_interval(room, "energy", ENERGY_TICK_INTERVAL_MS, runtime._regenerate_energy)

    runtime._log_ws_event("game_started", roomId=room.room_id, players=len(room.players))
    await runtime._broadcast_game_state(room)
    return True


async def heartbeat_tick(runtime: "FlushRushRuntime", room: "RoomRuntime") -> None:
    if room.state != "playing":
        return
    room.elapsed_seconds += 1
    await runtime._broadcast_game_state(room)


async def regenerate_energy(runtime: "FlushRushRuntime", room: "RoomRuntime") -> None:
    if room.state != "playing":
        runtime._cancel_timer(room, "energy")
        return

    for player in room.players.values():
        if player.energy < MAX_ENERGY:
            player.energy = min(MAX_ENERGY, player.energy + ENERGY_REGEN_PER_TICK)

    await runtime._broadcast_players(room)


async def end_game(runtime: "FlushRushRuntime", room: "RoomRuntime", winner: "PlayerState") -> None:
    room.state = "ended"
    room.winner_id = winner.id

    runtime._cancel_timer(room, "heartbeat")
    runtime._cancel_timer(room, "miniGame")

    runtime._log_ws_event(
        "game_ended",
        roomId=room.room_id,
        winnerId=winner.id,
        winnerName=winner.name,
        elapsedSeconds=room.elapsed_seconds,
    )
    await runtime._emit_room(
        room,
        "game-end",
        {
            "winner": build_player_payload(winner),
            "finalScores": build_players_payload(room),
        },
    )


async def check_victory_condition(runtime: "FlushRushRuntime", room: "RoomRuntime") -> bool:
    leader = find_player_at(room, 0)
    if leader is None:
        return False

    if not runtime._roll(LEADER_WIN_CHANCE):
        logger.debug("Leader %s did not flush through in room %s", leader.id, room.room_id)
        return False

    await end_game(runtime, room, leader)
    return True
