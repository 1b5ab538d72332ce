from __future__ import annotations

from typing import TYPE_CHECKING

from .runtime_constants import (
    MINI_GAME_DURATION_MS,
    MINI_GAME_MAX_DELAY_MS,
    MINI_GAME_MIN_DELAY_MS,
    MINI_GAME_TYPES,
)
from .runtime_types import MiniGame

if TYPE_CHECKING:
    from .runtime import FlushRushRuntime
    from .runtime_types import RoomRuntime


def schedule_next_mini_game(runtime: "FlushRushRuntime", room: "RoomRuntime") -> None:
    if room.state != "playing":
        return

    delay_ms = runtime._random_between(MINI_GAME_MIN_DELAY_MS, MINI_GAME_MAX_DELAY_MS)
    runtime._schedule_timer(room, "miniGame", delay_ms, runtime._trigger_mini_game)


async def trigger_mini_game(runtime: "FlushRushRuntime", room: "RoomRuntime") -> bool:
    # A stale trigger ends the chain; only a fresh start_game schedules again.
    if room.state != "playing" or not room.players:
        return False
    if room.current_mini_game is not None:
        return False

    game_type = runtime._random_item(list(MINI_GAME_TYPES))
    room.current_mini_game = MiniGame(
        type=game_type,
        start_time=runtime.scheduler.now_ms(),
        duration=MINI_GAME_DURATION_MS,
        participants=list(room.players.keys()),
    )
    runtime._schedule_timer(room, "miniGameEnd", MINI_GAME_DURATION_MS, runtime._resolve_mini_game)

    runtime._log_ws_event(
        "mini_game_started",
        roomId=room.room_id,
        gameType=game_type,
        participants=len(room.current_mini_game.participants),
    )
    await runtime._emit_room(
        room,
        "mini-game-start",
        {"gameType": game_type, "duration": MINI_GAME_DURATION_MS},
    )
    return True


async def record_score(
    runtime: "FlushRushRuntime",
    room: "RoomRuntime",
    player_id: str,
    score: float,
) -> bool:
    mini_game = room.current_mini_game
    if mini_game is None or player_id not in mini_game.participants:
        return False

    mini_game.scores[player_id] = score
    await runtime._emit_room(
        room,
        "mini-game-score-update",
        {"playerId": player_id, "score": score, "gameType": mini_game.type},
    )
    return True


def pick_winner(scores: dict[str, float]) -> str | None:
    if not scores:
        return None
    # Stable descending sort: among equal top scores the earliest reporter wins.
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    return ranked[0][0]


async def resolve_mini_game(runtime: "FlushRushRuntime", room: "RoomRuntime") -> str | None:
    mini_game = room.current_mini_game
    if mini_game is None:
        return None

    winner_id = pick_winner(mini_game.scores)
    for player_id, score in mini_game.scores.items():
        player = room.players.get(player_id)
        if player is not None:
            player.score += score

    moved = False
    if winner_id is not None:
        moved = await runtime._move_player_forward(room, winner_id)
    if mini_game.scores and not moved:
        await runtime._broadcast_players(room)

    await runtime._emit_room(
        room,
        "mini-game-end",
        {"scores": dict(mini_game.scores), "winner": winner_id},
    )
    room.current_mini_game = None
    runtime._log_ws_event(
        "mini_game_ended",
        roomId=room.room_id,
        gameType=mini_game.type,
        winnerId=winner_id,
        reports=len(mini_game.scores),
    )

    schedule_next_mini_game(runtime, room)
    await runtime._check_victory_condition(room)
    return winner_id
