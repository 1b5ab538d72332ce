from __future__ import annotations

from typing import Any

from .runtime_types import MiniGame, PlayerState, RoomRuntime, SabotageEffect


def ordered_players(room: RoomRuntime) -> list[PlayerState]:
    return sorted(room.players.values(), key=lambda player: player.position)


def build_effect_payload(effect: SabotageEffect) -> dict[str, Any]:
    return {
        "id": effect.id,
        "type": effect.type,
        "startTime": effect.started_at,
        "duration": effect.duration,
        "attackerId": effect.attacker_id,
    }


def build_player_payload(player: PlayerState) -> dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "avatar": player.avatar,
        "position": player.position,
        "energy": player.energy,
        "score": player.score,
        "isConnected": player.is_connected,
        "sabotageEffects": [build_effect_payload(effect) for effect in player.sabotage_effects],
    }


def build_players_payload(room: RoomRuntime) -> list[dict[str, Any]]:
    return [build_player_payload(player) for player in ordered_players(room)]


def build_mini_game_payload(mini_game: MiniGame | None) -> dict[str, Any] | None:
    if mini_game is None:
        return None
    return {
        "type": mini_game.type,
        "startTime": mini_game.start_time,
        "duration": mini_game.duration,
        "participants": list(mini_game.participants),
        "scores": dict(mini_game.scores),
    }


def build_game_state_payload(room: RoomRuntime) -> dict[str, Any]:
    return {
        "gameState": room.state,
        "gameTimer": room.elapsed_seconds,
        "currentMiniGame": build_mini_game_payload(room.current_mini_game),
        "playerCount": len(room.players),
    }
