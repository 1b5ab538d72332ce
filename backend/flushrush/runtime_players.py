from __future__ import annotations

from typing import TYPE_CHECKING

from .runtime_constants import STARTING_ENERGY
from .runtime_types import PlayerState

if TYPE_CHECKING:
    from .runtime import FlushRushRuntime
    from .runtime_types import RoomRuntime


def find_player_at(room: "RoomRuntime", position: int) -> PlayerState | None:
    return next(
        (player for player in room.players.values() if player.position == position),
        None,
    )


def rebalance_positions(room: "RoomRuntime") -> None:
    # sorted() is stable, so players keep their relative order.
    ordered = sorted(room.players.values(), key=lambda player: player.position)
    for index, player in enumerate(ordered):
        player.position = index


async def add_player(
    runtime: "FlushRushRuntime",
    room: "RoomRuntime",
    connection_id: str,
    name: str,
    avatar: str | None,
) -> PlayerState:
    player = PlayerState(
        id=connection_id,
        name=name,
        avatar=avatar,
        position=len(room.players),
        energy=STARTING_ENERGY,
    )
    room.players[connection_id] = player
    runtime._log_ws_event(
        "join",
        roomId=room.room_id,
        peerId=connection_id,
        name=name,
        position=player.position,
    )
    await runtime._broadcast_players(room)
    return player


async def remove_player(
    runtime: "FlushRushRuntime",
    room: "RoomRuntime",
    connection_id: str,
    reason: str = "leave",
) -> PlayerState | None:
    removed = room.players.pop(connection_id, None)
    if removed is None:
        return None

    removed.is_connected = False
    rebalance_positions(room)
    runtime._log_ws_event(
        "leave",
        roomId=room.room_id,
        peerId=connection_id,
        name=removed.name,
        reason=reason,
        remaining=len(room.players),
    )
    await runtime._broadcast_players(room)
    return removed


async def move_player_forward(
    runtime: "FlushRushRuntime",
    room: "RoomRuntime",
    player_id: str,
) -> bool:
    player = room.players.get(player_id)
    if player is None or player.position == 0:
        return False

    player_in_front = find_player_at(room, player.position - 1)
    moved = False
    if player_in_front is not None:
        player.position, player_in_front.position = player_in_front.position, player.position
        moved = True

    await runtime._broadcast_players(room)
    return moved
