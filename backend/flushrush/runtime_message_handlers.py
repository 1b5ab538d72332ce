from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .schemas.messages import SabotageRequest, ScoreReport

if TYPE_CHECKING:
    from .runtime import FlushRushRuntime
    from .runtime_types import PlayerState, RoomRuntime


async def handle_message(
    runtime: "FlushRushRuntime",
    room: "RoomRuntime",
    player: "PlayerState",
    data: dict[str, Any],
) -> None:
    message_type = data.get("type")

    if message_type == "start-game":
        await runtime._start_game(room)
        return

    if message_type == "mini-game-score":
        try:
            report = ScoreReport.model_validate(data)
        except ValidationError:
            return
        await runtime._record_score(room, player.id, report.score)
        return

    if message_type == "sabotage":
        success = False
        try:
            request = SabotageRequest.model_validate(data)
        except ValidationError:
            request = None
        if request is not None:
            success = await runtime._apply_sabotage(
                room,
                player.id,
                request.targetId,
                request.sabotageType,
            )
        await runtime._send_to(player.id, {"type": "sabotage-result", "success": success})
        return

    if message_type == "move-player":
        if data.get("direction"):
            await runtime._broadcast_players(room)
        return
