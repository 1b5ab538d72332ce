from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .runtime_constants import SABOTAGE_CATALOG
from .runtime_state_builders import build_effect_payload, build_player_payload
from .runtime_types import SabotageEffect
from .runtime_utils import short_id

if TYPE_CHECKING:
    from .runtime import FlushRushRuntime
    from .runtime_types import RoomRuntime


def _new_effect_id(room: "RoomRuntime") -> str:
    effect_id = short_id()
    while effect_id in room.effect_timers:
        effect_id = short_id()
    return effect_id


async def apply_sabotage(
    runtime: "FlushRushRuntime",
    room: "RoomRuntime",
    attacker_id: str,
    target_id: str,
    sabotage_type: Any,
) -> bool:
    attacker = room.players.get(attacker_id)
    target = room.players.get(str(target_id or ""))
    if attacker is None or target is None:
        return False

    kind = SABOTAGE_CATALOG.get(sabotage_type) if isinstance(sabotage_type, str) else None
    if kind is None or attacker.energy < kind.cost:
        return False

    attacker.energy -= kind.cost
    effect = SabotageEffect(
        id=_new_effect_id(room),
        type=sabotage_type,
        started_at=runtime.scheduler.now_ms(),
        duration=kind.duration_ms,
        attacker_id=attacker.id,
    )
    target.sabotage_effects.append(effect)
    runtime._schedule_effect_expiry(room, target.id, effect)

    runtime._log_ws_event(
        "sabotage",
        roomId=room.room_id,
        attackerId=attacker.id,
        targetId=target.id,
        sabotageType=sabotage_type,
        effectId=effect.id,
    )
    await runtime._emit_room(
        room,
        "sabotage-event",
        {
            "attacker": build_player_payload(attacker),
            "target": build_player_payload(target),
            "sabotageType": sabotage_type,
            "effect": build_effect_payload(effect),
        },
    )
    await runtime._broadcast_players(room)
    return True


async def expire_effect(
    runtime: "FlushRushRuntime",
    room: "RoomRuntime",
    target_id: str,
    effect_id: str,
) -> bool:
    room.effect_timers.pop(effect_id, None)
    target = room.players.get(target_id)
    if target is None:
        return False

    remaining = [effect for effect in target.sabotage_effects if effect.id != effect_id]
    if len(remaining) == len(target.sabotage_effects):
        return False

    target.sabotage_effects = remaining
    await runtime._broadcast_players(room)
    return True
