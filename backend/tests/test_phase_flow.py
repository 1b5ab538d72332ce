from __future__ import annotations

from flushrush.runtime_phase_flow import check_victory_condition, end_game, start_game


async def test_start_moves_lobby_to_playing(runtime, join, transport):
    await join("alice")
    room = runtime.get_room("ROOM1")
    transport.clear()

    assert await start_game(runtime, room) is True
    assert room.state == "playing"
    assert room.elapsed_seconds == 0
    for key in ("heartbeat", "miniGame", "energy"):
        assert room.timers[key] is not None and not room.timers[key].done()

    state = transport.messages("game-state-update", to="alice")[0]
    assert state["gameState"] == "playing"
    assert state["gameTimer"] == 0


async def test_heartbeat_counts_elapsed_seconds(runtime, join, scheduler, transport):
    await join("alice")
    room = runtime.get_room("ROOM1")
    await start_game(runtime, room)
    transport.clear()

    await scheduler.advance(3_000)

    assert room.elapsed_seconds == 3
    timers = [message["gameTimer"] for message in transport.messages("game-state-update")]
    assert timers == [1, 2, 3]


async def test_start_is_idempotent_while_playing(runtime, join, scheduler):
    await join("alice")
    room = runtime.get_room("ROOM1")
    await start_game(runtime, room)
    await scheduler.advance(2_000)
    timers_before = dict(room.timers)

    assert await start_game(runtime, room) is False
    assert room.elapsed_seconds == 2
    assert room.timers == timers_before


async def test_start_via_message_only_from_lobby(runtime, join, scheduler):
    alice = await join("alice")
    room = runtime.get_room("ROOM1")
    await end_game(runtime, room, alice)

    await runtime.handle_message("alice", {"type": "start-game"})

    assert room.state == "ended"
    assert room.timers.get("heartbeat") is None


async def test_energy_regenerates_and_caps(runtime, join, scheduler, transport):
    alice = await join("alice")
    bob = await join("bob")
    room = runtime.get_room("ROOM1")
    alice.energy = 95
    bob.energy = 100
    await start_game(runtime, room)
    transport.clear()

    await scheduler.advance(1_000)
    assert alice.energy == 97
    assert bob.energy == 100

    await scheduler.advance(10_000)
    assert alice.energy == 100
    assert bob.energy == 100
    # One players-update per regeneration tick, even when nothing changed.
    assert len(transport.messages("players-update", to="bob")) == 11


async def test_energy_loop_stops_itself_once_not_playing(runtime, join, scheduler):
    alice = await join("alice")
    room = runtime.get_room("ROOM1")
    await start_game(runtime, room)
    energy_timer = room.timers["energy"]
    alice.energy = 50

    room.state = "ended"
    await scheduler.advance(1_000)

    assert energy_timer.done()
    assert alice.energy == 50
    await scheduler.advance(5_000)
    assert energy_timer.fired == 1


async def test_end_game_cancels_timers_and_reports_final_order(runtime, join, transport):
    await join("alice")
    bob = await join("bob")
    room = runtime.get_room("ROOM1")
    await start_game(runtime, room)
    heartbeat = room.timers["heartbeat"]
    scheduler_timer = room.timers["miniGame"]
    transport.clear()

    await end_game(runtime, room, bob)

    assert room.state == "ended"
    assert room.winner_id == "bob"
    assert heartbeat.done() and scheduler_timer.done()
    message = transport.messages("game-end", to="alice")[0]
    assert message["winner"]["id"] == "bob"
    assert [player["id"] for player in message["finalScores"]] == ["alice", "bob"]


async def test_victory_roll_success_ends_game_for_leader(runtime, join, rng):
    await join("alice")
    await join("bob")
    room = runtime.get_room("ROOM1")
    await start_game(runtime, room)

    rng.queue(0.1)
    assert await check_victory_condition(runtime, room) is True
    assert room.state == "ended"
    assert room.winner_id == "alice"


async def test_victory_roll_failure_keeps_playing(runtime, join, rng):
    await join("alice")
    room = runtime.get_room("ROOM1")
    await start_game(runtime, room)

    rng.queue(0.2)
    assert await check_victory_condition(runtime, room) is False
    assert room.state == "playing"


async def test_victory_without_leader_is_noop(runtime, rng):
    room = await runtime.get_or_create_room("EMPTY")
    rng.queue(0.0)

    assert await check_victory_condition(runtime, room) is False
    assert room.state == "lobby"
    assert rng.values == [0.0]
