from __future__ import annotations

import asyncio
import json

import pytest

from tower_defense.server import GameServer


async def _join_and_ready(server: GameServer, conn, name: str, game_id: str = "default") -> None:  # type: ignore[no-untyped-def]
    await server.router.handle_message(conn, json.dumps({"type": "join", "playerName": name, "gameId": game_id}))
    await server.router.handle_message(conn, json.dumps({"type": "ready"}))


@pytest.mark.asyncio
async def test_unstarted_sessions_are_not_ticked(server: GameServer, make_connection, clock) -> None:  # type: ignore[no-untyped-def]
    conn = make_connection()
    await server.router.handle_message(conn, json.dumps({"type": "join", "playerName": "Alice"}))
    session = server.sessions.get("default")
    last_tick = session.last_tick
    conn.sent.clear()

    assert await server.scheduler.tick_once(clock.advance(50)) == 0

    assert session.last_tick == last_tick
    assert conn.sent == []


@pytest.mark.asyncio
async def test_started_session_is_ticked_and_broadcast(server: GameServer, make_connection, clock) -> None:  # type: ignore[no-untyped-def]
    conn = make_connection()
    await _join_and_ready(server, conn, "Alice")
    await server.router.handle_message(conn, json.dumps({"type": "startWave"}))
    conn.sent.clear()

    now = clock.advance(50)
    assert await server.scheduler.tick_once() == 1

    session = server.sessions.get("default")
    assert session.last_tick == now
    assert len(session.enemies) == 1
    assert conn.types() == ["gameState"]
    assert len(conn.sent[0]["state"]["enemies"]) == 1


@pytest.mark.asyncio
async def test_a_failing_session_does_not_stop_the_others(
    server: GameServer, make_connection, clock, monkeypatch: pytest.MonkeyPatch
) -> None:  # type: ignore[no-untyped-def]
    broken_conn, ok_conn = make_connection(), make_connection()
    await _join_and_ready(server, broken_conn, "Alice", game_id="broken")
    await _join_and_ready(server, ok_conn, "Bob", game_id="ok")
    ok_conn.sent.clear()

    def _boom(now: float) -> None:
        raise RuntimeError("simulation bug")

    monkeypatch.setattr(server.sessions.get("broken"), "tick", _boom)

    assert await server.scheduler.tick_once(clock.advance(50)) == 1
    assert ok_conn.types() == ["gameState"]


@pytest.mark.asyncio
async def test_scheduler_runs_until_stopped(server: GameServer, make_connection, clock) -> None:  # type: ignore[no-untyped-def]
    conn = make_connection()
    await _join_and_ready(server, conn, "Alice")
    conn.sent.clear()

    task = server.scheduler.start()
    assert server.scheduler.start() is task
    assert server.scheduler.running

    await asyncio.sleep(0.2)
    await server.scheduler.stop()

    assert not server.scheduler.running
    assert task.cancelled()
    assert conn.types().count("gameState") >= 1


@pytest.mark.asyncio
async def test_stop_without_start_is_a_noop(server: GameServer) -> None:
    await server.scheduler.stop()
    assert not server.scheduler.running


@pytest.mark.asyncio
async def test_session_replaced_during_a_pass_is_not_ticked(server: GameServer, make_connection, clock) -> None:  # type: ignore[no-untyped-def]
    a_conn, b_conn, newcomer = make_connection(), make_connection(), make_connection()
    await _join_and_ready(server, a_conn, "Alice", game_id="a")
    await _join_and_ready(server, b_conn, "Bob", game_id="b")
    await server.router.handle_message(b_conn, json.dumps({"type": "placeTower", "x": 1, "y": 2, "towerType": "strong"}))
    old_b = server.sessions.get("b")
    assert old_b.gold == 300

    async def _leave_and_rejoin_b() -> None:
        await server.router.handle_disconnect(b_conn)
        await server.router.handle_message(newcomer, json.dumps({"type": "join", "playerName": "Carol", "gameId": "b"}))

    # "a" is ticked first; while its broadcast is in flight, "b" is destroyed and recreated.
    a_conn.on_send = _leave_and_rejoin_b
    before = old_b.last_tick

    assert await server.scheduler.tick_once(clock.advance(50)) == 1

    new_b = server.sessions.get("b")
    assert new_b is not old_b
    assert old_b.last_tick == before
    assert newcomer.types() == ["joined"]
    assert newcomer.sent[0]["gameState"]["gold"] == 500
