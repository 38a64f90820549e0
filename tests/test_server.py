"""End-to-end scenarios against a real server on a loopback socket."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Tuple

import pytest

from pong import config, protocol
from pong.client import PongClient
from pong.config import ServerConfig
from pong.errors import ServerStopping, SessionFull
from pong.protocol import Notice
from pong.server import GameServer, SessionPhase

FAST = ServerConfig(host="127.0.0.1", port=0, tick_interval=0.005, countdown_interval=0.01)
TIMEOUT = 5.0


async def _connect(server: GameServer) -> PongClient:
    client = PongClient()
    await client.connect("127.0.0.1", server.port)
    return client


async def _next(client: PongClient) -> Notice:
    notice = await asyncio.wait_for(client.read_notice(), timeout=TIMEOUT)
    assert notice is not None, "server closed the connection"
    return notice


async def _read_until(client: PongClient, kind: str, limit: int = 2_000) -> Notice:
    for _ in range(limit):
        notice = await _next(client)
        if notice.kind == kind:
            return notice
    raise AssertionError(f"no {kind} within {limit} frames")


async def _start_pair(server: GameServer) -> Tuple[PongClient, PongClient]:
    first = await _connect(server)
    assert (await _next(first)) == Notice(kind=protocol.ASSIGN, player_id=1)
    second = await _connect(server)
    assert (await _next(second)) == Notice(kind=protocol.ASSIGN, player_id=2)
    return first, second


async def _wait_for_phase(server: GameServer, phase: SessionPhase) -> None:
    for _ in range(500):
        if server.phase is phase:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"server never reached {phase}")


def test_pair_receives_assignment_countdown_and_state_stream() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.start()
        try:
            first, second = await _start_pair(server)
            for client in (first, second):
                kinds: List[Notice] = [await _next(client) for _ in range(4)]
                assert [n.countdown for n in kinds[:3]] == [3, 2, 1]
                assert all(n.kind == protocol.COUNTDOWN for n in kinds[:3])
                assert kinds[3].kind == protocol.START
                states = [await _next(client) for _ in range(5)]
                assert all(n.kind == protocol.STATE for n in states)
            assert server.phase is SessionPhase.PLAYING
            await first.close()
            await second.close()
        finally:
            await server.stop()

    asyncio.run(scenario())


def test_move_up_drives_paddle_to_top() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.start()
        try:
            first, second = await _start_pair(server)
            await _read_until(first, protocol.START)
            for _ in range(config.PADDLE_START_Y // config.PADDLE_SPEED + 5):
                await first.send_move(-1)
            seen = []
            for _ in range(2_000):
                notice = await _read_until(first, protocol.STATE)
                seen.append(notice.state.paddle1_y)
                if notice.state.paddle1_y == 0:
                    break
            assert seen[-1] == 0
            assert min(seen) >= 0
            assert server.state.paddle2_y == config.PADDLE_START_Y
            await first.close()
            await second.close()
        finally:
            await server.stop()

    asyncio.run(scenario())


def test_malformed_commands_are_ignored() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.start()
        try:
            first, second = await _start_pair(server)
            await _read_until(first, protocol.START)
            first._writer.write(b"MOVE:up\nHELLO\n\xff\xfe\nMOVE:1\n")
            for _ in range(2_000):
                notice = await _read_until(first, protocol.STATE)
                if notice.state.paddle1_y == config.PADDLE_START_Y + config.PADDLE_SPEED:
                    break
            assert server.state.paddle1_y == config.PADDLE_START_Y + config.PADDLE_SPEED
            assert server.phase is SessionPhase.PLAYING
            await first.close()
            await second.close()
        finally:
            await server.stop()

    asyncio.run(scenario())


@pytest.mark.parametrize("leave_with_quit", [False, True])
def test_disconnect_ends_session_and_allows_new_pair(leave_with_quit: bool) -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.start()
        try:
            first, second = await _start_pair(server)
            await _read_until(second, protocol.START)
            if leave_with_quit:
                await first.send_quit()
            else:
                await first.close()

            await _read_until(second, protocol.QUIT)
            assert await asyncio.wait_for(second.read_notice(), timeout=TIMEOUT) is None
            await _wait_for_phase(server, SessionPhase.IDLE)
            assert server.players == {}
            await first.close()
            await second.close()

            third, fourth = await _start_pair(server)
            assert (await _next(third)).countdown == 3
            assert (await _next(fourth)).countdown == 3
            assert server.sessions_played == 2
            await third.close()
            await fourth.close()
        finally:
            await server.stop()

    asyncio.run(scenario())


def test_goal_is_reflected_in_next_state() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.start()
        try:
            first, second = await _start_pair(server)
            await _read_until(first, protocol.START)
            server.state.ball_x = config.FIELD_WIDTH
            server.state.ball_y = config.BALL_START_Y
            server.state.ball_vx = 5
            server.state.ball_vy = 0
            for _ in range(2_000):
                notice = await _read_until(first, protocol.STATE)
                if notice.state.score1 == 1:
                    break
            assert notice.state.score1 == 1
            assert notice.state.score2 == 0
            assert (notice.state.ball_x, notice.state.ball_y) == (config.BALL_START_X, config.BALL_START_Y)
            await first.close()
            await second.close()
        finally:
            await server.stop()

    asyncio.run(scenario())


def test_third_connection_is_rejected() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.start()
        try:
            first, second = await _start_pair(server)
            third = await _connect(server)
            notice = await _next(third)
            assert notice.kind == protocol.REJECT
            assert notice.reason == "session full"
            assert await asyncio.wait_for(third.read_notice(), timeout=TIMEOUT) is None
            assert sorted(server.players) == [1, 2]
            for client in (first, second, third):
                await client.close()
        finally:
            await server.stop()

    asyncio.run(scenario())


def test_stop_is_idempotent_and_closes_players() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.stop()
        await server.start()
        first, second = await _start_pair(server)
        await server.stop()
        await server.stop()
        assert not server.running
        assert server.phase is SessionPhase.IDLE
        for client in (first, second):
            for _ in range(100):
                notice = await asyncio.wait_for(client.read_notice(), timeout=TIMEOUT)
                if notice is None:
                    break
            assert notice is None
            await client.close()

    asyncio.run(scenario())


def test_serve_forever_returns_after_stop() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        task = asyncio.create_task(server.serve_forever())
        while server.port is None:
            await asyncio.sleep(0.01)
        await server.stop()
        await asyncio.wait_for(task, timeout=TIMEOUT)

    asyncio.run(scenario())


def test_bind_failure_is_raised() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.start()
        try:
            clash = GameServer(ServerConfig(host="127.0.0.1", port=server.port))
            with pytest.raises(OSError):
                await clash.start()
        finally:
            await server.stop()

    asyncio.run(scenario())


def test_oversized_line_is_dropped_without_ending_session() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        await server.start()
        try:
            first, second = await _start_pair(server)
            await _read_until(first, protocol.START)
            first._writer.write(b"MOVE:" + b"9" * 70_000 + b"\n")
            await first._writer.drain()
            await first.send_move(1)
            expected = config.PADDLE_START_Y + config.PADDLE_SPEED
            for _ in range(2_000):
                notice = await _read_until(first, protocol.STATE)
                if notice.state.paddle1_y == expected:
                    break
            assert notice.state.paddle1_y == expected
            assert server.phase is SessionPhase.PLAYING
            assert sorted(server.players) == [1, 2]
            for _ in range(20):
                assert (await _next(second)).kind != protocol.QUIT
            await first.close()
            await second.close()
        finally:
            await server.stop()

    asyncio.run(scenario())


def test_disconnect_during_countdown_returns_to_idle() -> None:
    async def scenario() -> None:
        slow = ServerConfig(host="127.0.0.1", port=0, tick_interval=0.005, countdown_interval=2.0)
        server = GameServer(slow)
        await server.start()
        try:
            first, second = await _start_pair(server)
            assert (await _next(first)).countdown == 3
            assert server.phase is SessionPhase.COUNTDOWN
            await first.close()

            kinds = []
            while True:
                notice = await asyncio.wait_for(second.read_notice(), timeout=TIMEOUT)
                if notice is None:
                    break
                kinds.append(notice.kind)
            assert kinds[-1] == protocol.QUIT
            assert protocol.START not in kinds
            assert protocol.STATE not in kinds
            await _wait_for_phase(server, SessionPhase.IDLE)
            assert server.players == {}
            await second.close()
        finally:
            await server.stop()

    asyncio.run(scenario())


def test_claim_while_stopped_is_not_reported_as_full() -> None:
    async def scenario() -> None:
        server = GameServer(FAST)
        with pytest.raises(ServerStopping):
            await server._claim_slot(writer=None, peer=None)

    assert not issubclass(ServerStopping, SessionFull)
    asyncio.run(scenario())


def test_failed_session_task_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    async def scenario() -> None:
        server = GameServer(FAST)

        async def broken_session() -> None:
            raise RuntimeError("tick exploded")

        server._session_task = asyncio.create_task(broken_session())
        await asyncio.wait([server._session_task])
        await server._cancel_session()
        assert server._session_task is None

    with caplog.at_level(logging.ERROR, logger="pong.server"):
        asyncio.run(scenario())
    failures = [record for record in caplog.records if record.getMessage() == "Session task failed"]
    assert len(failures) == 1
    assert isinstance(failures[0].exc_info[1], RuntimeError)
