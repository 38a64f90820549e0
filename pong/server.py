"""Authoritative two-player Pong server.

The server owns the :class:`~pong.state.GameState`.  Each player connection
is served by its own reader task which turns ``MOVE`` commands into paddle
updates; a single session task runs the countdown and then the fixed cadence
tick loop that steps the physics and broadcasts ``STATE`` frames.

Two locks are involved:

``_slot_lock``
    guards the player slots, so claiming slot 1 or 2, deciding to start a
    session and tearing a session down are each atomic.
``_state_lock``
    guards the game state and is only held for one physics step or one
    paddle update, never across network I/O.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from . import protocol
from .config import ServerConfig
from .errors import ProtocolError, ServerStopping, SessionFull
from .logic import GameLogic
from .registry import ConnectionRegistry, close_writer
from .state import GameState

logger = logging.getLogger(__name__)


class SessionPhase(Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    PLAYING = "playing"


@dataclass(frozen=True)
class PlayerConnection:
    """A claimed player slot bound to its stream."""

    writer: asyncio.StreamWriter = field(compare=False)
    player_id: int
    peer: object = field(default=None, compare=False)


class GameServer:
    """Accepts two players and runs Pong sessions between them."""

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()
        self.state = GameState()
        self.logic = GameLogic(self.state)
        self.registry = ConnectionRegistry()
        self.phase = SessionPhase.IDLE
        self.players: Dict[int, PlayerConnection] = {}
        self.sessions_played = 0
        self._state_lock = asyncio.Lock()
        self._slot_lock = asyncio.Lock()
        self._server: Optional[asyncio.AbstractServer] = None
        self._session_task: Optional[asyncio.Task[None]] = None
        self._stopped = asyncio.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> Optional[int]:
        """Port actually bound, useful when configured with port 0."""

        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """Bind the listener.  ``OSError`` from a failed bind propagates."""

        if self._server is not None:
            return
        self._stopped.clear()
        self._server = await asyncio.start_server(
            self._handle_client, host=self.config.host, port=self.config.port
        )
        logger.info("Pong server listening on %s:%s, waiting for players", self.config.host, self.port)

    async def serve_forever(self) -> None:
        await self.start()
        await self._stopped.wait()

    async def stop(self) -> None:
        if self._server is None:
            return
        server, self._server = self._server, None
        self._stopped.set()
        server.close()
        async with self._slot_lock:
            self.phase = SessionPhase.IDLE
            await self._cancel_session()
            players = list(self.players.values())
            self.players.clear()
            await self.registry.close_all()
            for player in players:
                await close_writer(player.writer)
            async with self._state_lock:
                self.state.reset()
        await server.wait_closed()
        logger.info("Pong server stopped")

    def status(self) -> Dict[str, object]:
        return {
            "phase": self.phase.value,
            "players": sorted(self.players),
            "max_players": self.config.max_players,
            "port": self.port,
            "score": [self.state.score1, self.state.score2],
            "sessions_played": self.sessions_played,
        }

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------
    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        try:
            player = await self._claim_slot(writer, peer)
        except (SessionFull, ServerStopping) as exc:
            logger.info("Rejecting connection from %s: %s", peer, exc)
            await self.registry.send(writer, protocol.encode_reject(str(exc)))
            await close_writer(writer)
            return

        logger.info("Player %d connected from %s", player.player_id, peer)
        try:
            await self.registry.send(writer, protocol.encode_assign(player.player_id))
            await self._register(player)
            await self._read_commands(player, reader)
        except (ConnectionError, OSError) as exc:
            logger.info("Lost player %d: %s", player.player_id, exc)
        finally:
            await self._handle_disconnect(player)

    async def _claim_slot(self, writer: asyncio.StreamWriter, peer: object) -> PlayerConnection:
        async with self._slot_lock:
            if self._server is None:
                raise ServerStopping("server is shutting down")
            for player_id in range(1, self.config.max_players + 1):
                if player_id not in self.players:
                    player = PlayerConnection(writer=writer, player_id=player_id, peer=peer)
                    self.players[player_id] = player
                    return player
        raise SessionFull("session full")

    async def _register(self, player: PlayerConnection) -> None:
        async with self._slot_lock:
            if self.players.get(player.player_id) is not player:
                # The session was torn down while the ASSIGN was in flight.
                return
            self.registry.register(player.writer)
            if self.phase is SessionPhase.IDLE and self._all_players_registered():
                self._begin_session()

    def _all_players_registered(self) -> bool:
        return len(self.players) == self.config.max_players and all(
            player.writer in self.registry for player in self.players.values()
        )

    async def _read_commands(self, player: PlayerConnection, reader: asyncio.StreamReader) -> None:
        while True:
            try:
                raw = await reader.readline()
            except ValueError as exc:
                # Line longer than the stream limit; the reader already discarded it.
                logger.debug("Dropping oversized line from player %d: %s", player.player_id, exc)
                continue
            if not raw:
                return
            try:
                line = protocol.from_wire(raw)
                if protocol.is_quit(line):
                    logger.info("Player %d quit", player.player_id)
                    return
                direction = protocol.parse_move(line)
            except ProtocolError as exc:
                logger.debug("Dropping line from player %d: %s", player.player_id, exc)
                continue
            async with self._state_lock:
                self.logic.move_paddle(player.player_id, direction)

    async def _handle_disconnect(self, player: PlayerConnection) -> None:
        async with self._slot_lock:
            if self.players.get(player.player_id) is not player:
                # Already handled as part of a teardown.
                await self.registry.unregister(player.writer)
                return
            logger.info("Player %d disconnected", player.player_id)
            await self.registry.unregister(player.writer)
            await self._end_session()

    # ------------------------------------------------------------------
    # Session state machine
    # ------------------------------------------------------------------
    def _begin_session(self) -> None:
        self.phase = SessionPhase.COUNTDOWN
        self.sessions_played += 1
        logger.info("Both players connected, starting countdown")
        self._session_task = asyncio.create_task(self._run_session())

    async def _run_session(self) -> None:
        for value in range(self.config.countdown_from, 0, -1):
            await self.registry.broadcast(protocol.encode_countdown(value))
            await asyncio.sleep(self.config.countdown_interval)
        await self.registry.broadcast(protocol.encode_start())
        self.phase = SessionPhase.PLAYING
        logger.info("Game started")
        await self._run_ticks()

    async def _run_ticks(self) -> None:
        while self.phase is SessionPhase.PLAYING:
            async with self._state_lock:
                if self.logic.step():
                    logger.info("Goal scored, score is %d-%d", self.state.score1, self.state.score2)
                message = protocol.encode_state(self.state.snapshot())
            await self.registry.broadcast(message)
            await asyncio.sleep(self.config.tick_interval)

    async def _end_session(self) -> None:
        """Tear down the current session; caller holds ``_slot_lock``."""

        self.phase = SessionPhase.IDLE
        await self._cancel_session()
        remaining = list(self.players.values())
        self.players.clear()
        await self.registry.broadcast(protocol.encode_quit())
        await self.registry.close_all()
        for player in remaining:
            await close_writer(player.writer)
        async with self._state_lock:
            self.state.reset()
        logger.info("Game session reset, waiting for new players")

    async def _cancel_session(self) -> None:
        task, self._session_task = self._session_task, None
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                logger.error("Session task failed", exc_info=task.exception())
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


__all__ = ["GameServer", "PlayerConnection", "SessionPhase"]
