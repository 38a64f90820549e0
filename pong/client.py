"""Headless client for the Pong line protocol.

This is the networking half of a Pong client, without any drawing or
keyboard handling.  The renderer (or a test) connects, forwards paddle
input with :meth:`PongClient.send_move` and pulls decoded frames with
:meth:`PongClient.read_notice`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from . import config, protocol
from .errors import PongError, ProtocolError
from .protocol import Notice
from .registry import close_writer

logger = logging.getLogger(__name__)


class PongClient:
    def __init__(self) -> None:
        self.player_id: Optional[int] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def connect(self, host: str = "127.0.0.1", port: int = config.SERVER_PORT) -> None:
        self._reader, self._writer = await asyncio.open_connection(host, port)
        logger.info("Connected to %s:%s", host, port)

    async def send_move(self, direction: int) -> None:
        await self._send(protocol.encode_move(direction))

    async def send_quit(self) -> None:
        await self._send(protocol.QUIT)

    async def read_notice(self) -> Optional[Notice]:
        """Return the next decodable frame, or ``None`` once the server hung up.

        Malformed frames are skipped.
        """

        if self._reader is None:
            raise PongError("client is not connected")
        while True:
            raw = await self._reader.readline()
            if not raw:
                return None
            try:
                notice = protocol.parse_notice(protocol.from_wire(raw))
            except ProtocolError as exc:
                logger.debug("Ignoring malformed frame: %s", exc)
                continue
            if notice.kind == protocol.ASSIGN:
                self.player_id = notice.player_id
            return notice

    async def close(self) -> None:
        writer, self._writer = self._writer, None
        self._reader = None
        if writer is not None:
            await close_writer(writer)

    async def _send(self, message: str) -> None:
        if self._writer is None:
            raise PongError("client is not connected")
        self._writer.write(protocol.to_wire(message))
        await self._writer.drain()

    async def __aenter__(self) -> "PongClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


__all__ = ["PongClient"]
