"""Bookkeeping for the live client streams of a server."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Set

from .protocol import to_wire

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Set of connected ``asyncio.StreamWriter`` handles.

    Sends are best-effort: a failing client is logged and skipped, it is
    never removed here.  Its reader task notices the broken stream and
    reports the disconnect itself.
    """

    def __init__(self) -> None:
        self._writers: Set[asyncio.StreamWriter] = set()

    def __len__(self) -> int:
        return len(self._writers)

    def __contains__(self, writer: object) -> bool:
        return writer in self._writers

    @property
    def count(self) -> int:
        """Instantaneous number of writers; advisory only."""

        return len(self._writers)

    def register(self, writer: asyncio.StreamWriter) -> None:
        self._writers.add(writer)

    async def unregister(self, writer: asyncio.StreamWriter) -> None:
        self._writers.discard(writer)
        await close_writer(writer)

    async def close_all(self) -> None:
        writers = list(self._writers)
        self._writers.clear()
        await asyncio.gather(*(close_writer(writer) for writer in writers))

    async def send(self, writer: asyncio.StreamWriter, message: str) -> bool:
        if writer.is_closing():
            return False
        try:
            writer.write(to_wire(message))
            await writer.drain()
        except (ConnectionError, OSError) as exc:
            logger.debug("Send to %s failed: %s", _peer(writer), exc)
            return False
        return True

    async def broadcast(self, message: str) -> int:
        """Send ``message`` to every writer and return how many sends succeeded."""

        writers: List[asyncio.StreamWriter] = list(self._writers)
        if not writers:
            return 0
        results = await asyncio.gather(*(self.send(writer, message) for writer in writers))
        return sum(results)


async def close_writer(writer: asyncio.StreamWriter) -> None:
    if writer.is_closing():
        return
    try:
        writer.close()
        await writer.wait_closed()
    except (ConnectionError, OSError) as exc:
        logger.warning("Error closing connection to %s: %s", _peer(writer), exc)


def _peer(writer: asyncio.StreamWriter) -> object:
    return writer.get_extra_info("peername")


__all__ = ["ConnectionRegistry", "close_writer"]
