"""Authoritative server for two-player network Pong.

The package is split the way the data flows: :mod:`pong.state` and
:mod:`pong.logic` hold the pure simulation, :mod:`pong.protocol` the line
codec, and :mod:`pong.server` the asyncio session engine that ties them to
TCP connections.  Nothing here draws or reads the keyboard; clients are
expected to speak the wire protocol through :class:`PongClient` or their own
implementation.
"""

from .client import PongClient
from .config import ServerConfig
from .logic import GameLogic
from .server import GameServer, SessionPhase
from .state import GameState, StateSnapshot

__all__ = [
    "GameLogic",
    "GameServer",
    "GameState",
    "PongClient",
    "ServerConfig",
    "SessionPhase",
    "StateSnapshot",
]
