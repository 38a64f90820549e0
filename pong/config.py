"""Configuration for the Pong session server.

The field geometry is expressed in client side pixels and matches what the
desktop client draws.  Runtime knobs that an operator may want to tune live
on :class:`ServerConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Field dimensions.
FIELD_WIDTH = 800
FIELD_HEIGHT = 520
GAME_AREA_HEIGHT = 500
FIELD_OFFSET_X = 10

# Paddles.
PADDLE_WIDTH = 10
PADDLE_HEIGHT = 100
PADDLE_SPEED = 10
PADDLE_MAX_Y = 400
PLAYER1_PADDLE_X = 20
PLAYER2_PADDLE_X = 760

# Ball.
BALL_SIZE = 20
BALL_INITIAL_SPEED = 2
BALL_RESET_SPEED = 4  # Speed after a goal.
MAX_BALL_SPEED = 12
BALL_SPEED_INCREMENT = 1

# Kick-off positions.
BALL_START_X = 390
BALL_START_Y = 240
PADDLE_START_Y = 200

# Networking.
SERVER_PORT = 12346
SERVER_HOST = "0.0.0.0"
MAX_PLAYERS = 2


@dataclass(frozen=True)
class ServerConfig:
    """Runtime settings for :class:`pong.server.GameServer`.

    Attributes
    ----------
    host, port:
        Address the TCP listener binds to.  Port ``0`` lets the OS pick a
        free port, which the tests rely on.
    tick_interval:
        Seconds slept between two simulation ticks.  The cadence is fixed,
        time spent stepping and broadcasting is not compensated.
    countdown_interval:
        Seconds between two ``COUNTDOWN`` announcements.
    countdown_from:
        First number announced by the countdown.
    status_port:
        Port of the HTTP status API, ``None`` keeps it disabled.
    """

    host: str = SERVER_HOST
    port: int = SERVER_PORT
    tick_interval: float = 0.015
    countdown_interval: float = 1.0
    countdown_from: int = 3
    max_players: int = MAX_PLAYERS
    status_port: Optional[int] = None

    def validate(self) -> None:
        if not 0 <= self.port <= 65535:
            raise ValueError("Port must be between 0 and 65535")
        if self.tick_interval <= 0:
            raise ValueError("Tick interval must be positive")
        if self.countdown_interval < 0:
            raise ValueError("Countdown interval cannot be negative")
        if self.countdown_from < 1:
            raise ValueError("Countdown must start at 1 or higher")
        if self.max_players != MAX_PLAYERS:
            raise ValueError("Pong sessions are played by exactly two players")
        if self.status_port is not None and not 0 <= self.status_port <= 65535:
            raise ValueError("Status port must be between 0 and 65535")
