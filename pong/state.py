"""Authoritative game state and its wire representation."""

from __future__ import annotations

from dataclasses import astuple, dataclass

from . import config
from .errors import ProtocolError


@dataclass(frozen=True)
class StateSnapshot:
    """The six integers broadcast to clients every tick."""

    ball_x: int
    ball_y: int
    paddle1_y: int
    paddle2_y: int
    score1: int
    score2: int

    def serialise(self) -> str:
        return ",".join(str(value) for value in astuple(self))

    @classmethod
    def parse(cls, text: str) -> "StateSnapshot":
        """Inverse of :meth:`serialise`; raises :class:`ProtocolError`."""

        parts = text.split(",")
        if len(parts) != 6:
            raise ProtocolError(f"expected 6 state fields, got {len(parts)}")
        try:
            values = [int(part) for part in parts]
        except ValueError as exc:
            raise ProtocolError(f"non-integer state field in {text!r}") from exc
        return cls(*values)


@dataclass
class GameState:
    ball_x: int = config.BALL_START_X
    ball_y: int = config.BALL_START_Y
    ball_vx: int = config.BALL_INITIAL_SPEED
    ball_vy: int = config.BALL_INITIAL_SPEED
    paddle1_y: int = config.PADDLE_START_Y
    paddle2_y: int = config.PADDLE_START_Y
    score1: int = 0
    score2: int = 0

    def reset(self) -> None:
        """Restore kick-off defaults and zero both scores."""

        self.ball_x = config.BALL_START_X
        self.ball_y = config.BALL_START_Y
        self.ball_vx = config.BALL_INITIAL_SPEED
        self.ball_vy = config.BALL_INITIAL_SPEED
        self.paddle1_y = config.PADDLE_START_Y
        self.paddle2_y = config.PADDLE_START_Y
        self.score1 = 0
        self.score2 = 0

    def reset_ball_position(self) -> None:
        """Recenter the ball after a goal and serve it back the other way."""

        self.ball_x = config.BALL_START_X
        self.ball_y = config.BALL_START_Y
        self.ball_vx = -config.BALL_RESET_SPEED if self.ball_vx > 0 else config.BALL_RESET_SPEED
        self.ball_vy = config.BALL_RESET_SPEED

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            ball_x=self.ball_x,
            ball_y=self.ball_y,
            paddle1_y=self.paddle1_y,
            paddle2_y=self.paddle2_y,
            score1=self.score1,
            score2=self.score2,
        )

    def serialise(self) -> str:
        return self.snapshot().serialise()
