"""Deterministic Pong physics.

Everything here is pure computation on a :class:`~pong.state.GameState`: no
I/O, no clocks and no randomness, so the session engine can run a step while
holding its state lock and the tests can drive it tick by tick.
"""

from __future__ import annotations

from dataclasses import dataclass

from . import config
from .state import GameState


@dataclass(frozen=True)
class Rect:
    """Axis aligned rectangle in field pixels."""

    x: int
    y: int
    width: int
    height: int

    @property
    def left(self) -> int:
        return self.x

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def top(self) -> int:
        return self.y

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def intersects(self, other: "Rect") -> bool:
        return (
            other.left < self.right
            and self.left < other.right
            and other.top < self.bottom
            and self.top < other.bottom
        )


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


class GameLogic:
    """Advances a :class:`GameState` one tick at a time."""

    def __init__(self, state: GameState):
        if state is None:
            raise ValueError("GameLogic requires a state")
        self.state = state

    def step(self) -> bool:
        """Run one tick and return ``True`` when a goal was scored."""

        self._move_ball()
        self._handle_wall_collision()
        self._handle_paddle_collisions()
        return self._handle_goal()

    def move_paddle(self, player_id: int, direction: int) -> None:
        if player_id == 1:
            self.state.paddle1_y = self._next_paddle_position(self.state.paddle1_y, direction)
        elif player_id == 2:
            self.state.paddle2_y = self._next_paddle_position(self.state.paddle2_y, direction)

    @staticmethod
    def _next_paddle_position(current: int, direction: int) -> int:
        return clamp(current + direction * config.PADDLE_SPEED, 0, config.PADDLE_MAX_Y)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    def ball_rect(self) -> Rect:
        return Rect(self.state.ball_x, self.state.ball_y, config.BALL_SIZE, config.BALL_SIZE)

    def paddle1_rect(self) -> Rect:
        return Rect(config.PLAYER1_PADDLE_X, self.state.paddle1_y, config.PADDLE_WIDTH, config.PADDLE_HEIGHT)

    def paddle2_rect(self) -> Rect:
        return Rect(
            config.PLAYER2_PADDLE_X + config.FIELD_OFFSET_X,
            self.state.paddle2_y,
            config.PADDLE_WIDTH,
            config.PADDLE_HEIGHT,
        )

    # ------------------------------------------------------------------
    # Tick phases
    # ------------------------------------------------------------------
    def _move_ball(self) -> None:
        self.state.ball_x += self.state.ball_vx
        self.state.ball_y += self.state.ball_vy

    def _handle_wall_collision(self) -> None:
        # No position correction: a ball still out of bounds next tick flips again.
        if self.state.ball_y <= 0 or self.state.ball_y >= config.GAME_AREA_HEIGHT - config.BALL_SIZE:
            self.state.ball_vy = -self.state.ball_vy

    def _handle_paddle_collisions(self) -> None:
        ball = self.ball_rect()
        left = self.paddle1_rect()
        right = self.paddle2_rect()
        if ball.intersects(left):
            self.state.ball_x = left.right
            self.state.ball_vx = abs(self.state.ball_vx)
            self._increase_ball_speed()
        if ball.intersects(right):
            self.state.ball_x = right.left - ball.width
            self.state.ball_vx = -abs(self.state.ball_vx)
            self._increase_ball_speed()

    def _increase_ball_speed(self) -> None:
        # Only the horizontal speed is capped; vertical speed grows alongside it.
        if abs(self.state.ball_vx) >= config.MAX_BALL_SPEED:
            return
        step = config.BALL_SPEED_INCREMENT
        self.state.ball_vx += step if self.state.ball_vx > 0 else -step
        self.state.ball_vy += step if self.state.ball_vy > 0 else -step

    def _handle_goal(self) -> bool:
        if self.state.ball_x < 0:
            self.state.score2 += 1
            self.state.reset_ball_position()
            return True
        if self.state.ball_x > config.FIELD_WIDTH:
            self.state.score1 += 1
            self.state.reset_ball_position()
            return True
        return False
