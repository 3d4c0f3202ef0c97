#
# Copyright (c) 2025, 7th software Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Iterable

from knockoff_arcade.ball import Ball
from knockoff_arcade.config import Physics, PowerUps
from knockoff_arcade.geometry import Area, Bounds
from knockoff_arcade.powerups import PowerUpType, TimedEffects, clock
from knockoff_arcade.vector import Vector2D


@dataclass
class GlowEffect:
    kind: PowerUpType
    start: float
    duration: float

    def expired(self, now: float) -> bool:
        return now - self.start >= self.duration


class Paddle():
    def __init__(
        self,
        x: float,
        y: float,
        width: float = Physics.PADDLE_WIDTH,
        height: float = Physics.PADDLE_HEIGHT,
        speed: float = Physics.PADDLE_SPEED,
    ) -> None:
        """
        Create the paddle.

        Args:
            x: Left edge in pixels.
            y: Top edge in pixels.
            width: Normal width. WIDE_PADDLE stretches it temporarily and it is restored from here.
            height: Height in pixels.
            speed: Movement speed in pixels per frame.
        """

        self.position = Vector2D(x, y)
        self.velocity = Vector2D(0, 0)
        self.width = width
        self.base_width = width
        self.height = height
        self.speed = speed
        self.power_ups = TimedEffects()

        # AI assistance
        self.ai_enabled = False
        self.ai_strength = 0.5
        self.target_x = x

        # Only non-zero while MAGNETIC is active
        self.magnetic_range = 0
        self.magnetic_strength = 0

        self.glow_effects: list[GlowEffect] = []

    @property
    def center(self) -> Vector2D:
        return Vector2D(self.position.x + self.width / 2, self.position.y + self.height / 2)

    def update(self, dt: float, bounds: Area, balls: Iterable[Ball] = (), now: float | None = None) -> None:
        """
        Advance the paddle by one tick.

        Args:
            dt: Elapsed time in frames.
            bounds: Playfield size.
            balls: Active balls, used by the AI assist.
            now: Current time in seconds. Defaults to the wall clock.

        Behaviour:
            - Drops expired power-ups and restores what they changed.
            - Lets the AI steer (if enabled), integrates the position, then keeps the paddle inside the playfield.
            - Prunes finished glow effects.
        """

        now = clock(now)
        for kind in self.power_ups.sweep(now):
            self.remove_power_up(kind)

        balls = list(balls)
        if self.ai_enabled and balls:
            self._update_ai(balls)

        self.position.x += self.velocity.x * dt
        self.position.y += self.velocity.y * dt
        self._constrain_to_bounds(bounds)

        self.glow_effects = [glow for glow in self.glow_effects if not glow.expired(now)]

    def _update_ai(self, balls: list[Ball]) -> None:
        # Find the ball that will reach the paddle soonest
        target = None
        min_time = math.inf
        for ball in balls:
            if ball.velocity.y > 0:
                time_to_reach = (self.position.y - ball.position.y) / ball.velocity.y
                if 0 < time_to_reach < min_time:
                    min_time = time_to_reach
                    target = ball

        if target is None:
            # Nothing is coming down: carry on as we were
            return

        predicted_x = target.position.x + target.velocity.x * min_time
        self.target_x = predicted_x - self.width / 2

        diff = self.target_x - self.position.x
        if abs(diff) > Physics.AI_DEADBAND:
            self.velocity.x = math.copysign(self.speed * self.ai_strength, diff)
        else:
            self.velocity.x = 0

    def _constrain_to_bounds(self, bounds: Area) -> None:
        if self.position.x < 0:
            self.position.x = 0
            self.velocity.x = 0
        elif self.position.x + self.width > bounds.width:
            self.position.x = bounds.width - self.width
            self.velocity.x = 0

    def move_left(self) -> None:
        if not self.ai_enabled:
            self.velocity.x = -self.speed

    def move_right(self) -> None:
        if not self.ai_enabled:
            self.velocity.x = self.speed

    def stop(self) -> None:
        if not self.ai_enabled:
            self.velocity.x = 0

    def move_to(self, center_x: float, bounds: Area) -> None:
        """Centre the paddle on `center_x` (mouse control), kept inside the playfield. Ignored under AI control."""

        if not self.ai_enabled:
            self.position.x = max(0, min(bounds.width - self.width, center_x - self.width / 2))

    def apply_power_up(self, kind: PowerUpType, duration: float = PowerUps.DURATION, now: float | None = None) -> None:
        """
        Start (or restart) a timed power-up on the paddle.

        Args:
            kind: WIDE_PADDLE or MAGNETIC. Other kinds are recorded but change nothing on the paddle.
            duration: Seconds the power-up lasts.
            now: Current time in seconds. Defaults to the wall clock.
        """

        now = clock(now)
        self.power_ups.add(kind, duration, now)

        if kind is PowerUpType.WIDE_PADDLE:
            # Always relative to the base width, so catching two doesn't compound
            self.width = self.base_width * PowerUps.WIDE_PADDLE_FACTOR
        elif kind is PowerUpType.MAGNETIC:
            self.magnetic_range = PowerUps.MAGNETIC_RANGE
            self.magnetic_strength = PowerUps.MAGNETIC_STRENGTH

        self.glow_effects.append(GlowEffect(kind, now, duration))

    def has_power_up(self, kind: PowerUpType, now: float | None = None) -> bool:
        return self.power_ups.active(kind, now)

    def remove_power_up(self, kind: PowerUpType) -> None:
        self.power_ups.discard(kind)
        if kind is PowerUpType.WIDE_PADDLE:
            self.width = self.base_width
        elif kind is PowerUpType.MAGNETIC:
            self.magnetic_range = 0
            self.magnetic_strength = 0

    def enable_ai(self, strength: float = 0.5) -> None:
        self.ai_enabled = True
        self.ai_strength = max(0.0, min(1.0, strength))

    def disable_ai(self) -> None:
        self.ai_enabled = False
        self.velocity.x = 0

    def get_bounds(self) -> Bounds:
        x, y = self.position.x, self.position.y
        return Bounds(
            left=x,
            right=x + self.width,
            top=y,
            bottom=y + self.height,
            center_x=x + self.width / 2,
            center_y=y + self.height / 2,
        )

    def get_hit_position(self, ball_x: float) -> float:
        """
        Where along the paddle a ball struck.

        Args:
            ball_x: Horizontal centre of the ball.

        Returns:
            float: -1.0 at the left edge, 0.0 in the middle, 1.0 at the right edge (clamped).
        """

        relative = ball_x - (self.position.x + self.width / 2)
        return max(-1.0, min(1.0, relative / (self.width / 2)))

    def apply_magnetic_force(self, balls: Iterable[Ball], now: float | None = None) -> None:
        """Pull nearby balls toward the paddle centre while MAGNETIC is active, weakening linearly with distance."""

        if not self.has_power_up(PowerUpType.MAGNETIC, now):
            return

        center = self.center
        for ball in balls:
            distance = ball.position.distance_to(center)
            if distance < self.magnetic_range:
                force = self.magnetic_strength * (1 - distance / self.magnetic_range)
                pull = (center - ball.position).normalize().multiply(force)
                ball.add_velocity(pull.x, pull.y)

    def reset(self, x: float, y: float) -> None:
        self.position.set(x, y)
        self.velocity.set(0, 0)
        self.width = self.base_width
        self.power_ups.clear()
        self.glow_effects = []
        self.magnetic_range = 0
        self.magnetic_strength = 0
        self.ai_enabled = False
