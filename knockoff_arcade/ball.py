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
from collections import deque
from dataclasses import dataclass
from typing import Any

from knockoff_arcade.cavity import CavityState
from knockoff_arcade.config import Effects, Physics, PowerUps
from knockoff_arcade.geometry import Area, Bounds
from knockoff_arcade.powerups import PowerUpType, TimedEffects, clock
from knockoff_arcade.vector import Vector2D


@dataclass
class TrailPoint:
    x: float
    y: float
    time: float
    life: float = 1.0


class Ball():
    # Ratios applied to the current speed when these power-ups are picked up
    speed_factors = {
        PowerUpType.FAST_BALL: PowerUps.FAST_BALL_FACTOR,
        PowerUpType.SLOW_BALL: PowerUps.SLOW_BALL_FACTOR,
    }

    def __init__(self, x: float, y: float, radius: float = Physics.BALL_RADIUS) -> None:
        """
        Create a stationary ball.

        Args:
            x: Horizontal centre position in pixels.
            y: Vertical centre position in pixels.
            radius: Ball radius in pixels. Fixed for the life of the ball.
        """

        self.position = Vector2D(x, y)
        self.velocity = Vector2D(0, 0)     # Pixels per frame
        self.radius = radius
        self.power_ups = TimedEffects()
        self.trail: deque[TrailPoint] = deque(maxlen=Effects.TRAIL_LENGTH)
        self.last_trail_time = 0.0
        self.energy_level = 1.0
        self.glow = False
        self.cavity = CavityState()

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def y(self) -> float:
        return self.position.y

    def update(self, dt: float, bounds: Area, now: float | None = None) -> None:
        """
        Advance the ball by one tick.

        Args:
            dt: Elapsed time in frames (1.0 == one 60Hz frame).
            bounds: Playfield size.
            now: Current time in seconds, used for power-up expiry and trail ageing. Defaults to the wall clock.

        Behaviour:
            - Integrates the position by `velocity * dt`.
            - Bounces off the left, right and top walls. Falling out of the bottom is left to the caller.
            - Drops expired power-ups (undoing their effect), then refreshes the trail and the energy level.
        """

        now = clock(now)
        self.position.x += self.velocity.x * dt
        self.position.y += self.velocity.y * dt

        self._handle_boundary_collisions(bounds)
        for kind in self.power_ups.sweep(now):
            self.remove_power_up(kind)
        self._update_trail(now)
        self.energy_level = min(Effects.MAX_ENERGY, self.get_speed() / Physics.BALL_SPEED)

    def _handle_boundary_collisions(self, bounds: Area) -> None:
        if self.position.x - self.radius <= 0:
            self.position.x = self.radius
            self.velocity.x = abs(self.velocity.x)
        elif self.position.x + self.radius >= bounds.width:
            self.position.x = bounds.width - self.radius
            self.velocity.x = -abs(self.velocity.x)

        if self.position.y - self.radius <= 0:
            self.position.y = self.radius
            self.velocity.y = abs(self.velocity.y)

    def _update_trail(self, now: float) -> None:
        if now - self.last_trail_time > Effects.TRAIL_INTERVAL:
            # The deque's maxlen drops the oldest point
            self.trail.append(TrailPoint(self.position.x, self.position.y, now))
            self.last_trail_time = now

        for point in self.trail:
            point.life = max(0.0, 1.0 - (now - point.time) / Effects.TRAIL_FADE)

        while self.trail and self.trail[0].life <= 0:
            self.trail.popleft()

    def set_velocity(self, x: float, y: float) -> None:
        self.velocity.set(x, y)

    def add_velocity(self, x: float, y: float) -> None:
        self.velocity.x += x
        self.velocity.y += y

    def get_speed(self) -> float:
        return self.velocity.magnitude()

    def set_speed(self, speed: float) -> None:
        """Rescale the velocity to `speed`, keeping its direction. A stationary ball stays stationary."""

        self.velocity = self.velocity.normalized().multiply(speed)

    def reverse(self, axis: str = "both") -> None:
        """
        Negate one or both velocity components.

        Args:
            axis: "x", "y" or "both".

        Raises:
            ValueError: For any other axis name.
        """

        if axis not in ("x", "y", "both"):
            raise ValueError(f"Unknown axis '{axis}'")
        if axis in ("x", "both"):
            self.velocity.x = -self.velocity.x
        if axis in ("y", "both"):
            self.velocity.y = -self.velocity.y

    def apply_power_up(self, kind: PowerUpType, duration: float = PowerUps.DURATION, now: float | None = None) -> None:
        """
        Start (or restart) a timed power-up on this ball.

        Args:
            kind: The power-up.
            duration: How long it lasts, in seconds.
            now: Current time in seconds. Defaults to the wall clock.

        Notes:
            FAST_BALL and SLOW_BALL rescale the current speed once, when applied. PIERCE lights the glow.
        """

        self.power_ups.add(kind, duration, now)

        if kind in Ball.speed_factors:
            self.set_speed(self.get_speed() * Ball.speed_factors[kind])
        elif kind is PowerUpType.PIERCE:
            self.glow = True

    def has_power_up(self, kind: PowerUpType, now: float | None = None) -> bool:
        return self.power_ups.active(kind, now)

    def remove_power_up(self, kind: PowerUpType) -> None:
        self.power_ups.discard(kind)
        if kind is PowerUpType.PIERCE:
            self.glow = False

    def reset(self, x: float, y: float) -> None:
        self.position.set(x, y)
        self.velocity.set(0, 0)
        self.power_ups.clear()
        self.trail.clear()
        self.last_trail_time = 0.0
        self.glow = False
        self.energy_level = 1.0
        self.cavity = CavityState()

    def get_bounds(self) -> Bounds:
        x, y, r = self.position.x, self.position.y, self.radius
        return Bounds(left=x - r, right=x + r, top=y - r, bottom=y + r, center_x=x, center_y=y, radius=r)

    def clone(self) -> Ball:
        """
        Copy position, velocity, radius, power-ups and cavity state. The trail starts fresh.

        A copy made inside the cavity keeps the original's base velocity, so it isn't boosted a second time.
        """

        other = Ball(self.position.x, self.position.y, self.radius)
        other.velocity = self.velocity.clone()
        other.cavity = self.cavity.copy()
        other.power_ups = self.power_ups.copy()
        other.glow = self.glow
        other.energy_level = self.energy_level
        return other

    def serialize(self) -> dict[str, Any]:
        return {
            "position": self.position.to_dict(),
            "velocity": self.velocity.to_dict(),
            "radius": self.radius,
            "power_ups": self.power_ups.to_dict(),
            "energy_level": self.energy_level,
        }

    def deserialize(self, data: dict[str, Any]) -> None:
        self.position.set(data["position"]["x"], data["position"]["y"])
        self.velocity.set(data["velocity"]["x"], data["velocity"]["y"])
        self.radius = data["radius"]
        self.power_ups.load(data.get("power_ups", {}))
        self.energy_level = data.get("energy_level", 1.0)
        self.glow = PowerUpType.PIERCE in self.power_ups

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ball:
        ball = cls(0, 0)
        ball.deserialize(data)
        return ball
