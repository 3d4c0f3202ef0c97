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
import enum
import time
from dataclasses import dataclass
from typing import Callable, Iterator

from knockoff_arcade.config import PowerUps


class PowerUpType(enum.Enum):
    MULTI_BALL = "multi_ball"
    WIDE_PADDLE = "wide"
    FAST_BALL = "fast"
    SLOW_BALL = "slow"
    PIERCE = "pierce"
    MAGNETIC = "magnetic"


# Power-ups that act on the balls rather than on the paddle or the ball count
BALL_POWER_UPS = frozenset({PowerUpType.FAST_BALL, PowerUpType.SLOW_BALL, PowerUpType.PIERCE})
PADDLE_POWER_UPS = frozenset({PowerUpType.WIDE_PADDLE, PowerUpType.MAGNETIC})


def clock(now: float | None) -> float:
    """Return `now`, or the wall clock when no time was injected."""

    return time.time() if now is None else now


class TimedEffects():
    """
    Active power-ups keyed by type, each carrying an absolute expiry instant (seconds).

    Entities call `sweep()` once per frame; it returns the types whose expiry has passed so the owner can undo
    their effects. `active()` never mutates, so checks made between sweeps are consistent with each other.
    """

    def __init__(self) -> None:
        self._expiry: dict[PowerUpType, float] = {}

    def __contains__(self, kind: PowerUpType) -> bool:
        return kind in self._expiry

    def __iter__(self) -> Iterator[PowerUpType]:
        return iter(self._expiry)

    def __len__(self) -> int:
        return len(self._expiry)

    def add(self, kind: PowerUpType, duration: float, now: float | None = None) -> float:
        expiry = clock(now) + duration
        self._expiry[kind] = expiry
        return expiry

    def expiry(self, kind: PowerUpType) -> float | None:
        return self._expiry.get(kind)

    def active(self, kind: PowerUpType, now: float | None = None) -> bool:
        expiry = self._expiry.get(kind)
        return expiry is not None and expiry > clock(now)

    def discard(self, kind: PowerUpType) -> None:
        self._expiry.pop(kind, None)

    def sweep(self, now: float | None = None) -> list[PowerUpType]:
        now = clock(now)
        return [kind for kind, expiry in self._expiry.items() if expiry <= now]

    def clear(self) -> None:
        self._expiry.clear()

    def to_dict(self) -> dict[str, float]:
        return {kind.value: expiry for kind, expiry in self._expiry.items()}

    def load(self, data: dict[str, float]) -> None:
        self._expiry = {PowerUpType(name): float(expiry) for name, expiry in data.items()}

    def copy(self) -> TimedEffects:
        other = TimedEffects()
        other._expiry = dict(self._expiry)
        return other


@dataclass
class PowerUpPickup:
    """A falling power-up token. `x`, `y` is the top-left corner."""

    x: float
    y: float
    kind: PowerUpType
    width: float = PowerUps.PICKUP_SIZE
    height: float = PowerUps.PICKUP_SIZE
    vy: float = PowerUps.FALL_SPEED
    colour: tuple[int, int, int] = (255, 255, 255)

    def update(self, dt: float = 1.0) -> None:
        self.y += self.vy * dt

    def overlaps(self, left: float, top: float, width: float, height: float) -> bool:
        return (self.x < left + width and self.x + self.width > left and
                self.y < top + height and self.y + self.height > top)


def _multi_ball(sim, kind: PowerUpType, now: float) -> None:
    sim.spawn_extra_ball()


def _ball_effect(sim, kind: PowerUpType, now: float) -> None:
    for ball in sim.balls:
        ball.apply_power_up(kind, now=now)


def _paddle_effect(sim, kind: PowerUpType, now: float) -> None:
    sim.paddle.apply_power_up(kind, now=now)


# What each power-up does when the paddle catches it. Every PowerUpType must have an entry.
EFFECTS: dict[PowerUpType, Callable[[object, PowerUpType, float], None]] = {
    PowerUpType.MULTI_BALL: _multi_ball,
    PowerUpType.WIDE_PADDLE: _paddle_effect,
    PowerUpType.FAST_BALL: _ball_effect,
    PowerUpType.SLOW_BALL: _ball_effect,
    PowerUpType.PIERCE: _ball_effect,
    PowerUpType.MAGNETIC: _paddle_effect,
}


def apply_effect(sim, kind: PowerUpType, now: float | None = None) -> None:
    """
    Apply a caught power-up to the simulation.

    Args:
        sim: The `Simulation` the effect acts on.
        kind: Power-up that was caught.
        now: Current time in seconds; defaults to the wall clock.

    Raises:
        KeyError: If `kind` has no registered effect.
    """

    EFFECTS[kind](sim, kind, clock(now))
