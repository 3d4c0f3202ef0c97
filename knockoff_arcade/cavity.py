#
# The cavity is the open strip between the top wall and the first row of bricks. A ball that gets up there is
# boosted and scores double; once it drops back out it keeps that status for a grace period, after which its
# pre-cavity velocity is put back.
#
# Each ball carries its own CavityState, and every change of phase goes through one of the transition functions
# below, which always derive the new velocity from the stored base velocity.
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
from dataclasses import dataclass
from typing import TYPE_CHECKING

from knockoff_arcade.config import Cavity
from knockoff_arcade.vector import Vector2D

if TYPE_CHECKING:
    from knockoff_arcade.ball import Ball


class CavityPhase(enum.Enum):
    NORMAL = "normal"
    IN_CAVITY = "in_cavity"
    GRACE = "grace"


class CavityTransition(enum.Enum):
    ENTERED = "entered"
    LEFT = "left"
    EXPIRED = "expired"


@dataclass
class CavityState:
    phase: CavityPhase = CavityPhase.NORMAL
    base_velocity: Vector2D | None = None
    grace_expiry: float | None = None

    @property
    def bonus_active(self) -> bool:
        """True while hits from this ball score the cavity bonus."""

        return self.phase is not CavityPhase.NORMAL

    def copy(self) -> CavityState:
        base = self.base_velocity.clone() if self.base_velocity is not None else None
        return CavityState(self.phase, base, self.grace_expiry)


def enter_cavity(ball: Ball) -> None:
    """
    Move a ball into the cavity and boost it.

    The base velocity is recorded only when coming from NORMAL. A ball re-entering during its grace period keeps
    its original base, so the boost never compounds.
    """

    state = ball.cavity
    if state.phase is CavityPhase.NORMAL:
        state.base_velocity = ball.velocity.clone()
    ball.velocity = state.base_velocity.clone().multiply(Cavity.SPEED_BOOST)
    state.phase = CavityPhase.IN_CAVITY
    state.grace_expiry = None


def leave_cavity(ball: Ball, now: float) -> None:
    """Start the grace period. The boosted velocity is kept."""

    state = ball.cavity
    state.phase = CavityPhase.GRACE
    state.grace_expiry = now + Cavity.GRACE_SECONDS


def expire_grace(ball: Ball) -> None:
    """
    End the grace period, putting back the velocity the ball had before it entered the cavity.

    The recorded velocity is restored as-is, direction included, even if the ball has bounced since.
    """

    state = ball.cavity
    if state.base_velocity is not None:
        ball.velocity = state.base_velocity.clone()
    clear(ball)


def clear(ball: Ball) -> None:
    """Forget all cavity bookkeeping for a ball, without touching its velocity."""

    ball.cavity = CavityState()


def update_cavity(ball: Ball, field_top: float, now: float) -> CavityTransition | None:
    """
    Advance a ball's cavity state machine by one frame.

    Args:
        ball: Ball to check.
        field_top: Y coordinate of the top edge of the brick field; anything above it is the cavity.
        now: Current time in seconds.

    Returns:
        CavityTransition | None: The transition taken this frame, if any.
    """

    above = ball.position.y < field_top
    phase = ball.cavity.phase

    if phase is CavityPhase.NORMAL:
        if above:
            enter_cavity(ball)
            return CavityTransition.ENTERED

    elif phase is CavityPhase.IN_CAVITY:
        if not above:
            leave_cavity(ball, now)
            return CavityTransition.LEFT

    elif above:
        # Back up again before the grace period ran out
        enter_cavity(ball)
        return CavityTransition.ENTERED

    elif now >= ball.cavity.grace_expiry:
        expire_grace(ball)
        return CavityTransition.EXPIRED

    return None
