"""Unit tests for the per-ball cavity state machine."""
from __future__ import annotations

import math

import pytest

from knockoff_arcade import cavity
from knockoff_arcade.ball import Ball
from knockoff_arcade.cavity import CavityPhase, CavityTransition
from knockoff_arcade.config import Cavity

FIELD_TOP = 100


@pytest.fixture
def ball() -> Ball:
    b = Ball(400, 150)
    b.set_velocity(1, -2)
    return b


class TestTransitions:
    def test_stays_normal_below_the_field_top(self, ball: Ball) -> None:
        assert cavity.update_cavity(ball, FIELD_TOP, now=0.0) is None
        assert ball.cavity.phase is CavityPhase.NORMAL

    def test_entering_boosts_and_records_base(self, ball: Ball) -> None:
        ball.position.y = 80
        assert cavity.update_cavity(ball, FIELD_TOP, now=0.0) is CavityTransition.ENTERED

        assert ball.cavity.phase is CavityPhase.IN_CAVITY
        assert ball.cavity.bonus_active
        assert (ball.cavity.base_velocity.x, ball.cavity.base_velocity.y) == (1, -2)
        assert (ball.velocity.x, ball.velocity.y) == pytest.approx((Cavity.SPEED_BOOST, -2 * Cavity.SPEED_BOOST))

    def test_leaving_starts_grace(self, ball: Ball) -> None:
        ball.position.y = 80
        cavity.update_cavity(ball, FIELD_TOP, now=0.0)
        boosted = ball.velocity.clone()

        ball.position.y = 120
        assert cavity.update_cavity(ball, FIELD_TOP, now=3.0) is CavityTransition.LEFT

        assert ball.cavity.phase is CavityPhase.GRACE
        assert ball.cavity.grace_expiry == 3.0 + Cavity.GRACE_SECONDS
        assert ball.cavity.bonus_active
        assert ball.velocity == boosted

    def test_grace_expiry_restores_base_exactly(self, ball: Ball) -> None:
        ball.position.y = 80
        cavity.update_cavity(ball, FIELD_TOP, now=0.0)
        ball.position.y = 120
        cavity.update_cavity(ball, FIELD_TOP, now=1.0)

        assert cavity.update_cavity(ball, FIELD_TOP, now=5.9) is None
        assert cavity.update_cavity(ball, FIELD_TOP, now=6.0) is CavityTransition.EXPIRED

        assert ball.cavity.phase is CavityPhase.NORMAL
        assert ball.cavity.base_velocity is None
        assert (ball.velocity.x, ball.velocity.y) == (1, -2)

    def test_expiry_restores_the_recorded_direction(self, ball: Ball) -> None:
        ball.position.y = 80
        cavity.update_cavity(ball, FIELD_TOP, now=0.0)
        ball.position.y = 120
        cavity.update_cavity(ball, FIELD_TOP, now=1.0)

        # Falling by the time the grace period runs out
        ball.velocity.y = abs(ball.velocity.y)
        cavity.update_cavity(ball, FIELD_TOP, now=6.0)

        assert (ball.velocity.x, ball.velocity.y) == (1, -2)

    def test_reentry_during_grace_does_not_compound(self, ball: Ball) -> None:
        ball.position.y = 80
        cavity.update_cavity(ball, FIELD_TOP, now=0.0)
        ball.position.y = 120
        cavity.update_cavity(ball, FIELD_TOP, now=1.0)

        ball.position.y = 80
        assert cavity.update_cavity(ball, FIELD_TOP, now=2.0) is CavityTransition.ENTERED

        assert ball.cavity.phase is CavityPhase.IN_CAVITY
        assert ball.cavity.grace_expiry is None
        assert (ball.cavity.base_velocity.x, ball.cavity.base_velocity.y) == (1, -2)
        assert ball.get_speed() == pytest.approx(math.hypot(1, 2) * Cavity.SPEED_BOOST)

    def test_base_is_kept_while_in_the_cavity(self, ball: Ball) -> None:
        ball.position.y = 80
        cavity.update_cavity(ball, FIELD_TOP, now=0.0)

        # Bouncing off the top wall flips the boosted ball; the stored base is untouched until expiry
        ball.velocity.y = -ball.velocity.y
        assert cavity.update_cavity(ball, FIELD_TOP, now=0.1) is None
        assert ball.cavity.base_velocity.y == -2


class TestClear:
    def test_clear_keeps_velocity(self, ball: Ball) -> None:
        ball.position.y = 80
        cavity.update_cavity(ball, FIELD_TOP, now=0.0)
        boosted = ball.velocity.clone()

        cavity.clear(ball)

        assert ball.cavity.phase is CavityPhase.NORMAL
        assert not ball.cavity.bonus_active
        assert ball.velocity == boosted
