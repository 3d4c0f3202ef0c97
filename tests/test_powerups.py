"""Unit tests for power-up bookkeeping and the effect table."""
from __future__ import annotations

import pytest

from knockoff_arcade.config import PowerUps
from knockoff_arcade.powerups import (
    BALL_POWER_UPS,
    EFFECTS,
    PADDLE_POWER_UPS,
    PowerUpPickup,
    PowerUpType,
    TimedEffects,
    apply_effect,
)
from knockoff_arcade.simulation import Simulation


class TestTimedEffects:
    def test_active_until_expiry(self) -> None:
        effects = TimedEffects()
        assert effects.add(PowerUpType.PIERCE, 2.0, now=10.0) == 12.0

        assert effects.active(PowerUpType.PIERCE, now=11.99)
        assert not effects.active(PowerUpType.PIERCE, now=12.0)

    def test_active_does_not_remove(self) -> None:
        effects = TimedEffects()
        effects.add(PowerUpType.PIERCE, 1.0, now=0.0)
        effects.active(PowerUpType.PIERCE, now=5.0)

        assert PowerUpType.PIERCE in effects

    def test_sweep_reports_expired(self) -> None:
        effects = TimedEffects()
        effects.add(PowerUpType.FAST_BALL, 1.0, now=0.0)
        effects.add(PowerUpType.PIERCE, 3.0, now=0.0)

        assert effects.sweep(now=2.0) == [PowerUpType.FAST_BALL]

    def test_reapplying_refreshes_expiry(self) -> None:
        effects = TimedEffects()
        effects.add(PowerUpType.MAGNETIC, 1.0, now=0.0)
        effects.add(PowerUpType.MAGNETIC, 1.0, now=5.0)

        assert effects.expiry(PowerUpType.MAGNETIC) == 6.0
        assert len(effects) == 1

    def test_dict_round_trip(self) -> None:
        effects = TimedEffects()
        effects.add(PowerUpType.WIDE_PADDLE, 4.0, now=1.0)

        other = TimedEffects()
        other.load(effects.to_dict())

        assert other.expiry(PowerUpType.WIDE_PADDLE) == 5.0

    def test_copy_is_independent(self) -> None:
        effects = TimedEffects()
        effects.add(PowerUpType.PIERCE, 1.0, now=0.0)
        copy = effects.copy()
        copy.discard(PowerUpType.PIERCE)

        assert PowerUpType.PIERCE in effects


class TestEffectTable:
    def test_every_type_has_an_effect(self) -> None:
        assert set(EFFECTS) == set(PowerUpType)

    def test_groups_do_not_overlap(self) -> None:
        assert not BALL_POWER_UPS & PADDLE_POWER_UPS
        assert PowerUpType.MULTI_BALL not in BALL_POWER_UPS | PADDLE_POWER_UPS

    @pytest.mark.parametrize("kind", sorted(BALL_POWER_UPS, key=lambda k: k.value))
    def test_ball_effects_reach_every_ball(self, sim: Simulation, kind: PowerUpType) -> None:
        sim.spawn_extra_ball()
        apply_effect(sim, kind, now=0.0)

        assert all(ball.has_power_up(kind, now=0.0) for ball in sim.balls)
        assert not sim.paddle.has_power_up(kind, now=0.0)

    @pytest.mark.parametrize("kind", sorted(PADDLE_POWER_UPS, key=lambda k: k.value))
    def test_paddle_effects(self, sim: Simulation, kind: PowerUpType) -> None:
        apply_effect(sim, kind, now=0.0)

        assert sim.paddle.has_power_up(kind, now=0.0)
        assert not sim.ball.has_power_up(kind, now=0.0)

    def test_multi_ball_adds_a_ball(self, sim: Simulation) -> None:
        apply_effect(sim, PowerUpType.MULTI_BALL, now=0.0)

        assert len(sim.balls) == 2
        assert sim.balls[1].velocity.x == -sim.balls[0].velocity.x


class TestPickup:
    def test_falls(self) -> None:
        pickup = PowerUpPickup(10, 20, PowerUpType.PIERCE)
        pickup.update(2.0)

        assert pickup.y == 20 + 2 * PowerUps.FALL_SPEED

    def test_overlaps(self) -> None:
        pickup = PowerUpPickup(10, 20, PowerUpType.PIERCE, width=20, height=20)

        assert pickup.overlaps(0, 35, 100, 15)
        assert not pickup.overlaps(0, 40, 100, 15)
        assert not pickup.overlaps(30, 20, 100, 15)
