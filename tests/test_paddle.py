"""Unit tests for the Paddle entity."""
from __future__ import annotations

import pytest

from knockoff_arcade.ball import Ball
from knockoff_arcade.config import PowerUps
from knockoff_arcade.geometry import Area
from knockoff_arcade.paddle import Paddle
from knockoff_arcade.powerups import PowerUpType

AREA = Area(800, 600)


@pytest.fixture
def paddle() -> Paddle:
    return Paddle(350, 550, width=100, height=15, speed=8)


class TestMovement:
    def test_keys_move_and_stop(self, paddle: Paddle) -> None:
        paddle.move_right()
        paddle.update(1.0, AREA, now=0.0)
        assert paddle.position.x == 358

        paddle.stop()
        paddle.update(1.0, AREA, now=0.0)
        assert paddle.position.x == 358

    def test_kept_inside_playfield(self, paddle: Paddle) -> None:
        paddle.position.x = 2
        paddle.move_left()
        paddle.update(1.0, AREA, now=0.0)

        assert paddle.position.x == 0
        assert paddle.velocity.x == 0

    def test_move_to_centres_and_clamps(self, paddle: Paddle) -> None:
        paddle.move_to(400, AREA)
        assert paddle.position.x == 350

        paddle.move_to(790, AREA)
        assert paddle.position.x == 700

    def test_hit_position(self, paddle: Paddle) -> None:
        assert paddle.get_hit_position(350) == -1.0
        assert paddle.get_hit_position(400) == 0.0
        assert paddle.get_hit_position(425) == 0.5
        assert paddle.get_hit_position(1000) == 1.0


class TestPowerUps:
    def test_wide_paddle_does_not_compound(self, paddle: Paddle) -> None:
        paddle.apply_power_up(PowerUpType.WIDE_PADDLE, 1.0, now=0.0)
        paddle.apply_power_up(PowerUpType.WIDE_PADDLE, 1.0, now=0.5)

        assert paddle.width == pytest.approx(100 * PowerUps.WIDE_PADDLE_FACTOR)

    def test_wide_paddle_expires(self, paddle: Paddle) -> None:
        paddle.apply_power_up(PowerUpType.WIDE_PADDLE, 1.0, now=0.0)
        paddle.update(1.0, AREA, now=1.0)

        assert paddle.width == 100
        assert not paddle.has_power_up(PowerUpType.WIDE_PADDLE, now=1.0)

    def test_magnetic_pulls_nearby_balls(self, paddle: Paddle) -> None:
        paddle.apply_power_up(PowerUpType.MAGNETIC, now=0.0)
        near = Ball(400, 500)
        far = Ball(400, 100)

        paddle.apply_magnetic_force([near, far], now=1.0)

        assert paddle.magnetic_range == PowerUps.MAGNETIC_RANGE
        assert near.velocity.y > 0
        assert near.velocity.x == pytest.approx(0)
        assert far.get_speed() == 0

    def test_magnetic_off_does_nothing(self, paddle: Paddle) -> None:
        ball = Ball(400, 530)
        paddle.apply_magnetic_force([ball], now=0.0)

        assert ball.get_speed() == 0

    def test_magnetic_expiry_clears_range(self, paddle: Paddle) -> None:
        paddle.apply_power_up(PowerUpType.MAGNETIC, 2.0, now=0.0)
        paddle.update(1.0, AREA, now=2.5)

        assert paddle.magnetic_range == 0
        assert paddle.magnetic_strength == 0

    def test_glow_effects_are_pruned(self, paddle: Paddle) -> None:
        paddle.apply_power_up(PowerUpType.WIDE_PADDLE, 1.0, now=0.0)
        paddle.update(1.0, AREA, now=0.5)
        assert [glow.kind for glow in paddle.glow_effects] == [PowerUpType.WIDE_PADDLE]

        paddle.update(1.0, AREA, now=1.0)
        assert paddle.glow_effects == []


class TestAI:
    def test_steers_towards_falling_ball(self, paddle: Paddle) -> None:
        paddle.enable_ai(1.0)
        ball = Ball(700, 300)
        ball.set_velocity(0, 4)

        paddle.update(1.0, AREA, [ball], now=0.0)

        assert paddle.velocity.x == paddle.speed
        assert paddle.position.x == 358

    def test_keeps_velocity_when_nothing_is_falling(self, paddle: Paddle) -> None:
        paddle.enable_ai(0.5)
        paddle.velocity.x = 3
        ball = Ball(100, 300)
        ball.set_velocity(0, -4)

        paddle.update(1.0, AREA, [ball], now=0.0)

        assert paddle.velocity.x == 3

    def test_strength_is_clamped(self, paddle: Paddle) -> None:
        paddle.enable_ai(3.0)
        assert paddle.ai_strength == 1.0

    def test_player_input_ignored_under_ai(self, paddle: Paddle) -> None:
        paddle.enable_ai()
        paddle.move_left()
        paddle.move_to(0, AREA)

        assert paddle.velocity.x == 0
        assert paddle.position.x == 350

    def test_reset_turns_ai_off(self, paddle: Paddle) -> None:
        paddle.enable_ai()
        paddle.apply_power_up(PowerUpType.WIDE_PADDLE, now=0.0)
        paddle.reset(10, 550)

        assert not paddle.ai_enabled
        assert paddle.width == 100
        assert len(paddle.power_ups) == 0
