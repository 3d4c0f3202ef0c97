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
import logging
import random
from dataclasses import dataclass

from knockoff_arcade import cavity, events
from knockoff_arcade.ball import Ball
from knockoff_arcade.bricks import Brick, BrickGrid
from knockoff_arcade.cavity import CavityPhase, CavityTransition
from knockoff_arcade.config import Canvas, Cavity, Effects, GameRules, Physics, PowerUps, Scoring
from knockoff_arcade.events import EventBus
from knockoff_arcade.geometry import Area
from knockoff_arcade.paddle import Paddle
from knockoff_arcade.particles import ParticleSystem
from knockoff_arcade.powerups import PowerUpPickup, PowerUpType, apply_effect, clock
from knockoff_arcade.theme import WESTERN, Colour, Theme
from knockoff_arcade.vector import Vector2D

logger = logging.getLogger(__name__)


class GameState(enum.Enum):
    START = "start"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "game_over"


def multiplier_for_combo(combo: int) -> int:
    """
    Score multiplier earned by a combo.

    Args:
        combo: Bricks destroyed so far this level.

    Returns:
        int: 1 until the combo passes the threshold, then one step per five bricks, capped at the maximum.
    """

    if combo > Scoring.COMBO_THRESHOLD:
        return min(Scoring.MAX_MULTIPLIER, combo // 5 + 1)
    return 1


@dataclass(frozen=True)
class BallView:
    x: float
    y: float
    radius: float
    glow: bool
    energy: float
    cavity: CavityPhase
    trail: tuple[tuple[float, float, float], ...]


@dataclass(frozen=True)
class PaddleView:
    x: float
    y: float
    width: float
    height: float
    magnetic_range: float
    glowing: tuple[PowerUpType, ...]


@dataclass(frozen=True)
class BrickView:
    x: float
    y: float
    width: float
    height: float
    colour: Colour


@dataclass(frozen=True)
class PickupView:
    x: float
    y: float
    width: float
    height: float
    kind: PowerUpType
    colour: Colour


@dataclass(frozen=True)
class ParticleView:
    x: float
    y: float
    size: float
    colour: Colour
    life: float


@dataclass(frozen=True)
class Snapshot:
    """Everything the renderer needs for one frame, copied out of the live simulation."""

    width: float
    height: float
    field_top: float
    state: GameState
    score: int
    lives: int
    level: int
    combo: int
    multiplier: int
    balls: tuple[BallView, ...]
    paddle: PaddleView
    bricks: tuple[BrickView, ...]
    pickups: tuple[PickupView, ...]
    particles: tuple[ParticleView, ...]
    power_ups: tuple[tuple[PowerUpType, float], ...]


class Simulation():
    """
    The game itself: entities, rules and the per-frame update, with no drawing or sound of its own.

    Anything worth hearing is published on `bus` as it happens; the app flushes the bus after each update.
    """

    # Bricks destroyed by a single piercing hit, including the one struck
    pierce_chain_length = 3

    def __init__(
        self,
        width: float = Canvas.DEFAULT_WIDTH,
        height: float = Canvas.DEFAULT_HEIGHT,
        theme: Theme = WESTERN,
        bus: EventBus | None = None,
        rng: random.Random | None = None,
        lives: int = GameRules.INITIAL_LIVES,
        ai_strength: float | None = None,
    ) -> None:
        """
        Set up a new game, ready to start.

        Args:
            width: Playfield width in pixels.
            height: Playfield height in pixels.
            theme: Colours for bricks, pickups and particles.
            bus: Event bus to publish game events on. A private one is created if omitted.
            rng: Random source for serves, drops and particles. Pass a seeded one for repeatable games.
            lives: Lives at the start of each game.
            ai_strength: If given, the paddle is steered by the AI assist at this strength (0..1).
        """

        self.area = Area(width, height)
        self.scale = min(width, height) / Canvas.REFERENCE_SIZE
        self.theme = theme
        self.bus = bus or EventBus()
        self.rng = rng or random.Random()
        self.starting_lives = lives
        self.ai_strength = ai_strength

        paddle_width = Physics.PADDLE_WIDTH * self.scale
        self.paddle = Paddle(
            x=width / 2 - paddle_width / 2,
            y=height - Physics.PADDLE_OFFSET * self.scale,
            width=paddle_width,
            height=Physics.PADDLE_HEIGHT * self.scale,
            speed=Physics.PADDLE_SPEED * self.scale,
        )
        self.particles = ParticleSystem(self.rng)
        self.balls: list[Ball] = []
        self.pickups: list[PowerUpPickup] = []
        self.grid: BrickGrid | None = None
        self.keys_left = False
        self.keys_right = False

        self.state = GameState.START
        self.score = 0
        self.lives = lives
        self.level = 1
        self.combo = 0
        self.multiplier = 1
        self.reset_game()

    @property
    def ball(self) -> Ball | None:
        """The primary ball (the one multi-ball clones), if any ball is in play."""

        return self.balls[0] if self.balls else None

    @property
    def balls_in_cavity(self) -> list[Ball]:
        return [ball for ball in self.balls if ball.cavity.phase is CavityPhase.IN_CAVITY]

    @property
    def balls_in_grace(self) -> list[Ball]:
        return [ball for ball in self.balls if ball.cavity.phase is CavityPhase.GRACE]

    @property
    def grace_expiry(self) -> dict[int, float]:
        """Grace expiry instant of each ball in its grace period, keyed by `id(ball)`."""

        return {id(ball): ball.cavity.grace_expiry for ball in self.balls_in_grace}

    @property
    def base_velocities(self) -> dict[int, Vector2D]:
        """Pre-cavity velocity of each boosted ball, keyed by `id(ball)`."""

        return {id(ball): ball.cavity.base_velocity.clone()
                for ball in self.balls if ball.cavity.base_velocity is not None}

    def reset_game(self) -> None:
        """Back to level 1 with a full set of lives, waiting for `start()`."""

        self.score = 0
        self.lives = self.starting_lives
        self.level = 1
        self.combo = 0
        self.multiplier = 1
        self.pickups = []
        self.particles.clear()
        self.bus.clear()

        self.paddle.reset(self.area.width / 2 - self.paddle.base_width / 2, self.paddle.position.y)
        if self.ai_strength is not None:
            self.paddle.enable_ai(self.ai_strength)

        self._create_bricks()
        self._serve_ball()
        self.state = GameState.START

    def start(self) -> None:
        if self.state is GameState.GAME_OVER:
            self.reset_game()
        self.state = GameState.PLAYING

    def toggle_pause(self) -> None:
        if self.state is GameState.PLAYING:
            self.state = GameState.PAUSED
        elif self.state is GameState.PAUSED:
            self.state = GameState.PLAYING

    def set_keys(self, left: bool, right: bool) -> None:
        """Record which steering keys are held. Holding both, or neither, stops the paddle."""

        self.keys_left, self.keys_right = left, right

    def move_paddle_to(self, x: float) -> None:
        if self.state is GameState.PLAYING:
            self.paddle.move_to(x, self.area)

    def _create_bricks(self) -> None:
        self.grid = BrickGrid(self.area.width, self.scale, self.theme.brick_colours)

    def _serve_ball(self) -> None:
        ball = Ball(self.area.width / 2, self.area.height / 2, Physics.BALL_RADIUS * self.scale)
        speed = Physics.SERVE_SPEED * self.scale
        direction = 1 if self.rng.random() > 0.5 else -1
        ball.set_velocity(direction * speed, -speed)
        self.balls = [ball]

    def update(self, dt: float = 1.0, now: float | None = None) -> None:
        """
        Advance the game by one frame.

        Args:
            dt: Elapsed time in 60Hz frames. Measured by the caller; 1.0 is a nominal frame.
            now: Current time in seconds, used for every timed effect this frame. Defaults to the wall clock.

        Notes:
            Does nothing unless the game is being played. The steps run in a fixed order: paddle, balls (with
            cavity transitions and ball loss), pickups, collisions, level completion, particles.
        """

        if self.state is not GameState.PLAYING:
            return
        now = clock(now)

        self._update_paddle(dt, now)
        self._update_balls(dt, now)
        if self.state is GameState.PLAYING:
            self._update_pickups(dt, now)
            self._check_collisions(now)
            self._check_level_complete()
        self.particles.update(dt)

    def _update_paddle(self, dt: float, now: float) -> None:
        if self.keys_left and not self.keys_right:
            self.paddle.move_left()
        elif self.keys_right and not self.keys_left:
            self.paddle.move_right()
        else:
            self.paddle.stop()

        self.paddle.update(dt, self.area, self.balls, now)
        self.paddle.apply_magnetic_force(self.balls, now)

    def _update_balls(self, dt: float, now: float) -> None:
        for ball in list(self.balls):
            ball.update(dt, self.area, now)

            transition = cavity.update_cavity(ball, self.grid.field_top, now)
            if transition is CavityTransition.ENTERED:
                self.score += Cavity.ENTRY_BONUS
                self.particles.burst(ball.x, ball.y, self.theme.cavity_colour, Effects.CAVITY_PARTICLE_COUNT)
                self.bus.publish(events.CAVITY_ENTERED, x=ball.x, width=self.area.width)

            if ball.y >= self.area.height - ball.radius:
                self.balls.remove(ball)
                cavity.clear(ball)
                self.particles.burst(ball.x, ball.y, self.theme.lost_colour, Effects.PARTICLE_COUNT)
                self.bus.publish(events.BALL_LOST, x=ball.x, width=self.area.width)

        if not self.balls:
            self._lose_life()

    def _lose_life(self) -> None:
        self.lives -= 1
        if self.lives <= 0:
            self.lives = 0
            self.state = GameState.GAME_OVER
            logger.info(f"Game over: score {self.score} on level {self.level}")
            self.bus.publish(events.GAME_OVER, score=self.score, level=self.level)
        else:
            self._serve_ball()

    def _update_pickups(self, dt: float, now: float) -> None:
        paddle = self.paddle
        for pickup in list(self.pickups):
            pickup.update(dt)

            if pickup.y > self.area.height:
                self.pickups.remove(pickup)

            elif pickup.overlaps(paddle.position.x, paddle.position.y, paddle.width, paddle.height):
                self.pickups.remove(pickup)
                self.apply_power_up(pickup.kind, now)
                self.score += Scoring.POWERUP_BONUS
                self.particles.burst(pickup.x, pickup.y, pickup.colour, Effects.PICKUP_PARTICLE_COUNT)
                self.bus.publish(events.POWER_UP_COLLECT, kind=pickup.kind, x=pickup.x, width=self.area.width)

    def _check_collisions(self, now: float) -> None:
        paddle = self.paddle
        for ball in self.balls:
            # Only bounce balls on their way down, so a ball can't get caught inside the paddle
            if (ball.y + ball.radius >= paddle.position.y and
                    paddle.position.x <= ball.x <= paddle.position.x + paddle.width and
                    ball.velocity.y > 0):
                hit = paddle.get_hit_position(ball.x)
                ball.velocity.x = hit * Physics.PADDLE_BOUNCE_SPEED
                ball.velocity.y = -abs(ball.velocity.y)
                self.bus.publish(events.PADDLE_HIT, x=ball.x, width=self.area.width)

            # At most one brick per ball per frame
            brick = self.grid.brick_at_point(ball.x, ball.y)
            if brick is not None:
                self.hit_brick(brick, ball, now)

    def hit_brick(self, brick: Brick, ball: Ball, now: float | None = None) -> int:
        """
        Destroy the brick a ball has hit (and, for a piercing ball, the bricks behind it).

        Args:
            brick: The brick that was struck.
            ball: The ball that struck it.
            now: Current time in seconds.

        Returns:
            int: Points awarded.

        Behaviour:
            - A piercing ball takes out up to two more bricks in its direction of travel and is not deflected;
              any other ball bounces vertically.
            - Each brick scores the base value times the multiplier, doubled if the ball has the cavity bonus.
            - Only the struck brick can drop a pickup.
        """

        pierce = ball.has_power_up(PowerUpType.PIERCE, now)
        if pierce:
            hits = self.grid.chain(brick, ball.velocity.x, ball.velocity.y, Simulation.pierce_chain_length)
        else:
            hits = [brick]

        bonus = ball.cavity.bonus_active
        points = Scoring.BRICK_BASE * self.multiplier * (Cavity.SCORE_FACTOR if bonus else 1)
        total = 0

        for hit in hits:
            hit.visible = False
            self.score += points
            total += points
            self.combo += 1

            x, y = hit.center
            if bonus:
                self.particles.burst(x, y, self.theme.cavity_colour, Effects.CAVITY_PARTICLE_COUNT)
            else:
                count = Effects.PIERCE_PARTICLE_COUNT if pierce else Effects.PARTICLE_COUNT
                self.particles.burst(x, y, hit.colour, count)

            if hit is brick and len(self.pickups) < PowerUps.MAX_FALLING and self.rng.random() < PowerUps.DROP_CHANCE:
                self._create_pickup(x, y)

            self.bus.publish(events.BRICK_BREAK, x=x, width=self.area.width, points=points)
            if self.combo in Scoring.COMBO_SOUND_STEPS or self.combo % 10 == 0:
                self.bus.publish(events.COMBO, combo=self.combo)

        self.multiplier = multiplier_for_combo(self.combo)

        if not pierce:
            ball.velocity.y = -ball.velocity.y

        return total

    def _create_pickup(self, x: float, y: float) -> None:
        kind = self.rng.choice(list(PowerUpType))
        size = PowerUps.PICKUP_SIZE * self.scale
        colour = self.theme.pickup_colours[kind]
        self.pickups.append(PowerUpPickup(x - size / 2, y, kind, width=size, height=size, colour=colour))

    def _check_level_complete(self) -> None:
        if self.grid.remaining() > 0:
            return

        bonus = self.level * Scoring.LEVEL_BONUS_MULTIPLIER
        self.score += bonus
        logger.info(f"Level {self.level} complete, bonus {bonus}")
        self.bus.publish(events.LEVEL_COMPLETE, level=self.level, bonus=bonus)

        self.level += 1
        self.combo = 0
        self.multiplier = 1
        self._create_bricks()
        self._serve_ball()

    def apply_power_up(self, kind: PowerUpType, now: float | None = None) -> None:
        apply_effect(self, kind, now)

    def spawn_extra_ball(self) -> Ball | None:
        """
        Add a copy of the primary ball heading the other way.

        Returns:
            Ball | None: The new ball, or None if the ball limit is reached or there is no ball to copy.
        """

        if not self.balls or len(self.balls) >= Physics.MAX_BALLS:
            return None

        ball = self.balls[0].clone()
        ball.velocity.x = -ball.velocity.x
        if ball.cavity.base_velocity is not None:
            ball.cavity.base_velocity.x = -ball.cavity.base_velocity.x
        self.balls.append(ball)
        return ball

    def active_power_ups(self, now: float | None = None) -> list[tuple[PowerUpType, float]]:
        """Active power-ups on the paddle and balls, with seconds remaining (longest wins for duplicates)."""

        now = clock(now)
        remaining: dict[PowerUpType, float] = {}
        for effects in [self.paddle.power_ups] + [ball.power_ups for ball in self.balls]:
            for kind in effects:
                left = effects.expiry(kind) - now
                if left > 0:
                    remaining[kind] = max(left, remaining.get(kind, 0.0))
        return sorted(remaining.items(), key=lambda item: item[0].value)

    def snapshot(self, now: float | None = None) -> Snapshot:
        paddle = self.paddle
        return Snapshot(
            width=self.area.width,
            height=self.area.height,
            field_top=self.grid.field_top,
            state=self.state,
            score=self.score,
            lives=self.lives,
            level=self.level,
            combo=self.combo,
            multiplier=self.multiplier,
            balls=tuple(
                BallView(
                    x=ball.x,
                    y=ball.y,
                    radius=ball.radius,
                    glow=ball.glow,
                    energy=ball.energy_level,
                    cavity=ball.cavity.phase,
                    trail=tuple((p.x, p.y, p.life) for p in ball.trail),
                )
                for ball in self.balls
            ),
            paddle=PaddleView(
                x=paddle.position.x,
                y=paddle.position.y,
                width=paddle.width,
                height=paddle.height,
                magnetic_range=paddle.magnetic_range,
                glowing=tuple(glow.kind for glow in paddle.glow_effects),
            ),
            bricks=tuple(BrickView(b.x, b.y, b.width, b.height, b.colour) for b in self.grid.visible()),
            pickups=tuple(PickupView(p.x, p.y, p.width, p.height, p.kind, p.colour) for p in self.pickups),
            particles=tuple(ParticleView(p.x, p.y, p.size, p.colour, p.life) for p in self.particles),
            power_ups=tuple(self.active_power_ups(now)),
        )
