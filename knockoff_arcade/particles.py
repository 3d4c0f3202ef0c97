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
import random
from dataclasses import dataclass

from knockoff_arcade.config import Effects


@dataclass
class Particle:
    x: float
    y: float
    vx: float
    vy: float
    colour: tuple[int, int, int]
    size: float
    life: float = Effects.PARTICLE_LIFE
    decay: float = 0.02

    def update(self, dt: float = 1.0) -> bool:
        """Move and fade the particle. Returns False once it has burnt out."""

        self.x += self.vx * dt
        self.y += self.vy * dt
        self.life -= self.decay * dt
        return self.life > 0


class ParticleSystem():
    def __init__(self, rng: random.Random | None = None) -> None:
        self.particles: list[Particle] = []
        self.rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self.particles)

    def __iter__(self):
        return iter(self.particles)

    def burst(self, x: float, y: float, colour: tuple[int, int, int], count: int = Effects.PARTICLE_COUNT) -> None:
        """
        Spray `count` particles out from a point in random directions.

        Args:
            x: Horizontal origin in pixels.
            y: Vertical origin in pixels.
            colour: RGB colour of every particle in the burst.
            count: Number of particles.
        """

        rnd = self.rng.random
        speed = Effects.PARTICLE_SPEED
        for _ in range(count):
            self.particles.append(Particle(
                x=x,
                y=y,
                vx=(rnd() - 0.5) * speed,
                vy=(rnd() - 0.5) * speed,
                colour=colour,
                size=rnd() * 4 + 2,
                life=Effects.PARTICLE_LIFE,
                decay=rnd() * 0.02 + 0.01,
            ))

    def update(self, dt: float = 1.0) -> None:
        self.particles = [p for p in self.particles if p.update(dt)]

    def clear(self) -> None:
        self.particles.clear()
