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
import logging
import os
from typing import Any, Sequence

import cv2
import numpy as np
import pygame

from knockoff_arcade.cavity import CavityPhase
from knockoff_arcade.config import Canvas
from knockoff_arcade.powerups import PowerUpType
from knockoff_arcade.simulation import GameState, Snapshot
from knockoff_arcade.theme import Colour, Theme

logger = logging.getLogger(__name__)


def generate_backdrop(width: int, height: int, sand: Colour, dune: Colour, seed: int = 0) -> np.ndarray:
    """
    Paint a desert: rolling dunes with wind ripples and a little grain.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        sand: Colour of the dune crests.
        dune: Colour of the troughs.
        seed: Seed for the random terrain, so a given seed always paints the same desert.

    Returns:
        np.ndarray: RGB image, shape (height, width, 3), dtype uint8.
    """

    rng = np.random.default_rng(seed)

    # Coarse random heights, blown up and blurred into smooth dunes
    coarse = rng.random((max(2, height // 40), max(2, width // 40))).astype(np.float32)
    field = cv2.resize(coarse, (width, height), interpolation=cv2.INTER_CUBIC)
    field = cv2.GaussianBlur(field, (0, 0), sigmaX=max(1.0, width / 60))
    field = (field - field.min()) / max(float(np.ptp(field)), 1e-6)

    # Ripples follow the dune contours
    rows = np.arange(height, dtype=np.float32)[:, np.newaxis]
    ripples = 0.5 + 0.5 * np.sin(rows * 0.15 + field * 12)

    grain = rng.normal(0.0, 0.03, (height, width)).astype(np.float32)
    shade = np.clip(field * 0.8 + ripples * 0.2 + grain, 0.0, 1.0)

    sand_rgb = np.array(sand, dtype=np.float32)
    dune_rgb = np.array(dune, dtype=np.float32)
    image = dune_rgb + (sand_rgb - dune_rgb) * shade[..., np.newaxis]
    return np.clip(image, 0, 255).astype(np.uint8)


class Renderer():
    """Draws a `Snapshot` to a surface, back to front. Keeps no game state of its own."""

    def __init__(self, screen: pygame.Surface, theme: Theme, seed: int = 0) -> None:
        self.screen = screen
        self.theme = theme
        self.width, self.height = screen.get_size()
        self.scale = min(self.width, self.height) / Canvas.REFERENCE_SIZE

        # Create a black surface with the same size as the screen for darkening effects
        self.black_screen = pygame.Surface((self.width, self.height))
        self.black_screen.fill((0, 0, 0))

        # Create a transparent surface for plotting glows and trails into
        self.glow_sfc = pygame.Surface((self.width, self.height), pygame.SRCALPHA)

        self.background = self.initialise_background(seed)
        self.icons = self._load_icons()
        self._fonts: dict[tuple[int, bool, bool], pygame.font.Font] = {}

    def initialise_background(self, seed: int = 0) -> pygame.Surface:
        """Paint the desert backdrop and darken it to help the foreground stand out."""

        pixels = generate_backdrop(self.width, self.height, self.theme.sand_colour, self.theme.dune_colour, seed)

        # surfarray wants (x, y) ordering
        background = pygame.surfarray.make_surface(pixels.transpose(1, 0, 2))
        self.darken_screen(background, 130)
        return background

    def _load_icons(self) -> dict[PowerUpType, pygame.Surface]:
        icons = {}
        size = max(1, int(20 * self.scale))
        for kind, path in self.theme.pickup_icons.items():
            if not os.path.exists(path):
                continue
            try:
                icons[kind] = pygame.transform.smoothscale(pygame.image.load(path), (size, size))
            except pygame.error as e:
                logger.warning(f"Couldn't load power-up icon {path}, using its label: {e}")
        return icons

    def darken_screen(self, screen: pygame.Surface, alpha: int | None = None) -> None:
        """
        Darken a surface by blitting a black overlay with the given opacity.

        Args:
            screen: Target surface to darken.
            alpha: Opacity 0..255, capped. If None, no change is applied.
        """

        if alpha is not None:
            self.black_screen.set_alpha(min(255, abs(int(alpha))))
            screen.blit(self.black_screen, (0, 0))

    def _font(self, size: int, italic: bool, bold: bool) -> pygame.font.Font:
        key = (size, italic, bold)
        if key not in self._fonts:
            font = pygame.font.Font(None, size)
            font.set_italic(italic)
            font.set_bold(bold)
            self._fonts[key] = font
        return self._fonts[key]

    def text_at(
        self,
        surface: pygame.Surface,
        text: str,
        colour: Colour,
        x: float,
        y: float,
        font_size: int = 60,
        alpha: int = 204,
        italic: bool = False,
        bold: bool = False,
        anchor: str = "center",
    ) -> pygame.Rect:
        """
        Render text and blit it at (x, y).

        Args:
            surface: Target surface to draw on.
            text: Text to render.
            colour: RGB colour triplet.
            x: Horizontal position of the anchor point in pixels.
            y: Vertical position of the anchor point in pixels.
            font_size: Font size at the 800px reference size; scaled to the window.
            alpha: Opacity 0..255 for the rendered text.
            italic: Whether to render in italic.
            bold: Whether to render in bold.
            anchor: Which point of the text box sits at (x, y): any pygame.Rect point name, e.g. "topleft".

        Returns:
            pygame.Rect: Bounding rectangle of the rendered text on the target surface.
        """

        font = self._font(max(8, int(font_size * self.scale)), italic, bold)

        # Render to a surface with an alpha channel and set the opacity
        text_surface = font.render(text, True, colour).convert_alpha()
        text_surface.set_alpha(alpha)

        text_rect = text_surface.get_rect(**{anchor: (int(x), int(y))})
        surface.blit(text_surface, text_rect)
        return text_rect

    def draw(self, snapshot: Snapshot, status: str | None = None, message: str | None = None) -> None:
        """
        Draw one frame.

        Args:
            snapshot: The game to draw.
            status: Optional small print for the bottom of the screen (track name, mute state).
            message: Optional extra line for the game over screen (high score result).
        """

        self.screen.blit(self.background, (0, 0))
        self._draw_cavity(snapshot)
        self._draw_bricks(snapshot)
        self._draw_paddle(snapshot)
        self._draw_balls(snapshot)
        self._draw_pickups(snapshot)
        self._draw_particles(snapshot)
        self._draw_hud(snapshot, status)

        if snapshot.state is GameState.START:
            self._draw_title("Click or press any key to start")
        elif snapshot.state is GameState.PAUSED:
            self.darken_screen(self.screen, 96)
            self.text_at(self.screen, "Paused", self.theme.title_colour, self.width / 2, self.height / 2, 120,
                         alpha=224, bold=True)
        elif snapshot.state is GameState.GAME_OVER:
            self._draw_game_over(snapshot, message)

    def _draw_cavity(self, snapshot: Snapshot) -> None:
        # Warm the cavity while a ball is up there
        if any(ball.cavity is not CavityPhase.NORMAL for ball in snapshot.balls):
            band = pygame.Surface((self.width, max(1, int(snapshot.field_top))), pygame.SRCALPHA)
            band.fill((*self.theme.cavity_colour, 40))
            self.screen.blit(band, (0, 0))

    def _draw_bricks(self, snapshot: Snapshot) -> None:
        for brick in snapshot.bricks:
            rect = pygame.Rect(int(brick.x), int(brick.y), int(brick.width), int(brick.height))
            pygame.draw.rect(self.screen, brick.colour, rect)
            highlight = tuple(min(255, c + 60) for c in brick.colour)
            pygame.draw.line(self.screen, highlight, rect.topleft, rect.topright)

    def _draw_paddle(self, snapshot: Snapshot) -> None:
        paddle = snapshot.paddle
        rect = pygame.Rect(int(paddle.x), int(paddle.y), int(paddle.width), int(paddle.height))

        if paddle.magnetic_range > 0:
            self.glow_sfc.fill((0, 0, 0, 0))
            centre = rect.center
            pygame.draw.circle(self.glow_sfc, (*self.theme.pickup_colours[PowerUpType.MAGNETIC], 40), centre,
                               int(paddle.magnetic_range))
            self.screen.blit(self.glow_sfc, (0, 0))

        radius = max(1, rect.height // 3)
        pygame.draw.rect(self.screen, self.theme.paddle_colour, rect, border_radius=radius)
        edge = self.theme.cavity_colour if paddle.glowing else self.theme.paddle_edge
        pygame.draw.rect(self.screen, edge, rect, width=max(1, int(2 * self.scale)), border_radius=radius)

    def _draw_balls(self, snapshot: Snapshot) -> None:
        self.glow_sfc.fill((0, 0, 0, 0))
        for ball in snapshot.balls:
            for x, y, life in ball.trail:
                if life > 0:
                    pygame.draw.circle(self.glow_sfc, (*self.theme.ball_colour, int(life * 120)), (int(x), int(y)),
                                       max(1, int(ball.radius * life)))

            halo = None
            if ball.cavity is not CavityPhase.NORMAL:
                halo = self.theme.cavity_colour
            elif ball.glow:
                halo = self.theme.pickup_colours[PowerUpType.PIERCE]
            if halo is not None:
                pygame.draw.circle(self.glow_sfc, (*halo, 90), (int(ball.x), int(ball.y)), int(ball.radius * 2))
        self.screen.blit(self.glow_sfc, (0, 0))

        for ball in snapshot.balls:
            centre = (int(ball.x), int(ball.y))
            pygame.draw.circle(self.screen, self.theme.ball_colour, centre, max(1, int(ball.radius)))
            pygame.draw.circle(self.screen, self.theme.ball_rim, centre, max(1, int(ball.radius)),
                               width=max(1, int(ball.radius / 4)))

    def _draw_pickups(self, snapshot: Snapshot) -> None:
        for pickup in snapshot.pickups:
            rect = pygame.Rect(int(pickup.x), int(pickup.y), int(pickup.width), int(pickup.height))
            icon = self.icons.get(pickup.kind)
            if icon is not None:
                self.screen.blit(icon, rect)
                continue
            pygame.draw.rect(self.screen, pickup.colour, rect, border_radius=max(1, rect.width // 4))
            self.text_at(self.screen, self.theme.pickup_labels[pickup.kind], (0, 0, 0), rect.centerx,
                         rect.centery, 22, alpha=255, bold=True)

    def _draw_particles(self, snapshot: Snapshot) -> None:
        self.glow_sfc.fill((0, 0, 0, 0))
        for p in snapshot.particles:
            alpha = max(0, min(255, int(p.life * 255)))
            pygame.draw.circle(self.glow_sfc, (*p.colour, alpha), (int(p.x), int(p.y)), max(1, int(p.size)))
        self.screen.blit(self.glow_sfc, (0, 0))

    def _draw_hud(self, snapshot: Snapshot, status: str | None) -> None:
        colour = self.theme.hud_colour
        margin = 10 * self.scale
        self.text_at(self.screen, f"Score {snapshot.score:,}", colour, margin, margin, 36, anchor="topleft")
        self.text_at(self.screen, f"Level {snapshot.level}", colour, self.width / 2, margin, 36, anchor="midtop")
        self.text_at(self.screen, f"Lives {snapshot.lives}", colour, self.width - margin, margin, 36,
                     anchor="topright")

        y = margin + 30 * self.scale
        if snapshot.multiplier > 1:
            self.text_at(self.screen, f"Combo {snapshot.combo}  x{snapshot.multiplier}", self.theme.cavity_colour,
                         margin, y, 28, anchor="topleft", bold=True)

        for kind, remaining in snapshot.power_ups:
            self.text_at(self.screen, f"{self.theme.pickup_labels[kind]} {remaining:.0f}s",
                         self.theme.pickup_colours[kind], self.width - margin, y, 28, anchor="topright")
            y += 22 * self.scale

        if status:
            self.text_at(self.screen, status, colour, self.width / 2, self.height - margin, 24, alpha=160,
                         anchor="midbottom")

    def _draw_title(self, prompt: str) -> None:
        self.darken_screen(self.screen, 96)
        x = self.width / 2
        self.text_at(self.screen, self.theme.title, self.theme.title_colour, x, self.height * 0.35, 110, alpha=224,
                     italic=True, bold=True)
        self.text_at(self.screen, prompt, self.theme.hud_colour, x, self.height * 0.55, 40, alpha=200)
        self.text_at(self.screen, "H  high scores    M  mute    N/B  next/previous track    Q  quit",
                     self.theme.hud_colour, x, self.height * 0.62, 26, alpha=160)

    def _draw_game_over(self, snapshot: Snapshot, message: str | None) -> None:
        self.darken_screen(self.screen, 128)
        x = self.width / 2
        self.text_at(self.screen, "Game Over", self.theme.lost_colour, x, self.height * 0.35, 110, alpha=224,
                     bold=True)
        self.text_at(self.screen, f"Final score {snapshot.score:,} on level {snapshot.level}", self.theme.hud_colour,
                     x, self.height * 0.48, 44)
        if message:
            self.text_at(self.screen, message, self.theme.cavity_colour, x, self.height * 0.55, 34)
        self.text_at(self.screen, "Press any key to play again", self.theme.hud_colour, x, self.height * 0.64, 30,
                     alpha=160)

    def draw_high_scores(self, rows: Sequence[dict[str, Any]]) -> None:
        """Full-screen high score table, as produced by `HighScoreManager.generate_displayable_list()`."""

        self.screen.blit(self.background, (0, 0))
        self.darken_screen(self.screen, 96)
        x = self.width / 2
        self.text_at(self.screen, "Most Wanted", self.theme.title_colour, x, self.height * 0.12, 90, alpha=224,
                     italic=True, bold=True)

        if not rows:
            self.text_at(self.screen, "No high scores yet!", self.theme.hud_colour, x, self.height * 0.4, 44)

        y = self.height * 0.24
        step = self.height * 0.06
        for row in rows:
            colour = self.theme.cavity_colour if row["rank"] <= 3 else self.theme.hud_colour
            self.text_at(self.screen, f"{row['rank']}.", colour, self.width * 0.2, y, 36, anchor="midright")
            self.text_at(self.screen, row["name"], colour, self.width * 0.24, y, 36, anchor="midleft")
            self.text_at(self.screen, row["score"], colour, self.width * 0.72, y, 36, anchor="midright")
            self.text_at(self.screen, f"L{row['level']}", colour, self.width * 0.8, y, 36, anchor="midleft")
            y += step

        self.text_at(self.screen, "Press any key", self.theme.hud_colour, x, self.height * 0.92, 30, alpha=160)

    def draw_error(self, text: str) -> None:
        """Full-screen fatal error notice."""

        self.screen.fill((40, 0, 0))
        x = self.width / 2
        self.text_at(self.screen, "Something went wrong", (255, 164, 164), x, self.height * 0.4, 70, bold=True)
        self.text_at(self.screen, text, (255, 255, 255), x, self.height * 0.5, 30)
        self.text_at(self.screen, "Press any key to exit", (255, 164, 164), x, self.height * 0.6, 30, alpha=160)
