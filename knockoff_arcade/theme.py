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

"""Look-and-sound presets. The simulation and the renderer both read from the same Theme."""

from __future__ import annotations
import os
from dataclasses import dataclass, field

from knockoff_arcade import events
from knockoff_arcade.config import Paths
from knockoff_arcade.powerups import PowerUpType

Colour = tuple[int, int, int]


@dataclass(frozen=True)
class Theme:
    name: str
    title: str
    brick_colours: tuple[Colour, ...]
    pickup_colours: dict[PowerUpType, Colour]
    pickup_labels: dict[PowerUpType, str]
    ball_colour: Colour
    ball_rim: Colour
    paddle_colour: Colour
    paddle_edge: Colour
    cavity_colour: Colour
    lost_colour: Colour
    sand_colour: Colour
    dune_colour: Colour
    hud_colour: Colour
    title_colour: Colour

    # Event name -> sound catalog name. Events missing here are silent.
    sounds: dict[str, str] = field(default_factory=dict)

    # Optional power-up icon images; the renderer falls back to the label when a file is missing
    pickup_icons: dict[PowerUpType, str] = field(default_factory=dict)


_SOUNDS = {
    events.PADDLE_HIT: "paddle_hit",
    events.POWER_UP_COLLECT: "power_up_collect",
    events.BALL_LOST: "ball_lost",
    events.LEVEL_COMPLETE: "level_complete",
    events.GAME_OVER: "game_over",
}

WESTERN = Theme(
    name="western",
    title="KNOCKOFF ARCADE",
    brick_colours=(
        (220, 20, 60),
        (255, 102, 0),
        (255, 215, 0),
        (0, 255, 127),
        (0, 255, 255),
        (138, 43, 226),
        (255, 105, 180),
        (222, 184, 135),
    ),
    pickup_colours={
        PowerUpType.MULTI_BALL: (220, 20, 60),
        PowerUpType.WIDE_PADDLE: (0, 255, 127),
        PowerUpType.FAST_BALL: (0, 255, 255),
        PowerUpType.SLOW_BALL: (255, 215, 0),
        PowerUpType.PIERCE: (255, 102, 0),
        PowerUpType.MAGNETIC: (160, 82, 45),
    },
    pickup_labels={
        PowerUpType.MULTI_BALL: "M",
        PowerUpType.WIDE_PADDLE: "W",
        PowerUpType.FAST_BALL: "F",
        PowerUpType.SLOW_BALL: "S",
        PowerUpType.PIERCE: "P",
        PowerUpType.MAGNETIC: "G",
    },
    ball_colour=(128, 128, 128),
    ball_rim=(47, 27, 20),
    paddle_colour=(222, 184, 135),
    paddle_edge=(101, 67, 33),
    cavity_colour=(218, 165, 32),
    lost_colour=(255, 0, 0),
    sand_colour=(222, 184, 135),
    dune_colour=(139, 69, 19),
    hud_colour=(255, 240, 200),
    title_colour=(218, 165, 32),
    sounds=_SOUNDS,
    pickup_icons={
        kind: os.path.join(Paths.icons_path, f"{kind.value}.png") for kind in PowerUpType
    },
)

CLASSIC = Theme(
    name="classic",
    title="SUPER BREAKOUT",
    brick_colours=WESTERN.brick_colours,
    pickup_colours={
        PowerUpType.MULTI_BALL: (255, 0, 0),
        PowerUpType.WIDE_PADDLE: (0, 255, 0),
        PowerUpType.FAST_BALL: (0, 0, 255),
        PowerUpType.SLOW_BALL: (255, 255, 0),
        PowerUpType.PIERCE: (255, 102, 0),
        PowerUpType.MAGNETIC: (255, 0, 255),
    },
    pickup_labels=WESTERN.pickup_labels,
    ball_colour=(255, 255, 255),
    ball_rim=(64, 128, 255),
    paddle_colour=(64, 128, 255),
    paddle_edge=(255, 255, 255),
    cavity_colour=(255, 215, 0),
    lost_colour=(255, 0, 0),
    sand_colour=(16, 16, 40),
    dune_colour=(40, 40, 90),
    hud_colour=(196, 224, 255),
    title_colour=(64, 104, 191),
    sounds=_SOUNDS,
)

THEMES = {theme.name: theme for theme in (WESTERN, CLASSIC)}


def get_theme(name: str) -> Theme:
    """
    Look up a theme preset by name.

    Raises:
        KeyError: If there is no such theme.
    """

    try:
        return THEMES[name.lower()]
    except KeyError:
        raise KeyError(f"Unknown theme '{name}' (choose from {', '.join(sorted(THEMES))})") from None
