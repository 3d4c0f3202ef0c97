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

"""The sound effect catalog. Each entry is plain data; `synth.render()` turns it into samples."""

from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class Envelope:
    attack: float       # Seconds
    decay: float        # Seconds
    sustain: float      # Fraction of peak
    release: float      # Seconds


@dataclass(frozen=True)
class SoundDefinition:
    name: str
    type: str
    duration: float
    volume: float
    envelope: Envelope
    frequency: float | None = None
    start_freq: float | None = None
    end_freq: float | None = None
    notes: tuple[float, ...] = ()
    chords: tuple[tuple[float, ...], ...] = ()
    formants: tuple[float, ...] = ()


BRICK_BREAK_SOUNDS = ("brick_break_1", "brick_break_2", "brick_break_3")

# Combo thresholds, highest first
COMBO_SOUNDS = ((10, "combo_10"), (5, "combo_5"), (3, "combo_3"))


def _catalog(*definitions: SoundDefinition) -> dict[str, SoundDefinition]:
    return {definition.name: definition for definition in definitions}


SOUNDS = _catalog(
    # Gunshot off the paddle
    SoundDefinition("paddle_hit", "gunshot", 0.15, 0.8, Envelope(0.001, 0.05, 0.1, 0.094)),

    # Spittoon pings, one picked at random per brick
    SoundDefinition("brick_break_1", "spittoon", 0.2, 0.7, Envelope(0.01, 0.1, 0.3, 0.09), frequency=800),
    SoundDefinition("brick_break_2", "spittoon", 0.18, 0.6, Envelope(0.01, 0.08, 0.4, 0.09), frequency=600),
    SoundDefinition("brick_break_3", "spittoon", 0.22, 0.5, Envelope(0.01, 0.12, 0.5, 0.08), frequency=400),

    SoundDefinition("power_up_collect", "saloon_door", 0.4, 0.6, Envelope(0.05, 0.1, 0.7, 0.25),
                    start_freq=200, end_freq=150),
    SoundDefinition("ball_lost", "whistle_down", 0.8, 0.8, Envelope(0.1, 0.2, 0.4, 0.3),
                    start_freq=800, end_freq=200),

    # G4 A4 C5 E5 G5
    SoundDefinition("level_complete", "harmonica", 1.2, 0.7, Envelope(0.1, 0.05, 0.8, 0.05),
                    notes=(392, 440, 523, 659, 784)),

    # A minor, G minor, F minor
    SoundDefinition("game_over", "western_chord", 1.5, 0.9, Envelope(0.2, 0.3, 0.6, 0.4),
                    chords=((220, 277, 330), (196, 247, 294), (175, 220, 262))),

    SoundDefinition("combo_3", "yeehaw", 0.3, 0.5, Envelope(0.02, 0.1, 0.6, 0.18), formants=(800, 1200, 2500)),
    SoundDefinition("combo_5", "yeehaw", 0.4, 0.6, Envelope(0.02, 0.1, 0.7, 0.28), formants=(600, 1000, 2200)),
    SoundDefinition("combo_10", "yeehaw_big", 0.6, 0.8, Envelope(0.02, 0.1, 0.8, 0.48), formants=(500, 900, 2000)),

    SoundDefinition("menu_select", "spur", 0.1, 0.4, Envelope(0.01, 0.03, 0.2, 0.06), frequency=1200),
    SoundDefinition("menu_confirm", "whinny", 0.25, 0.5, Envelope(0.02, 0.08, 0.4, 0.15),
                    start_freq=400, end_freq=800),
)


def combo_sound(combo: int) -> str | None:
    """Catalog name of the cheer for a combo count, or None below the lowest threshold."""

    for threshold, name in COMBO_SOUNDS:
        if combo >= threshold:
            return name
    return None
