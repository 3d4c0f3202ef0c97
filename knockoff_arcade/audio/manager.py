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
import random
from typing import Any, Callable, Mapping, Sequence

import numpy as np

from knockoff_arcade import events
from knockoff_arcade.audio import synth
from knockoff_arcade.audio.backend import AudioUnavailable, PlayingSource
from knockoff_arcade.audio.levels import MixLevels, clamp_volume
from knockoff_arcade.audio.music import MusicPlayer
from knockoff_arcade.audio.sounds import BRICK_BREAK_SOUNDS, SOUNDS, SoundDefinition, combo_sound
from knockoff_arcade.events import EventBus

logger = logging.getLogger(__name__)


def event_pan(data: Mapping[str, Any]) -> float:
    """Stereo position for an event that happened at `x` across a playfield `width` wide (centre if unknown)."""

    x, width = data.get("x"), data.get("width")
    if x is None or not width:
        return 0.5
    return max(0.0, min(1.0, x / width))


class AudioManager():
    """
    Sound effects, music and voice for one game session.

    Nothing is heard until `notice_user_interaction()` has been called; if the audio device then can't be opened,
    the manager stays silent for good and every call is a no-op.
    """

    def __init__(
        self,
        backend: Any,
        levels: MixLevels | None = None,
        catalog: Mapping[str, SoundDefinition] | None = None,
        music: MusicPlayer | None = None,
        rng: random.Random | None = None,
        noise_rng: np.random.Generator | None = None,
    ) -> None:
        """
        Args:
            backend: Mixer backend, normally a `MixerBackend`.
            levels: Volume settings, shared with the music player.
            catalog: Sound definitions by name.
            music: Background music player. One sharing `backend` and `levels` is created if omitted.
            rng: Picks between the brick break variants.
            noise_rng: Feeds the noise in synthesized sounds.
        """

        self.backend = backend
        self.levels = levels or MixLevels()
        self.catalog = dict(SOUNDS if catalog is None else catalog)
        self.music = music or MusicPlayer(backend, self.levels)
        self.rng = rng or random.Random()
        self.noise_rng = noise_rng or np.random.default_rng()
        self.enabled = False
        self.unavailable = False

    def notice_user_interaction(self) -> bool:
        """
        Open the audio device on the first key press or click.

        Returns:
            bool: True if audio is available.
        """

        if self.enabled or self.unavailable:
            return self.enabled

        try:
            self.backend.open()
        except AudioUnavailable as e:
            self.unavailable = True
            logger.warning(f"Audio unavailable, carrying on without sound: {e}")
            return False

        self.enabled = True
        return True

    def play_sound(self, name: str, pan: float = 0.5, volume: float | None = None) -> PlayingSource | None:
        """
        Synthesize a sound from the catalog and play it.

        Args:
            name: Catalog name.
            pan: Stereo position, 0.0 left to 1.0 right.
            volume: Overrides the definition's own volume.

        Returns:
            PlayingSource | None: The playing sound, or None if nothing was played (audio off, muted, unknown name
            or no free channel).
        """

        if not self.enabled or self.levels.muted:
            return None

        definition = self.catalog.get(name)
        if definition is None:
            logger.warning(f"Sound '{name}' not found")
            return None

        level = self.levels.sfx_volume(definition.volume if volume is None else volume)
        samples = synth.render(definition, level, self.backend.sample_rate, self.noise_rng)
        sound = self.backend.make_sound(samples)
        return self.backend.play(sound, pan, self.levels.master_gain)

    def play_brick_break(self, pan: float = 0.5) -> PlayingSource | None:
        return self.play_sound(self.rng.choice(BRICK_BREAK_SOUNDS), pan)

    def play_combo_sound(self, combo: int, pan: float = 0.5) -> PlayingSource | None:
        name = combo_sound(combo)
        return self.play_sound(name, pan) if name else None

    def attach(self, bus: EventBus, sounds: Mapping[str, str]) -> list[Callable[[], None]]:
        """
        Play sounds for game events.

        Args:
            bus: Bus the simulation publishes on.
            sounds: Event name to catalog name, usually from the theme. Brick breaks and combos are always
                handled, with their own variant and threshold rules.

        Returns:
            list: Callables that undo each subscription.
        """

        handles = [
            bus.subscribe(events.BRICK_BREAK, lambda name, data: self.play_brick_break(event_pan(data))),
            bus.subscribe(events.COMBO, lambda name, data: self.play_combo_sound(data["combo"])),
        ]
        for event, sound in sounds.items():
            handles.append(bus.subscribe(event, self._player_for(sound)))
        return handles

    def _player_for(self, sound: str) -> Callable[[str, dict[str, Any]], None]:
        def play(name: str, data: dict[str, Any]) -> None:
            self.play_sound(sound, event_pan(data))
        return play

    def start_music(self, playlist: Sequence[str] | None = None, now: float | None = None) -> None:
        if not self.enabled:
            return
        if playlist is not None:
            self.music.set_playlist(playlist)
        self.music.start(now)

    def play_voice(self, path: str, volume: float = 0.8, delay: float = 0.0, now: float | None = None) -> bool:
        if not self.enabled:
            return False
        return self.music.play_voice(path, volume, delay, now)

    def update(self, now: float | None = None) -> None:
        if self.enabled:
            self.music.update(now)

    def set_master_volume(self, volume: float) -> None:
        self.levels.master = clamp_volume(volume)
        self.music.refresh_volume()

    def set_sfx_volume(self, volume: float) -> None:
        self.levels.sfx = clamp_volume(volume)

    def set_music_volume(self, volume: float) -> None:
        self.levels.music = clamp_volume(volume)
        self.music.refresh_volume()

    def mute(self) -> None:
        self.levels.muted = True
        self.music.refresh_volume()
        logger.debug("Audio muted")

    def unmute(self) -> None:
        self.levels.muted = False
        self.music.refresh_volume()
        logger.debug("Audio unmuted")

    def toggle_mute(self) -> bool:
        """Flip the mute state. Returns True if audio is now muted."""

        if self.levels.muted:
            self.unmute()
        else:
            self.mute()
        return self.levels.muted

    def close(self) -> None:
        self.music.stop()
        if self.enabled:
            self.backend.close()
            self.enabled = False
