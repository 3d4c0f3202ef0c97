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

"""pygame mixer output. Everything above this module only deals in numpy buffers and `PlayingSource` handles."""

from __future__ import annotations
import logging

import numpy as np
import pygame

from knockoff_arcade.config import AudioLevels

logger = logging.getLogger(__name__)

# Reserved mixer channels; effects get whichever of the rest is free
MUSIC_CHANNEL = 0
VOICE_CHANNEL = 1


class AudioUnavailable(Exception):
    """The audio device could not be opened."""


class TrackLoadError(Exception):
    """A music or voice file could not be read or decoded."""


def pan_volumes(stereo: float) -> tuple[float, float]:
    """
    Left and right channel volumes for a pan position.

    Args:
        stereo: 0.0 is hard left, 1.0 hard right. Clamped.

    Returns:
        tuple[float, float]: Left and right volumes.
    """

    stereo = max(0.0, min(1.0, stereo))
    return max(0.0, 1.0 - stereo), max(0.0, stereo)


class PlayingSource():
    """Handle on a sound playing on a mixer channel."""

    def __init__(self, channel: pygame.mixer.Channel, sound: pygame.mixer.Sound) -> None:
        self.channel = channel
        self.sound = sound
        self.duration = sound.get_length()
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def is_playing(self) -> bool:
        return not self._stopped and self.channel.get_busy()

    def set_volume(self, left: float, right: float | None = None) -> None:
        if self._stopped:
            return
        if right is None:
            self.channel.set_volume(max(0.0, min(1.0, left)))
        else:
            self.channel.set_volume(left, right)

    def pause(self) -> None:
        if not self._stopped:
            self.channel.pause()

    def unpause(self) -> None:
        if not self._stopped:
            self.channel.unpause()

    def stop(self) -> None:
        """Stop playback. Safe to call more than once, or after the mixer has gone away."""

        if self._stopped:
            return
        self._stopped = True
        try:
            self.channel.stop()
        except pygame.error as e:
            logger.debug(f"Channel already gone when stopping: {e}")


class MixerBackend():
    def __init__(self, sample_rate: int = AudioLevels.SAMPLE_RATE, num_channels: int = 16) -> None:
        """
        Describe the mixer to open. Nothing touches the audio device until `open()`.

        Args:
            sample_rate: Output rate in Hz; synthesized buffers must use the same rate.
            num_channels: Total mixer channels, including the two reserved for music and voice.
        """

        self.sample_rate = sample_rate
        self.num_channels = num_channels
        self.output_channels = 2
        self.opened = False

    def open(self) -> None:
        """
        Open the audio device.

        Raises:
            AudioUnavailable: If pygame can't initialise the mixer (no device, no driver).
        """

        if self.opened:
            return
        try:
            pygame.mixer.pre_init(self.sample_rate, size=-16, channels=2)
            pygame.mixer.init()
            pygame.mixer.set_num_channels(self.num_channels)
            pygame.mixer.set_reserved(2)
        except pygame.error as e:
            raise AudioUnavailable(str(e)) from e

        # The device may not honour what we asked for
        self.sample_rate, _, self.output_channels = pygame.mixer.get_init()
        self.opened = True
        logger.info(f"Mixer opened at {self.sample_rate}Hz, {self.output_channels} channel(s)")

    def close(self) -> None:
        if self.opened:
            pygame.mixer.quit()
            self.opened = False

    def make_sound(self, samples: np.ndarray) -> pygame.mixer.Sound:
        """Convert float samples (-1..1, clipped) into a 16-bit mixer sound."""

        pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
        if self.output_channels > 1:
            pcm = np.repeat(pcm[:, np.newaxis], self.output_channels, axis=1)
        return pygame.sndarray.make_sound(np.ascontiguousarray(pcm))

    def play(self, sound: pygame.mixer.Sound, stereo: float = 0.5, volume: float = 1.0) -> PlayingSource | None:
        """
        Play an effect on any free channel.

        Args:
            sound: The sound to play.
            stereo: Pan position. 0.0 is left, 1.0 is right.
            volume: Overall volume 0.0..1.0 applied before panning.

        Returns:
            PlayingSource | None: The playing sound, or None if every channel was busy.
        """

        sound.set_volume(max(0.0, min(1.0, volume)))
        channel = sound.play()
        if channel is None:
            return None

        channel.set_volume(*pan_volumes(stereo))
        return PlayingSource(channel, sound)

    def load_track(self, path: str) -> pygame.mixer.Sound:
        """
        Read and decode an audio file.

        Raises:
            TrackLoadError: If the file is missing or can't be decoded.
        """

        try:
            return pygame.mixer.Sound(path)
        except (pygame.error, OSError) as e:
            raise TrackLoadError(f"{path}: {e}") from e

    def play_music(self, sound: pygame.mixer.Sound, volume: float, fade_ms: int = 0) -> PlayingSource:
        return self._play_reserved(MUSIC_CHANNEL, sound, volume, fade_ms)

    def play_voice(self, sound: pygame.mixer.Sound, volume: float) -> PlayingSource:
        return self._play_reserved(VOICE_CHANNEL, sound, volume, 0)

    def _play_reserved(self, index: int, sound: pygame.mixer.Sound, volume: float, fade_ms: int) -> PlayingSource:
        channel = pygame.mixer.Channel(index)
        channel.play(sound, fade_ms=fade_ms)
        channel.set_volume(max(0.0, min(1.0, volume)))
        return PlayingSource(channel, sound)
