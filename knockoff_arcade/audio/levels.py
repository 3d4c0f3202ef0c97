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
from dataclasses import dataclass

from knockoff_arcade.config import AudioLevels


def clamp_volume(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass
class MixLevels:
    """
    Volume settings for each bus. Muting zeroes the master gain but leaves `master` alone, so unmuting puts back
    whatever level was set.
    """

    master: float = AudioLevels.MASTER_VOLUME
    sfx: float = AudioLevels.SFX_VOLUME
    music: float = AudioLevels.MUSIC_VOLUME
    music_ducked: float = AudioLevels.MUSIC_VOLUME_DUCKED
    voice: float = AudioLevels.VOICE_VOLUME
    muted: bool = False

    @property
    def master_gain(self) -> float:
        return 0.0 if self.muted else self.master

    def sfx_volume(self, volume: float) -> float:
        """Level an effect defined at `volume` is synthesized at. The master gain goes on the channel."""

        return volume * self.sfx

    def music_gain(self, ducked: bool = False) -> float:
        return (self.music_ducked if ducked else self.music) * self.master_gain

    def voice_gain(self, volume: float) -> float:
        # The voice bus boosts above unity; the channel volume is clamped on output
        return clamp_volume(volume * self.voice * self.master_gain)
