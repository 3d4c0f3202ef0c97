#
# Background music plays a playlist in order, one track at a time, with a short gap between tracks. Files are
# decoded off the frame loop when an executor is supplied; `update()` polls for the result each frame and never
# blocks. A voice clip can be played over the music, which is ducked until the clip has finished.
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
import os
from concurrent.futures import Executor, Future
from typing import Any, Sequence

from knockoff_arcade.audio.backend import PlayingSource, TrackLoadError
from knockoff_arcade.audio.levels import MixLevels
from knockoff_arcade.config import AudioLevels
from knockoff_arcade.powerups import clock

logger = logging.getLogger(__name__)


class MusicState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    GAP = "gap"          # Between tracks after one ended
    RETRY = "retry"      # Backing off after a track failed to load


class MusicPlayer():
    def __init__(self, backend: Any, levels: MixLevels, playlist: Sequence[str] = (),
                 executor: Executor | None = None) -> None:
        """
        Create an idle player.

        Args:
            backend: Mixer backend (`load_track`, `play_music`, `play_voice`).
            levels: Shared volume settings.
            playlist: Track paths, played in order and wrapping around.
            executor: Runs track decoding in the background. Without one, tracks are decoded inline.
        """

        self.backend = backend
        self.levels = levels
        self.playlist = list(playlist)
        self.executor = executor
        self.index = 0
        self.state = MusicState.IDLE
        self.current: PlayingSource | None = None

        self._request = 0
        self._pending: tuple[int, str, Future] | None = None
        self._resume_at: float | None = None
        self._started_any = False

        # Voice channel
        self.voice: PlayingSource | None = None
        self._voice_sound: Any = None
        self._voice_volume = 0.8
        self._voice_start: float | None = None
        self._duck_until: float | None = None

    @property
    def ducked(self) -> bool:
        return self._duck_until is not None

    def set_playlist(self, paths: Sequence[str], index: int = 0) -> None:
        self.playlist = list(paths)
        self.index = index % len(self.playlist) if self.playlist else 0

    def start(self, now: float | None = None) -> None:
        """Start (or restart) the current playlist entry."""

        if not self.playlist:
            logger.warning("No music to play: the playlist is empty")
            return
        self._request_track(self.index, clock(now))

    def update(self, now: float | None = None) -> None:
        """
        Advance the player. Call once per frame.

        Behaviour:
            - Starts a track whose background decode has finished, or backs off if it failed.
            - Notices a track that has played to the end and waits out the gap before the next.
            - Starts a delayed voice clip when due and lifts the ducking when it has finished.
        """

        now = clock(now)
        self._update_voice(now)

        if self.state is MusicState.LOADING and self._pending is not None:
            request, path, future = self._pending
            if future.done():
                self._pending = None
                if request == self._request:
                    try:
                        sound = future.result()
                    except TrackLoadError as e:
                        self._load_failed(path, e, now)
                    else:
                        self._begin(sound, path)

        elif self.state is MusicState.PLAYING:
            if self.current is None or not self.current.is_playing():
                logger.debug(f"Track {self.index + 1} finished")
                self.current = None
                self.state = MusicState.GAP
                self._resume_at = now + AudioLevels.TRACK_GAP_SECONDS

        elif self.state in (MusicState.GAP, MusicState.RETRY):
            if now >= self._resume_at:
                self._request_track(self.index + 1, now)

    def skip(self, now: float | None = None) -> None:
        """Cut the current track dead and move on to the next."""

        if self.playlist:
            self._request_track(self.index + 1, clock(now))

    def previous(self, now: float | None = None) -> None:
        if self.playlist:
            self._request_track(self.index - 1, clock(now))

    def toggle_pause(self) -> bool:
        """Pause or resume the current track. Returns True if the music is now paused."""

        if self.state is MusicState.PLAYING and self.current is not None:
            self.current.pause()
            self.state = MusicState.PAUSED
        elif self.state is MusicState.PAUSED and self.current is not None:
            self.current.unpause()
            self.state = MusicState.PLAYING
        return self.state is MusicState.PAUSED

    def stop(self) -> None:
        self._cancel_pending()
        self._stop_current()
        self.stop_voice()
        self.state = MusicState.IDLE

    def track_info(self) -> dict[str, Any]:
        path = self.playlist[self.index] if self.playlist else None
        return {
            "index": self.index,
            "count": len(self.playlist),
            "path": path,
            "name": os.path.splitext(os.path.basename(path))[0] if path else None,
            "state": self.state.value,
            "paused": self.state is MusicState.PAUSED,
        }

    def refresh_volume(self) -> None:
        """Re-apply the current levels (after a volume change, mute or unmute)."""

        if self.current is not None:
            self.current.set_volume(self.levels.music_gain(self.ducked))
        if self.voice is not None:
            self.voice.set_volume(self.levels.voice_gain(self._voice_volume))

    def _request_track(self, index: int, now: float) -> None:
        # Never more than one background source: the old one goes before anything new is loaded
        self._cancel_pending()
        self._stop_current()

        self.index = index % len(self.playlist)
        self._request += 1
        path = self.playlist[self.index]
        self.state = MusicState.LOADING

        if self.executor is None:
            try:
                sound = self.backend.load_track(path)
            except TrackLoadError as e:
                self._load_failed(path, e, now)
            else:
                self._begin(sound, path)
        else:
            self._pending = (self._request, path, self.executor.submit(self.backend.load_track, path))

    def _begin(self, sound: Any, path: str) -> None:
        # Only the very first track fades in
        fade_ms = 0 if self._started_any else int(AudioLevels.FIRST_TRACK_FADE_SECONDS * 1000)

        self._stop_current()
        self.current = self.backend.play_music(sound, self.levels.music_gain(self.ducked), fade_ms)
        self._started_any = True
        self.state = MusicState.PLAYING
        logger.info(f"Playing track {self.index + 1}/{len(self.playlist)}: {os.path.basename(path)}")

    def _load_failed(self, path: str, error: Exception, now: float) -> None:
        logger.warning(f"Couldn't play {os.path.basename(path)}, trying the next track shortly: {error}")
        self.state = MusicState.RETRY
        self._resume_at = now + AudioLevels.TRACK_RETRY_SECONDS

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending[2].cancel()
            self._pending = None

    def _stop_current(self) -> None:
        if self.current is not None:
            self.current.stop()
            self.current = None

    def play_voice(self, path: str, volume: float = 0.8, delay: float = 0.0, now: float | None = None) -> bool:
        """
        Play a narration clip over the music.

        Args:
            path: Audio file to play.
            volume: Clip volume before the voice and master levels are applied.
            delay: Seconds to wait before the clip starts.
            now: Current time in seconds. Defaults to the wall clock.

        Returns:
            bool: True if the clip was scheduled. Muted audio and unreadable files return False.

        Notes:
            The music is ducked straight away and restored once `delay` plus the clip's length has passed.
        """

        if self.levels.muted:
            logger.debug("Voice clip skipped while muted")
            return False

        try:
            sound = self.backend.load_track(path)
        except TrackLoadError as e:
            logger.warning(f"Couldn't play voice clip: {e}")
            return False

        now = clock(now)
        self._stop_voice_source()
        self._voice_sound = sound
        self._voice_volume = volume
        self._voice_start = now + delay
        self._duck_until = now + delay + sound.get_length()
        self.refresh_volume()

        self._update_voice(now)
        return True

    def stop_voice(self) -> None:
        self._stop_voice_source()
        self._voice_sound = None
        self._voice_start = None
        if self._duck_until is not None:
            self._duck_until = None
            self.refresh_volume()

    def _stop_voice_source(self) -> None:
        if self.voice is not None:
            self.voice.stop()
            self.voice = None

    def _update_voice(self, now: float) -> None:
        if self._voice_start is not None and now >= self._voice_start:
            self.voice = self.backend.play_voice(self._voice_sound, self.levels.voice_gain(self._voice_volume))
            self._voice_start = None
            self._voice_sound = None

        if self._duck_until is not None and now >= self._duck_until:
            self._duck_until = None
            self.voice = None
            self.refresh_volume()
