"""Shared fixtures: seeded randomness, a deterministic simulation and a fake mixer backend."""

from __future__ import annotations
import random
from concurrent.futures import Future

import numpy as np
import pytest

from knockoff_arcade.audio.backend import AudioUnavailable, TrackLoadError
from knockoff_arcade.simulation import Simulation


class FakeSound:
    def __init__(self, length: float = 2.0, samples=None, path: str | None = None) -> None:
        self.length = length
        self.samples = samples
        self.path = path

    def get_length(self) -> float:
        return self.length


class FakeSource:
    def __init__(self, sound: FakeSound, volume: float, stereo: float | None = None, fade_ms: int = 0) -> None:
        self.sound = sound
        self.volume = volume
        self.stereo = stereo
        self.fade_ms = fade_ms
        self.playing = True
        self.paused = False
        self.stop_calls = 0

    def is_playing(self) -> bool:
        return self.playing

    def set_volume(self, left: float, right: float | None = None) -> None:
        self.volume = left

    def pause(self) -> None:
        self.paused = True

    def unpause(self) -> None:
        self.paused = False

    def stop(self) -> None:
        self.stop_calls += 1
        self.playing = False


class FakeBackend:
    """Records what would have been played, without an audio device."""

    def __init__(self, sample_rate: int = 8000, fail_open: bool = False, track_length: float = 2.0) -> None:
        self.sample_rate = sample_rate
        self.fail_open = fail_open
        self.track_length = track_length
        self.failing: set[str] = set()
        self.open_calls = 0
        self.closed = False
        self.played: list[FakeSource] = []
        self.music: list[FakeSource] = []
        self.voices: list[FakeSource] = []

    def open(self) -> None:
        self.open_calls += 1
        if self.fail_open:
            raise AudioUnavailable("no audio device")

    def close(self) -> None:
        self.closed = True

    def make_sound(self, samples: np.ndarray) -> FakeSound:
        return FakeSound(len(samples) / self.sample_rate, samples)

    def play(self, sound: FakeSound, stereo: float = 0.5, volume: float = 1.0) -> FakeSource:
        source = FakeSource(sound, volume, stereo)
        self.played.append(source)
        return source

    def load_track(self, path: str) -> FakeSound:
        if path in self.failing:
            raise TrackLoadError(f"Couldn't load {path}")
        return FakeSound(self.track_length, path=path)

    def play_music(self, sound: FakeSound, volume: float, fade_ms: int = 0) -> FakeSource:
        source = FakeSource(sound, volume, fade_ms=fade_ms)
        self.music.append(source)
        return source

    def play_voice(self, sound: FakeSound, volume: float) -> FakeSource:
        source = FakeSource(sound, volume)
        self.voices.append(source)
        return source

    def active_music(self) -> list[FakeSource]:
        return [source for source in self.music if source.playing]


class FakeExecutor:
    """Holds submitted jobs until the test decides to finish them."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Future, object, tuple]] = []

    def submit(self, fn, *args) -> Future:
        future: Future = Future()
        self.jobs.append((future, fn, args))
        return future

    def run_all(self) -> None:
        for future, fn, args in self.jobs:
            if future.cancelled() or future.done():
                continue
            try:
                future.set_result(fn(*args))
            except Exception as e:
                future.set_exception(e)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def noise_rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def sim(rng: random.Random) -> Simulation:
    """An 800x600 game, already started."""

    game = Simulation(800, 600, rng=rng)
    game.start()
    return game


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()
