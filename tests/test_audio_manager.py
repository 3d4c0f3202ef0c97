"""Tests for AudioManager, the gain model and the mixer channel wrapper, using a fake backend."""
from __future__ import annotations

import logging
import random

import pygame
import pytest

from knockoff_arcade import events
from knockoff_arcade.audio.backend import PlayingSource, pan_volumes
from knockoff_arcade.audio.levels import MixLevels, clamp_volume
from knockoff_arcade.audio.manager import AudioManager, event_pan
from knockoff_arcade.audio.sounds import SOUNDS
from knockoff_arcade.events import EventBus
from knockoff_arcade.theme import WESTERN

from conftest import FakeBackend


@pytest.fixture
def audio(backend: FakeBackend, noise_rng) -> AudioManager:
    return AudioManager(backend, rng=random.Random(3), noise_rng=noise_rng)


class TestLevels:
    def test_mute_keeps_stored_master(self) -> None:
        levels = MixLevels(master=0.6)
        levels.muted = True

        assert levels.master_gain == 0.0
        assert levels.master == 0.6

    def test_music_gain(self) -> None:
        levels = MixLevels(master=0.5, music=0.3, music_ducked=0.01)

        assert levels.music_gain() == pytest.approx(0.15)
        assert levels.music_gain(ducked=True) == pytest.approx(0.005)

    def test_voice_gain_is_clamped(self) -> None:
        levels = MixLevels(master=1.0, voice=1.5)

        assert levels.voice_gain(0.8) == 1.0
        assert levels.voice_gain(0.5) == pytest.approx(0.75)

    def test_sfx_volume(self) -> None:
        assert MixLevels(sfx=0.5).sfx_volume(0.8) == pytest.approx(0.4)

    @pytest.mark.parametrize("value, expected", [(-1, 0.0), (0.3, 0.3), (7, 1.0)])
    def test_clamp(self, value: float, expected: float) -> None:
        assert clamp_volume(value) == expected


class TestPanning:
    def test_pan_volumes(self) -> None:
        assert pan_volumes(0.0) == (1.0, 0.0)
        assert pan_volumes(0.5) == (0.5, 0.5)
        assert pan_volumes(3.0) == (0.0, 1.0)

    def test_event_pan(self) -> None:
        assert event_pan({"x": 200, "width": 800}) == 0.25
        assert event_pan({"x": 900, "width": 800}) == 1.0
        assert event_pan({}) == 0.5
        assert event_pan({"x": 10, "width": 0}) == 0.5


class TestGating:
    def test_silent_until_user_interaction(self, audio: AudioManager, backend: FakeBackend) -> None:
        assert audio.play_sound("paddle_hit") is None
        assert backend.open_calls == 0
        assert backend.played == []

    def test_interaction_opens_the_device_once(self, audio: AudioManager, backend: FakeBackend) -> None:
        assert audio.notice_user_interaction()
        assert audio.notice_user_interaction()

        assert backend.open_calls == 1
        assert audio.play_sound("paddle_hit") is not None

    def test_unavailable_audio_degrades_quietly(self, caplog: pytest.LogCaptureFixture) -> None:
        backend = FakeBackend(fail_open=True)
        audio = AudioManager(backend)

        with caplog.at_level(logging.WARNING, logger="knockoff_arcade.audio.manager"):
            assert not audio.notice_user_interaction()
            assert not audio.notice_user_interaction()

        assert backend.open_calls == 1
        assert audio.unavailable
        assert audio.play_sound("paddle_hit") is None
        assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1

    def test_music_does_not_start_without_audio(self, audio: AudioManager, backend: FakeBackend) -> None:
        audio.start_music(["a.wav"], now=0.0)

        assert backend.music == []


class TestPlayback:
    def test_sound_plays_at_master_gain(self, audio: AudioManager, backend: FakeBackend) -> None:
        audio.notice_user_interaction()
        source = audio.play_sound("brick_break_1", pan=0.2)

        assert source.stereo == 0.2
        assert source.volume == audio.levels.master
        assert len(source.sound.samples) == int(round(SOUNDS["brick_break_1"].duration * backend.sample_rate))

    def test_unknown_sound(self, audio: AudioManager, caplog: pytest.LogCaptureFixture) -> None:
        audio.notice_user_interaction()

        with caplog.at_level(logging.WARNING, logger="knockoff_arcade.audio.manager"):
            assert audio.play_sound("banjo") is None

        assert "banjo" in caplog.text

    def test_muted_plays_nothing(self, audio: AudioManager, backend: FakeBackend) -> None:
        audio.notice_user_interaction()
        audio.set_master_volume(0.4)
        assert audio.toggle_mute()

        assert audio.play_sound("paddle_hit") is None
        assert backend.played == []

        assert not audio.toggle_mute()
        assert audio.levels.master == 0.4
        assert audio.play_sound("paddle_hit").volume == 0.4

    def test_volume_setters_clamp(self, audio: AudioManager) -> None:
        audio.set_master_volume(2.0)
        audio.set_sfx_volume(-1.0)
        audio.set_music_volume(0.25)

        assert (audio.levels.master, audio.levels.sfx, audio.levels.music) == (1.0, 0.0, 0.25)

    @pytest.mark.parametrize("combo, plays", [(1, 0), (2, 0), (3, 1), (5, 1), (10, 1), (20, 1)])
    def test_combo_thresholds(self, audio: AudioManager, backend: FakeBackend, combo: int, plays: int) -> None:
        audio.notice_user_interaction()
        audio.play_combo_sound(combo)

        assert len(backend.played) == plays

    def test_close(self, audio: AudioManager, backend: FakeBackend) -> None:
        audio.notice_user_interaction()
        audio.close()

        assert backend.closed
        assert not audio.enabled


class TestEventRouting:
    def test_game_events_play_sounds(self, audio: AudioManager, backend: FakeBackend) -> None:
        bus = EventBus()
        audio.attach(bus, WESTERN.sounds)
        audio.notice_user_interaction()

        bus.publish(events.BRICK_BREAK, x=200, width=800, points=100)
        bus.publish(events.PADDLE_HIT, x=600, width=800)
        bus.publish(events.COMBO, combo=2)
        bus.publish(events.CAVITY_ENTERED, x=10, width=800)
        bus.flush()

        assert [source.stereo for source in backend.played] == [0.25, 0.75]

    def test_unsubscribe(self, audio: AudioManager, backend: FakeBackend) -> None:
        bus = EventBus()
        for undo in audio.attach(bus, WESTERN.sounds):
            undo()
        audio.notice_user_interaction()

        bus.publish(events.BALL_LOST, x=10, width=800)
        bus.flush()

        assert backend.played == []


class FakeChannel:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.stops = 0
        self.volume = None

    def stop(self) -> None:
        self.stops += 1
        if self.fail:
            raise pygame.error("mixer not initialized")

    def get_busy(self) -> bool:
        return True

    def set_volume(self, *volume: float) -> None:
        self.volume = volume


class FakeMixerSound:
    def get_length(self) -> float:
        return 1.5


class TestPlayingSource:
    def test_stop_is_idempotent(self) -> None:
        channel = FakeChannel()
        source = PlayingSource(channel, FakeMixerSound())

        source.stop()
        source.stop()

        assert channel.stops == 1
        assert source.stopped
        assert not source.is_playing()

    def test_stop_survives_a_closed_mixer(self) -> None:
        source = PlayingSource(FakeChannel(fail=True), FakeMixerSound())

        source.stop()

        assert source.stopped

    def test_volume(self) -> None:
        channel = FakeChannel()
        source = PlayingSource(channel, FakeMixerSound())

        source.set_volume(1.7)
        assert channel.volume == (1.0,)

        source.set_volume(0.2, 0.8)
        assert channel.volume == (0.2, 0.8)

        source.stop()
        source.set_volume(0.5)
        assert channel.volume == (0.2, 0.8)
        assert source.duration == 1.5
