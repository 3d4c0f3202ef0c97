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

"""Game-wide constants, grouped by concern.

Distances are in pixels at the 800px reference size (the simulation multiplies them by `min(width, height) / 800`),
velocities in pixels per 60Hz frame, and durations in seconds.
"""

from __future__ import annotations
import os
import sys


class Canvas():
    # Playfield size used when no window size is given
    DEFAULT_WIDTH = 800
    DEFAULT_HEIGHT = 600

    # All layout scales from this reference dimension
    REFERENCE_SIZE = 800


class Physics():
    BALL_RADIUS = 8

    # Speed at which the ball's energy level reads 1.0
    BALL_SPEED = 3

    # Launch speed (per axis) of a freshly served ball
    SERVE_SPEED = 2

    PADDLE_WIDTH = 100
    PADDLE_HEIGHT = 15
    PADDLE_SPEED = 8

    # Distance of the paddle's top edge from the bottom of the playfield
    PADDLE_OFFSET = 50

    # Horizontal speed given to a ball hitting the very edge of the paddle
    PADDLE_BOUNCE_SPEED = 5

    # Paddle positional error (pixels) the AI assist tolerates before moving
    AI_DEADBAND = 2

    BRICK_WIDTH = 75
    BRICK_HEIGHT = 20
    BRICK_PADDING = 5
    BRICK_ROWS = 8

    # Gap between the top of the playfield and the first row of bricks (the cavity)
    BRICK_TOP_OFFSET = 100

    MAX_BALLS = 5


class PowerUps():
    # Chance of a destroyed brick dropping a pickup
    DROP_CHANCE = 0.3

    # Default effect duration in seconds
    DURATION = 10.0

    # Pickups fall at this many pixels per frame
    FALL_SPEED = 2

    PICKUP_SIZE = 20

    # Never more than this many pickups falling at once
    MAX_FALLING = 3

    WIDE_PADDLE_FACTOR = 1.5
    FAST_BALL_FACTOR = 1.5
    SLOW_BALL_FACTOR = 0.5
    MAGNETIC_RANGE = 100
    MAGNETIC_STRENGTH = 2


class Scoring():
    BRICK_BASE = 100
    LEVEL_BONUS_MULTIPLIER = 1000
    POWERUP_BONUS = 250
    MAX_MULTIPLIER = 5

    # The multiplier only starts climbing once the combo exceeds this
    COMBO_THRESHOLD = 5

    # Combo counts that trigger the "yeehaw" sounds
    COMBO_SOUND_STEPS = (3, 5, 10)


class Cavity():
    ENTRY_BONUS = 50
    SPEED_BOOST = 1.8
    GRACE_SECONDS = 5.0

    # Hits made from the cavity (or during its grace period) score this many times the base
    SCORE_FACTOR = 2


class Effects():
    PARTICLE_COUNT = 10
    PIERCE_PARTICLE_COUNT = 15
    CAVITY_PARTICLE_COUNT = 20
    PICKUP_PARTICLE_COUNT = 15
    PARTICLE_SPEED = 8
    PARTICLE_LIFE = 1.0

    # Trail points are laid down at most this often, and fade out over TRAIL_FADE
    TRAIL_LENGTH = 5
    TRAIL_INTERVAL = 0.016
    TRAIL_FADE = 0.5

    # Energy level is capped at this multiple of the base ball speed
    MAX_ENERGY = 2.0


class GameRules():
    INITIAL_LIVES = 3

    # Reserved: read by nothing yet
    BOSS_INTERVAL = 5
    DIFFICULTY_SCALING = 1.1


class AudioLevels():
    SAMPLE_RATE = 44100
    MASTER_VOLUME = 0.7
    SFX_VOLUME = 0.8
    MUSIC_VOLUME = 0.3

    # Music level (times master) while a voice clip is playing
    MUSIC_VOLUME_DUCKED = 0.01
    VOICE_VOLUME = 1.5

    FIRST_TRACK_FADE_SECONDS = 3.0
    TRACK_GAP_SECONDS = 2.0
    TRACK_RETRY_SECONDS = 3.0


class Paths():
    # Modify file paths if running as a PyInstaller bundle
    base_path = sys._MEIPASS if hasattr(sys, '_MEIPASS') else os.path.abspath(".")

    assets_path = os.path.join(base_path, "assets")
    sounds_path = os.path.join(assets_path, "sounds")
    icons_path = os.path.join(assets_path, "icons")

    # Narration played as a new game starts, if present
    welcome_voice = os.path.join(sounds_path, "voice", "welcome.wav")

    # Background tracks, played in this order
    music_files = (
        "harmonica 1 tunes - bar 141 - Eitan Epstein Music - main.wav",
        "The Western short version.wav",
        "Western.mp3",
        "Western (Full Version).mp3",
        os.path.join("Country Western", "Country Western 01.mp3"),
        os.path.join("Country", "Country.mp3"),
        "Country Ways.mp3",
        "Lady Fortune.mp3",
        "Traveling Through.mp3",
        "CountryHoedown_96_JHungerX.wav",
        "Funny Country.wav",
        "Uplifting Country 2.wav",
        "acd c tunes 02a - bar 1225 - eitan-ep - main.wav",
    )

    # File extensions picked up when a music directory is scanned
    music_extensions = (".wav", ".mp3", ".ogg", ".flac")

    # Local high score table
    scores_file = os.path.join(os.path.expanduser("~"), ".knockoffarcade_scores.json")

    @classmethod
    def default_playlist(cls) -> list[str]:
        return [os.path.join(cls.sounds_path, name) for name in cls.music_files]

    @classmethod
    def scan_music_dir(cls, path: str) -> list[str]:
        """
        List the playable audio files in a directory, sorted by name.

        Args:
            path: Directory to scan (not recursive).

        Returns:
            list[str]: Full paths of files whose extension is in `music_extensions`.
        """

        names = sorted(os.listdir(path))
        return [os.path.join(path, n) for n in names if os.path.splitext(n)[1].lower() in cls.music_extensions]


class Logging():
    LEVEL = "INFO"
    FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

    # Rotating log file limits
    MAX_BYTES = 1048576
    BACKUP_COUNT = 3
