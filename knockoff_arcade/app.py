#
# KnockoffArcade. A Wild-West spin on the classic brick-breaker game.
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
import argparse
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional, Sequence

import pygame

from knockoff_arcade import events
from knockoff_arcade.audio.backend import MixerBackend
from knockoff_arcade.audio.levels import MixLevels
from knockoff_arcade.audio.manager import AudioManager
from knockoff_arcade.audio.music import MusicPlayer
from knockoff_arcade.config import AudioLevels, GameRules, Logging, Paths
from knockoff_arcade.events import EventBus
from knockoff_arcade.highscores import HighScoreManager
from knockoff_arcade.leaderboard import FinalScore, LeaderboardClient, ScoreSubmitter
from knockoff_arcade.logging_config import setup_logging
from knockoff_arcade.render import Renderer
from knockoff_arcade.simulation import GameState, Simulation
from knockoff_arcade.theme import THEMES, get_theme

logger = logging.getLogger(__name__)

# A nominal frame at 60Hz, in milliseconds
FRAME_MS = 1000 / 60

# Longest step handed to the simulation, in frames, so a stall doesn't tunnel the ball through bricks
MAX_DT = 3.0


class StartupError(Exception):
    """The game window couldn't be opened."""


class Window():
    def __init__(self, monitor: int | None = None, resize: float = 1.0) -> None:
        """
        Open a borderless full-screen window.

        Args:
            monitor: Index of the monitor to display on (0 is primary). Out of range indices fall back to 0.
            resize: Graphics resizing (downsampling) ratio, for a more retro feel.

        Raises:
            StartupError: If there is no display, or pygame can't create the window.
        """

        try:
            desktops = pygame.display.get_desktop_sizes()
        except pygame.error as e:
            raise StartupError(f"No display available: {e}") from e
        if not desktops:
            raise StartupError("No display available")

        if monitor is None or not 0 <= monitor < len(desktops):
            monitor = 0
        self.monitor = monitor

        width, height = desktops[monitor]
        logger.info(f"Open on monitor {monitor} at {width}x{height}")
        resize = max(resize, 1.0)
        self.window_width, self.window_height = int(width / resize), int(height / resize)
        logger.debug(f"Resized resolution {self.window_width}x{self.window_height}")

        try:
            self.display = pygame.display.set_mode(
                (self.window_width, self.window_height),
                pygame.NOFRAME | pygame.SCALED | pygame.FULLSCREEN,
                display=monitor
            )
        except pygame.error as e:
            raise StartupError(f"Couldn't open the game window: {e}") from e

        # Create a surface to do all of our rendering into
        self.screen = pygame.Surface((self.window_width, self.window_height))

        self.grab_mouse(True)

    @staticmethod
    def grab_mouse(grab: bool) -> None:
        pygame.mouse.set_visible(not grab)
        pygame.event.set_grab(grab)

    def present(self, clock: pygame.time.Clock, fps: int = 60) -> float:
        """
        Show the finished frame and wait for the next one.

        Returns:
            float: Time since the previous frame, in 60Hz frames, capped at `MAX_DT`.
        """

        self.display.blit(self.screen, (0, 0))
        pygame.display.flip()
        elapsed = clock.tick(fps)
        return min(MAX_DT, elapsed / FRAME_MS)


class Session():
    """Everything one run of the game needs, wired together."""

    def __init__(self, args: argparse.Namespace, window: Window, executor: ThreadPoolExecutor) -> None:
        self.args = args
        self.window = window
        self.theme = get_theme(args.theme)

        self.bus = EventBus()
        self.sim = Simulation(
            window.window_width,
            window.window_height,
            theme=self.theme,
            bus=self.bus,
            lives=args.lives,
            ai_strength=args.ai,
        )

        levels = MixLevels(muted=args.mute)
        backend = MixerBackend()
        playlist = Paths.scan_music_dir(args.music_dir) if args.music_dir else Paths.default_playlist()
        music = MusicPlayer(backend, levels, playlist, executor=executor)
        self.audio = AudioManager(backend, levels, music=music)
        self.audio.attach(self.bus, self.theme.sounds)

        self.scores = HighScoreManager(args.scores) if args.scores else HighScoreManager()
        self.leaderboard = LeaderboardClient(args.leaderboard) if args.leaderboard else None
        self.submitter = ScoreSubmitter(self.scores, self.leaderboard, executor)
        self.bus.subscribe(events.GAME_OVER, self._on_game_over)

        self.renderer = Renderer(window.screen, self.theme)
        self.clock = pygame.time.Clock()
        self.result_message: str | None = None

    def _on_game_over(self, name: str, data: dict[str, Any]) -> None:
        result = self.submitter.record(self.args.player, data["score"], data["level"], {"theme": self.theme.name})
        self._show_result(result)
        self.window.grab_mouse(False)

    def _show_result(self, result: FinalScore) -> None:
        self.result_message = result.message
        if result.local_rank > 0:
            self.result_message = f"#{result.local_rank} on the local table. {result.message}"

    def poll_leaderboard(self) -> None:
        # The reply is only worth showing while the game over screen is still up
        result = self.submitter.poll()
        if result is not None and self.sim.state is GameState.GAME_OVER:
            self._show_result(result)

    def user_interaction(self) -> None:
        # Audio can only start once the player has done something
        if not self.audio.enabled and self.audio.notice_user_interaction():
            self.audio.start_music()

    def status(self) -> str:
        if self.audio.levels.muted:
            return "Muted"
        info = self.audio.music.track_info()
        if not self.audio.enabled or info["name"] is None:
            return ""
        paused = " (paused)" if info["paused"] else ""
        return f"{info['index'] + 1}/{info['count']}  {info['name']}{paused}"

    def start_game(self) -> None:
        self.result_message = None
        self.sim.start()
        self.window.grab_mouse(True)
        self.audio.play_sound("menu_confirm")
        if os.path.exists(Paths.welcome_voice):
            self.audio.play_voice(Paths.welcome_voice)


def splash_screen(session: Session, text: str, seconds: float = 3.0) -> bool:
    """
    Show a short splash with centred text over the backdrop.

    Returns:
        bool: True if the user quits (window close, Q, or Escape). False if the splash completes or the user
              continues with any other key or a mouse click.
    """

    renderer = session.renderer
    finish = time.time() + seconds
    alpha = 2
    while time.time() < finish:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return True
            elif event.type == pygame.KEYDOWN:
                session.user_interaction()
                return event.key in (pygame.K_q, pygame.K_ESCAPE)
            elif event.type == pygame.MOUSEBUTTONDOWN:
                session.user_interaction()
                return False

        session.window.screen.blit(renderer.background, (0, 0))
        renderer.text_at(session.window.screen, text, session.theme.title_colour, renderer.width / 2,
                         renderer.height / 2, 110, alpha=alpha, italic=True, bold=True)
        alpha = min(224, alpha + 4)
        session.window.present(session.clock)

    return False


def high_score_screen(session: Session) -> bool:
    """Show the local high score table until a key is pressed. Returns True if the user quits."""

    rows = session.scores.generate_displayable_list()
    while True:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return True
            elif event.type == pygame.KEYDOWN:
                return event.key == pygame.K_q
            elif event.type == pygame.MOUSEBUTTONDOWN:
                return False

        session.renderer.draw_high_scores(rows)
        session.audio.update()
        session.window.present(session.clock)


def error_screen(window: Window, theme_name: str, text: str) -> None:
    """Show a fatal error until the user presses a key or closes the window."""

    window.grab_mouse(False)
    renderer = Renderer(window.screen, get_theme(theme_name))
    clock = pygame.time.Clock()
    while True:
        for event in pygame.event.get():
            if event.type in (pygame.QUIT, pygame.KEYDOWN, pygame.MOUSEBUTTONDOWN):
                return

        renderer.draw_error(text)
        window.present(clock, fps=30)


def handle_key(session: Session, key: int) -> bool:
    """
    React to a key press.

    Returns:
        bool: True if the user wants to quit.
    """

    sim = session.sim
    audio = session.audio

    if key in (pygame.K_q, pygame.K_ESCAPE):
        return True
    elif key == pygame.K_m:
        muted = audio.toggle_mute()
        logger.info("Muted" if muted else "Unmuted")
    elif key == pygame.K_n and audio.enabled:
        audio.music.skip()
    elif key == pygame.K_b and audio.enabled:
        audio.music.previous()
    elif key == pygame.K_h and sim.state is not GameState.PLAYING:
        audio.play_sound("menu_select")
        return high_score_screen(session)
    elif key in (pygame.K_p, pygame.K_SPACE) and sim.state in (GameState.PLAYING, GameState.PAUSED):
        sim.toggle_pause()
        session.window.grab_mouse(sim.state is GameState.PLAYING)
    elif sim.state in (GameState.START, GameState.GAME_OVER):
        session.start_game()

    return False


def game_loop(session: Session) -> bool:
    """
    Run the game until the user quits.

    Returns:
        bool: True once the user has asked to quit.

    Behaviour:
        Each frame reads input, advances the simulation by the measured frame time, delivers the frame's events
        to the audio and score keeping, and draws a snapshot.
    """

    sim = session.sim
    dt = 1.0

    while True:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return True

            elif event.type == pygame.KEYDOWN:
                session.user_interaction()
                if handle_key(session, event.key):
                    return True

            elif event.type == pygame.MOUSEMOTION:
                sim.move_paddle_to(event.pos[0])

            elif event.type == pygame.MOUSEBUTTONDOWN:
                session.user_interaction()
                if event.button == 1 and sim.state in (GameState.START, GameState.GAME_OVER):
                    session.start_game()

        keys = pygame.key.get_pressed()
        sim.set_keys(keys[pygame.K_LEFT] or keys[pygame.K_a], keys[pygame.K_RIGHT] or keys[pygame.K_d])

        now = time.time()
        sim.update(dt, now)
        session.bus.flush()
        session.audio.update(now)
        session.poll_leaderboard()

        session.renderer.draw(sim.snapshot(now), session.status(), session.result_message)
        dt = session.window.present(session.clock)


def run(args: argparse.Namespace) -> int:
    """Open the window, play until the user quits, and tidy up."""

    window = Window(monitor=args.monitor, resize=args.resize)
    pygame.display.set_caption(get_theme(args.theme).title)

    # One worker for music decoding, one for leaderboard posts
    executor = ThreadPoolExecutor(max_workers=2)
    try:
        try:
            session = Session(args, window, executor)
        except (pygame.error, OSError) as e:
            # The window is up, so the player can be told what went wrong
            logger.error(f"Startup failed: {e}")
            error_screen(window, args.theme, str(e))
            return 1

        try:
            if not splash_screen(session, session.theme.title):
                game_loop(session)
        finally:
            session.audio.close()
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="KnockoffArcade. A Wild-West spin on the classic brick-breaker game."
    )
    parser.add_argument("--resize", "-r", type=float, default=1.0,
                        help="Ratio for down-sizing the graphics for a more retro feel. Default: 1.0")
    parser.add_argument("--monitor", "-m", type=int,
                        help="Index of the monitor to display on (0 is primary).")
    parser.add_argument("--theme", choices=sorted(THEMES), default="western",
                        help="Colour and sound theme. Default: western")
    parser.add_argument("--ai", type=float, metavar="STRENGTH",
                        help="Let the paddle steer itself, 0.0 (barely) to 1.0 (perfectly).")
    parser.add_argument("--lives", type=int, default=GameRules.INITIAL_LIVES,
                        help=f"Lives at the start of each game. Default: {GameRules.INITIAL_LIVES}")
    parser.add_argument("--mute", action="store_true",
                        help="Start with the sound muted.")
    parser.add_argument("--music-dir",
                        help="Play the audio files in this directory instead of the bundled soundtrack.")
    parser.add_argument("--scores", metavar="FILE",
                        help=f"High score file. Default: {Paths.scores_file}")
    parser.add_argument("--player", metavar="NAME", default="Stranger",
                        help="Name recorded with your scores. Default: Stranger")
    parser.add_argument("--leaderboard", metavar="URL",
                        help="Base URL of an online leaderboard to post scores to.")
    parser.add_argument("--log-level", default=Logging.LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help=f"Logging verbosity. Default: {Logging.LEVEL}")
    parser.add_argument("--log-file",
                        help="Also write the log to this file.")

    args = parser.parse_args(argv)
    if args.ai is not None and not 0.0 <= args.ai <= 1.0:
        parser.error("--ai must be between 0.0 and 1.0")
    if args.lives < 1:
        parser.error("--lives must be at least 1")
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)
    logger.debug(f"Sample rate {AudioLevels.SAMPLE_RATE}Hz, theme {args.theme}")

    # Initialise pygame
    pygame.init()

    try:
        rc = run(args)
    except StartupError as e:
        # No window to show the error in
        logger.critical(f"Startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception:
        logger.exception("Unexpected error")
        return 1
    finally:
        pygame.quit()

    return rc


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
