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

"""Client for the online leaderboard service. Scores are always kept locally too, so the service is optional."""

from __future__ import annotations
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from typing import Any

from knockoff_arcade.highscores import HighScoreManager

logger = logging.getLogger(__name__)


class LeaderboardError(Exception):
    """The leaderboard service couldn't be reached or refused the request."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    score: int
    level: int
    date: str


@dataclass(frozen=True)
class SubmissionResult:
    score_id: int
    rank: int
    is_new_record: bool


class LeaderboardClient():
    # The service clamps the page size to this range
    min_limit = 1
    max_limit = 100

    def __init__(self, base_url: str, timeout: float = 5.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        """
        Make one API call and unwrap the service's `{"success": ..., "data": ...}` envelope.

        Raises:
            LeaderboardError: On network failure, an HTTP error status (the 429 rate limit included), a reply that
                isn't JSON, or a reply with `success` false.
        """

        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(
            f"{self._base_url}{path}",
            data=data,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            method=method,
        )

        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                body = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            raise LeaderboardError(f"{method} {path} failed with HTTP {e.code}: {_error_text(e)}", e.code) from e
        except OSError as e:
            raise LeaderboardError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise LeaderboardError(f"{method} {path} returned a malformed reply: {e}") from e

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise LeaderboardError(f"{method} {path} was rejected: {error or 'no reason given'}")
        return body.get("data")

    def fetch_top(self, limit: int = 50) -> list[LeaderboardEntry]:
        """
        Fetch the best scores.

        Args:
            limit: Number of entries wanted; clamped to 1..100.

        Returns:
            list[LeaderboardEntry]: Best first.

        Raises:
            LeaderboardError: If the service can't be reached or replies with an error.
        """

        limit = max(LeaderboardClient.min_limit, min(LeaderboardClient.max_limit, limit))
        rows = self._request("GET", f"/api/v1/leaderboard?{urllib.parse.urlencode({'limit': limit})}")

        try:
            return [
                LeaderboardEntry(
                    rank=int(row["rank"]),
                    name=str(row["player_name"]),
                    score=int(row["score"]),
                    level=int(row["level"]),
                    date=str(row.get("created_at", "")),
                )
                for row in rows or []
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise LeaderboardError(f"Unexpected leaderboard row: {e}") from e

    def submit_score(self, name: str, score: int, level: int, game_data: dict[str, Any] | None = None
                     ) -> SubmissionResult:
        """
        Post a finished game.

        Args:
            name: Player name.
            score: Final score.
            level: Level reached.
            game_data: Optional extra details stored alongside the score.

        Returns:
            SubmissionResult: The id, overall rank, and whether it's the player's best.

        Raises:
            LeaderboardError: If the service can't be reached, rate-limits the player, or rejects the score.
        """

        payload: dict[str, Any] = {"playerName": name, "score": score, "level": level}
        if game_data is not None:
            payload["gameData"] = game_data

        data = self._request("POST", "/api/v1/leaderboard", payload)
        try:
            return SubmissionResult(
                score_id=int(data["scoreId"]),
                rank=int(data["rank"]),
                is_new_record=bool(data["isNewRecord"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise LeaderboardError(f"Unexpected submission reply: {e}") from e


def _error_text(error: urllib.error.HTTPError) -> str:
    try:
        return json.loads(error.read().decode("utf-8")).get("error", error.reason)
    except (OSError, ValueError, AttributeError):
        return str(error.reason)


@dataclass(frozen=True)
class FinalScore:
    local_rank: int
    remote: SubmissionResult | None
    posting: bool = False

    @property
    def message(self) -> str:
        if self.remote is not None:
            return f"Posted to the leaderboard at #{self.remote.rank}"
        if self.posting:
            return "Posting to the leaderboard..."
        return "Score recorded locally"


def record_local_score(scores: HighScoreManager, name: str, score: int, level: int) -> int:
    """Add a finished game to the local table. Returns its rank, or -1 if it didn't place."""

    return scores.add_high_score(name, score, level) if scores.is_high_score(score) else -1


def record_final_score(scores: HighScoreManager, client: LeaderboardClient | None, name: str, score: int,
                       level: int, game_data: dict[str, Any] | None = None) -> FinalScore:
    """
    Store a finished game locally and, if a leaderboard is configured, post it there too.

    Returns:
        FinalScore: The local rank (-1 if it didn't make the table) and the leaderboard result, which is None if
        there is no leaderboard or the submission failed.

    Notes:
        A leaderboard failure is logged and otherwise ignored; the local table is the record of truth. This waits on
        the network, so the game itself uses `ScoreSubmitter` instead.
    """

    local_rank = record_local_score(scores, name, score, level)

    remote = None
    if client is not None:
        try:
            remote = client.submit_score(name, score, level, game_data)
        except LeaderboardError as e:
            logger.warning(f"Leaderboard submission failed, score kept locally: {e}")

    return FinalScore(local_rank, remote)


class ScoreSubmitter():
    """
    Records finished games without holding up the frame loop.

    The local table is updated straight away; the leaderboard post runs on the executor and `poll()` picks up the
    reply once it has arrived.
    """

    def __init__(self, scores: HighScoreManager, client: LeaderboardClient | None, executor: Executor) -> None:
        self.scores = scores
        self.client = client
        self.executor = executor
        self._pending: tuple[FinalScore, Future] | None = None

    @property
    def posting(self) -> bool:
        return self._pending is not None

    def record(self, name: str, score: int, level: int, game_data: dict[str, Any] | None = None) -> FinalScore:
        """
        Store a finished game locally and start posting it to the leaderboard, if there is one.

        Returns:
            FinalScore: The local result. `posting` is True while the leaderboard reply is outstanding.
        """

        local_rank = record_local_score(self.scores, name, score, level)
        if self.client is None:
            return FinalScore(local_rank, None)

        if self._pending is not None:
            self._pending[1].cancel()
        result = FinalScore(local_rank, None, posting=True)
        self._pending = (result, self.executor.submit(self.client.submit_score, name, score, level, game_data))
        return result

    def poll(self) -> FinalScore | None:
        """
        Collect the leaderboard reply without waiting for it. Call once per frame.

        Returns:
            FinalScore | None: The completed result once the post has finished (or failed), otherwise None.
        """

        if self._pending is None or not self._pending[1].done():
            return None

        result, future = self._pending
        self._pending = None
        if future.cancelled():
            return None

        try:
            remote = future.result()
        except LeaderboardError as e:
            logger.warning(f"Leaderboard submission failed, score kept locally: {e}")
            return FinalScore(result.local_rank, None)
        return FinalScore(result.local_rank, remote)
