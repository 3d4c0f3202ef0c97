"""Tests for the leaderboard client. urlopen is replaced so nothing leaves the machine."""
from __future__ import annotations

import io
import json
import logging
import urllib.error
import urllib.request

import pytest

from knockoff_arcade.highscores import HighScoreManager
from knockoff_arcade.leaderboard import LeaderboardClient, LeaderboardError, ScoreSubmitter, record_final_score

from conftest import FakeExecutor

BASE_URL = "http://scores.example/"


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc) -> None:
        return None


class FakeServer:
    """Stands in for urlopen: records each request and answers with a canned reply or error."""

    def __init__(self, reply: object = None, error: Exception | None = None, raw: bytes | None = None) -> None:
        self.reply = reply
        self.error = error
        self.raw = raw
        self.requests: list[urllib.request.Request] = []

    def __call__(self, req: urllib.request.Request, timeout: float | None = None) -> FakeResponse:
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        if self.raw is not None:
            return FakeResponse(self.raw)
        return FakeResponse(json.dumps(self.reply).encode("utf-8"))


@pytest.fixture
def client() -> LeaderboardClient:
    return LeaderboardClient(BASE_URL)


def serve(monkeypatch: pytest.MonkeyPatch, **kwargs) -> FakeServer:
    server = FakeServer(**kwargs)
    monkeypatch.setattr(urllib.request, "urlopen", server)
    return server


class TestFetchTop:
    def test_rows_are_parsed(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        server = serve(monkeypatch, reply={"success": True, "data": [
            {"rank": 1, "player_name": "Tex", "score": 9000, "level": 4, "created_at": "2025-03-01"},
            {"rank": 2, "player_name": "Slim", "score": 800, "level": 1},
        ]})

        entries = client.fetch_top(10)

        assert server.requests[0].full_url == "http://scores.example/api/v1/leaderboard?limit=10"
        assert server.requests[0].get_method() == "GET"
        assert [(e.rank, e.name, e.score) for e in entries] == [(1, "Tex", 9000), (2, "Slim", 800)]
        assert entries[1].date == ""

    @pytest.mark.parametrize("limit, sent", [(500, 100), (0, 1), (-3, 1), (50, 50)])
    def test_limit_is_clamped(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch,
                              limit: int, sent: int) -> None:
        server = serve(monkeypatch, reply={"success": True, "data": []})

        client.fetch_top(limit)

        assert server.requests[0].full_url.endswith(f"?limit={sent}")

    def test_bad_row(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        serve(monkeypatch, reply={"success": True, "data": [{"rank": 1}]})

        with pytest.raises(LeaderboardError):
            client.fetch_top()


class TestErrors:
    def test_rate_limited(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        error = urllib.error.HTTPError(BASE_URL, 429, "Too Many Requests", {},
                                       io.BytesIO(b'{"success": false, "error": "Slow down, partner"}'))
        serve(monkeypatch, error=error)

        with pytest.raises(LeaderboardError) as excinfo:
            client.fetch_top()

        assert excinfo.value.status == 429
        assert "Slow down, partner" in str(excinfo.value)

    def test_unreachable(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        serve(monkeypatch, error=urllib.error.URLError("connection refused"))

        with pytest.raises(LeaderboardError) as excinfo:
            client.fetch_top()

        assert excinfo.value.status is None

    def test_not_json(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        serve(monkeypatch, raw=b"<html>oops</html>")

        with pytest.raises(LeaderboardError, match="malformed"):
            client.fetch_top()

    def test_rejected(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        serve(monkeypatch, reply={"success": False, "error": "Invalid score"})

        with pytest.raises(LeaderboardError, match="Invalid score"):
            client.submit_score("Tex", 100, 1)


class TestSubmit:
    def test_payload_and_reply(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        server = serve(monkeypatch, reply={"success": True,
                                           "data": {"scoreId": 17, "rank": 3, "isNewRecord": True}})

        result = client.submit_score("Tex", 9000, 4, {"theme": "western"})

        req = server.requests[0]
        assert req.get_method() == "POST"
        assert req.full_url == "http://scores.example/api/v1/leaderboard"
        assert json.loads(req.data) == {"playerName": "Tex", "score": 9000, "level": 4,
                                        "gameData": {"theme": "western"}}
        assert (result.score_id, result.rank, result.is_new_record) == (17, 3, True)

    def test_game_data_is_optional(self, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        server = serve(monkeypatch, reply={"success": True,
                                           "data": {"scoreId": 1, "rank": 1, "isNewRecord": False}})

        client.submit_score("Tex", 9000, 4)

        assert "gameData" not in json.loads(server.requests[0].data)


class TestRecordFinalScore:
    def test_local_and_remote(self, tmp_path, client: LeaderboardClient, monkeypatch: pytest.MonkeyPatch) -> None:
        serve(monkeypatch, reply={"success": True, "data": {"scoreId": 5, "rank": 12, "isNewRecord": True}})
        scores = HighScoreManager(str(tmp_path / "scores.json"))

        final = record_final_score(scores, client, "Tex", 60000, 11)

        assert final.local_rank == 1
        assert final.message == "Posted to the leaderboard at #12"

    def test_leaderboard_failure_keeps_the_local_score(self, tmp_path, client: LeaderboardClient,
                                                       monkeypatch: pytest.MonkeyPatch,
                                                       caplog: pytest.LogCaptureFixture) -> None:
        serve(monkeypatch, error=urllib.error.URLError("no route to host"))
        scores = HighScoreManager(str(tmp_path / "scores.json"))

        with caplog.at_level(logging.WARNING, logger="knockoff_arcade.leaderboard"):
            final = record_final_score(scores, client, "Tex", 60000, 11)

        assert final.local_rank == 1
        assert final.remote is None
        assert final.message == "Score recorded locally"
        assert "kept locally" in caplog.text

    def test_without_a_leaderboard(self, tmp_path) -> None:
        scores = HighScoreManager(str(tmp_path / "scores.json"))

        final = record_final_score(scores, None, "Greenhorn", 100, 1)

        assert final.local_rank == -1
        assert final.remote is None


class TestScoreSubmitter:
    REPLY = {"success": True, "data": {"scoreId": 5, "rank": 12, "isNewRecord": True}}

    def test_records_locally_without_waiting_for_the_network(self, tmp_path, client: LeaderboardClient,
                                                              executor: FakeExecutor,
                                                              monkeypatch: pytest.MonkeyPatch) -> None:
        server = serve(monkeypatch, reply=self.REPLY)
        submitter = ScoreSubmitter(HighScoreManager(str(tmp_path / "scores.json")), client, executor)

        result = submitter.record("Tex", 60000, 11, {"theme": "western"})

        assert result.local_rank == 1
        assert result.posting
        assert result.message == "Posting to the leaderboard..."
        assert server.requests == []
        assert submitter.poll() is None

        executor.run_all()
        final = submitter.poll()

        assert len(server.requests) == 1
        assert final.local_rank == 1
        assert final.remote.rank == 12
        assert final.message == "Posted to the leaderboard at #12"
        assert not submitter.posting
        assert submitter.poll() is None

    def test_failed_post_falls_back_to_local(self, tmp_path, client: LeaderboardClient, executor: FakeExecutor,
                                             monkeypatch: pytest.MonkeyPatch,
                                             caplog: pytest.LogCaptureFixture) -> None:
        serve(monkeypatch, error=urllib.error.URLError("no route to host"))
        submitter = ScoreSubmitter(HighScoreManager(str(tmp_path / "scores.json")), client, executor)
        submitter.record("Tex", 60000, 11)

        executor.run_all()
        with caplog.at_level(logging.WARNING, logger="knockoff_arcade.leaderboard"):
            final = submitter.poll()

        assert final.local_rank == 1
        assert final.remote is None
        assert final.message == "Score recorded locally"
        assert "kept locally" in caplog.text

    def test_without_a_leaderboard(self, tmp_path, executor: FakeExecutor) -> None:
        submitter = ScoreSubmitter(HighScoreManager(str(tmp_path / "scores.json")), None, executor)

        result = submitter.record("Greenhorn", 100, 1)

        assert result.local_rank == -1
        assert not result.posting
        assert executor.jobs == []
        assert submitter.poll() is None

    def test_newer_game_replaces_an_outstanding_post(self, tmp_path, client: LeaderboardClient,
                                                      executor: FakeExecutor,
                                                      monkeypatch: pytest.MonkeyPatch) -> None:
        server = serve(monkeypatch, reply=self.REPLY)
        submitter = ScoreSubmitter(HighScoreManager(str(tmp_path / "scores.json")), client, executor)
        submitter.record("Tex", 60000, 11)
        submitter.record("Slim", 45000, 9)

        assert executor.jobs[0][0].cancelled()

        executor.run_all()
        final = submitter.poll()

        assert len(server.requests) == 1
        assert json.loads(server.requests[0].data)["playerName"] == "Slim"
        assert final.local_rank == 3
