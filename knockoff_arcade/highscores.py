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
import copy
import datetime
import json
import logging
import os
from typing import Any

from knockoff_arcade.config import Paths

logger = logging.getLogger(__name__)

STORAGE_KEY = "knockoffarcade_highscores"

# Table shown until somebody beats it
DEFAULT_SCORES = [
    {"name": "Billy the Kid", "score": 50000, "level": 10, "date": "2024-01-01"},
    {"name": "Jesse James", "score": 40000, "level": 9, "date": "2024-01-01"},
    {"name": "Wyatt Earp", "score": 30000, "level": 8, "date": "2024-01-01"},
    {"name": "Doc Holliday", "score": 25000, "level": 7, "date": "2024-01-01"},
    {"name": "Wild Bill", "score": 20000, "level": 6, "date": "2024-01-01"},
    {"name": "Calamity Jane", "score": 15000, "level": 5, "date": "2024-01-01"},
    {"name": "Buffalo Bill", "score": 10000, "level": 4, "date": "2024-01-01"},
    {"name": "Annie Oakley", "score": 7500, "level": 3, "date": "2024-01-01"},
    {"name": "Butch Cassidy", "score": 5000, "level": 3, "date": "2024-01-01"},
    {"name": "Sundance Kid", "score": 2500, "level": 2, "date": "2024-01-01"},
]


class HighScoreManager():
    max_scores = 10
    max_name_length = 20

    def __init__(self, path: str = Paths.scores_file) -> None:
        self.path = path
        self.high_scores = self._load()

    def _load(self) -> list[dict[str, Any]]:
        """
        Read the table from disk.

        Returns:
            list: The stored entries, or the default table if the file is missing, unreadable or malformed.
        """

        if not os.path.exists(self.path):
            return copy.deepcopy(DEFAULT_SCORES)

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                scores = json.load(f)[STORAGE_KEY]
            if not isinstance(scores, list):
                raise ValueError("score table is not a list")
            return [
                {"name": str(s["name"]), "score": int(s["score"]), "level": int(s["level"]), "date": s.get("date", "")}
                for s in scores
            ]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Couldn't read high scores from {self.path}, using the defaults: {e}")
            return copy.deepcopy(DEFAULT_SCORES)

    def _save(self) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({STORAGE_KEY: self.high_scores}, f, indent=2)
        except OSError as e:
            logger.error(f"Couldn't save high scores to {self.path}: {e}")

    def is_high_score(self, score: int) -> bool:
        if len(self.high_scores) < self.max_scores:
            return True
        return score > self.high_scores[-1]["score"]

    def get_rank(self, score: int) -> int:
        """
        Where a score would land in the table.

        Returns:
            int: 1-based rank, or -1 if the score wouldn't make the table. Ties rank below existing entries.
        """

        for index, entry in enumerate(self.high_scores):
            if score > entry["score"]:
                return index + 1
        if len(self.high_scores) < self.max_scores:
            return len(self.high_scores) + 1
        return -1

    def add_high_score(self, name: str, score: int, level: int) -> int:
        """
        Record a finished game and save the table.

        Args:
            name: Player name, cut to `max_name_length` characters.
            score: Final score.
            level: Level reached.

        Returns:
            int: 1-based rank achieved, or -1 if the score didn't make the table (nothing is saved then).
        """

        rank = self.get_rank(score)
        if rank < 0:
            return -1

        entry = {
            "name": name[:self.max_name_length],
            "score": score,
            "level": level,
            "date": datetime.date.today().isoformat(),
        }
        self.high_scores.insert(rank - 1, entry)
        del self.high_scores[self.max_scores:]
        self._save()

        logger.info(f"{entry['name']} placed #{rank} with {score}")
        return rank

    def get_high_scores(self) -> list[dict[str, Any]]:
        return [dict(entry) for entry in self.high_scores]

    def clear_high_scores(self) -> None:
        self.high_scores = []
        self._save()

    def generate_displayable_list(self) -> list[dict[str, Any]]:
        """Rows for the high score screen: rank, name, score (with thousands separators) and level."""

        return [
            {"rank": index + 1, "name": entry["name"], "score": f"{entry['score']:,}", "level": entry["level"]}
            for index, entry in enumerate(self.high_scores)
        ]
