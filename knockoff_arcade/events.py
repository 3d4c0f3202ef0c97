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

"""Queued publish/subscribe used by the simulation to announce what happened during a frame."""

from __future__ import annotations
from typing import Any, Callable

Handler = Callable[[str, dict[str, Any]], None]

# Event names published by the simulation
PADDLE_HIT = "paddle_hit"
BRICK_BREAK = "brick_break"
COMBO = "combo"
CAVITY_ENTERED = "cavity_entered"
POWER_UP_COLLECT = "power_up_collect"
BALL_LOST = "ball_lost"
LEVEL_COMPLETE = "level_complete"
GAME_OVER = "game_over"


class EventBus():
    """
    Events are queued by `publish()` and only delivered by `flush()`, so handlers never run in the middle of a
    simulation step.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = {}
        self._queue: list[tuple[str, dict[str, Any]]] = []

    def subscribe(self, name: str, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for an event name.

        Returns:
            A callable that unsubscribes the handler again.
        """

        self._subscribers.setdefault(name, []).append(handler)
        return lambda: self.unsubscribe(name, handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, **data: Any) -> None:
        self._queue.append((name, data))

    def pending(self) -> list[tuple[str, dict[str, Any]]]:
        return list(self._queue)

    def flush(self) -> int:
        """
        Deliver every queued event, in order.

        Returns:
            int: Number of events delivered.

        Notes:
            Events published by handlers during the flush are kept for the next flush.
        """

        snapshot, self._queue = self._queue, []
        for name, data in snapshot:
            for handler in list(self._subscribers.get(name, ())):
                handler(name, data)
        return len(snapshot)

    def clear(self) -> None:
        self._queue.clear()
