"""Deterministic clock/sleep pair for polling tests."""

from __future__ import annotations


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is called.

    ``tick`` adds a fixed cost to every clock read, which lets tests model
    time spent inside HTTP calls.
    """

    def __init__(self, start: float = 1000.0, tick: float = 0.0) -> None:
        self.now = start
        self.tick = tick
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        self.now += self.tick
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
