"""
Per-request time budget, checked before each blocking call
(password verification, storage round-trips).
"""
from __future__ import annotations

import time


class DeadlineExceeded(Exception):
    def __init__(self, stage: str):
        super().__init__(f"deadline exceeded before {stage}")
        self.stage = stage


class Deadline:
    def __init__(self, seconds: float, clock=time.monotonic):
        self._clock = clock
        self._expires = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires - self._clock())

    def check(self, stage: str) -> None:
        if self._clock() >= self._expires:
            raise DeadlineExceeded(stage)
