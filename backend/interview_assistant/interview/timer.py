from __future__ import annotations

from typing import Callable


class CountdownTimer:
    """
    Per-question countdown driven by explicit ticks.
    Ticking is cooperative: whoever owns the timer calls tick() once per interval.
    """

    def __init__(self, question_id: str, time_limit: int, on_expire: Callable[[str], None] | None = None):
        self.question_id = question_id
        self.time_limit = max(0, int(time_limit))
        self.time_remaining = self.time_limit
        self.is_active = self.time_limit > 0
        self.expired = False
        self.cancelled = False
        self._on_expire = on_expire

    @property
    def elapsed(self) -> int:
        return self.time_limit - self.time_remaining

    def tick(self) -> int:
        if not self.is_active:
            return self.time_remaining

        self.time_remaining = max(0, self.time_remaining - 1)
        if self.time_remaining == 0:
            self.is_active = False
            self.expired = True
            if self._on_expire is not None:
                self._on_expire(self.question_id)
        return self.time_remaining

    def pause(self) -> None:
        self.is_active = False

    def resume(self) -> None:
        if self.expired or self.cancelled:
            return
        self.is_active = self.time_remaining > 0

    def cancel(self) -> None:
        self.is_active = False
        self.cancelled = True

    def to_dict(self) -> dict:
        return {
            "is_active": self.is_active,
            "time_remaining": self.time_remaining,
            "question_id": self.question_id,
        }
