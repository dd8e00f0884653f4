from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FrozenClock:
    """Manually advanced clock for tests and maintenance scripts."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or utc_now()

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> datetime:
        self.current = self.current + delta
        return self.current


__all__ = ["Clock", "FrozenClock", "utc_now"]
