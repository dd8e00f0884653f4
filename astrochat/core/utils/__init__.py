from .clock import Clock, FrozenClock, utc_now
from .ids import friend_code, uuid7

__all__ = ["Clock", "FrozenClock", "friend_code", "utc_now", "uuid7"]
