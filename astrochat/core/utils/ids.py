from __future__ import annotations

import os
import secrets
import string
import time

FRIEND_CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def uuid7() -> str:
    """Time-ordered UUIDv7 as canonical string; used for document ids."""
    msec = int(time.time_ns() // 1_000_000)
    if msec >= (1 << 48):
        raise OverflowError("timestamp too large for UUIDv7")
    rnd = bytearray(os.urandom(10))
    b = bytearray(16)
    b[0:6] = msec.to_bytes(6, "big")
    b[6] = 0x70 | (rnd[0] & 0x0F)  # version 7
    b[7] = rnd[1]
    b[8] = 0x80 | (rnd[2] & 0x3F)  # variant RFC 4122
    b[9:16] = rnd[3:10]
    hexs = b.hex()
    return f"{hexs[0:8]}-{hexs[8:12]}-{hexs[12:16]}-{hexs[16:20]}-{hexs[20:32]}"


def friend_code(length: int = 8) -> str:
    """Human-shareable contact code, e.g. ``#aZ3k9QwE``."""
    return "#" + "".join(secrets.choice(FRIEND_CODE_ALPHABET) for _ in range(length))


__all__ = ["FRIEND_CODE_ALPHABET", "friend_code", "uuid7"]
