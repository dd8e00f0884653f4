from __future__ import annotations

from argon2 import PasswordHasher as Argon2Lib

from astrochat.core.security.password_hasher import Argon2Hasher


def _cheap(**overrides) -> Argon2Lib:
    params = {"time_cost": 1, "memory_cost": 8, "parallelism": 1}
    params.update(overrides)
    return Argon2Lib(**params)


async def test_hash_and_verify():
    hasher = Argon2Hasher(_cheap())
    hashed = await hasher.hash("Sup3r$ecret")

    assert hashed.startswith("$argon2")
    assert await hasher.verify("Sup3r$ecret", hashed) is True
    assert await hasher.verify("wrong", hashed) is False


async def test_foreign_hash_is_a_mismatch():
    hasher = Argon2Hasher(_cheap())
    bcrypt_hash = "$2b$10$abcdefghijklmnopqrstuuQ1fIuJ0cE8b2lX8H0KZ1o5r5Qk9yW6"

    assert await hasher.verify("Sup3r$ecret", bcrypt_hash) is False
    assert hasher.needs_rehash(bcrypt_hash) is True


async def test_needs_rehash_after_parameter_change():
    old = Argon2Hasher(_cheap())
    hashed = await old.hash("Sup3r$ecret")

    assert old.needs_rehash(hashed) is False
    assert Argon2Hasher(_cheap(time_cost=2)).needs_rehash(hashed) is True
