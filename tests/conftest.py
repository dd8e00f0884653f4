from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("SKIP_DOTENV", "1")

from astrochat.container import build_services  # noqa: E402
from astrochat.core.settings import Settings  # noqa: E402
from astrochat.core.store.base import StoreError  # noqa: E402
from astrochat.core.store.memory import InMemoryDocumentStore  # noqa: E402
from astrochat.core.utils.clock import FrozenClock  # noqa: E402

STRONG_PASSWORD = "Sup3r$ecret"


class PlainHasher:
    """Fast reversible stand-in for argon2 in unit tests."""

    async def hash(self, password: str) -> str:
        return f"plain${password}"

    async def verify(self, password: str, hashed: str) -> bool:
        return hashed == f"plain${password}"

    def needs_rehash(self, hashed: str) -> bool:
        return not hashed.startswith("plain$")


class FlakyStore(InMemoryDocumentStore):
    """In-memory store that raises StoreError on every call while ``down`` is set."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise StoreError("connection refused")

    async def get(self, *args, **kwargs):
        self._check()
        return await super().get(*args, **kwargs)

    async def find_one(self, *args, **kwargs):
        self._check()
        return await super().find_one(*args, **kwargs)

    async def find_many(self, *args, **kwargs):
        self._check()
        return await super().find_many(*args, **kwargs)

    async def insert(self, *args, **kwargs):
        self._check()
        return await super().insert(*args, **kwargs)

    async def delete(self, *args, **kwargs):
        self._check()
        return await super().delete(*args, **kwargs)

    async def atomic_batch(self, *args, **kwargs):
        self._check()
        return await super().atomic_batch(*args, **kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        database_url="",
        jwt_secret_key="test-secret",
        display_timezone="UTC",
    )


@pytest.fixture
def store(clock) -> FlakyStore:
    return FlakyStore(clock=clock)


@pytest.fixture
def services(settings, store, clock):
    return build_services(settings, store=store, clock=clock, hasher=PlainHasher())


@pytest.fixture
def make_user(services):
    async def _make(name: str = "Ana", *, email: str | None = None, kind: str = "mortal"):
        user = await services.accounts.register(name, email or f"{name.lower()}@example.com", STRONG_PASSWORD)
        if kind != "mortal":
            await services.accounts.users.update(user.id, {"kind": kind})
            user = await services.accounts.users.get(user.id)
        return user

    return _make


@pytest.fixture
def befriend(services):
    async def _befriend(a, b) -> None:
        await services.contacts.send_request(a.id, b.friend_code)
        await services.contacts.accept_request(b.id, a.id)

    return _befriend


@pytest.fixture
def token_for(services):
    async def _token(user, remember_me: bool = False) -> str:
        issued = await services.authority.issue(user.id, remember_me=remember_me)
        return issued.token

    return _token
