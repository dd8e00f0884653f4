from __future__ import annotations

import pytest

from astrochat.core.errors import Conflict, EmailTaken, Unauthenticated, ValidationFailed
from astrochat.core.utils.ids import FRIEND_CODE_ALPHABET
from tests.conftest import STRONG_PASSWORD


async def test_register_creates_mortal_with_friend_code(services):
    user = await services.accounts.register(" Ana ", "Ana@Example.com", STRONG_PASSWORD)

    assert user.name == "Ana"
    assert user.email == "ana@example.com"
    assert user.kind.value == "mortal"
    assert user.friend_code[0] == "#"
    assert len(user.friend_code) == 9
    assert set(user.friend_code[1:]) <= set(FRIEND_CODE_ALPHABET)
    assert user.contacts == [] and user.pending_requests == []
    assert user.password_hash != STRONG_PASSWORD


async def test_register_rejects_taken_email(services):
    await services.accounts.register("Ana", "ana@example.com", STRONG_PASSWORD)

    with pytest.raises(EmailTaken):
        await services.accounts.register("Ana 2", "ANA@example.com", STRONG_PASSWORD)


@pytest.mark.parametrize("password", ["short1!", "nouppercase1!", "NOLOWERCASE1!", "NoDigits!!", "NoSymbol123"])
async def test_register_enforces_password_strength(services, password):
    with pytest.raises(ValidationFailed) as exc:
        await services.accounts.register("Ana", "ana@example.com", password)
    assert exc.value.code == "weak_password"


async def test_friend_code_allocation_gives_up(services, monkeypatch):
    async def _always_taken(code: str) -> bool:
        return True

    monkeypatch.setattr(services.accounts.users, "friend_code_taken", _always_taken)

    with pytest.raises(Conflict) as exc:
        await services.accounts.register("Ana", "ana@example.com", STRONG_PASSWORD)
    assert exc.value.code == "friend_code_exhausted"


async def test_login_issues_valid_token(services):
    ana = await services.accounts.register("Ana", "ana@example.com", STRONG_PASSWORD)

    user, issued = await services.accounts.login("ana@example.com", STRONG_PASSWORD)

    assert user.id == ana.id
    assert (await services.authority.validate(issued.token)).user_id == ana.id


async def test_login_with_wrong_password_or_email(services):
    await services.accounts.register("Ana", "ana@example.com", STRONG_PASSWORD)

    for email, password in (("ana@example.com", "Wr0ng!pass"), ("nobody@example.com", STRONG_PASSWORD)):
        with pytest.raises(Unauthenticated) as exc:
            await services.accounts.login(email, password)
        assert exc.value.code == "invalid_credentials"


async def test_login_to_federated_account(services, store):
    await store.insert(
        "users",
        {
            "name": "Gina",
            "email": "gina@example.com",
            "password_hash": None,
            "friend_code": "#Federat1",
            "schema_version": 2,
        },
    )

    with pytest.raises(Unauthenticated) as exc:
        await services.accounts.login("gina@example.com", STRONG_PASSWORD)
    assert exc.value.code == "federated_account"


async def test_change_password_requires_current_password(services):
    ana = await services.accounts.register("Ana", "ana@example.com", STRONG_PASSWORD)

    with pytest.raises(Unauthenticated):
        await services.accounts.change_password(ana.id, "Wr0ng!pass", "N3w&Better")


async def test_change_password_revokes_sessions(services):
    ana = await services.accounts.register("Ana", "ana@example.com", STRONG_PASSWORD)
    _, issued = await services.accounts.login("ana@example.com", STRONG_PASSWORD)

    assert await services.accounts.change_password(ana.id, STRONG_PASSWORD, "N3w&Better") == 1

    with pytest.raises(Unauthenticated):
        await services.authority.validate(issued.token)
    await services.accounts.login("ana@example.com", "N3w&Better")


async def test_email_exists(services):
    await services.accounts.register("Ana", "ana@example.com", STRONG_PASSWORD)

    assert await services.accounts.email_exists(" ANA@example.com ") is True
    assert await services.accounts.email_exists("ben@example.com") is False
