from __future__ import annotations

from datetime import timedelta

import pytest

from astrochat.core.errors import Forbidden, StoreUnavailable, Unauthenticated
from astrochat.core.security.session_store import SESSION_TOKENS_COLLECTION
from astrochat.domains.users.model import UserKind


async def test_issued_token_validates_to_owner(services, make_user):
    ana = await make_user("Ana")
    issued = await services.authority.issue(ana.id)

    principal = await services.authority.validate(issued.token)

    assert principal.user_id == ana.id
    assert principal.kind == "mortal"


async def test_remember_me_extends_lifetime(services, make_user, clock):
    ana = await make_user("Ana")

    short = await services.authority.issue(ana.id)
    long = await services.authority.issue(ana.id, remember_me=True)

    assert short.expires_at == clock() + timedelta(days=1)
    assert long.expires_at == clock() + timedelta(days=30)
    assert short.token != long.token


async def test_missing_token_is_rejected(services):
    with pytest.raises(Unauthenticated) as exc:
        await services.authority.validate(None)
    assert exc.value.code == "token_missing"


async def test_garbage_token_is_rejected(services):
    with pytest.raises(Unauthenticated) as exc:
        await services.authority.validate("not-a-token")
    assert exc.value.code == "token_invalid"


async def test_signed_but_unknown_token_is_rejected(services, make_user, clock):
    ana = await make_user("Ana")
    forged = services.authority.jwt_manager.create_token(ana.id, clock() + timedelta(days=1))

    with pytest.raises(Unauthenticated) as exc:
        await services.authority.validate(forged)
    assert exc.value.code == "token_invalid"


async def test_token_expires_after_lifetime_without_extension(services, make_user, clock):
    ana = await make_user("Ana")
    issued = await services.authority.issue(ana.id)

    clock.advance(timedelta(hours=23))
    await services.authority.validate(issued.token)

    clock.advance(timedelta(hours=1, seconds=1))
    with pytest.raises(Unauthenticated) as exc:
        await services.authority.validate(issued.token)
    assert exc.value.code == "token_expired"


async def test_token_of_deleted_user_is_rejected(services, store, make_user):
    ana = await make_user("Ana")
    issued = await services.authority.issue(ana.id)
    await store.delete("users", ana.id)

    with pytest.raises(Unauthenticated) as exc:
        await services.authority.validate(issued.token)
    assert exc.value.code == "user_not_found"


async def test_authorize_checks_kind(services, make_user):
    admin = await make_user("Root", kind="admin")
    issued = await services.authority.issue(admin.id)

    with pytest.raises(Forbidden):
        await services.authority.authorize(issued.token, [UserKind.MORTAL])

    principal = await services.authority.authorize(issued.token, ["mortal", "admin"])
    assert principal.kind == "admin"


async def test_revoke_is_idempotent(services, make_user):
    ana = await make_user("Ana")
    issued = await services.authority.issue(ana.id)

    await services.authority.revoke(issued.token)
    await services.authority.revoke(issued.token)

    with pytest.raises(Unauthenticated):
        await services.authority.validate(issued.token)


async def test_revoke_all_ends_every_session_of_user_only(services, make_user):
    ana = await make_user("Ana")
    ben = await make_user("Ben")
    first = await services.authority.issue(ana.id)
    second = await services.authority.issue(ana.id, remember_me=True)
    other = await services.authority.issue(ben.id)

    assert await services.authority.revoke_all(ana.id) == 2

    for token in (first.token, second.token):
        with pytest.raises(Unauthenticated):
            await services.authority.validate(token)
    assert (await services.authority.validate(other.token)).user_id == ben.id


async def test_purge_expired_removes_only_stale_records(services, store, make_user, clock):
    ana = await make_user("Ana")
    await services.authority.issue(ana.id)
    keep = await services.authority.issue(ana.id, remember_me=True)

    clock.advance(timedelta(days=2))

    assert await services.authority.purge_expired() == 1
    remaining = await store.find_many(SESSION_TOKENS_COLLECTION)
    assert [doc["token"] for doc in remaining] == [keep.token]


async def test_legacy_token_record_is_accepted(services, store, make_user, clock):
    ana = await make_user("Ana")
    token = services.authority.jwt_manager.create_token(ana.id, clock() + timedelta(days=1))
    await store.insert(
        SESSION_TOKENS_COLLECTION,
        {"token": token, "user_id": ana.id, "expires_date": clock() + timedelta(days=1)},
    )

    assert (await services.authority.validate(token)).user_id == ana.id


async def test_store_outage_surfaces_as_unavailable(services, store, make_user):
    ana = await make_user("Ana")
    issued = await services.authority.issue(ana.id)
    store.down = True

    with pytest.raises(StoreUnavailable):
        await services.authority.validate(issued.token)
