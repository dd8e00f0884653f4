from __future__ import annotations

from datetime import datetime, timezone

from astrochat.domains.users.model import USER_SCHEMA_VERSION, User, UserKind, upgrade_user_document

SENT = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

LEGACY_DOC = {
    "id": "u1",
    "name": "Ana",
    "email": "ana@example.com",
    "password": "hash",
    "profile_picture_url": "https://cdn.example.com/ana.png",
    "type": "mortal",
    "friend_code": "#AbCd1234",
    "contacts": ["u2"],
    "pending_requests": [
        {"senderId": "u3", "senderName": "Cleo", "senderAvatar": "", "timestamp": SENT},
    ],
    "lastMessageWith": {"u2": {"content": "hey", "timestamp": SENT, "unread": True}},
    "status": 1,
}


def test_legacy_document_is_upgraded():
    doc = upgrade_user_document(dict(LEGACY_DOC))

    assert doc["schema_version"] == USER_SCHEMA_VERSION
    assert doc["password_hash"] == "hash"
    assert doc["avatar_url"] == "https://cdn.example.com/ana.png"
    assert doc["kind"] == "mortal"
    assert "lastMessageWith" not in doc


def test_legacy_document_loads_as_user():
    user = User.from_document(dict(LEGACY_DOC))

    assert user.kind is UserKind.MORTAL
    assert user.pending_from("u3").sender_name == "Cleo"
    assert user.pending_from("u3").received_at == SENT
    assert user.last_message_with["u2"].content == "hey"
    assert user.last_message_with["u2"].unread is True
    assert user.is_federated_only is False


def test_current_document_is_left_alone():
    doc = {
        "id": "u1",
        "name": "Ana",
        "email": "ana@example.com",
        "password_hash": None,
        "friend_code": "#AbCd1234",
        "schema_version": USER_SCHEMA_VERSION,
    }

    assert upgrade_user_document(doc) is doc
    assert User.from_document(doc).is_federated_only is True


def test_round_trip_omits_id():
    user = User.from_document(dict(LEGACY_DOC))

    stored = user.to_document()

    assert "id" not in stored
    assert stored["kind"] == "mortal"
    assert User.from_document({**stored, "id": user.id}) == user


async def test_legacy_queue_entry_can_be_rejected(services, store, make_user):
    ben = await make_user("Ben")
    legacy = {k: v for k, v in LEGACY_DOC.items() if k != "id"}
    legacy["pending_requests"] = [{"senderId": ben.id, "senderName": "Ben", "senderAvatar": "", "timestamp": SENT}]
    ana_id = await store.insert("users", legacy)

    await services.contacts.reject_request(ana_id, ben.id)

    assert (await store.get("users", ana_id))["pending_requests"] == []
