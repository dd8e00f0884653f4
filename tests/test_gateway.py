from __future__ import annotations

import pytest

from astrochat.core.errors import Forbidden, Unauthenticated
from astrochat.domains.realtime.protocol import WsOutbound


class FakeSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.sent: list[dict] = []
        self.broken = broken
        self.closed_with: int | None = None

    async def send_json(self, data) -> None:
        if self.broken:
            raise ConnectionResetError("peer went away")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code


async def test_connect_requires_valid_token(services):
    with pytest.raises(Unauthenticated):
        await services.gateway.connect(FakeSocket(), None)
    with pytest.raises(Unauthenticated):
        await services.gateway.connect(FakeSocket(), "bogus")


async def test_connect_rejects_non_mortal_kind(services, make_user, token_for):
    admin = await make_user("Root", kind="admin")

    with pytest.raises(Forbidden):
        await services.gateway.connect(FakeSocket(), await token_for(admin))


async def test_message_is_pushed_to_receiver_connection(services, make_user, befriend, token_for):
    ana = await make_user("Ana")
    ben = await make_user("Ben")
    await befriend(ana, ben)
    socket = FakeSocket()
    await services.gateway.connect(socket, await token_for(ben))

    message = await services.ledger.send(ana.id, ben.id, "hello")

    assert socket.sent == [
        {
            "type": "message.created",
            "data": {
                "id": message.id,
                "sender_id": ana.id,
                "receiver_id": ben.id,
                "content": "hello",
                "timestamp": message.created_at.isoformat(),
            },
        }
    ]


async def test_every_connection_of_the_user_gets_the_push(services, make_user, token_for):
    ben = await make_user("Ben")
    phone, laptop = FakeSocket(), FakeSocket()
    await services.gateway.connect(phone, await token_for(ben))
    await services.gateway.connect(laptop, await token_for(ben))

    delivered = await services.gateway.deliver(WsOutbound(type="pong"), ben.id)

    assert delivered == 2
    assert phone.sent == laptop.sent == [{"type": "pong", "data": {}}]


async def test_offline_user_is_skipped(services, make_user, befriend):
    ana = await make_user("Ana")
    ben = await make_user("Ben")
    await befriend(ana, ben)

    assert await services.gateway.deliver(WsOutbound(type="pong"), ben.id) == 0
    # the message itself is still in the ledger
    await services.ledger.send(ana.id, ben.id, "read me later")
    assert await services.ledger.unread_count(ben.id, ana.id) == 1


async def test_disconnect_stops_delivery(services, make_user, token_for):
    ben = await make_user("Ben")
    socket = FakeSocket()
    connection = await services.gateway.connect(socket, await token_for(ben))
    await services.gateway.join_chat(connection, "chat-1")

    await services.gateway.disconnect(connection)
    await services.gateway.disconnect(connection)

    assert await services.gateway.deliver(WsOutbound(type="pong"), ben.id) == 0
    assert services.gateway.chat_members("chat-1") == []
    assert socket.sent == []


async def test_failing_socket_is_dropped(services, make_user, token_for):
    ben = await make_user("Ben")
    dead, alive = FakeSocket(broken=True), FakeSocket()
    await services.gateway.connect(dead, await token_for(ben))
    await services.gateway.connect(alive, await token_for(ben))

    assert await services.gateway.deliver(WsOutbound(type="pong"), ben.id) == 1
    assert len(services.gateway.connections_for(ben.id)) == 1


async def test_chat_channel_membership(services, make_user, befriend, token_for):
    ana = await make_user("Ana")
    ben = await make_user("Ben")
    await befriend(ana, ben)
    ana_socket, ben_socket = FakeSocket(), FakeSocket()
    ana_conn = await services.gateway.connect(ana_socket, await token_for(ana))
    ben_conn = await services.gateway.connect(ben_socket, await token_for(ben))
    await services.gateway.join_chat(ana_conn, "chat-1")
    await services.gateway.join_chat(ben_conn, "chat-1")

    assert {c.user_id for c in services.gateway.chat_members("chat-1")} == {ana.id, ben.id}

    # sharing a room does not widen delivery beyond the receiver
    await services.ledger.send(ben.id, ana.id, "hi")
    assert len(ana_socket.sent) == 1
    assert ben_socket.sent == []

    await services.gateway.leave_chat(ben_conn, "chat-1")
    assert [c.user_id for c in services.gateway.chat_members("chat-1")] == [ana.id]
    assert ben_conn.chats == set()
