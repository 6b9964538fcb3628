from conftest import drain, received


async def test_offer_reaches_target_with_sender_id(membership, router, connect, outbox):
    connect("A")
    connect("B")
    await membership.join("r1", "A", "u1", "Alice")
    await membership.join("r1", "B", "u2", "Bob")
    await drain(membership)

    offer = {"type": "offer", "sdp": "v=0..."}
    await router.relay("A", "B", "offer", offer=offer)

    assert received(outbox, "B", "signal") == [
        {"type": "signal", "from": "A", "kind": "offer", "offer": offer, "answer": None, "candidate": None}
    ]
    assert received(outbox, "A", "signal") == []


async def test_relay_does_not_require_shared_room(router, connect, outbox):
    connect("A")
    connect("B")
    await router.relay("A", "B", "candidate", candidate={"candidate": "candidate:1 1 udp ..."})
    assert received(outbox, "B", "signal")[0]["candidate"] == {"candidate": "candidate:1 1 udp ..."}


async def test_relay_to_unknown_target_is_silent(router, connect, outbox):
    connect("A")
    await router.relay("A", "missing", "answer", answer={"type": "answer", "sdp": "..."})
    assert outbox == []


async def test_relay_to_closed_socket_is_silent(router, connect, outbox):
    connect("A")
    closed = connect("B")
    closed.closed = True
    await router.relay("A", "B", "offer", offer={})
    assert outbox == []


async def test_chat_alone_in_room_reaches_nobody(membership, router, connect, outbox):
    connect("A")
    await membership.join("r1", "A", "u1", "Alice")
    await drain(membership)
    outbox.clear()

    await router.chat("r1", "A", "hi", "Alice")
    assert outbox == []


async def test_chat_reaches_everyone_but_sender(membership, router, connect, outbox):
    for connection_id in ("A", "B", "C"):
        connect(connection_id)
        await membership.join("r1", connection_id, connection_id, connection_id)
    await drain(membership)
    outbox.clear()

    await router.chat("r1", "A", "hi", "Alice")
    assert sorted(conn_id for conn_id, _ in outbox) == ["B", "C"]
    assert received(outbox, "B") == [{"type": "chat-message", "message": "hi", "sender_name": "Alice"}]


async def test_typing_is_room_scoped(membership, router, connect, outbox):
    for connection_id, room_id in (("A", "r1"), ("B", "r1"), ("C", "r2")):
        connect(connection_id)
        await membership.join(room_id, connection_id, connection_id, connection_id)
    await drain(membership)
    outbox.clear()

    await router.typing("r1", "A", "u1", True)
    assert outbox == [("B", {"type": "typing", "user_id": "u1", "is_typing": True})]


async def test_broadcast_to_unknown_room_is_silent(router, connect, outbox):
    connect("A")
    await router.chat("nowhere", "A", "hello?", "Alice")
    assert outbox == []
