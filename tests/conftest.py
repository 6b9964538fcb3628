import asyncio
import json
import pytest
from connections import ConnectionRegistry
from directory import RoomDirectory
from membership import MembershipManager
from signaling import SignalRouter


class FakeWebSocket:
    """Stands in for fastapi.WebSocket; records every frame into a shared outbox."""

    def __init__(self, connection_id, outbox):
        self.connection_id = connection_id
        self.outbox = outbox
        self.closed = False

    async def send_text(self, data):
        if self.closed:
            raise RuntimeError("Cannot call send once a close message has been sent")
        self.outbox.append((self.connection_id, json.loads(data)))


class StalledWebSocket(FakeWebSocket):
    """A client whose receive window never drains: every send blocks forever."""

    async def send_text(self, data):
        await asyncio.Event().wait()


@pytest.fixture
def outbox():
    return []


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def directory():
    return RoomDirectory()


@pytest.fixture
def connect(registry, outbox):
    def _connect(connection_id):
        websocket = FakeWebSocket(connection_id, outbox)
        registry.register(connection_id, websocket)
        return websocket
    return _connect


@pytest.fixture
def membership(directory, registry):
    return MembershipManager(directory, registry, announce_delay=0.01)


@pytest.fixture
def router(registry):
    return SignalRouter(registry)


async def drain(membership):
    """Wait for every pending arrival announcement and leave to go out."""
    tasks = [pending.task for pending in membership.pending_announcements.values()]
    tasks.extend(membership.leave_tasks)
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


def received(outbox, connection_id, message_type=None):
    return [
        message for conn_id, message in outbox
        if conn_id == connection_id and (message_type is None or message["type"] == message_type)
    ]


def position(outbox, connection_id, predicate):
    for index, (conn_id, message) in enumerate(outbox):
        if conn_id == connection_id and predicate(message):
            return index
    raise AssertionError(f"No matching message for {connection_id}")
