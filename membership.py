import asyncio
from dataclasses import dataclass
from typing import Dict, List, Set
from connections import ConnectionRegistry
from constants import ANNOUNCE_DELAY_SECONDS
from directory import Member, Room, RoomDirectory
from schemas.events import ExistingUser, ExistingUsersMessage, UserConnectedMessage, UserDisconnectedMessage
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class PendingAnnouncement:
    task: asyncio.Task
    ready: asyncio.Event


class MembershipManager:
    """Joins and leaves rooms on behalf of connections.

    The directory lock only covers room mutations and the reads that pick
    snapshot members or announcement recipients; sends happen after it is
    released. A joining connection always receives its existing-users
    snapshot before anyone else in the room hears about it. The
    user-connected announcement goes out once the newcomer reports "ready"
    or the grace delay runs out, whichever happens first. It is addressed to
    the member records listed in the newcomer's snapshot that are still in
    the room; later joiners, and members that re-joined since, already saw
    the newcomer in their own snapshot.
    """

    def __init__(self, directory: RoomDirectory, registry: ConnectionRegistry, announce_delay: float = ANNOUNCE_DELAY_SECONDS):
        self.directory = directory
        self.registry = registry
        self.announce_delay = announce_delay
        # Format: {connection_id: PendingAnnouncement}
        self.pending_announcements: Dict[str, PendingAnnouncement] = {}
        # Leaves in flight; they run to completion even if the caller is cancelled
        self.leave_tasks: Set[asyncio.Task] = set()

    async def join(self, room_id: str, connection_id: str, user_id: str, display_name: str) -> List[Member]:
        """Add the connection to the room and return the members it was told about."""
        logger.info(f"User {display_name} ({user_id}) joining room {room_id} on connection {connection_id}")

        async with self.directory.lock:
            self.registry.subscribe(connection_id, room_id)
            room = self.directory.get_or_create(room_id)

            # Snapshot strictly before inserting, so the joiner never sees itself
            existing = room.snapshot(exclude=connection_id)
            room.add(Member(connection_id=connection_id, user_id=user_id, display_name=display_name))
            member_count = len(room)

        # The registry queues this send on the joiner's connection before any
        # other coroutine runs, so later announcements to the joiner land after it
        snapshot_message = ExistingUsersMessage(
            users=[ExistingUser(id=member.connection_id, name=member.display_name) for member in existing]
        )
        logger.debug(f"Sending {len(existing)} existing users to {display_name} ({connection_id})")
        await self.registry.send_to(connection_id, snapshot_message.to_wire())
        logger.info(f"Room {room_id} now has {member_count} users")

        self._schedule_announcement(room_id, connection_id, display_name, existing)
        return existing

    def ready(self, connection_id: str):
        """The joiner has processed its snapshot; announce it without waiting out the delay."""
        pending = self.pending_announcements.get(connection_id)
        if pending is None:
            logger.debug(f"Ready from {connection_id} with no pending announcement")
            return
        pending.ready.set()

    async def leave(self, connection_id: str) -> List[str]:
        """Remove the connection from every room it is in. Safe to call repeatedly.

        The removal and the user-disconnected broadcast run in their own task,
        so cancelling the caller (a websocket task torn down mid-cleanup) never
        leaves a room changed without its members being told.
        """
        self._cancel_announcement(connection_id)
        task = asyncio.create_task(self._leave(connection_id))
        self.leave_tasks.add(task)
        task.add_done_callback(self.leave_tasks.discard)
        return await asyncio.shield(task)

    async def close(self):
        """Cancel every pending announcement and finish leaves in flight, used on application shutdown."""
        for connection_id in list(self.pending_announcements):
            self._cancel_announcement(connection_id)
        if self.leave_tasks:
            await asyncio.gather(*self.leave_tasks, return_exceptions=True)

    async def _leave(self, connection_id: str) -> List[str]:
        left_rooms: List[str] = []

        def remove_from(room: Room):
            member = room.discard(connection_id)
            if member is None:
                return
            left_rooms.append(room.room_id)
            self.registry.unsubscribe(connection_id, room.room_id)
            logger.info(f"User {member.display_name} ({connection_id}) left room {room.room_id}")
            if len(room) == 0:
                self.directory.remove(room.room_id)
                logger.info(f"Room {room.room_id} is now empty and removed")

        async with self.directory.lock:
            # Membership is not indexed by connection, so every room is scanned
            self.directory.for_each_room(remove_from)

        if not left_rooms:
            logger.debug(f"Leave for {connection_id} matched no rooms")
            return left_rooms

        message = UserDisconnectedMessage(connection_id=connection_id)
        await asyncio.gather(*(
            self.registry.broadcast_to_room(room_id, message.to_wire(), exclude=connection_id)
            for room_id in left_rooms
        ))
        return left_rooms

    def _schedule_announcement(self, room_id: str, connection_id: str, display_name: str, recipients: List[Member]):
        # A repeated join replaces the announcement of the earlier one
        self._cancel_announcement(connection_id)
        ready = asyncio.Event()
        task = asyncio.create_task(self._announce_arrival(room_id, connection_id, display_name, recipients, ready))
        self.pending_announcements[connection_id] = PendingAnnouncement(task=task, ready=ready)

    def _cancel_announcement(self, connection_id: str):
        pending = self.pending_announcements.pop(connection_id, None)
        if pending is not None and not pending.task.done():
            pending.task.cancel()
            logger.debug(f"Cancelled pending arrival announcement for {connection_id}")

    async def _announce_arrival(self, room_id: str, connection_id: str, display_name: str, recipients: List[Member],
                                ready: asyncio.Event):
        try:
            if self.announce_delay > 0:
                try:
                    await asyncio.wait_for(ready.wait(), timeout=self.announce_delay)
                    logger.debug(f"Connection {connection_id} reported ready")
                except asyncio.TimeoutError:
                    logger.debug(f"Announce delay elapsed for {connection_id}")

            async with self.directory.lock:
                room = self.directory.get(room_id)
                # Same record, not just same connection: a re-joined member got a fresh snapshot
                present = [
                    member.connection_id for member in recipients
                    if room is not None and room.members.get(member.connection_id) is member
                ]

            message = UserConnectedMessage(connection_id=connection_id, display_name=display_name)
            await self.registry.send_to_many(present, message.to_wire())
            logger.debug(f"Announced {display_name} ({connection_id}) to {len(present)} members of room {room_id}")
        except asyncio.CancelledError:
            logger.debug(f"Arrival announcement for {connection_id} cancelled")
            raise
        finally:
            pending = self.pending_announcements.get(connection_id)
            if pending is not None and pending.task is asyncio.current_task():
                del self.pending_announcements[connection_id]
