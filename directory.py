import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Member:
    """One participant in one room. Re-joining creates a new record."""
    connection_id: str
    user_id: str
    display_name: str
    joined_at: str = field(default_factory=lambda: datetime.now().isoformat())


@dataclass
class Room:
    room_id: str
    # Keyed by connection_id: the only identifier the transport can deliver to
    members: Dict[str, Member] = field(default_factory=dict)

    def snapshot(self, exclude: Optional[str] = None) -> List[Member]:
        """Members in join order, optionally leaving one connection out."""
        return [member for conn_id, member in self.members.items() if conn_id != exclude]

    def add(self, member: Member):
        # Last write wins for a connection that joins twice
        self.members[member.connection_id] = member

    def discard(self, connection_id: str) -> Optional[Member]:
        return self.members.pop(connection_id, None)

    def __len__(self):
        return len(self.members)


class RoomDirectory:
    """Process-wide mapping of room_id to Room.

    Callers hold ``lock`` around any mutation or any read that must be
    consistent with concurrent joins and leaves. A room never stays in the
    directory with zero members; MembershipManager removes it on the last leave.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self.lock = asyncio.Lock()
        logger.info("Initializing in-memory RoomDirectory")

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id)
            self._rooms[room_id] = room
            logger.info(f"Created room {room_id}")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def remove(self, room_id: str):
        room = self._rooms.pop(room_id, None)
        if room is not None:
            logger.info(f"Room {room_id} removed from directory")
        else:
            logger.debug(f"Room {room_id} already absent from directory")

    def for_each_room(self, fn: Callable[[Room], None]):
        """Visit every room; fn may remove rooms while iterating."""
        for room in list(self._rooms.values()):
            fn(room)

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def __contains__(self, room_id: str):
        return room_id in self._rooms

    def __len__(self):
        return len(self._rooms)


room_directory = RoomDirectory()
