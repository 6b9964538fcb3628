from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import MemberDetails, RoomDetailsResponse, RoomSummary
from directory import room_directory
from typing import List
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/", response_model=List[RoomSummary])
async def list_rooms():
    async with room_directory.lock:
        summaries = [RoomSummary(room_id=room.room_id, member_count=len(room)) for room in room_directory.rooms()]
    logger.debug(f"Listing {len(summaries)} active rooms")
    return summaries


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get the current members of a room.

    Returns:
    - room_id: Room identifier as supplied by the clients that joined it
    - member_count: Number of connections currently in the room
    - members: connection_id, user_id, display_name and joined_at per member
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room details request for {room_id} from {client_host}")

    async with room_directory.lock:
        room = room_directory.get(room_id)
        if room is None:
            logger.warning(f"Room details failed: Room {room_id} not found")
            raise HTTPException(status_code=404, detail="Room not found")
        members = [
            MemberDetails(
                connection_id=member.connection_id,
                user_id=member.user_id,
                display_name=member.display_name,
                joined_at=member.joined_at,
            )
            for member in room.snapshot()
        ]

    return RoomDetailsResponse(room_id=room_id, member_count=len(members), members=members)
