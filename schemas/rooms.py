from pydantic import BaseModel
from typing import List


class RoomSummary(BaseModel):
    room_id: str
    member_count: int

class MemberDetails(BaseModel):
    connection_id: str
    user_id: str
    display_name: str
    joined_at: str

class RoomDetailsResponse(BaseModel):
    room_id: str
    member_count: int
    members: List[MemberDetails]
