from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from typing import Annotated, Any, List, Literal, Optional, Union


# Inbound events (client -> relay)

class JoinRoomEvent(BaseModel):
    type: Literal["join-room"]
    room_id: str
    user_id: str
    display_name: str

class SignalEvent(BaseModel):
    type: Literal["signal"]
    to: str
    kind: Literal["offer", "answer", "candidate"]
    offer: Optional[Any] = None
    answer: Optional[Any] = None
    candidate: Optional[Any] = None

class ChatMessageEvent(BaseModel):
    type: Literal["chat-message"]
    room_id: str
    message: str
    sender_name: str

class TypingEvent(BaseModel):
    type: Literal["typing"]
    room_id: str
    user_id: str
    is_typing: bool

class ReadyEvent(BaseModel):
    type: Literal["ready"]

class LeaveRoomEvent(BaseModel):
    type: Literal["leave-room"]


InboundEvent = Annotated[
    Union[JoinRoomEvent, SignalEvent, ChatMessageEvent, TypingEvent, ReadyEvent, LeaveRoomEvent],
    Field(discriminator="type"),
]

inbound_event_adapter = TypeAdapter(InboundEvent)


def parse_inbound(raw: str):
    """Validate one text frame. Raises pydantic.ValidationError on bad input."""
    return inbound_event_adapter.validate_json(raw)


# Outbound events (relay -> client)

class OutboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)

class ConnectedMessage(OutboundMessage):
    type: Literal["connected"] = "connected"
    connection_id: str

class ExistingUser(BaseModel):
    id: str
    name: str

class ExistingUsersMessage(OutboundMessage):
    type: Literal["existing-users"] = "existing-users"
    users: List[ExistingUser]

class UserConnectedMessage(OutboundMessage):
    type: Literal["user-connected"] = "user-connected"
    connection_id: str
    display_name: str

class UserDisconnectedMessage(OutboundMessage):
    type: Literal["user-disconnected"] = "user-disconnected"
    connection_id: str

class SignalMessage(OutboundMessage):
    type: Literal["signal"] = "signal"
    sender: str = Field(alias="from")
    kind: Literal["offer", "answer", "candidate"]
    offer: Optional[Any] = None
    answer: Optional[Any] = None
    candidate: Optional[Any] = None

class ChatMessage(OutboundMessage):
    type: Literal["chat-message"] = "chat-message"
    message: str
    sender_name: str

class TypingMessage(OutboundMessage):
    type: Literal["typing"] = "typing"
    user_id: str
    is_typing: bool

class ErrorMessage(OutboundMessage):
    type: Literal["error"] = "error"
    message: str
