from typing import Any, Optional
from connections import ConnectionRegistry
from schemas.events import ChatMessage, OutboundMessage, SignalMessage, TypingMessage
from logging_config import get_logger

logger = get_logger(__name__)


class SignalRouter:
    """Relays signaling and lightweight room events. Never touches room state."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def relay(self, sender_id: str, target_id: str, kind: str, offer: Optional[Any] = None,
                    answer: Optional[Any] = None, candidate: Optional[Any] = None):
        """Unicast a signaling payload to target_id.

        No check that sender and target share a room. An unknown target is a
        silent no-op.
        """
        logger.debug(f"Signaling from {sender_id} to {target_id}, type: {kind}")
        if not self.registry.is_connected(target_id):
            logger.debug(f"Signal target {target_id} is not connected, dropping {kind} from {sender_id}")
            return
        message = SignalMessage(sender=sender_id, kind=kind, offer=offer, answer=answer, candidate=candidate)
        await self.registry.send_to(target_id, message.to_wire())

    async def broadcast_to_room(self, room_id: str, sender_id: str, message: OutboundMessage):
        """Deliver to every connection in room_id except the sender."""
        await self.registry.broadcast_to_room(room_id, message.to_wire(), exclude=sender_id)

    async def chat(self, room_id: str, sender_id: str, text: str, sender_name: str):
        logger.info(f"Chat message in room {room_id} from {sender_name} ({sender_id})")
        await self.broadcast_to_room(room_id, sender_id, ChatMessage(message=text, sender_name=sender_name))

    async def typing(self, room_id: str, sender_id: str, user_id: str, is_typing: bool):
        logger.debug(f"Typing indicator in room {room_id} from {user_id}: {is_typing}")
        await self.broadcast_to_room(room_id, sender_id, TypingMessage(user_id=user_id, is_typing=is_typing))
