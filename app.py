from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pydantic import ValidationError
from routers.rooms import rooms_router
from directory import room_directory
from connections import connection_registry
from membership import MembershipManager
from signaling import SignalRouter
from schemas.events import (
    ChatMessageEvent,
    ConnectedMessage,
    ErrorMessage,
    JoinRoomEvent,
    LeaveRoomEvent,
    ReadyEvent,
    SignalEvent,
    TypingEvent,
    parse_inbound,
)
from constants import CORS_ORIGINS, LOG_LEVEL, LOG_FILE
import uuid
from datetime import datetime
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

membership_manager = MembershipManager(room_directory, connection_registry)
signal_router = SignalRouter(connection_registry)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await membership_manager.close()
    logger.info("Cancelled pending arrival announcements and finished in-flight leaves on shutdown")


app = FastAPI(title="Signaling Relay", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

logger.info("FastAPI application initialized")


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now().isoformat()}


async def handle_event(connection_id: str, event):
    """Route one validated inbound event to the membership manager or the signal router."""
    if isinstance(event, JoinRoomEvent):
        await membership_manager.join(event.room_id, connection_id, event.user_id, event.display_name)
    elif isinstance(event, SignalEvent):
        await signal_router.relay(connection_id, event.to, event.kind,
                                  offer=event.offer, answer=event.answer, candidate=event.candidate)
    elif isinstance(event, ChatMessageEvent):
        await signal_router.chat(event.room_id, connection_id, event.message, event.sender_name)
    elif isinstance(event, TypingEvent):
        await signal_router.typing(event.room_id, connection_id, event.user_id, event.is_typing)
    elif isinstance(event, ReadyEvent):
        membership_manager.ready(connection_id)
    elif isinstance(event, LeaveRoomEvent):
        await membership_manager.leave(connection_id)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Signaling websocket. One connection id per socket, assigned on accept."""
    connection_id = str(uuid.uuid4())
    await websocket.accept()
    connection_registry.register(connection_id, websocket)
    logger.info(f"New client connected: {connection_id}")

    try:
        await connection_registry.send_to(connection_id, ConnectedMessage(connection_id=connection_id).to_wire())

        message_count = 0
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected normally for connection {connection_id}")
                break
            except KeyError:
                # Binary frame: receive_text finds no "text" key
                logger.warning(f"Rejected binary frame from connection {connection_id}")
                await connection_registry.send_to(connection_id, ErrorMessage(message="Invalid event: expected a text frame").to_wire())
                continue
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection_id}")

            try:
                event = parse_inbound(data)
            except ValidationError as e:
                logger.warning(f"Rejected malformed event from connection {connection_id}: {e.error_count()} error(s)")
                first_error = e.errors()[0]["msg"] if e.error_count() else "invalid event"
                await connection_registry.send_to(connection_id, ErrorMessage(message=f"Invalid event: {first_error}").to_wire())
                continue

            await handle_event(connection_id, event)

    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        # Cleanup on disconnect. leave() finishes even if this task is cancelled
        try:
            await membership_manager.leave(connection_id)
        finally:
            connection_registry.unregister(connection_id)
            logger.info(f"Client disconnected: {connection_id}")
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
