import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
RELOAD = os.getenv("RELOAD", "false").lower() in ("true", "1", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Grace period before a new arrival is announced to the rest of the room.
# A "ready" event from the joining client releases the announcement early.
ANNOUNCE_DELAY_SECONDS = float(os.getenv("ANNOUNCE_DELAY_SECONDS", 0.1))

WS_PING_INTERVAL = float(os.getenv("WS_PING_INTERVAL", 25))
WS_PING_TIMEOUT = float(os.getenv("WS_PING_TIMEOUT", 60))
