"""Room Chat Backend Application.

This is the main entry point for the room chat relay. Clients join named
rooms over a WebSocket, exchange text and file messages, and see delivery and
seen receipts, typing indicators, emoji reactions, room backgrounds and user
avatars. Room history is persisted in DuckDB.

Modules:
    - chat: WebSocket relay, sessions, receipts, reactions, join replay
    - store: DuckDB tables for messages, last-seen, reactions, customization
    - files: Upload blob store
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomchat.chat.hub import get_hub, set_hub
from roomchat.chat.rooms_router import router as rooms_router
from roomchat.chat.router import router as chat_router
from roomchat.config import get_config
from roomchat.files.router import router as files_router
from roomchat.store import ChatStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

for _noisy in ("uvicorn.access", "multipart", "python_multipart"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in roomchat.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    hub = get_hub()
    logger.info(
        f"Chat hub ready (storage={config.storage.db_path}). "
        f"Server running on http://{config.server.host}:{config.server.port}"
    )

    yield  # Application runs here

    # Shutdown
    logger.info(f"Closing store with {len(hub.registry)} live connections")
    set_hub(None)
    ChatStore.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Room Chat API",
    description="Real-time room chat relay with durable history",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(chat_router)
app.include_router(rooms_router)
app.include_router(files_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def run() -> None:
    """Console entry point: serve the app with uvicorn using configured host/port."""
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.server.host, port=config.server.port)
