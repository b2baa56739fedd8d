"""Sanctuary Relay Application.

This is the main entry point for the sanctuary relay service. It issues
time-limited Agora RTC credentials for live audio sanctuaries, relays chat
messages to the participants of a session and serves stored documents and
avatars behind their access tiers.

Modules:
    - agora: session-bound and channel-direct credential issuance
    - sessions: live session lookup (DuckDB)
    - chat: message relay and WebSocket audio rooms
    - documents: admin document and public avatar serving
    - auth: caller JWT verification
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sanctuary.agora.router import router as agora_router
from sanctuary.chat.router import router as chat_router
from sanctuary.config import get_config
from sanctuary.documents.router import router as documents_router
from sanctuary.errors import register_exception_handlers
from sanctuary.sessions.store import SessionStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

for _noisy in ("httpx", "httpcore", "multipart", "python_multipart"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    if config.agora_secrets.is_present:
        logger.info("Agora signing configured (app_id=%s)", config.agora_secrets.app_id)
    else:
        logger.warning("Agora signing not configured; credential endpoints will answer 503")

    SessionStore.get_instance(config.sessions.db_path)
    logger.info("Session store ready: %s", config.sessions.db_path)

    yield  # Application runs here

    # Shutdown
    SessionStore.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Sanctuary Relay API",
    description="RTC credentials, chat relay and stored-file access for live sanctuaries",
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Register all routers
app.include_router(agora_router)
app.include_router(chat_router)
app.include_router(documents_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.server.host, port=config.server.port)
