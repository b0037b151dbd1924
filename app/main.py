import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.routers import rooms, ws
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting RPS Arena API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    # Start sweeping connections that have gone silent
    connection_manager = get_connection_manager()
    await connection_manager.start_sweeper()
    logger.info("WebSocket connection manager initialized")

    yield

    # Shutdown: stop the sweeper, close all connections
    logger.info("Shutting down RPS Arena API")
    await connection_manager.stop_sweeper()
    await connection_manager.close_all()
    logger.info("WebSocket cleanup complete")


app = FastAPI(
    title="RPS Arena API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(rooms.router, prefix="/api/v1")
app.include_router(ws.router, prefix="/api/v1")
logger.debug("Routers registered: /api/v1/rooms, /api/v1/ws")


@app.get("/")
def root():
    return {"message": "RPS Arena API"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/api/url")
def base_url(request: Request):
    """Externally reachable base address of this service."""
    return {"url": str(request.base_url).rstrip("/")}
