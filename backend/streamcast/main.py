"""FastAPI application exposing the event stream, broadcast and health routes."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.background import BackgroundTask
from starlette.exceptions import HTTPException as StarletteHTTPException

from .broadcast import BroadcastDispatcher
from .config import (
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_ORIGINS,
    HOST,
    LOG_LEVEL,
    PORT,
    RELOAD,
    TICK_INTERVAL_SEC,
    configure_logging,
)
from .errors import EmptyMessageError
from .registry import ConnectionRegistry
from .session import EventStreamSession

logger = logging.getLogger(__name__)

static_path = Path(__file__).parent / "static"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# Pydantic models
class BroadcastRequest(BaseModel):
    """Body of POST /broadcast. The message is forwarded as-is."""
    message: Any = None


class BroadcastResponse(BaseModel):
    success: bool
    clientsCount: int


class HealthResponse(BaseModel):
    status: str
    timestamp: str  # ISO8601, UTC
    activeConnections: int


def utc_isoformat(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# Dependencies
def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_dispatcher(request: Request) -> BroadcastDispatcher:
    return request.app.state.dispatcher


router = APIRouter()


@router.get("/", include_in_schema=False)
async def index():
    """Serve the demo page."""
    return FileResponse(static_path / "index.html")


@router.get("/sse")
async def open_stream(
    request: Request,
    registry: ConnectionRegistry = Depends(get_registry),
):
    """
    Event stream endpoint.
    Pushes a confirmation event, then a time tick every interval, plus broadcasts.
    """
    session = EventStreamSession(registry, tick_interval=request.app.state.tick_interval)
    session.start()

    return StreamingResponse(
        session.stream(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
        # Covers a disconnect that happens before the body is iterated
        background=BackgroundTask(session.aclose),
    )


@router.post("/broadcast", response_model=BroadcastResponse)
async def broadcast_message(
    payload: BroadcastRequest,
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    """Fan a message out to every connected stream."""
    clients_count = dispatcher.broadcast(payload.message)
    return BroadcastResponse(success=True, clientsCount=clients_count)


@router.get("/health", response_model=HealthResponse)
async def health_check(registry: ConnectionRegistry = Depends(get_registry)):
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        timestamp=utc_isoformat(datetime.now(timezone.utc)),
        activeConnections=registry.size(),
    )


# Exception handlers
async def empty_message_handler(request: Request, exc: EmptyMessageError):
    return JSONResponse(status_code=400, content={"error": exc.detail})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        error = "Not found"
    else:
        error = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": error}, headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    # Startup
    logger.info("Server started: http://localhost:%d", PORT)
    logger.info("Health check: http://localhost:%d/health", PORT)

    yield

    # Shutdown: ending every stream lets its session clean up
    closing = app.state.registry.for_each(lambda connection: connection.mark_closed())
    logger.info("Shutting down, closed %d stream(s)", closing)


def create_app(
    registry: Optional[ConnectionRegistry] = None,
    tick_interval: float = TICK_INTERVAL_SEC,
) -> FastAPI:
    """Build the application around a single connection registry."""
    app = FastAPI(
        title="Streamcast",
        description="Server-sent event stream with time ticks and broadcast fan-out",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.registry = registry if registry is not None else ConnectionRegistry()
    app.state.dispatcher = BroadcastDispatcher(app.state.registry)
    app.state.tick_interval = tick_interval

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    app.add_exception_handler(EmptyMessageError, empty_message_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.mount("/static", StaticFiles(directory=str(static_path)), name="static")
    app.include_router(router)
    return app


app = create_app()


def serve() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    configure_logging()
    uvicorn.run(
        "streamcast.main:app",
        host=HOST,
        port=PORT,
        reload=RELOAD,
        log_level=LOG_LEVEL.lower(),
    )
