import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from comment_threads.cache import build_cache
from comment_threads.config import settings
from comment_threads.errors import Forbidden, InvalidRequest, NotFound, ThreadError
from comment_threads.events import EventSink, register_default_listeners
from comment_threads.log import setup_logging
from comment_threads.middleware import TimingMiddleware
from comment_threads.routers import comments, media, metrics, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging(settings)
    try:
        await app.state.cache.connect()
    except Exception as exc:
        logger.warning("Result cache unavailable at startup: %s", exc)
    yield
    # Shutdown
    await app.state.events.drain()
    await app.state.cache.disconnect()


app = FastAPI(
    title="Comment Threads API",
    description="Two-level comment threads on media items with cached pagination",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.cache = build_cache(settings)
app.state.events = EventSink()
register_default_listeners(app.state.events)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(comments.router)
app.include_router(users.router)
app.include_router(media.router)
app.include_router(metrics.router)


# ============================================================================
# Exception Handlers
# ============================================================================
_STATUS_BY_ERROR: dict[type[ThreadError], int] = {
    InvalidRequest: 400,
    Forbidden: 403,
    NotFound: 404,
}


@app.exception_handler(ThreadError)
async def thread_error_handler(request: Request, exc: ThreadError):
    status_code = next(
        (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 400
    )
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
