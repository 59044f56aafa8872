"""
Photo Feed API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Initialise the MinIO client & bucket
  4. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy.exc import SQLAlchemyError

from photofeed.config import settings
from photofeed.database import dispose_db, init_db
from photofeed.errors import FeedError, UpstreamFailure, ValidationError
from photofeed.telemetry import setup_tracing, instrument_app
from photofeed.clients.storage_client import blob_store
from photofeed.routers import comments, feed, posts, users

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting Photo Feed API (env=%s)", settings.environment)

    await init_db()
    blob_store.start()              # sync, boto3 is not async

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await dispose_db()


app = FastAPI(
    title="Photo Feed API",
    description=(
        "Photo-sharing feed: posts with images and captions, likes, "
        "comments, follows and a chronological offset-paginated feed."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(FeedError)
async def feed_error_handler(request: Request, exc: FeedError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.detail, exc.code)
    else:
        logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.detail, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed query/body parameters are a 400 like any other bad request."""
    errors = exc.errors()
    detail = None
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", ())[1:])
        detail = f"{field}: {errors[0].get('msg')}" if field else errors[0].get("msg")
    return await feed_error_handler(request, ValidationError(detail))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
    return await feed_error_handler(request, UpstreamFailure())


# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(posts.router, prefix="/posts", tags=["Posts"])
app.include_router(comments.router, prefix="/comments", tags=["Comments"])
app.include_router(feed.router, prefix="/feed", tags=["Feed"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
