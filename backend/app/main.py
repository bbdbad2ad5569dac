"""OmniDev Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from omnidev.protocols import OmniDevError

from .config import get_settings
from .logging_config import configure_logging, get_logger
from .rate_limit import limiter
from .routes import ai_router

logger = get_logger("omnidev.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging(settings.debug)
    logger.info(f"Starting OmniDev Backend API (debug={settings.debug})")
    yield
    logger.info("Shutting down OmniDev Backend API")


app = FastAPI(
    title="OmniDev Backend API",
    description="AI bridge: subscription-gated model routing with a self-learning knowledge store",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(OmniDevError)
async def omnidev_error_handler(request: Request, exc: OmniDevError):
    """Map bridge errors to their status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(ai_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": "omnidev-backend",
        "version": "0.1.0",
        "status": "ok",
    }


@app.get("/health")
async def health():
    """Detailed health check with actual database verification."""
    from .database import AI_MODELS_TABLE, get_supabase_client

    db_status = "disconnected"
    try:
        db = get_supabase_client()
        db.table(AI_MODELS_TABLE).select("name").limit(1).execute()
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)[:50]}"

    overall_status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": overall_status,
        "database": db_status,
    }
