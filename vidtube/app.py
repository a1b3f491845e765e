"""
VidTube - FastAPI Application Entrypoint

This module initializes the FastAPI application with:
- CORS and security middleware
- Authentication routes and dependencies
- Database lifecycle management
- Error envelope and logging setup
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vidtube.config import settings
from vidtube.gateway.error_handling import register_exception_handlers
from vidtube.gateway.middleware import SecurityMiddleware
from vidtube.auth.database import get_engine, init_db, get_session_factory
from vidtube.auth.routes import router as auth_router


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Freeze AuthConfig from settings (unless already provided)
        - Initialize SQLModel database (Users)

    Shutdown:
        - Dispose the engine if this lifespan created it
    """
    if getattr(app.state, "auth_config", None) is None:
        app.state.auth_config = settings.auth_config()

    config = app.state.auth_config
    if not config.access_secret or not config.refresh_secret:
        logger.error("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set; token issuance will fail")

    owns_engine = getattr(app.state, "db_engine", None) is None
    if owns_engine:
        engine = get_engine(settings.DATABASE_URL)
        init_db(engine)
        app.state.db_engine = engine
        app.state.db_session_factory = get_session_factory(engine)

    yield

    if owns_engine:
        app.state.db_engine.dispose()
        app.state.db_engine = None


app = FastAPI(
    title="VidTube",
    description="Video platform backend: authentication and session management",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.auth_config = None
app.state.db_engine = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "PUT", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

app.add_middleware(SecurityMiddleware)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint for local dev tooling."""
    return {
        "status": "healthy",
        "version": "0.1.0",
        "services": {
            "database": app.state.db_engine is not None,
        },
    }


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "VidTube",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
