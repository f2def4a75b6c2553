"""Main FastAPI application for heartbeat ingestion and analytics."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from .config import Settings, get_database_url
from .database import create_engine, create_session_factory, init_db, close_db
from .errors import HttpError
from .handlers import http_error_handler, register_exception_handlers
from .routers import heartbeat_router, analytics_router
from .security import require_configured, require_not_blocked

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    settings: Settings = app.state.settings
    logger.info("Starting heartbeat service")
    if not settings.is_configured:
        logger.error("CLIENT_TOKEN and ADMIN_TOKEN must both be set; every request will fail")

    engine = create_engine(get_database_url(settings))
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    await init_db(engine, settings)
    logger.info("Database initialized")

    yield

    await close_db(engine)
    logger.info("Shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Heartbeats",
        description="Anonymized device heartbeat ingestion and usage analytics",
        version="1.0.0",
        lifespan=lifespan,
        # Only the four API routes are served
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings if settings is not None else Settings()

    register_exception_handlers(app)

    @app.middleware("http")
    async def guard_requests(request: Request, call_next):
        """Stealth-block listed origins, then refuse service until configured."""
        try:
            require_not_blocked(request, app.state.settings)
            require_configured(app.state.settings)
        except HttpError as exc:
            return await http_error_handler(request, exc)
        return await call_next(request)

    app.include_router(heartbeat_router)
    app.include_router(analytics_router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.web_port)
