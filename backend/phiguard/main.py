import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response

from phiguard import __version__
from phiguard.api.v1.api import router as api_router
from phiguard.api.v1.endpoints import webhook
from phiguard.config import Settings, get_settings
from phiguard.context import build_context
from phiguard.database import init_db

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Application factory. ``settings`` defaults to the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or get_settings()
        configure_logging(resolved.LOG_LEVEL)
        context = build_context(resolved)
        if resolved.DB_AUTO_CREATE:
            init_db(context.engine)
        app.state.context = context
        logger.info("PHI Guard %s started", __version__)

        yield

        cancelled = await context.supervisor.drain(resolved.SHUTDOWN_DRAIN_SECONDS)
        if cancelled:
            logger.error("Shutdown cancelled %d unfinished audit run(s)", cancelled)
        await context.aclose()
        logger.info("PHI Guard shutdown complete")

    application = FastAPI(title="PHI Guard", version=__version__, lifespan=lifespan)

    # Health check route
    @application.get("/health")
    def health_check() -> Response:
        return Response(status_code=200)

    application.include_router(webhook.router)
    application.include_router(api_router, prefix="/api/v1")
    return application


app = create_app()
