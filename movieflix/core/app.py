from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from movieflix.api.main import create_api_router
from movieflix.services.container import ClientServices, create_services

from .config import settings
from .version import __version__


def create_app(services: ClientServices | None = None) -> FastAPI:
    services = services or create_services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifespan events (startup/shutdown).
        """
        await services.startup()
        services.errors.install()
        yield
        services.errors.uninstall()
        try:
            await services.close()
            logger.info("Client services closed")
        except Exception as exc:
            logger.warning(f"Failed to close client services: {exc}")

    app = FastAPI(
        title="MovieFlix client diagnostics",
        description="Connectivity, offline queue and error log of the MovieFlix client",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if settings.APP_ENV != "development" else "/docs",
        redoc_url=None if settings.APP_ENV != "development" else "/redoc",
    )
    app.state.services = services
    app.include_router(create_api_router(services))
    return app
