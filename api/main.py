from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.containers import AppContainer
from api.routers import realtime, system
from core.config.settings import Settings
from core.config.validator import validate_startup_configuration
from core.logging import configure_logging, get_api_logger_safe

logger = get_api_logger_safe("api.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    container = app.state.container
    settings = container.settings()
    logger.info("Starting Team Ledger server",
                environment=settings.environment.value,
                lot_size=settings.ledger.lot_size)

    yield

    logger.info("Shutting down Team Ledger server")
    await container.trading_room().stop()


def _build_uvicorn_log_config() -> dict:
    """Return a minimal log config that cooperates with our structlog handlers.

    Do NOT set explicit handler lists here: uvicorn applies this dictConfig at
    startup and would otherwise clear the handlers configure_logging attached.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "loggers": {
            "uvicorn": {"level": "INFO"},
            "uvicorn.error": {"level": "INFO"},
            "uvicorn.access": {"level": "INFO"},
        },
    }


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Creates and configures the FastAPI application"""
    container = AppContainer()
    if settings is not None:
        container.settings.override(settings)
    settings = container.settings()

    validate_startup_configuration(settings)
    configure_logging(settings)

    app = FastAPI(
        title="Team Ledger",
        version=settings.version,
        description="Shared investment ledger with realtime websocket synchronization.",
        lifespan=lifespan,
    )
    app.state.container = container

    container.wire(modules=[
        "api.dependencies",
    ])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=settings.api.cors_credentials,
        allow_methods=settings.api.cors_methods,
        allow_headers=["*"],
    )

    app.include_router(realtime.router)
    app.include_router(system.router)

    return app


def run():
    """Main function to run the server"""
    app = create_app()
    settings = app.state.container.settings()

    uvicorn.run(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.logging.level.lower(),
        log_config=_build_uvicorn_log_config(),
    )


if __name__ == "__main__":
    run()
