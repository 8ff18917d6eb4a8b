"""
Grimoire FastAPI application.

``create_app`` builds the app; the service runtime (providers, persona store,
pipeline) is opened in the lifespan and held on ``app.state.runtime``.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core.config import Config
from ..core.logging import get_logger
from ..services.runtime import ServiceRuntime, build_runtime
from .error_handling_middleware import (
    ErrorHandlingMiddleware,
    register_exception_handlers,
)
from .grimoire_api import grimoire_router
from .health_api import health_router
from .logging_middleware import LoggingMiddleware
from .metrics_api import metrics_router

logger = get_logger(__name__)


def create_app(
    config: Optional[Config] = None, runtime: Optional[ServiceRuntime] = None
) -> FastAPI:
    """Create the Grimoire API.

    Args:
        config: Service configuration; read from the environment when omitted
        runtime: Prebuilt runtime, e.g. with stub providers; built from
            ``config`` when omitted
    """
    if config is None:
        config = runtime.config if runtime is not None else Config.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = runtime or build_runtime(config)
        await active.open()
        app.state.runtime = active
        logger.info(
            "Grimoire service started",
            environment=config.environment.value,
            llm_provider=config.llm.provider,
        )
        try:
            yield
        finally:
            await active.close()
            logger.info("Grimoire service stopped")

    app = FastAPI(title="Grimoire API", version=__version__, lifespan=lifespan)
    app.state.config = config

    # Add middleware (order matters - first added runs innermost)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Trace-ID", "X-Grimoire-Failure"],
    )

    register_exception_handlers(app)

    app.include_router(grimoire_router)
    app.include_router(health_router)
    app.include_router(metrics_router)

    return app
