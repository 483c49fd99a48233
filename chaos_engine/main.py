"""
Chaos Engine - FastAPI Application

Main entry point for the unstable service. The FastAPI `app` carries the
routes; `asgi_app` wraps it with the connection abort layer and is what
uvicorn serves.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from chaos_engine import __version__
from chaos_engine.api.abort import ConnectionAbortMiddleware, forced_crash_handler
from chaos_engine.api.chaos_routes import diagnostics_router
from chaos_engine.api.chaos_routes import router as chaos_router
from chaos_engine.chaos.errors import ForcedCrash
from chaos_engine.chaos.supervisor import get_supervisor
from chaos_engine.config import get_settings
from chaos_engine.logging import get_logger, setup_logging

# Setup logging
setup_logging(level=get_settings().log_level, json_output=get_settings().log_json)
logger = get_logger(__name__)


# =============================================================================
# Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    supervisor = get_supervisor(settings)

    logger.info(
        "Starting unstable server on %s:%d... (Initial delay: %.1fs)",
        settings.host,
        settings.port,
        supervisor.config.initial_delay_s,
    )
    if not settings.chaos_enabled:
        logger.warning("All crash chances are zero; chaos will never start")

    yield

    logger.info("Shutting down Chaos Engine")
    await supervisor.shutdown()


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Chaos Engine",
    description="Unstable HTTP service that degrades, crashes and recovers",
    version=__version__,
    lifespan=lifespan,
)

app.add_exception_handler(ForcedCrash, forced_crash_handler)

app.include_router(chaos_router)
app.include_router(diagnostics_router)

asgi_app = ConnectionAbortMiddleware(app)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Run the server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "chaos_engine.main:asgi_app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
