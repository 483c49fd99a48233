"""
Stable echo service.

The healthy baseline that clients of the unstable service are compared
against: one JSON endpoint, request logging, JSON error bodies.
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chaos_engine import __version__
from chaos_engine.config import get_settings
from chaos_engine.logging import get_logger, setup_logging

setup_logging(level=get_settings().log_level, json_output=get_settings().log_json)
logger = get_logger(__name__)

RUNNING_MESSAGE = "Server is running!!!"


def response_with_json(payload: Any, status_code: int = 200) -> JSONResponse:
    """JSON response with the given status code."""
    return JSONResponse(content=payload, status_code=status_code)


def response_with_error(message: str, status_code: int) -> JSONResponse:
    """JSON error body of the form {"error": message}."""
    return response_with_json({"error": message}, status_code=status_code)


app = FastAPI(
    title="Chaos Engine Stable Echo",
    description="Healthy reference service",
    version=__version__,
)


@app.middleware("http")
async def log_requests(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Log method, path, status and latency of every request."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s -> %d in %.2fms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as JSON error bodies."""
    return response_with_error(str(exc.detail), exc.status_code)


@app.get("/")
async def root() -> JSONResponse:
    """Fixed healthy response."""
    return response_with_json({"message": RUNNING_MESSAGE})


def main() -> None:
    """Run the stable server."""
    import uvicorn

    settings = get_settings()
    logger.info("Server is running on port %d", settings.port)
    uvicorn.run(
        "chaos_engine.stable:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
