"""
Connection abort for forced crashes.

A forced crash must look like a dead server: no status line, no headers,
just a dropped connection. FastAPI always wants to answer, so the crash
travels in two steps:

1. `forced_crash_handler` catches ForcedCrash inside the app and marks the
   request scope.
2. `ConnectionAbortMiddleware`, wrapped around the whole app, drops every
   response message of a marked request and aborts the socket when the
   server exposes its transport. Without a transport (in-process test
   clients) it raises ConnectionAbortedError instead.

The middleware has to be the outermost layer: Starlette's error middleware
would otherwise answer with a 500 of its own.
"""

import asyncio
from typing import Any

from fastapi import Request
from fastapi.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from chaos_engine.chaos.errors import ForcedCrash
from chaos_engine.logging import get_logger

logger = get_logger(__name__)

ABORT_SCOPE_KEY = "chaos.abort"


async def forced_crash_handler(request: Request, exc: ForcedCrash) -> Response:
    """Mark the request for abort; the returned response is never sent."""
    request.scope[ABORT_SCOPE_KEY] = exc
    return Response(status_code=500)


def _find_transport(send: Send) -> Any:
    """
    Locate the asyncio transport behind the server's send callable.

    Uvicorn passes a bound method of its request/response cycle, which
    keeps the connection's transport as an attribute.
    """
    cycle = getattr(send, "__self__", None)
    return getattr(cycle, "transport", None)


class ConnectionAbortMiddleware:
    """Outermost ASGI wrapper that turns a marked request into a dropped connection."""

    def __init__(self, app: ASGIApp):
        self.app = app
        self.aborted_total = 0

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def guarded_send(message: Message) -> None:
            if ABORT_SCOPE_KEY in scope:
                return
            await send(message)

        await self.app(scope, receive, guarded_send)

        crash = scope.get(ABORT_SCOPE_KEY)
        if crash is None:
            return

        self.aborted_total += 1
        transport = _find_transport(send)
        if transport is not None:
            transport.abort()
            logger.error("Connection aborted: %s", crash)
            # Let the server see the disconnect before the app returns
            await asyncio.sleep(0)
            return

        # No socket to drop; fail the request so the caller sees no response
        logger.error("Connection abort requested without a transport: %s", crash)
        raise ConnectionAbortedError(str(crash))
