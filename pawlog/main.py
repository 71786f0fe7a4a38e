"""PawLog Server - Entry point.

Runs the MCP server with HTTP transport next to a small JSON API.
The dashboard session starts with the app and stops with it.
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .shell.mcp_server import get_session, mcp


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ==================== Route Handlers ====================


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "healthy", "service": "pawlog"})


async def dashboard_view(request: Request) -> JSONResponse:
    """Current dashboard snapshot as JSON."""
    view = get_session().view()
    return JSONResponse(view.model_dump(mode="json", exclude={"log": {"quarantined"}}))


# ==================== Create ASGI App ====================


def create_app(start_session: bool = True) -> Starlette:
    """Create the Starlette application with MCP at root.

    Args:
        start_session: Start the dashboard session (timers, live sync) in the
            app lifespan
    """
    mcp_app = mcp.streamable_http_app()

    @asynccontextmanager
    async def lifespan(app: Starlette):
        async with mcp_app.router.lifespan_context(app):
            session = get_session() if start_session else None
            if session is not None:
                await session.start()
            try:
                yield
            finally:
                if session is not None:
                    await session.stop()

    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/api/dashboard", dashboard_view, methods=["GET"]),
        # Mount MCP app at root - it handles /mcp/ path internally
        Mount("/", app=mcp_app),
    ]

    return Starlette(routes=routes, lifespan=lifespan)


# Create app at module level for `uvicorn pawlog.main:app`
app = create_app()


def main() -> None:
    """Run the server."""
    port = int(os.environ.get("PORT", 8080))
    host = os.environ.get("HOST", "127.0.0.1")

    logger.info("Starting PawLog server on %s:%d", host, port)

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
