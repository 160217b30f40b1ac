"""
Paper Search MCP Server - main server creation and entry point.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import Any, cast

from mcp.server.fastmcp import FastMCP

from paper_search.application.search import FederatedSearcher, PaperSearchService
from paper_search.container import ApplicationContainer, build_container
from paper_search.shared.exceptions import ConfigurationError
from paper_search.shared.settings import Settings

from .instructions import SERVER_INSTRUCTIONS
from .tool_registry import register_all_mcp_tools

logger = logging.getLogger(__name__)

# ── Module-level DI container ──────────────────────────────────────────────
_container: ApplicationContainer | None = None


def get_container() -> ApplicationContainer:
    """Get the application DI container.

    Raises:
        RuntimeError: If ``create_server()`` has not been called yet.
    """
    if _container is None:
        msg = "Container not initialized. Call create_server() first."
        raise RuntimeError(msg)
    return _container


def _make_lifespan(
    container: ApplicationContainer,
) -> Callable[[FastMCP[Any]], AbstractAsyncContextManager[ApplicationContainer]]:
    """Create a FastMCP lifespan handler bound to *container*."""

    @asynccontextmanager
    async def _lifespan(server: FastMCP[Any]) -> AsyncIterator[ApplicationContainer]:
        """Application lifecycle: startup → yield → shutdown."""
        logger.info("Lifecycle: startup - resources ready")
        try:
            yield container
        finally:
            service = cast("PaperSearchService", container.search_service())
            await service.close()
            logger.info("Lifecycle: shutdown - provider clients closed")

    return _lifespan


def create_server(settings: Settings | None = None, name: str = "paper-search") -> FastMCP:
    """
    Create and configure the Paper Search MCP server.

    Uses :class:`~paper_search.container.ApplicationContainer` for
    dependency injection and lifecycle management.

    Args:
        settings: Runtime settings. Default: ``Settings.from_env()``.
        name: Server name.

    Returns:
        Configured FastMCP server instance.
    """
    global _container
    logger.info("Initializing Paper Search MCP Server...")

    settings = settings or Settings.from_env()

    # ── DI container ────────────────────────────────────────────────────
    _container = build_container(settings)
    service = cast("PaperSearchService", _container.search_service())
    logger.info(f"Local index directory: {settings.data_dir}")

    # ── Create MCP server with lifespan ─────────────────────────────────
    mcp = FastMCP(
        name,
        instructions=SERVER_INSTRUCTIONS,
        lifespan=_make_lifespan(_container),
    )

    # ── Register all tools via centralized registry ─────────────────────
    stats = register_all_mcp_tools(mcp, service)
    logger.info(f"Tool registration complete: {stats}")

    logger.info("Paper Search MCP Server initialized successfully")
    return mcp


def _peer_service(container: ApplicationContainer) -> PaperSearchService:
    """Service for the peer API: same local index, no outgoing provider calls."""
    return PaperSearchService(
        container.local_index(),
        container.embedder(),
        FederatedSearcher([]),
        settings=container.settings(),
    )


def start_http_api_background(container: ApplicationContainer, port: int) -> threading.Thread:
    """Serve the peer HTTP API from a daemon thread with its own event loop."""
    import uvicorn

    from paper_search.api.server import DEFAULT_API_HOST, create_api_server

    app = create_api_server(_peer_service(container))

    def run_server() -> None:
        try:
            logger.info(f"[HTTP API] Starting on http://{DEFAULT_API_HOST}:{port}")
            uvicorn.run(app, host=DEFAULT_API_HOST, port=port, log_level="warning")
        except OSError as e:
            logger.warning(
                f"[HTTP API] Port {port} unavailable ({e}), "
                "HTTP API disabled. MCP server will still work normally."
            )
        except Exception as e:
            logger.warning(f"[HTTP API] Failed to start: {e}")

    thread = threading.Thread(target=run_server, name="paper-search-http-api", daemon=True)
    thread.start()
    return thread


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Paper Search MCP server (stdio)")
    parser.add_argument(
        "--http-api-port",
        type=int,
        default=None,
        help="Also serve the peer HTTP API on this port (overrides PAPER_SEARCH_HTTP_API_PORT)",
    )
    parser.add_argument("--data-dir", default=None, help="Local index directory")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Run the MCP server."""

    # stdout carries the stdio transport; logs go to stderr
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    args = _parse_args(argv)
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise SystemExit(2) from e

    overrides: dict[str, Any] = {}
    if args.data_dir:
        overrides["data_dir"] = Path(args.data_dir).expanduser()
    if args.http_api_port is not None:
        overrides["http_api_port"] = args.http_api_port
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    server = create_server(settings)

    if settings.http_api_port:
        start_http_api_background(get_container(), settings.http_api_port)

    # Run stdio MCP server (blocks)
    server.run()


if __name__ == "__main__":
    main()
