"""HTTP API for peer nodes."""

from .server import DEFAULT_API_PORT, create_api_server, run_api_server

__all__ = ["DEFAULT_API_PORT", "create_api_server", "run_api_server"]
