"""HTTP JSON service feeding the benchmark dashboard."""

from .server import create_api_server

__all__ = ["create_api_server"]
