"""Server module — aiohttp application and Prometheus metrics."""

from src.server.app import create_web_app, start_server
from src.server.metrics import ServiceMetrics

__all__ = [
    "ServiceMetrics",
    "create_web_app",
    "start_server",
]
