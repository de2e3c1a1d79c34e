"""Metrics server helper for pricebet.

Starting the exporter must not take the settlement loop down with it, so a
port that cannot be bound only logs a warning.
"""

import logging
from typing import Optional

from prometheus_client import start_http_server

logger = logging.getLogger(__name__)


def start_server_safe(port: int) -> Optional[int]:
    """Start the Prometheus HTTP exporter; return the port or None if binding failed."""
    if port <= 0:
        logger.info("Prometheus exporter disabled (port <= 0)")
        return None
    try:
        start_http_server(port)
    except OSError as e:
        logger.warning(f"Failed to start Prometheus server on :{port}: {e}")
        return None
    logger.info(f"Prometheus metrics server started on :{port}")
    return port
