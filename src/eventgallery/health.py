"""
Health and status reporting for the storage subsystem.
"""

import platform
import time
from typing import Any

from . import __version__
from .config import get_environment
from .logging_config import get_logger
from .storage.base import BlobAdapter

logger = get_logger(__name__)


async def check_storage_health(adapter: BlobAdapter) -> dict[str, Any]:
    """Check that the active backend is reachable and describe it."""
    info = adapter.describe()
    started = time.perf_counter()

    connected = await adapter.check_connection()
    elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

    if connected:
        status = {
            "status": "healthy",
            "message": f"Storage reachable at {adapter.location}",
        }
    else:
        logger.error("storage_health_check_failed", backend=adapter.backend_name, location=adapter.location)
        status = {
            "status": "unhealthy",
            "message": f"Storage unreachable at {adapter.location}",
        }

    return {
        **status,
        **info,
        "connected": connected,
        "responseTimeMs": elapsed_ms,
        "timestamp": time.time(),
    }


def get_application_info() -> dict[str, Any]:
    """Get application information."""
    return {
        "name": "eventgallery",
        "version": __version__,
        "environment": get_environment(),
        "python_version": platform.python_version(),
        "timestamp": time.time(),
    }
