"""
Unit tests for health and status reporting.
"""

from unittest.mock import AsyncMock, patch

import pytest

from eventgallery import __version__
from eventgallery.health import check_storage_health, get_application_info
from tests.conftest import InMemoryBlobAdapter


class TestCheckStorageHealth:
    """Test cases for check_storage_health."""

    @pytest.mark.asyncio
    async def test_healthy(self):
        result = await check_storage_health(InMemoryBlobAdapter())

        assert result["status"] == "healthy"
        assert result["connected"] is True
        assert result["backend"] == "memory"
        assert result["location"] == "memory://test"
        assert result["urlsExpire"] is False
        assert result["responseTimeMs"] >= 0
        assert "timestamp" in result

    @pytest.mark.asyncio
    async def test_unhealthy(self):
        adapter = InMemoryBlobAdapter(urls_expire=True)

        with patch.object(adapter, "check_connection", AsyncMock(return_value=False)):
            result = await check_storage_health(adapter)

        assert result["status"] == "unhealthy"
        assert result["connected"] is False
        assert result["urlsExpire"] is True
        assert "memory://test" in result["message"]


class TestApplicationInfo:
    """Test cases for get_application_info."""

    def test_fields(self):
        info = get_application_info()

        assert info["name"] == "eventgallery"
        assert info["version"] == __version__
        assert info["environment"] == "test"
        assert info["python_version"]
