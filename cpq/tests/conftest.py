"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from cpq.app.main import app
from cpq.tests.factories import FIXED_NOW


@pytest.fixture
def now():
    """Fixed evaluation time for promotion windows."""
    return FIXED_NOW


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
