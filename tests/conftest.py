"""Root conftest: test infrastructure for all backend tests.

Provides:
- Mocked AsyncSession fixture (no database needed)
- API client with get_db overridden
- Autouse guard that keeps the shared model client off the network
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

# ─────────────────────────────────────────────────────────────────────────────
# Database
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_db() -> AsyncMock:
    """An AsyncSession stand-in; configure db.execute per test."""
    db = AsyncMock()
    db.add = MagicMock()
    return db


# ─────────────────────────────────────────────────────────────────────────────
# API Client
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
async def api_client(mock_db: AsyncMock):
    """HTTP client against the ASGI app with get_db yielding mock_db.

    The lifespan is not run, so no tables are created and the model
    client is never closed.
    """
    from app.core.database import get_db
    from app.main import app

    async def override_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ─────────────────────────────────────────────────────────────────────────────
# External Service Mocks
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def mock_model_service():
    """SAFETY: never reach the real model API from tests.

    The shared client's SDK handle is replaced with a mock that fails like
    an unreachable service unless a test configures it.
    """
    from app.services.insights.model_client import model_client

    sdk = MagicMock()
    sdk.messages.create = AsyncMock(side_effect=RuntimeError("model service is mocked"))

    with patch.object(model_client, "_client", sdk):
        yield sdk
