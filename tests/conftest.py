"""
Pytest configuration and shared fixtures.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config import settings
from models.client import Client
from models.context import RequestContext
from models.service import Service
from tests.fakes import CLIENT_ID, ORG_ID, InMemoryAppointmentStore
from utils.constants import (
    PERMISSION_CREATE,
    PERMISSION_DELETE,
    PERMISSION_UPDATE,
    PERMISSION_VIEW_ALL,
)


@pytest.fixture(autouse=True)
def mock_settings():
    """Pin settings used by the scheduling code for all tests."""
    with patch.object(settings, "timezone", "America/Bogota"), patch.object(
        settings, "max_series_occurrences", 366
    ), patch.object(settings, "reminder_hours_before", 24), patch.object(
        settings, "redis_url", None
    ), patch.object(settings, "notify_all_appointments_default", True):
        yield settings


@pytest.fixture
def service_catalog():
    return [
        Service(id="svc_1", organization_id=ORG_ID, name="Training", price=50000, duration_minutes=60),
        Service(id="svc_2", organization_id=ORG_ID, name="Massage", price=30000, duration_minutes=30),
    ]


@pytest.fixture
def store(service_catalog):
    return InMemoryAppointmentStore(
        services=service_catalog,
        clients=[Client(id=CLIENT_ID, organization_id=ORG_ID, name="Ana", telegram_id=123456789)],
    )


@pytest.fixture
def admin_context():
    return RequestContext(
        tenant_id=ORG_ID,
        user_id="user_admin",
        permissions=frozenset(
            {PERMISSION_VIEW_ALL, PERMISSION_CREATE, PERMISSION_UPDATE, PERMISSION_DELETE}
        ),
    )


@pytest.fixture
def mock_dispatcher():
    """Notification dispatcher that records calls."""
    dispatcher = MagicMock()
    dispatcher.send = AsyncMock(return_value=True)
    return dispatcher


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table
