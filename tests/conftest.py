"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import MagicMock

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT", "text")

from designdesk.models.enums import UserRole
from designdesk.services.delivery_review import DeliveryReview
from designdesk.services.lifecycle import TaskLifecycle
from tests.utils.factories import make_user
from tests.utils.stores import InMemoryBlobStore, InMemoryTaskStore, InMemoryUserDirectory


@pytest.fixture
def supabase_query():
    """Chainable PostgREST query mock; set ``execute.return_value`` per test."""
    query = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "is_", "order", "limit"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    return query


@pytest.fixture
def task_store():
    return InMemoryTaskStore()


@pytest.fixture
def directory():
    return InMemoryUserDirectory()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def client_user(directory):
    return directory.add(make_user(UserRole.CLIENT))


@pytest.fixture
def other_client(directory):
    return directory.add(make_user(UserRole.CLIENT))


@pytest.fixture
def admin_user(directory):
    return directory.add(make_user(UserRole.ADMIN))


@pytest.fixture
def designer_user(directory):
    return directory.add(make_user(UserRole.DESIGNER))


@pytest.fixture
def other_designer(directory):
    return directory.add(make_user(UserRole.DESIGNER))


@pytest.fixture
def lifecycle(task_store, directory, blob_store):
    return TaskLifecycle(task_store, directory, blob_store)


@pytest.fixture
def review(task_store, directory, blob_store):
    return DeliveryReview(task_store, directory, blob_store)
