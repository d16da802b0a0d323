"""
Pytest configuration for the CRM backend tests.

Sets up the test environment and shared fixtures.
"""
import os
import pytest
from unittest.mock import MagicMock

# Disable config validation during tests
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")

from crm_backend.access import CallerIdentity  # noqa: E402

USER_A = "11111111-1111-4111-8111-111111111111"
USER_B = "22222222-2222-4222-8222-222222222222"

QUERY_METHODS = (
    "select", "eq", "neq", "or_", "gte", "lte", "order", "range", "limit",
    "insert", "update", "delete",
)


def _make_query(data=None):
    query = MagicMock()
    for method in QUERY_METHODS:
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=data if data is not None else [])
    return query


@pytest.fixture
def make_query():
    """
    Factory for chainable stand-ins of a PostgREST query builder.

    Every builder method returns the same mock; execute() returns an object
    whose .data is the given rows.
    """
    return _make_query


@pytest.fixture
def supabase_client():
    """
    Mock Supabase client.

    Each table gets its own chainable query mock, created on first use and
    reachable as supabase_client.tables[name].
    """
    mock_client = MagicMock()
    mock_client.tables = {}

    def _table(name):
        if name not in mock_client.tables:
            mock_client.tables[name] = _make_query()
        return mock_client.tables[name]

    mock_client.table.side_effect = _table
    return mock_client


@pytest.fixture
def caller_a():
    return CallerIdentity.from_user_id(USER_A)


@pytest.fixture
def caller_b():
    return CallerIdentity.from_user_id(USER_B)


@pytest.fixture
def anonymous():
    return CallerIdentity.anonymous()
