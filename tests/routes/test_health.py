"""Tests for the public health check."""

from fastapi.testclient import TestClient

from crm_backend.config import settings
from crm_backend.main import app

client = TestClient(app)


def test_health_needs_no_auth():
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["environment"] == settings.ENVIRONMENT
    assert data["version"] == "0.1.0"
    assert data["schema_version"] == "0007_financial_records"
