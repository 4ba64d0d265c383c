"""Tests for health check endpoint."""

import pytest
import json
from io import BytesIO
from unittest.mock import Mock, patch
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))
from api.health import handler, health_payload

from designdesk.utils.config import StoreConfig


def _probe(method: str) -> dict:
    """Run the handler method without a socket and return the decoded body."""
    probe = handler.__new__(handler)
    probe.wfile = BytesIO()
    probe.send_response = Mock()
    probe.send_header = Mock()
    probe.end_headers = Mock()

    getattr(probe, f"do_{method}")()

    probe.send_response.assert_called_once_with(200)
    probe.send_header.assert_any_call('Content-Type', 'application/json')
    return json.loads(probe.wfile.getvalue().decode('utf-8'))


@pytest.mark.unit
@pytest.mark.parametrize("method", ["GET", "POST"])
def test_health_reports_ok(method):
    body = _probe(method)

    assert body["status"] == "ok"
    assert body["service"] == "designdesk-core"


@pytest.mark.unit
def test_health_reports_missing_store_credentials():
    with patch.object(StoreConfig, "SUPABASE_URL", ""):
        assert health_payload()["store_configured"] is False


@pytest.mark.unit
def test_health_reports_configured_store():
    with patch.object(StoreConfig, "SUPABASE_URL", "https://db.test"), \
         patch.object(StoreConfig, "SUPABASE_SERVICE_ROLE_KEY", "service-key"):
        assert health_payload()["store_configured"] is True
