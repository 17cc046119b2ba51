"""Integration tests for /health, /healthz and /metrics endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from backend.app.config import Settings
from backend.app.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoint:
    """Test /health and /healthz endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @patch("backend.app.api.routes.health.get_settings")
    def test_healthz_reports_deterministic_replanner(self, mock_settings: MagicMock, client: TestClient) -> None:
        """Without a replanner URL the offline replanner is in use."""
        mock_settings.return_value = Settings(_env_file=None)

        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"]["replanner"] == "deterministic"

    @patch("backend.app.api.routes.health.get_settings")
    def test_healthz_reports_http_replanner(self, mock_settings: MagicMock, client: TestClient) -> None:
        mock_settings.return_value = Settings(_env_file=None, replanner_url="http://planner.test")

        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["components"]["replanner"] == "http"


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        """Test /metrics returns Prometheus text format."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "# HELP" in response.text

    def test_metrics_includes_planner_metrics(self, client: TestClient) -> None:
        """Recorded planner metrics show up in the scrape."""
        from backend.app.utils.metrics import PrometheusPlannerMetrics

        metrics = PrometheusPlannerMetrics()
        metrics.inc_verdict("GO")
        metrics.inc_plan("edit_trip", "applied")
        metrics.record_replan_latency("planned", 42)
        metrics.inc_stale_discard()
        metrics.inc_fix_application("navigated")

        text = client.get("/metrics").text

        assert 'verdicts_total{verdict="GO"}' in text
        assert "change_plans_total" in text
        assert "replan_latency_ms_bucket" in text
        assert "stale_plans_discarded_total" in text
        assert 'fix_applications_total{outcome="navigated"}' in text

    def test_metrics_can_be_scraped_multiple_times(self, client: TestClient) -> None:
        response1 = client.get("/metrics")
        response2 = client.get("/metrics")

        assert response1.status_code == 200
        assert response2.status_code == 200


class TestRootEndpoint:
    """Test root endpoint."""

    def test_root_returns_api_info(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Trip Verdict API"
        assert data["version"] == "0.1.0"
