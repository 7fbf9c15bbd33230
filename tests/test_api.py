"""Tests for the HTTP API routes.

The app is built without a lifespan; collaborators are placed on app.state
directly, the same attributes the lifespan in finder.main would set.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from finder.alerts.sink import LogAlertSink
from finder.api.app import create_app
from finder.categories.catalog import CategoryCatalog
from finder.categories.selector import CategorySelector
from finder.categories.tracker import CategoryScoreTracker
from finder.config import AppSettings
from finder.exceptions import ConfigurationError, CycleInProgressError
from finder.marketplace.client import PriceLookup
from finder.models import PriceSummary
from finder.orchestrator import ScanOrchestrator
from finder.pricing.profitability import ProfitCalculator
from finder.pricing.supplier import CostEstimator
from finder.scheduling.rate_limiter import RateLimiter
from finder.storage.cache import TTLCache
from finder.storage.history import PriceHistoryStore
from finder.storage.snapshot import SnapshotStore


@pytest.fixture
def app(mock_settings: AppSettings, clock):
    catalog = CategoryCatalog({"Phones": ["phone case", "phone ring holder"], "Home": ["drawer organizer"]})
    tracker = CategoryScoreTracker(clock=clock)
    history = PriceHistoryStore(clock=clock)
    rate_limiter = RateLimiter(mock_settings.rate_limit, clock=clock)

    lookup = AsyncMock(spec=PriceLookup)
    lookup.lookup.side_effect = lambda kw: PriceSummary(
        keyword=kw,
        avg_price=Decimal("20.00"),
        min_price=Decimal("15.00"),
        max_price=Decimal("25.00"),
        sold_count=50,
    )
    estimator = MagicMock(spec=CostEstimator)
    estimator.estimate.return_value = Decimal("5.00")
    store = AsyncMock(spec=SnapshotStore)
    store.load.return_value = {}

    orchestrator = ScanOrchestrator(
        settings=mock_settings,
        catalog=catalog,
        tracker=tracker,
        selector=CategorySelector(catalog, tracker),
        cache=TTLCache(clock=clock),
        history=history,
        rate_limiter=rate_limiter,
        price_lookup=lookup,
        cost_estimator=estimator,
        calculator=ProfitCalculator(mock_settings.fees),
        alert_sink=LogAlertSink(),
        snapshot_store=store,
        clock=clock,
    )

    application = create_app()
    application.state.settings = mock_settings
    application.state.orchestrator = orchestrator
    application.state.history = history
    application.state.tracker = tracker
    application.state.catalog = catalog
    application.state.rate_limiter = rate_limiter
    return application


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


class TestStatus:
    def test_idle_status(self, client: TestClient) -> None:
        response = client.get("/api/status")

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "idle"
        assert body["cycle_in_progress"] is False
        assert body["marketplace_configured"] is True
        assert body["features"]["price_history"] is True
        assert body["last_cycle"] is None


class TestScan:
    """POST /api/scan runs one cycle on demand."""

    def test_scan_returns_report(self, client: TestClient) -> None:
        response = client.post("/api/scan")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 3
        assert body["profitable_count"] == 3
        case = next(f for f in body["findings"] if f["keyword"] == "phone case")
        assert case["profit"] == "8.65"
        assert case["margin"] == "43.26"
        assert case["top_sellers"] == []
        assert case["search_url"].endswith("_nkw=phone%20case&LH_Sold=1&LH_Complete=1")
        assert body["viral_count"] == 0
        assert body["rate_limit"]["hourly"] == "3/80"

    def test_scan_while_running_is_409(self, app, client: TestClient) -> None:
        busy = MagicMock()
        busy.run_cycle = AsyncMock(side_effect=CycleInProgressError("A scan cycle is already running"))
        app.state.orchestrator = busy

        response = client.post("/api/scan")

        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_misconfiguration_is_500(self, app, client: TestClient) -> None:
        broken = MagicMock()
        broken.run_cycle = AsyncMock(side_effect=ConfigurationError("Unknown category: 'X'"))
        app.state.orchestrator = broken

        response = client.post("/api/scan")

        assert response.status_code == 500
        assert "Unknown category" in response.json()["error"]

    def test_cancel_when_idle(self, client: TestClient) -> None:
        response = client.post("/api/scan/cancel")
        assert response.json() == {"success": True, "cancel_requested": False}


class TestHistory:
    def test_history_after_scan(self, client: TestClient) -> None:
        client.post("/api/scan")

        response = client.get("/api/history/phone case", params={"days": 7})

        body = response.json()
        assert body["keyword"] == "phone case"
        assert body["days_requested"] == 7
        assert body["data_points"] == 1
        assert body["trend"] == "insufficient_data"
        assert body["history"][0]["avg_price"] == "20.00"

    def test_unknown_keyword_is_empty(self, client: TestClient) -> None:
        body = client.get("/api/history/nothing").json()
        assert body["data_points"] == 0
        assert body["days_requested"] == 30

    def test_days_out_of_range_rejected(self, client: TestClient) -> None:
        assert client.get("/api/history/phone case", params={"days": 0}).status_code == 422


class TestCategoryPerformance:
    def test_ranked_after_scan(self, client: TestClient) -> None:
        client.post("/api/scan")

        body = client.get("/api/categories/performance").json()

        assert body["total_categories"] == 2
        assert body["available_products"] == 3
        names = [c["category"] for c in body["categories"]]
        assert sorted(names) == ["Home", "Phones"]
        assert all(c["eligible"] is False for c in body["categories"])


class TestRateLimit:
    def test_fresh_limiter(self, client: TestClient) -> None:
        assert client.get("/api/rate-limit").json() == {
            "hourly": "0/80",
            "daily": "0/4000",
            "remaining_hourly": 80,
        }
