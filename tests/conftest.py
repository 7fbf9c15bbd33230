"""Shared test fixtures for the product finder."""

import asyncio
import time
from decimal import Decimal

import pytest

from finder.clock import Clock
from finder.config import (
    AlertSettings,
    AppSettings,
    CacheSettings,
    FeeSettings,
    MarketplaceSettings,
    RateLimitSettings,
    ScanSettings,
)
from finder.models import Competition, Finding


class FakeClock(Clock):
    """Manually driven clock. sleep() advances time instantly and records the request."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds > 0:
            self._now += seconds
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self._now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (no credentials, no SMTP, no API)."""
    return AppSettings(
        log_level="DEBUG",
        marketplace=MarketplaceSettings(app_id="test-app-id"),  # type: ignore[arg-type]
        rate_limit=RateLimitSettings(),
        cache=CacheSettings(),
        scan=ScanSettings(),
        fees=FeeSettings(),
        alerts=AlertSettings(),
    )


@pytest.fixture
def make_finding():
    """Factory for Finding objects with sensible defaults."""

    def _make(
        profit: str = "8.65",
        margin: str = "43.26",
        meets_threshold: bool = True,
        category: str = "Electronics & Accessories",
        keyword: str = "phone case",
        **kwargs,
    ) -> Finding:
        defaults = dict(
            keyword=keyword,
            name=keyword.title(),
            category=category,
            buy_price=Decimal("5.00"),
            sell_price=Decimal("20.00"),
            profit=Decimal(profit),
            margin=Decimal(margin),
            competition=Competition.LOW,
            sold_count=50,
            meets_threshold=meets_threshold,
            found_at=time.time(),
        )
        defaults.update(kwargs)
        return Finding(**defaults)

    return _make
