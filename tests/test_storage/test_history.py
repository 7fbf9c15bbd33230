"""Tests for PriceHistoryStore and derive_trend.

Covers window queries, retention pruning on record, snapshot restore
ordering and the trend rule (last vs first avg_price).
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from finder.models import HistoryPoint, PriceTrend
from finder.storage.history import SNAPSHOT_NAME, PriceHistoryStore, derive_trend
from finder.storage.snapshot import SnapshotStore

_DAY = 86400


def _point(recorded_at: float, avg_price: str = "20.00") -> HistoryPoint:
    return HistoryPoint(
        avg_price=Decimal(avg_price),
        min_price=Decimal("15.00"),
        max_price=Decimal("25.00"),
        profit=Decimal("8.65"),
        margin=Decimal("43.26"),
        sold_count=50,
        recorded_at=recorded_at,
    )


@pytest.fixture
def history(clock) -> PriceHistoryStore:
    return PriceHistoryStore(retention_days=90, clock=clock)


class TestRecordAndQuery:
    """record() appends, query() filters by window."""

    def test_query_unknown_key_is_empty(self, history: PriceHistoryStore) -> None:
        assert history.query("nothing") == []

    def test_points_returned_oldest_first(self, history: PriceHistoryStore, clock) -> None:
        first = _point(clock.now(), "20.00")
        history.record("k", first)
        clock.advance(_DAY)
        second = _point(clock.now(), "22.00")
        history.record("k", second)

        assert history.query("k") == [first, second]

    def test_query_excludes_points_outside_window(self, history: PriceHistoryStore, clock) -> None:
        old = _point(clock.now())
        history.record("k", old)
        clock.advance(40 * _DAY)
        recent = _point(clock.now())
        history.record("k", recent)

        assert history.query("k", window_days=30) == [recent]
        assert history.query("k", window_days=60) == [old, recent]

    def test_query_is_restartable_and_does_not_mutate(self, history: PriceHistoryStore, clock) -> None:
        history.record("k", _point(clock.now()))
        result = history.query("k")
        result.clear()
        assert len(history.query("k")) == 1

    def test_keys_are_independent(self, history: PriceHistoryStore, clock) -> None:
        history.record("a", _point(clock.now()))
        assert history.query("b") == []
        assert history.keywords() == ["a"]


class TestRetention:
    """Points past retention are dropped when the key is recorded again."""

    def test_record_prunes_points_older_than_retention(self, history: PriceHistoryStore, clock) -> None:
        aged = _point(clock.now())
        history.record("k", aged)
        clock.advance(91 * _DAY)
        fresh = _point(clock.now())
        history.record("k", fresh)

        assert history.query("k", window_days=365) == [fresh]

    def test_points_within_retention_survive(self, history: PriceHistoryStore, clock) -> None:
        kept = _point(clock.now())
        history.record("k", kept)
        clock.advance(89 * _DAY)
        history.record("k", _point(clock.now()))

        assert kept in history.query("k", window_days=365)

    def test_other_keys_untouched_until_recorded(self, history: PriceHistoryStore, clock) -> None:
        history.record("a", _point(clock.now()))
        clock.advance(91 * _DAY)
        history.record("b", _point(clock.now()))

        assert len(history.to_snapshot()["a"]) == 1


class TestSnapshot:
    """Load/save through a SnapshotStore."""

    @pytest.mark.asyncio
    async def test_roundtrip_sorts_restored_points(self, history: PriceHistoryStore, clock) -> None:
        store = AsyncMock(spec=SnapshotStore)
        late = _point(clock.now(), "30.00")
        early = _point(clock.now() - _DAY, "10.00")
        store.load.return_value = {"k": [late.to_dict(), early.to_dict()]}

        await history.load_from(store)

        assert history.query("k") == [early, late]
        store.load.assert_awaited_once_with(SNAPSHOT_NAME)

    @pytest.mark.asyncio
    async def test_malformed_series_is_dropped(self, history: PriceHistoryStore, clock) -> None:
        store = AsyncMock(spec=SnapshotStore)
        store.load.return_value = {
            "good": [_point(clock.now()).to_dict()],
            "bad": [{"avg_price": "not a number"}],
        }

        await history.load_from(store)

        assert history.keywords() == ["good"]


class TestDeriveTrend:
    """Trend compares the last and first avg_price in the window."""

    def test_empty_is_insufficient(self) -> None:
        assert derive_trend([]) == PriceTrend.INSUFFICIENT_DATA

    def test_single_point_is_insufficient(self) -> None:
        assert derive_trend([_point(0)]) == PriceTrend.INSUFFICIENT_DATA

    def test_rising_price_is_increasing(self) -> None:
        points = [_point(0, "20.00"), _point(1, "18.00"), _point(2, "21.00")]
        assert derive_trend(points) == PriceTrend.INCREASING

    def test_falling_price_is_decreasing(self) -> None:
        points = [_point(0, "20.00"), _point(1, "19.99")]
        assert derive_trend(points) == PriceTrend.DECREASING

    def test_unchanged_price_is_decreasing(self) -> None:
        points = [_point(0, "20.00"), _point(1, "20.00")]
        assert derive_trend(points) == PriceTrend.DECREASING
