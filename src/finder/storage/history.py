"""Per-keyword rolling price history.

Each keyword owns an insertion-ordered (and therefore chronological) list
of HistoryPoint. Recording a point prunes that keyword's list to the
retention window (90 days by default); other keywords are untouched until
they are recorded again.
"""

from finder.clock import Clock, SystemClock
from finder.exceptions import PersistenceError
from finder.logging import get_logger
from finder.models import HistoryPoint, PriceTrend
from finder.storage.snapshot import SnapshotStore

logger = get_logger(__name__)

SNAPSHOT_NAME = "price_history"

_DAY = 24 * 60 * 60


class PriceHistoryStore:
    """Bounded time series of scan results per keyword.

    Args:
        retention_days: Points older than this are dropped on record().
        clock: Time source (injected in tests).
    """

    def __init__(self, retention_days: int = 90, clock: Clock | None = None) -> None:
        self._retention_seconds = retention_days * _DAY
        self._clock = clock or SystemClock()
        self._points: dict[str, list[HistoryPoint]] = {}

    def record(self, key: str, point: HistoryPoint) -> None:
        """Append a point, then prune this key's points past retention."""
        series = self._points.setdefault(key, [])
        series.append(point)
        cutoff = self._clock.now() - self._retention_seconds
        self._points[key] = [p for p in series if p.recorded_at > cutoff]

    def query(self, key: str, window_days: float = 30) -> list[HistoryPoint]:
        """Return points recorded within the last window_days, oldest first.

        Pure read: returns a new list on every call and never prunes.
        """
        cutoff = self._clock.now() - window_days * _DAY
        return [p for p in self._points.get(key, ()) if p.recorded_at > cutoff]

    def keywords(self) -> list[str]:
        return list(self._points)

    def to_snapshot(self) -> dict[str, list[dict]]:
        return {
            key: [p.to_dict() for p in series] for key, series in self._points.items()
        }

    def restore(self, snapshot: dict[str, list[dict]]) -> None:
        points: dict[str, list[HistoryPoint]] = {}
        for key, raw_series in snapshot.items():
            try:
                series = [HistoryPoint.from_dict(raw) for raw in raw_series]
            except (KeyError, TypeError, ValueError, ArithmeticError):
                logger.warning("history_series_malformed", key=key)
                continue
            series.sort(key=lambda p: p.recorded_at)
            points[key] = series
        self._points = points

    async def load_from(self, store: SnapshotStore) -> None:
        self.restore(await store.load(SNAPSHOT_NAME))
        logger.info("price_history_loaded", keywords=len(self._points))

    async def save_to(self, store: SnapshotStore) -> bool:
        try:
            await store.save(SNAPSHOT_NAME, self.to_snapshot())
        except PersistenceError as e:
            logger.error("price_history_save_failed", error=str(e))
            return False
        return True


def derive_trend(points: list[HistoryPoint]) -> PriceTrend:
    """Compare first and last avg_price in the window.

    Fewer than two points is insufficient data; an unchanged price counts
    as decreasing.
    """
    if len(points) < 2:
        return PriceTrend.INSUFFICIENT_DATA
    if points[-1].avg_price > points[0].avg_price:
        return PriceTrend.INCREASING
    return PriceTrend.DECREASING
