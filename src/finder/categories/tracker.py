"""Per-category performance scoring and the scan recency gate.

Score formula (0-100):
  score = min(100, floor(success_rate * 0.6 + min(avg_profit, 10) / 10 * 40))

Consistency (success rate) carries 60 points, average profit the other 40,
with profit contribution saturating at $10. Scores are clamped at 0 when
average profit goes negative.

Running means are weighted incrementally using the pre-update total:
  new_mean = (old_mean * old_total + sum(new_values)) / new_total
"""

import math
from decimal import Decimal

from finder.clock import Clock, SystemClock
from finder.exceptions import PersistenceError
from finder.logging import get_logger
from finder.models import CategoryStats, Finding
from finder.storage.snapshot import SnapshotStore

logger = get_logger(__name__)

SNAPSHOT_NAME = "category_performance"

NEUTRAL_SCORE = 50

_SUCCESS_WEIGHT = Decimal("0.6")
_PROFIT_CAP = Decimal("10")
_PROFIT_POINTS = Decimal("40")


def compute_score(success_rate: Decimal, avg_profit: Decimal) -> int:
    """Blend success rate and capped average profit into a 0-100 score."""
    raw = success_rate * _SUCCESS_WEIGHT + min(avg_profit, _PROFIT_CAP) / _PROFIT_CAP * _PROFIT_POINTS
    return max(0, min(100, math.floor(raw)))


class CategoryScoreTracker:
    """Owns one CategoryStats per category.

    Args:
        recency_hours: Minimum hours between scans of the same category.
        clock: Time source (injected in tests).
    """

    def __init__(self, recency_hours: float = 12.0, clock: Clock | None = None) -> None:
        self._recency_seconds = recency_hours * 60 * 60
        self._clock = clock or SystemClock()
        self._stats: dict[str, CategoryStats] = {}

    def seed(self, categories: list[str]) -> None:
        """Create neutral entries for categories not yet tracked."""
        for category in categories:
            self.stats_for(category)

    def stats_for(self, category: str) -> CategoryStats:
        """Return the category's stats, creating a neutral entry on first reference."""
        stats = self._stats.get(category)
        if stats is None:
            stats = CategoryStats()
            self._stats[category] = stats
        return stats

    def score_of(self, category: str) -> int:
        """Score without creating an entry; unknown categories are neutral."""
        stats = self._stats.get(category)
        return stats.score if stats is not None else NEUTRAL_SCORE

    def should_scan(self, category: str) -> bool:
        """True if never scanned or the cooldown has elapsed. Ignores score."""
        stats = self._stats.get(category)
        if stats is None or stats.last_scanned_at is None:
            return True
        return self._clock.now() - stats.last_scanned_at >= self._recency_seconds

    def update(self, category: str, findings: list[Finding]) -> CategoryStats:
        """Fold one cycle's findings for a category into its running stats."""
        stats = self.stats_for(category)
        batch = len(findings)
        old_total = stats.total_scanned
        new_total = old_total + batch

        if batch:
            total_profit = sum((f.profit for f in findings), Decimal("0"))
            total_margin = sum((f.margin for f in findings), Decimal("0"))
            stats.avg_profit = (stats.avg_profit * old_total + total_profit) / new_total
            stats.avg_margin = (stats.avg_margin * old_total + total_margin) / new_total
            stats.profitable_found += sum(1 for f in findings if f.meets_threshold)
            stats.total_scanned = new_total
            stats.success_rate = Decimal(stats.profitable_found) / Decimal(new_total) * 100
            stats.score = compute_score(stats.success_rate, stats.avg_profit)

        stats.last_scanned_at = self._clock.now()

        logger.info(
            "category_updated",
            category=category,
            scanned=batch,
            total_scanned=stats.total_scanned,
            success_rate=str(round(stats.success_rate, 1)),
            score=stats.score,
        )
        return stats

    def top_categories(self, count: int, among: list[str] | None = None) -> list[str]:
        """Categories by score descending, name ascending on ties."""
        names = among if among is not None else list(self._stats)
        ranked = sorted(names, key=lambda name: (-self.score_of(name), name))
        return ranked[:count]

    def snapshot(self) -> dict[str, CategoryStats]:
        return dict(self._stats)

    def to_snapshot(self) -> dict[str, dict]:
        return {name: stats.to_dict() for name, stats in self._stats.items()}

    def restore(self, snapshot: dict[str, dict]) -> None:
        restored: dict[str, CategoryStats] = {}
        for name, raw in snapshot.items():
            try:
                restored[name] = CategoryStats.from_dict(raw)
            except (TypeError, ValueError, ArithmeticError, AttributeError):
                logger.warning("category_stats_malformed", category=name)
        self._stats = restored

    async def load_from(self, store: SnapshotStore) -> None:
        self.restore(await store.load(SNAPSHOT_NAME))
        logger.info("category_performance_loaded", categories=len(self._stats))

    async def save_to(self, store: SnapshotStore) -> bool:
        try:
            await store.save(SNAPSHOT_NAME, self.to_snapshot())
        except PersistenceError as e:
            logger.error("category_performance_save_failed", error=str(e))
            return False
        return True
