"""Greedy category selection for a scan cycle.

Eligible categories (outside their cooldown) are ranked by score and the
top N are scanned. When every category is still cooling down, the top N by
score are scanned anyway so a cycle always makes progress.
"""

from finder.categories.catalog import CategoryCatalog
from finder.categories.tracker import CategoryScoreTracker
from finder.logging import get_logger

logger = get_logger(__name__)


class CategorySelector:
    """Chooses which catalog categories to scan this cycle.

    Args:
        catalog: Known categories.
        tracker: Score and recency state.
    """

    def __init__(self, catalog: CategoryCatalog, tracker: CategoryScoreTracker) -> None:
        self._catalog = catalog
        self._tracker = tracker

    def select(self, max_categories: int) -> list[str]:
        """Return up to max_categories category names, best score first."""
        known = self._catalog.categories
        eligible = [c for c in known if self._tracker.should_scan(c)]

        if not eligible:
            selected = self._tracker.top_categories(max_categories, among=known)
            logger.warning(
                "all_categories_recently_scanned",
                fallback=selected,
            )
            return selected

        selected = self._tracker.top_categories(max_categories, among=eligible)
        logger.info(
            "categories_selected",
            selected=selected,
            eligible=len(eligible),
            known=len(known),
        )
        return selected
