"""Category catalog, performance scoring and per-cycle selection."""

from finder.categories.catalog import CategoryCatalog, ScanTarget
from finder.categories.selector import CategorySelector
from finder.categories.tracker import CategoryScoreTracker, compute_score

__all__ = [
    "CategoryCatalog",
    "CategoryScoreTracker",
    "CategorySelector",
    "ScanTarget",
    "compute_score",
]
