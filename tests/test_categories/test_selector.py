"""Tests for CategorySelector -- cooldown filtering, ranking and fallback."""

import pytest

from finder.categories.catalog import CategoryCatalog
from finder.categories.selector import CategorySelector
from finder.categories.tracker import CategoryScoreTracker

_HOUR = 3600


@pytest.fixture
def catalog() -> CategoryCatalog:
    return CategoryCatalog(
        {
            "Alpha": ["a1", "a2"],
            "Beta": ["b1"],
            "Gamma": ["g1"],
            "Delta": ["d1"],
        }
    )


@pytest.fixture
def tracker(clock, catalog: CategoryCatalog) -> CategoryScoreTracker:
    t = CategoryScoreTracker(recency_hours=12, clock=clock)
    t.seed(catalog.categories)
    return t


@pytest.fixture
def selector(catalog: CategoryCatalog, tracker: CategoryScoreTracker) -> CategorySelector:
    return CategorySelector(catalog, tracker)


class TestSelect:
    """Eligible categories ranked by score."""

    def test_fresh_catalog_selects_by_name_on_equal_scores(self, selector: CategorySelector) -> None:
        assert selector.select(2) == ["Alpha", "Beta"]

    def test_limit_larger_than_catalog(self, selector: CategorySelector) -> None:
        assert selector.select(10) == ["Alpha", "Beta", "Delta", "Gamma"]

    def test_high_scorer_selected_first(
        self, selector: CategorySelector, tracker: CategoryScoreTracker, make_finding, clock
    ) -> None:
        tracker.update("Gamma", [make_finding(profit="10", meets_threshold=True)])
        clock.advance(13 * _HOUR)
        assert selector.select(2) == ["Gamma", "Alpha"]

    def test_recently_scanned_excluded(
        self, selector: CategorySelector, tracker: CategoryScoreTracker, make_finding
    ) -> None:
        tracker.update("Alpha", [make_finding(profit="10", meets_threshold=True)])
        tracker.update("Beta", [])
        assert selector.select(5) == ["Delta", "Gamma"]

    def test_cooldown_never_violated_while_others_eligible(
        self, selector: CategorySelector, tracker: CategoryScoreTracker, clock
    ) -> None:
        scanned = []
        for _ in range(4):
            (category,) = selector.select(1)
            assert tracker.should_scan(category)
            tracker.update(category, [])
            scanned.append(category)
            clock.advance(_HOUR)

        assert sorted(scanned) == ["Alpha", "Beta", "Delta", "Gamma"]


class TestFallback:
    """Every category cooling down: scan the top N anyway."""

    def test_falls_back_to_top_scores(
        self, selector: CategorySelector, tracker: CategoryScoreTracker, make_finding
    ) -> None:
        tracker.update("Alpha", [make_finding(profit="-5", margin="-10", meets_threshold=False)])
        tracker.update("Beta", [make_finding(profit="10", meets_threshold=True)])
        tracker.update("Gamma", [])
        tracker.update("Delta", [])

        assert selector.select(2) == ["Beta", "Delta"]

    def test_fallback_respects_limit(
        self, selector: CategorySelector, tracker: CategoryScoreTracker, catalog: CategoryCatalog
    ) -> None:
        for category in catalog.categories:
            tracker.update(category, [])
        assert len(selector.select(3)) == 3
