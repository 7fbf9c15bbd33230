"""Tests for CategoryCatalog keyword expansion."""

import pytest

from finder.categories.catalog import DEFAULT_CATALOG, CategoryCatalog, ScanTarget
from finder.exceptions import ConfigurationError


class TestDefaultCatalog:
    def test_default_has_eight_categories_of_five(self) -> None:
        catalog = CategoryCatalog()
        assert len(catalog) == 8
        assert catalog.total_keywords() == 40

    def test_caller_cannot_mutate_catalog(self) -> None:
        catalog = CategoryCatalog()
        catalog.keywords_for("Pet Supplies").append("hamster wheel")
        assert "hamster wheel" not in catalog.keywords_for("Pet Supplies")
        assert "hamster wheel" not in DEFAULT_CATALOG["Pet Supplies"]


class TestExpand:
    """Flattening categories into scan targets."""

    def test_preserves_category_and_keyword_order(self) -> None:
        catalog = CategoryCatalog({"A": ["a1", "a2"], "B": ["b1"]})
        assert catalog.expand(["B", "A"]) == [
            ScanTarget("b1", "B"),
            ScanTarget("a1", "A"),
            ScanTarget("a2", "A"),
        ]

    def test_unknown_category_raises(self) -> None:
        catalog = CategoryCatalog({"A": ["a1"]})
        with pytest.raises(ConfigurationError, match="Unknown category"):
            catalog.expand(["A", "Nope"])

    def test_categories_without_keywords_raise(self) -> None:
        catalog = CategoryCatalog({"Empty": []})
        with pytest.raises(ConfigurationError):
            catalog.expand(["Empty"])

    def test_no_categories_expands_to_nothing(self) -> None:
        assert CategoryCatalog({"A": ["a1"]}).expand([]) == []
