"""Curated category -> keyword catalog and keyword expansion.

Each category holds search phrases that each represent one product
candidate. Expansion fails loudly on unknown categories: a misconfigured
catalog must abort a cycle before any remote call is made.
"""

from dataclasses import dataclass

from finder.exceptions import ConfigurationError

DEFAULT_CATALOG: dict[str, list[str]] = {
    "Electronics & Accessories": [
        "phone ring holder",
        "usb c cable 3 pack",
        "wireless phone charger",
        "bluetooth earbuds",
        "phone camera lens kit",
    ],
    "Beauty & Personal Care": [
        "magnetic eyelashes",
        "makeup brush set",
        "hair scrunchies velvet",
        "jade roller face",
        "nail art kit",
    ],
    "Home & Garden": [
        "led strip lights",
        "drawer organizer",
        "plant grow light",
        "door draft stopper",
        "shower caddy corner",
    ],
    "Sports & Outdoors": [
        "resistance bands set",
        "yoga mat thick",
        "foam roller muscle",
        "jump rope weighted",
        "water bottle motivational",
    ],
    "Toys & Hobbies": [
        "fidget spinner metal",
        "slime kit diy",
        "puzzle 1000 piece",
        "play dough set",
        "building blocks educational",
    ],
    "Video Games & Consoles": [
        "ps5 controller skin",
        "nintendo switch case",
        "gaming mouse pad large",
        "controller grips",
        "headset stand rgb",
    ],
    "Fashion & Accessories": [
        "sunglasses polarized",
        "crossbody bag small",
        "baseball cap unisex",
        "face mask reusable",
        "watch band leather",
    ],
    "Pet Supplies": [
        "pet hair remover",
        "dog chew toys",
        "cat laser toy",
        "pet water fountain",
        "dog poop bags holder",
    ],
}


@dataclass(frozen=True)
class ScanTarget:
    """A keyword to scan and the category it belongs to."""

    keyword: str
    category: str


class CategoryCatalog:
    """Immutable view over the category -> keywords table."""

    def __init__(self, products: dict[str, list[str]] | None = None) -> None:
        source = DEFAULT_CATALOG if products is None else products
        self._products = {category: list(keywords) for category, keywords in source.items()}

    @property
    def categories(self) -> list[str]:
        return list(self._products)

    def keywords_for(self, category: str) -> list[str]:
        if category not in self._products:
            raise ConfigurationError(f"Unknown category: {category!r}")
        return list(self._products[category])

    def expand(self, categories: list[str]) -> list[ScanTarget]:
        """Flatten categories into scan targets, preserving catalog keyword order.

        Raises:
            ConfigurationError: If a category is unknown or nothing is left to scan.
        """
        targets = [
            ScanTarget(keyword=keyword, category=category)
            for category in categories
            for keyword in self.keywords_for(category)
        ]
        if categories and not targets:
            raise ConfigurationError(
                f"Categories {categories} expand to no keywords"
            )
        return targets

    def total_keywords(self) -> int:
        return sum(len(keywords) for keywords in self._products.values())

    def __len__(self) -> int:
        return len(self._products)
