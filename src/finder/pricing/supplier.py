"""Supplier cost estimation and sourcing links.

The estimator is a keyword heuristic: the first table entry contained in
the keyword sets a base unit price, jittered by up to +/-30% from an
injected random.Random. Seed the generator for reproducible estimates.
"""

import random
import urllib.parse
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal

from finder.models import SupplierQuote

_CENTS = Decimal("0.01")

DEFAULT_SUPPLIER_PRICE = Decimal("5.00")

# Base unit prices (USD) by keyword fragment; first match wins.
ESTIMATED_PRICES: dict[str, Decimal] = {
    "phone": Decimal("5"),
    "case": Decimal("2"),
    "cable": Decimal("1.5"),
    "led": Decimal("3"),
    "light": Decimal("4"),
    "speaker": Decimal("8"),
    "holder": Decimal("2"),
    "organizer": Decimal("3"),
    "mat": Decimal("5"),
    "bottle": Decimal("3"),
    "band": Decimal("2"),
    "brush": Decimal("1.5"),
    "sunglasses": Decimal("3"),
    "jewelry": Decimal("2"),
    "watch": Decimal("8"),
    "bluetooth": Decimal("6"),
    "charging": Decimal("2"),
    "ring": Decimal("1"),
    "clip": Decimal("0.80"),
    "mount": Decimal("3"),
    "stand": Decimal("2.5"),
    "wireless": Decimal("6"),
    "earbuds": Decimal("7"),
    "usb": Decimal("1.2"),
    "eyelash": Decimal("3.5"),
    "makeup": Decimal("1.8"),
    "scrunchies": Decimal("0.5"),
    "blender": Decimal("8.5"),
    "drawer": Decimal("2.8"),
    "resistance": Decimal("4.5"),
    "ps5": Decimal("4"),
    "nintendo": Decimal("3"),
    "switch": Decimal("3"),
    "gaming": Decimal("5"),
    "controller": Decimal("3.5"),
    "headset": Decimal("8"),
    "grips": Decimal("1.5"),
    "console": Decimal("4"),
    "cooling": Decimal("3"),
    "dock": Decimal("4.5"),
    "vr": Decimal("5"),
    "mouse": Decimal("3"),
    "pad": Decimal("1.5"),
    "skin": Decimal("1.2"),
    "cover": Decimal("2"),
}

# (source, search URL template, price multiplier relative to the estimate)
SUPPLIER_SOURCES: list[tuple[str, str, Decimal]] = [
    ("aliexpress", "https://www.aliexpress.com/wholesale?SearchText={q}", Decimal("1")),
    ("alibaba", "https://www.alibaba.com/trade/search?SearchText={q}", Decimal("0.8")),
    ("dhgate", "https://www.dhgate.com/wholesale/search.do?act=search&searchkey={q}", Decimal("0.9")),
    ("banggood", "https://www.banggood.com/search/{q}.html", Decimal("1")),
    ("temu", "https://www.temu.com/search_result.html?search_key={q}", Decimal("0.85")),
    ("amazon", "https://www.amazon.com/s?k={q}", Decimal("1.3")),
    ("walmart", "https://www.walmart.com/search?q={q}", Decimal("1.2")),
]


class CostEstimator(ABC):
    """Opaque supplier unit-cost model. Always returns a price."""

    @abstractmethod
    def estimate(self, keyword: str) -> Decimal:
        ...


class TableCostEstimator(CostEstimator):
    """Keyword-table estimator with seedable price jitter.

    Args:
        rng: Random source; pass random.Random(seed) for reproducible output.
        variance: Total jitter width as a fraction (0.6 = +/-30%).
        prices: Base price table, ESTIMATED_PRICES by default.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        variance: Decimal = Decimal("0.6"),
        prices: dict[str, Decimal] | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._variance = variance
        self._prices = prices if prices is not None else ESTIMATED_PRICES

    def estimate(self, keyword: str) -> Decimal:
        lowered = keyword.lower()
        for fragment, base in self._prices.items():
            if fragment in lowered:
                jitter = (Decimal(str(self._rng.random())) - Decimal("0.5")) * self._variance
                return (base * (1 + jitter)).quantize(_CENTS, rounding=ROUND_HALF_UP)
        return DEFAULT_SUPPLIER_PRICE


def supplier_quotes(keyword: str, base_price: Decimal) -> list[SupplierQuote]:
    """Search links on common sourcing sites with per-site price estimates."""
    q = urllib.parse.quote(keyword)
    return [
        SupplierQuote(
            source=source,
            url=template.format(q=q),
            estimated_price=(base_price * multiplier).quantize(_CENTS, rounding=ROUND_HALF_UP),
        )
        for source, template, multiplier in SUPPLIER_SOURCES
    ]
