"""Fee, profit and margin computation for a resale candidate.

All calculations use Decimal arithmetic; no rounding is applied here.

Core formula (eBay defaults from FeeSettings):
  marketplace_fee = sell * 0.1325
  payment_fee     = sell * 0.0349
  profit          = sell - supplier - marketplace_fee - payment_fee - shipping
  margin          = profit / sell * 100

A finding meets the threshold only when BOTH profit >= min_profit and
margin >= min_margin.
"""

from decimal import Decimal

from finder.config import FeeSettings
from finder.models import Competition, ProfitBreakdown

_HIGH_COMPETITION_SOLD = 300
_MEDIUM_COMPETITION_SOLD = 100


class ProfitCalculator:
    """Computes profitability and applies the configured threshold.

    Args:
        fee_settings: Marketplace/payment fee rates and flat shipping.
        min_profit: Minimum absolute profit for a finding to qualify.
        min_margin: Minimum margin percent for a finding to qualify.
    """

    def __init__(
        self,
        fee_settings: FeeSettings,
        min_profit: Decimal = Decimal("5.00"),
        min_margin: Decimal = Decimal("20"),
    ) -> None:
        self._fees = fee_settings
        self._min_profit = min_profit
        self._min_margin = min_margin

    def calculate(self, sell_price: Decimal, supplier_price: Decimal) -> ProfitBreakdown:
        """Break a sell price down into fees, shipping, profit and margin.

        Args:
            sell_price: Average sold price on the marketplace. Must be positive.
            supplier_price: Estimated unit cost from the supplier.

        Raises:
            ValueError: If sell_price is not positive (margin is undefined).
        """
        if sell_price <= 0:
            raise ValueError(f"sell_price must be positive, got {sell_price}")

        marketplace_fee = sell_price * self._fees.marketplace_fee_rate
        payment_fee = sell_price * self._fees.payment_fee_rate
        shipping = self._fees.shipping_cost
        profit = sell_price - supplier_price - marketplace_fee - payment_fee - shipping
        margin = profit / sell_price * 100

        return ProfitBreakdown(
            sell_price=sell_price,
            supplier_price=supplier_price,
            marketplace_fee=marketplace_fee,
            payment_fee=payment_fee,
            shipping=shipping,
            profit=profit,
            margin=margin,
        )

    def meets_threshold(self, breakdown: ProfitBreakdown) -> bool:
        return self.qualifies(breakdown.profit, breakdown.margin)

    def qualifies(self, profit: Decimal, margin: Decimal) -> bool:
        """Threshold test on already-computed (possibly rounded) figures."""
        return profit >= self._min_profit and margin >= self._min_margin

    @property
    def min_profit(self) -> Decimal:
        return self._min_profit

    @property
    def min_margin(self) -> Decimal:
        return self._min_margin


def classify_competition(sold_count: int) -> Competition:
    """More recent sales means more sellers already competing."""
    if sold_count > _HIGH_COMPETITION_SOLD:
        return Competition.HIGH
    if sold_count > _MEDIUM_COMPETITION_SOLD:
        return Competition.MEDIUM
    return Competition.LOW
