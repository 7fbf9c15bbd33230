"""Shared data models for the product finder.

All monetary values use Decimal. Instants are Unix epoch seconds (float).
Models that are persisted in snapshots carry to_dict()/from_dict() pairs
that store Decimals as strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


def _iso(instant: float | None) -> str | None:
    if instant is None:
        return None
    return datetime.fromtimestamp(instant, tz=timezone.utc).isoformat()


class Competition(str, Enum):
    """Competition tier derived from the number of recently sold listings."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class PriceTrend(str, Enum):
    """Direction of the average sell price over the history window."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    INSUFFICIENT_DATA = "insufficient_data"


class CycleState(str, Enum):
    """Scan orchestrator lifecycle states."""

    IDLE = "idle"
    SELECTING_CATEGORIES = "selecting_categories"
    SCANNING = "scanning"
    AGGREGATING = "aggregating"
    PERSISTING = "persisting"


@dataclass(frozen=True)
class SellerInfo:
    """Seller of one recently sold listing, shown as a competitor reference."""

    username: str
    feedback_score: int
    positive_percent: Decimal
    profile_url: str
    item_url: str
    item_title: str
    item_price: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "feedback_score": self.feedback_score,
            "positive_percent": str(self.positive_percent),
            "profile_url": self.profile_url,
            "item_url": self.item_url,
            "item_title": self.item_title,
            "item_price": str(self.item_price),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SellerInfo:
        return cls(
            username=data["username"],
            feedback_score=int(data["feedback_score"]),
            positive_percent=Decimal(str(data["positive_percent"])),
            profile_url=data["profile_url"],
            item_url=data["item_url"],
            item_title=data["item_title"],
            item_price=Decimal(str(data["item_price"])),
        )


@dataclass(frozen=True)
class PriceSummary:
    """Sold-listing price summary for one keyword from the marketplace.

    top_sellers holds up to three sellers of the most recent sales; it is
    cached with the summary.
    """

    keyword: str
    avg_price: Decimal
    min_price: Decimal
    max_price: Decimal
    sold_count: int
    top_sellers: tuple[SellerInfo, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "avg_price": str(self.avg_price),
            "min_price": str(self.min_price),
            "max_price": str(self.max_price),
            "sold_count": self.sold_count,
            "top_sellers": [s.to_dict() for s in self.top_sellers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PriceSummary:
        """Raises KeyError, TypeError, ValueError or ArithmeticError on malformed data."""
        return cls(
            keyword=data["keyword"],
            avg_price=Decimal(str(data["avg_price"])),
            min_price=Decimal(str(data["min_price"])),
            max_price=Decimal(str(data["max_price"])),
            sold_count=int(data["sold_count"]),
            top_sellers=tuple(SellerInfo.from_dict(s) for s in data.get("top_sellers", ())),
        )


@dataclass
class CacheEntry:
    """Cached payload with the instant it was stored."""

    payload: Any
    stored_at: float


@dataclass(frozen=True)
class HistoryPoint:
    """One recorded scan result for a keyword. Never mutated after creation."""

    avg_price: Decimal
    min_price: Decimal
    max_price: Decimal
    profit: Decimal
    margin: Decimal
    sold_count: int
    recorded_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "avg_price": str(self.avg_price),
            "min_price": str(self.min_price),
            "max_price": str(self.max_price),
            "profit": str(self.profit),
            "margin": str(self.margin),
            "sold_count": self.sold_count,
            "recorded_at": self.recorded_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryPoint:
        return cls(
            avg_price=Decimal(str(data["avg_price"])),
            min_price=Decimal(str(data["min_price"])),
            max_price=Decimal(str(data["max_price"])),
            profit=Decimal(str(data["profit"])),
            margin=Decimal(str(data["margin"])),
            sold_count=int(data["sold_count"]),
            recorded_at=float(data["recorded_at"]),
        )


@dataclass
class CategoryStats:
    """Cumulative scan performance for one category.

    score is 0-100; new categories start at a neutral 50.
    """

    total_scanned: int = 0
    profitable_found: int = 0
    avg_profit: Decimal = Decimal("0")
    avg_margin: Decimal = Decimal("0")
    success_rate: Decimal = Decimal("0")  # percent
    last_scanned_at: float | None = None
    score: int = 50

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_scanned": self.total_scanned,
            "profitable_found": self.profitable_found,
            "avg_profit": str(self.avg_profit),
            "avg_margin": str(self.avg_margin),
            "success_rate": str(self.success_rate),
            "last_scanned_at": self.last_scanned_at,
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CategoryStats:
        last = data.get("last_scanned_at")
        return cls(
            total_scanned=int(data.get("total_scanned", 0)),
            profitable_found=int(data.get("profitable_found", 0)),
            avg_profit=Decimal(str(data.get("avg_profit", "0"))),
            avg_margin=Decimal(str(data.get("avg_margin", "0"))),
            success_rate=Decimal(str(data.get("success_rate", "0"))),
            last_scanned_at=float(last) if last is not None else None,
            score=int(data.get("score", 50)),
        )


@dataclass(frozen=True)
class ProfitBreakdown:
    """Result of the fee/profit/margin computation for one sell price."""

    sell_price: Decimal
    supplier_price: Decimal
    marketplace_fee: Decimal
    payment_fee: Decimal
    shipping: Decimal
    profit: Decimal
    margin: Decimal  # percent of sell price

    @property
    def total_fees(self) -> Decimal:
        return self.marketplace_fee + self.payment_fee


@dataclass(frozen=True)
class DemandSignals:
    """Trending and social-proof indicators attached to a finding."""

    trend_score: int  # 0-100
    is_viral: bool
    demand_score: int  # 0-100
    status: str
    validation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "trend_score": self.trend_score,
            "is_viral": self.is_viral,
            "demand_score": self.demand_score,
            "status": self.status,
            "validation": self.validation,
        }


@dataclass(frozen=True)
class SupplierQuote:
    """A sourcing site search link with an estimated unit price."""

    source: str
    url: str
    estimated_price: Decimal


@dataclass
class Finding:
    """One keyword's profitability result for a cycle. Not persisted."""

    keyword: str
    name: str
    category: str
    buy_price: Decimal
    sell_price: Decimal
    profit: Decimal
    margin: Decimal
    competition: Competition
    sold_count: int
    meets_threshold: bool
    found_at: float
    trend: PriceTrend | None = None
    history_points: int = 0
    demand: DemandSignals | None = None
    suppliers: list[SupplierQuote] = field(default_factory=list)
    top_sellers: list[SellerInfo] = field(default_factory=list)
    search_url: str | None = None  # sold-listings search for the keyword

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "name": self.name,
            "category": self.category,
            "buy_price": str(self.buy_price),
            "sell_price": str(self.sell_price),
            "profit": str(self.profit),
            "margin": str(self.margin),
            "competition": self.competition.value,
            "sold_count": self.sold_count,
            "meets_threshold": self.meets_threshold,
            "found_at": _iso(self.found_at),
            "trend": self.trend.value if self.trend is not None else None,
            "history_points": self.history_points,
            "demand": self.demand.to_dict() if self.demand is not None else None,
            "suppliers": [
                {
                    "source": q.source,
                    "url": q.url,
                    "estimated_price": str(q.estimated_price),
                }
                for q in self.suppliers
            ],
            "top_sellers": [s.to_dict() for s in self.top_sellers],
            "search_url": self.search_url,
        }


@dataclass(frozen=True)
class RateLimitStats:
    """Read-only snapshot of rate limiter usage."""

    calls_last_hour: int
    calls_last_day: int
    max_per_hour: int
    max_per_day: int

    @property
    def remaining_hourly(self) -> int:
        return max(0, self.max_per_hour - self.calls_last_hour)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hourly": f"{self.calls_last_hour}/{self.max_per_hour}",
            "daily": f"{self.calls_last_day}/{self.max_per_day}",
            "remaining_hourly": self.remaining_hourly,
        }


@dataclass
class ScanReport:
    """Aggregated outcome of one scan cycle."""

    cycle_id: str
    started_at: float
    findings: list[Finding] = field(default_factory=list)
    categories_scanned: list[str] = field(default_factory=list)
    category_breakdown: dict[str, dict[str, int]] = field(default_factory=dict)
    keywords_scanned: int = 0
    keywords_skipped: int = 0
    cache_hits: int = 0
    remote_calls: int = 0
    alerts_sent: int = 0
    cancelled: bool = False
    duration_seconds: float = 0.0
    rate_limit: RateLimitStats | None = None

    @property
    def profitable_count(self) -> int:
        return sum(1 for f in self.findings if f.meets_threshold)

    @property
    def viral_count(self) -> int:
        return sum(1 for f in self.findings if f.demand is not None and f.demand.is_viral)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "started_at": _iso(self.started_at),
            "findings": [f.to_dict() for f in self.findings],
            "count": len(self.findings),
            "profitable_count": self.profitable_count,
            "viral_count": self.viral_count,
            "categories_scanned": self.categories_scanned,
            "category_breakdown": self.category_breakdown,
            "keywords_scanned": self.keywords_scanned,
            "keywords_skipped": self.keywords_skipped,
            "cache_hits": self.cache_hits,
            "remote_calls": self.remote_calls,
            "alerts_sent": self.alerts_sent,
            "cancelled": self.cancelled,
            "duration_seconds": round(self.duration_seconds, 1),
            "rate_limit": self.rate_limit.to_dict() if self.rate_limit else None,
        }
