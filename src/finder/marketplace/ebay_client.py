"""eBay Finding API client (findCompletedItems, sold fixed-price listings).

Uses urllib.request (stdlib) run in a worker thread so the event loop is
never blocked. The Finding API wraps every field in a single-element list,
hence the [0] indexing throughout parse_completed_items().
"""

import asyncio
import json
import socket
import urllib.error
import urllib.parse
import urllib.request
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from finder.config import MarketplaceSettings
from finder.exceptions import RemoteUnavailableError
from finder.logging import get_logger
from finder.marketplace.client import PriceLookup
from finder.models import PriceSummary, SellerInfo

logger = get_logger(__name__)

_CENTS = Decimal("0.01")
_TOP_SELLERS = 3  # results are sorted EndTimeSoonest, so these are the latest sales


def _first(value: Any) -> Any:
    """Unwrap the Finding API's single-element list convention."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _item_price(item: dict) -> Decimal | None:
    status = _first(item.get("sellingStatus")) or {}
    current = _first(status.get("currentPrice")) or {}
    raw = current.get("__value__")
    if raw in (None, ""):
        return None
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        return None


def sold_listings_url(keyword: str) -> str:
    """Public eBay search page listing completed sales for keyword."""
    return f"https://www.ebay.com/sch/i.html?_nkw={urllib.parse.quote(keyword)}&LH_Sold=1&LH_Complete=1"


def _decimal(raw: Any, default: str = "0") -> Decimal:
    try:
        return Decimal(str(raw)) if raw not in (None, "") else Decimal(default)
    except InvalidOperation:
        return Decimal(default)


def _seller(item: dict, price: Decimal) -> SellerInfo:
    info = _first(item.get("sellerInfo")) or {}
    username = _first(info.get("sellerUserName")) or "Unknown"
    try:
        feedback = int(_first(info.get("feedbackScore")) or 0)
    except (TypeError, ValueError):
        feedback = 0
    return SellerInfo(
        username=username,
        feedback_score=feedback,
        positive_percent=_decimal(_first(info.get("positiveFeedbackPercent"))),
        profile_url=f"https://www.ebay.com/usr/{urllib.parse.quote(username)}",
        item_url=_first(item.get("viewItemURL")) or "",
        item_title=_first(item.get("title")) or "",
        item_price=price.quantize(_CENTS, rounding=ROUND_HALF_UP),
    )


def parse_completed_items(data: dict, keyword: str) -> PriceSummary | None:
    """Build a PriceSummary from a findCompletedItems JSON response.

    Returns None when the search has no results or no item carries a price.

    Raises:
        RemoteUnavailableError: If the response carries an API errorMessage.
    """
    if data.get("errorMessage"):
        error = _first(_first(data["errorMessage"]).get("error")) or {}
        message = _first(error.get("message")) or "unknown API error"
        raise RemoteUnavailableError(f"eBay API error: {message}")

    response = _first(data.get("findCompletedItemsResponse")) or {}
    ack = _first(response.get("ack"))
    if ack is not None and ack not in ("Success", "Warning"):
        raise RemoteUnavailableError(f"eBay API ack={ack}")

    result = _first(response.get("searchResult"))
    if not result or result.get("@count") == "0":
        return None

    items = result.get("item") or []
    priced = [(item, p) for item, p in ((item, _item_price(item)) for item in items) if p is not None]
    if not priced:
        return None

    prices = [p for _, p in priced]
    avg = sum(prices, Decimal("0")) / len(prices)
    return PriceSummary(
        keyword=keyword,
        avg_price=avg.quantize(_CENTS, rounding=ROUND_HALF_UP),
        min_price=min(prices).quantize(_CENTS, rounding=ROUND_HALF_UP),
        max_price=max(prices).quantize(_CENTS, rounding=ROUND_HALF_UP),
        sold_count=len(items),
        top_sellers=tuple(_seller(item, p) for item, p in priced[:_TOP_SELLERS]),
    )


class EbayFindingClient(PriceLookup):
    """Sold-listing price summaries from the eBay Finding API.

    Args:
        settings: App id, endpoint, page size, timeout and User-Agent.
    """

    def __init__(self, settings: MarketplaceSettings) -> None:
        self._settings = settings

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.app_id.get_secret_value())

    def build_url(self, keyword: str) -> str:
        params = {
            "OPERATION-NAME": "findCompletedItems",
            "SERVICE-VERSION": "1.0.0",
            "SECURITY-APPNAME": self._settings.app_id.get_secret_value(),
            "RESPONSE-DATA-FORMAT": "JSON",
            "REST-PAYLOAD": "",
            "keywords": keyword,
            "itemFilter(0).name": "SoldItemsOnly",
            "itemFilter(0).value": "true",
            "itemFilter(1).name": "ListingType",
            "itemFilter(1).value": "FixedPrice",
            "sortOrder": "EndTimeSoonest",
            "paginationInput.entriesPerPage": str(self._settings.entries_per_page),
        }
        return f"{self._settings.endpoint}?{urllib.parse.urlencode(params)}"

    async def lookup(self, keyword: str) -> PriceSummary | None:
        if not self.is_configured:
            raise RemoteUnavailableError("eBay app id is not configured")

        data = await asyncio.to_thread(self._fetch_json, self.build_url(keyword))
        summary = parse_completed_items(data, keyword)
        if summary is None:
            logger.info("marketplace_no_results", keyword=keyword)
        else:
            logger.debug(
                "marketplace_summary",
                keyword=keyword,
                avg_price=str(summary.avg_price),
                sold_count=summary.sold_count,
            )
        return summary

    def _fetch_json(self, url: str) -> dict:
        headers = {"Accept": "application/json", "User-Agent": self._settings.user_agent}
        req = urllib.request.Request(url, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self._settings.timeout_seconds) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            raise RemoteUnavailableError(f"eBay HTTP {e.code}: {e.reason}") from e
        except (urllib.error.URLError, socket.timeout, TimeoutError, ConnectionError) as e:
            raise RemoteUnavailableError(f"eBay request failed: {e}") from e

        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RemoteUnavailableError(f"eBay returned non-JSON body: {e}") from e
        if not isinstance(data, dict):
            raise RemoteUnavailableError("eBay returned an unexpected JSON document")
        return data
