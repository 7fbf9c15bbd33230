"""Marketplace lookup layer -- eBay Finding API integration."""

from finder.marketplace.client import PriceLookup
from finder.marketplace.ebay_client import EbayFindingClient, parse_completed_items

__all__ = ["EbayFindingClient", "PriceLookup", "parse_completed_items"]
