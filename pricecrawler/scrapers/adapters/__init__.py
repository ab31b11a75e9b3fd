"""Retailer-specific adapter implementations.

Each adapter module implements a class that inherits from
BaseAPIAdapter (REST sources) or BaseScraperAdapter (browser sources).
"""

# Import API adapters
from .walmart import WalmartAdapter
from .target import TargetAdapter
from .amazon import AmazonAdapter
from .kroger import KrogerAdapter
from .bestbuy import BestBuyAdapter

# Import scraper adapters
from .grocery_browser import GROCERY_SHOPS, GroceryBrowserAdapter, ShopSelectors

__all__ = [
    # API adapters
    "WalmartAdapter",
    "TargetAdapter",
    "AmazonAdapter",
    "KrogerAdapter",
    "BestBuyAdapter",
    # Scraper adapters
    "GroceryBrowserAdapter",
    "ShopSelectors",
    "GROCERY_SHOPS",
]
