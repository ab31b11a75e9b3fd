"""Data normalization utilities for price parsing and query keys."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

logger = structlog.get_logger()


_CURRENCY_SYMBOLS = ("$", "£", "€", "¥", "₩", "USD", "GBP", "EUR")

# First price-like number, e.g. "1,299.99" or "1.25"
_PRICE_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?")


class PriceNormalizer:
    """Price parsing utilities.

    Sources report prices as numbers, numeric strings, or free text such
    as "£1.25 per kg". Everything funnels through to_price() before
    ranking; no currency conversion happens anywhere.
    """

    @staticmethod
    def clean_price_string(raw: Optional[str]) -> Optional[Decimal]:
        """Parse a price string and extract numeric value.

        Handles various formats:
        - "$12.99" -> 12.99
        - "£1,234.50" -> 1234.50
        - "1234.56" -> 1234.56

        Args:
            raw: Raw price string

        Returns:
            Decimal price value, or None if parsing fails
        """
        if not raw:
            return None

        cleaned = raw.strip()
        for symbol in _CURRENCY_SYMBOLS:
            cleaned = cleaned.replace(symbol, "")

        # Remove thousand separators (commas)
        cleaned = cleaned.replace(",", "").strip()

        if not re.fullmatch(r"-?\d+(?:\.\d+)?|-?\.\d+", cleaned):
            return None

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None

    @staticmethod
    def extract_price_from_text(text: Optional[str]) -> Optional[Decimal]:
        """Extract first price-like number from text.

        Useful for extracting prices from HTML text nodes that
        contain additional text.

        Args:
            text: Text containing price information

        Returns:
            Extracted price as Decimal, or None if not found
        """
        if not text:
            return None

        for match in _PRICE_PATTERN.findall(text):
            price = PriceNormalizer.clean_price_string(match)
            if price and price > 0:
                return price

        return None

    @staticmethod
    def to_price(value: Any) -> Optional[Decimal]:
        """Convert any raw price value to a usable Decimal.

        Args:
            value: Decimal, int, float, numeric string or None

        Returns:
            A finite, positive Decimal, or None when the value is unusable
        """
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, Decimal):
            price = value
        elif isinstance(value, (int, float)):
            try:
                price = Decimal(str(value))
            except InvalidOperation:
                return None
        elif isinstance(value, str):
            price = PriceNormalizer.clean_price_string(value)
        else:
            return None

        if price is None or not price.is_finite() or price <= 0:
            return None
        return price


def normalize_whitespace(value: Optional[str]) -> str:
    """Collapse repeated spaces and newlines."""
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


def normalize_query(product_name: str) -> str:
    """Case-insensitive, whitespace-normalized form of a product name.

    Used as the result cache key, so "  Whole   MILK" and "whole milk"
    share one entry.
    """
    return normalize_whitespace(product_name).casefold()
