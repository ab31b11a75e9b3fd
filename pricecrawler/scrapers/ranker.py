"""Quote validation and price ranking."""

import dataclasses
from typing import Iterable, List, Tuple

import structlog

from pricecrawler.scrapers.base import PriceQuote
from pricecrawler.scrapers.utils.normalizer import PriceNormalizer

logger = structlog.get_logger(__name__)


def rank_quotes(quotes: Iterable[PriceQuote]) -> Tuple[PriceQuote, ...]:
    """Drop unusable quotes and order the rest by ascending price.

    The sort is stable, so equal prices keep the order in which the
    quotes were supplied (adapter registration order). Quotes for the
    "same" product from different stores are deliberately kept apart,
    and prices in different currencies are compared as plain numbers.

    Args:
        quotes: Quotes concatenated in source registration order

    Returns:
        Tuple of quotes with a finite positive Decimal price, cheapest first
    """
    usable: List[PriceQuote] = []
    dropped = 0

    for quote in quotes:
        price = PriceNormalizer.to_price(quote.price)
        if price is None:
            dropped += 1
            continue
        if price is not quote.price:
            quote = dataclasses.replace(quote, price=price)
        usable.append(quote)

    if dropped:
        logger.debug("quotes_dropped", dropped=dropped, kept=len(usable))

    usable.sort(key=lambda q: q.price)
    return tuple(usable)
