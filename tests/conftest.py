"""Pytest configuration and shared fixtures."""

import asyncio
from decimal import Decimal
from typing import Any, Iterable, List, Optional

import pytest

from pricecrawler.core.exceptions import SourceError
from pricecrawler.scrapers.base import BaseAdapter, FailureKind, PriceQuote


class StubAdapter(BaseAdapter):
    """In-memory adapter with scripted latency, prices and failures."""

    adapter_type = "api"

    def __init__(
        self,
        slug: str,
        prices: Iterable[Any] = (),
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        timeout: float = 5.0,
        fail_for: Iterable[str] = (),
        name: Optional[str] = None,
        max_results: int = 3,
    ):
        self.shop_slug = slug
        self.shop_name = name or slug.replace("-", " ").title()
        super().__init__(timeout=timeout, max_results=max_results)
        self.prices = list(prices)
        self.error = error
        self.delay = delay
        self.fail_for = set(fail_for)
        self.calls: List[str] = []

    async def _search(self, query: str, max_results: int) -> List[PriceQuote]:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if query in self.fail_for:
            raise SourceError(self.shop_slug, FailureKind.NETWORK_ERROR, "scripted failure")
        return [
            PriceQuote(
                store=self.shop_name,
                title=f"{query} #{i}",
                price=Decimal(str(p)) if isinstance(p, (int, float)) else p,
                url=f"https://{self.shop_slug}.test/{i}",
            )
            for i, p in enumerate(self.prices, 1)
        ]


@pytest.fixture
def stub_adapter():
    """Factory for StubAdapter instances."""
    return StubAdapter


@pytest.fixture
def quote():
    """Build a PriceQuote with sensible defaults."""

    def _make(price: Any, store: str = "Shop", title: str = "item") -> PriceQuote:
        return PriceQuote(store=store, title=title, price=price)

    return _make
