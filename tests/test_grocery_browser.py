"""Tests for the Playwright grocery adapter with a mocked browser."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricecrawler.scrapers.adapters.grocery_browser import (
    GROCERY_SHOPS,
    GroceryBrowserAdapter,
    parse_gbp_price,
)
from pricecrawler.scrapers.base import FailureKind


TESCO_HTML = """
<html><body>
  <ul>
    <li data-testid="product-tile">
      <h3>Tesco British Whole Milk 4 Pints</h3>
      <p class="price-per-unit">£1.45</p>
    </li>
    <li data-testid="product-tile">
      <span data-testid="product-name">Tesco  Semi Skimmed
        Milk 1 Pint</span>
      <p data-testid="price-per-unit">95p</p>
    </li>
    <li data-testid="product-tile">
      <h3>Out of stock milk</h3>
    </li>
    <li data-testid="product-tile">
      <p class="price-per-unit">£2.10</p>
    </li>
  </ul>
</body></html>
"""

SEARCH_URL = "https://www.tesco.com/groceries/en-GB/search?query=milk"


def _mock_browser(html: str = TESCO_HTML):
    page = MagicMock()
    page.url = SEARCH_URL
    page.goto = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.content = AsyncMock(return_value=html)
    page.close = AsyncMock()

    manager = MagicMock()
    manager.new_page = AsyncMock(return_value=page)
    manager.close_context = AsyncMock()
    return manager, page


class TestParseGbpPrice:
    """Tests for parse_gbp_price."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("£1.25", "1.25"),
            ("£ 12", "12"),
            ("3.50", "3.50"),
            ("75p", "0.75"),
            ("Clubcard Price 95p", "0.95"),
            ("Now 75p", "0.75"),
            ("Any 3 for £10", "10"),
            ("£1,250.00", "1250.00"),
            ("£1.50 (£0.75/litre)", "1.50"),
            ("£1.10 (55p/100g)", "1.10"),
        ],
    )
    def test_parses(self, text, expected):
        assert parse_gbp_price(text) == expected

    @pytest.mark.parametrize("text", ["", "Price unavailable"])
    def test_no_price(self, text):
        assert parse_gbp_price(text) is None


class TestParseResults:
    """Tests for DOM extraction with the shop's selectors."""

    def test_first_k_containers(self):
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["tesco"], browser_manager=MagicMock())

        quotes = adapter.parse_results(TESCO_HTML, SEARCH_URL, max_results=3)

        # The third tile has no price and is skipped; the fourth is beyond K
        assert len(quotes) == 2
        assert quotes[0].title == "Tesco British Whole Milk 4 Pints"
        assert quotes[0].price == Decimal("1.45")
        assert quotes[0].price_text == "£1.45"
        assert quotes[0].currency == "GBP"
        assert quotes[0].url == SEARCH_URL
        assert quotes[1].title == "Tesco Semi Skimmed Milk 1 Pint"
        assert quotes[1].price == Decimal("0.95")

    def test_missing_title_defaults(self):
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["tesco"], browser_manager=MagicMock())

        quotes = adapter.parse_results(TESCO_HTML, SEARCH_URL, max_results=4)

        assert quotes[-1].title == "Product"
        assert quotes[-1].price == Decimal("2.10")

    def test_no_containers(self):
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["asda"], browser_manager=MagicMock())

        assert adapter.parse_results("<html></html>", "https://groceries.asda.com", 3) == []

    def test_shop_identity_comes_from_selectors(self):
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["sainsburys"])

        assert adapter.shop_slug == "sainsburys"
        assert adapter.shop_name == "Sainsbury's"
        assert adapter.adapter_type == "scraper"

    @pytest.mark.parametrize(
        "slug,expected",
        [
            ("tesco", "https://www.tesco.com/groceries/en-GB/search?query=whole+milk"),
            ("asda", "https://groceries.asda.com/search?term=whole+milk"),
            ("aldi", "https://groceries.aldi.co.uk/search?keywords=whole+milk"),
        ],
    )
    def test_build_search_url(self, slug, expected):
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS[slug])

        assert adapter.build_search_url("whole milk") == expected


class TestFetch:
    """Tests for the browser flow through fetch()."""

    async def test_fetch_drives_page(self):
        manager, page = _mock_browser()
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["tesco"], timeout=5, browser_manager=manager)

        outcome = await adapter.fetch("milk")

        manager.new_page.assert_awaited_once_with("tesco")
        page.goto.assert_awaited_once_with(SEARCH_URL, wait_until="networkidle", timeout=5000)
        page.wait_for_selector.assert_awaited_once_with('[data-testid="product-tile"]', timeout=3000)
        page.close.assert_awaited_once()
        assert outcome.succeeded
        assert [q.price for q in outcome.quotes] == [Decimal("1.45"), Decimal("0.95")]

    async def test_container_never_appears_means_no_results(self):
        manager, page = _mock_browser()
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 3000ms exceeded")
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["tesco"], timeout=5, browser_manager=manager)

        outcome = await adapter.fetch("unicorn steaks")

        assert outcome.succeeded
        assert outcome.quotes == ()
        page.content.assert_not_awaited()
        page.close.assert_awaited_once()

    async def test_results_wait_never_exceeds_adapter_timeout(self):
        manager, page = _mock_browser()
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["tesco"], timeout=1, browser_manager=manager)

        await adapter.fetch("milk")

        assert page.wait_for_selector.await_args.kwargs["timeout"] == 1000

    async def test_navigation_timeout(self):
        manager, page = _mock_browser()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["tesco"], timeout=5, browser_manager=manager)

        outcome = await adapter.fetch("milk")

        assert outcome.failure.kind is FailureKind.TIMEOUT
        page.close.assert_awaited_once()

    async def test_navigation_error(self):
        manager, page = _mock_browser()
        page.goto.side_effect = ConnectionResetError("net::ERR_CONNECTION_RESET")
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["tesco"], browser_manager=manager)

        outcome = await adapter.fetch("milk")

        assert outcome.failure.kind is FailureKind.NETWORK_ERROR
        page.close.assert_awaited_once()

    async def test_cleanup_closes_shop_context(self):
        manager, _ = _mock_browser()
        adapter = GroceryBrowserAdapter(GROCERY_SHOPS["aldi"], browser_manager=manager)

        await adapter.cleanup()

        manager.close_context.assert_awaited_once_with("aldi")
