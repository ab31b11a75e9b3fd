"""Browser scraper adapter for UK grocery sites.

Navigates to a shop's search page with Playwright, waits for product
tiles to render and reads prices out of the DOM. Which selectors to use
is per-shop configuration data; the aggregator never sees any of it.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional
from urllib.parse import urlencode

from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricecrawler.scrapers.base import BaseScraperAdapter, PriceQuote
from pricecrawler.scrapers.utils.normalizer import PriceNormalizer, normalize_whitespace


# "£1.25", "£ 12"
_POUND_PATTERN = re.compile(r"£\s*(\d[\d,]*(?:\.\d+)?)")
# "75p", "Clubcard Price 95p"
_PENCE_PATTERN = re.compile(r"(?<![\d.])(\d+(?:\.\d+)?)\s*p\b", re.IGNORECASE)

_TITLE_SELECTOR = 'h3, .product-name, [data-testid="product-name"]'


@dataclass(frozen=True)
class ShopSelectors:
    """Search URL and DOM selectors for one grocery site."""

    slug: str
    name: str
    base_url: str
    search_param: str
    container: str
    price: str
    fallback: str
    title: str = _TITLE_SELECTOR


GROCERY_SHOPS: Dict[str, ShopSelectors] = {
    "tesco": ShopSelectors(
        slug="tesco",
        name="Tesco",
        base_url="https://www.tesco.com/groceries/en-GB/search",
        search_param="query",
        container='[data-testid="product-tile"]',
        price=".price-per-unit",
        fallback='[data-testid="price-per-unit"]',
    ),
    "asda": ShopSelectors(
        slug="asda",
        name="ASDA",
        base_url="https://groceries.asda.com/search",
        search_param="term",
        container=".co-product",
        price=".co-product__price",
        fallback=".pdp-main-details__price",
    ),
    "sainsburys": ShopSelectors(
        slug="sainsburys",
        name="Sainsbury's",
        base_url="https://www.sainsburys.co.uk/gol-ui/SearchResults",
        search_param="keywords",
        container=".product-tile",
        price=".pd__cost__now",
        fallback=".pricing__now",
    ),
    "aldi": ShopSelectors(
        slug="aldi",
        name="Aldi",
        base_url="https://groceries.aldi.co.uk/search",
        search_param="keywords",
        container=".product-tile",
        price=".price",
        fallback=".product-price",
    ),
}


def parse_gbp_price(text: str) -> Optional[str]:
    """Pull the numeric part out of a displayed grocery price.

    A pound amount wins over a pence amount, which wins over a bare
    number: "Any 3 for £10" is 10, "Clubcard Price 95p" is 0.95.

    Returns:
        Price as a plain decimal string ("1.25"), or None if not found
    """
    if not text:
        return None

    pounds = _POUND_PATTERN.search(text)
    if pounds:
        price = PriceNormalizer.clean_price_string(pounds.group(1))
        return str(price) if price is not None else None

    pence = _PENCE_PATTERN.search(text)
    if pence:
        return str(Decimal(pence.group(1)) / 100)

    price = PriceNormalizer.extract_price_from_text(text)
    return str(price) if price is not None else None


class GroceryBrowserAdapter(BaseScraperAdapter):
    """Playwright scraper driven by a ShopSelectors config.

    One instance per shop; shop_slug and shop_name come from the config.
    """

    # How long tiles may take to appear once navigation has settled
    RESULTS_WAIT_SECONDS = 3.0

    def __init__(
        self,
        selectors: ShopSelectors,
        timeout: Optional[float] = None,
        max_results: int = 3,
        browser_manager=None,
    ):
        self.selectors = selectors
        self.shop_slug = selectors.slug
        self.shop_name = selectors.name
        super().__init__(timeout=timeout, max_results=max_results, browser_manager=browser_manager)

    def build_search_url(self, query: str) -> str:
        return f"{self.selectors.base_url}?{urlencode({self.selectors.search_param: query})}"

    async def _search(self, query: str, max_results: int) -> List[PriceQuote]:
        manager = self._get_browser_manager()
        url = self.build_search_url(query)
        timeout_ms = int(self.timeout * 1000)

        page = await manager.new_page(self.shop_slug)
        try:
            self.logger.info("scraping_url", url=url)
            await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            try:
                await page.wait_for_selector(
                    self.selectors.container,
                    timeout=min(timeout_ms, int(self.RESULTS_WAIT_SECONDS * 1000)),
                )
            except PlaywrightTimeoutError:
                # Page settled without product tiles: the shop has no matches
                self.logger.info("no_product_containers", url=url)
                return []
            html = await page.content()
            return self.parse_results(html, page.url, max_results)
        finally:
            try:
                await page.close()
            except Exception as e:
                self.logger.debug("page_close_failed", error=str(e))

    def parse_results(self, html: str, page_url: str, max_results: int) -> List[PriceQuote]:
        """Extract quotes from the first max_results product containers.

        Containers without a readable price are skipped, so fewer than
        max_results quotes may come back.
        """
        soup = BeautifulSoup(html, "html.parser")
        containers = soup.select(self.selectors.container)[:max_results]

        quotes: List[PriceQuote] = []
        for container in containers:
            price_elem = container.select_one(self.selectors.price) or container.select_one(
                self.selectors.fallback
            )
            if not price_elem:
                continue

            price_text = price_elem.get_text(strip=True)
            price = parse_gbp_price(price_text)
            if price is None:
                continue

            title_elem = container.select_one(self.selectors.title)
            title = normalize_whitespace(title_elem.get_text()) if title_elem else ""

            quotes.append(
                PriceQuote(
                    store=self.shop_name,
                    title=title or "Product",
                    price=Decimal(price),
                    url=page_url,
                    price_text=price_text,
                    currency="GBP",
                )
            )

        self.logger.info("grocery_containers_parsed", containers=len(containers), quotes=len(quotes))
        return quotes
