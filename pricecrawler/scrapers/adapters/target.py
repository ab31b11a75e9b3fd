"""Target RedSky adapter.

Target has no public product API; its web frontend calls the RedSky
aggregation service, which answers keyword searches with prices inline.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import httpx

from pricecrawler.config import settings
from pricecrawler.scrapers.base import BaseAPIAdapter, FailureKind, PriceQuote
from pricecrawler.scrapers.utils.retry import http_retry


class TargetAdapter(BaseAPIAdapter):
    """Target product search via the RedSky PLP endpoint."""

    shop_slug = "target"
    shop_name = "Target"
    SITE_URL = "https://target.com"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, max_results=max_results, http_client=http_client)
        self.api_key = api_key if api_key is not None else settings.TARGET_API_KEY
        self.api_url = api_url or settings.TARGET_API_URL

        if not self.api_key:
            self.logger.warning("target_credentials_missing", message="TARGET_API_KEY not set")

    async def _search(self, query: str, max_results: int) -> List[PriceQuote]:
        if not self.api_key:
            raise self._fail(FailureKind.AUTH_ERROR, "TARGET_API_KEY not configured")

        data = await self._call_api(query, max_results)
        if not isinstance(data, dict):
            raise self._fail(FailureKind.PARSE_ERROR, "unexpected response shape")

        search = (data.get("data") or {}).get("search") or {}
        products = search.get("products") or []
        return [self._normalize_product(p) for p in products[:max_results]]

    @http_retry
    async def _call_api(self, query: str, max_results: int) -> Any:
        params = {
            "key": self.api_key,
            "channel": "WEB",
            "count": str(max_results),
            "default_purchasability_filter": "true",
            "keyword": query,
        }
        self.logger.debug("target_search_api_call", query=query)
        return await self._request_json("GET", self.api_url, params=params)

    def _normalize_product(self, product: Dict[str, Any]) -> PriceQuote:
        item = product.get("item") or {}
        enrichment = item.get("enrichment") or {}
        price = product.get("price") or {}

        buy_url = enrichment.get("buy_url")
        return self._quote(
            title=(item.get("product_description") or {}).get("title"),
            raw_price=self._first_price(price.get("current_retail"), price.get("reg_retail")),
            url=urljoin(self.SITE_URL, buy_url) if buy_url else None,
            image_url=(enrichment.get("images") or {}).get("primary_image_url"),
            currency="USD",
        )
