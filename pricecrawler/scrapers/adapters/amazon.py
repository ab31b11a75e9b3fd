"""Amazon adapter backed by the Rainforest API.

Amazon offers no open search API, so prices come through Rainforest,
a third-party proxy that takes a JSON request and answers with parsed
search results.
"""

from typing import Any, Dict, List, Optional

import httpx

from pricecrawler.config import settings
from pricecrawler.scrapers.base import BaseAPIAdapter, FailureKind, PriceQuote
from pricecrawler.scrapers.utils.retry import http_retry


class AmazonAdapter(BaseAPIAdapter):
    """Amazon search results through Rainforest.

    Requires RAINFOREST_API_KEY in environment variables.
    """

    shop_slug = "amazon"
    shop_name = "Amazon"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        amazon_domain: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, max_results=max_results, http_client=http_client)
        self.api_key = api_key if api_key is not None else settings.RAINFOREST_API_KEY
        self.api_url = api_url or settings.RAINFOREST_API_URL
        self.amazon_domain = amazon_domain or settings.RAINFOREST_AMAZON_DOMAIN

        if not self.api_key:
            self.logger.warning("amazon_credentials_missing", message="RAINFOREST_API_KEY not set")

    async def _search(self, query: str, max_results: int) -> List[PriceQuote]:
        if not self.api_key:
            raise self._fail(FailureKind.AUTH_ERROR, "RAINFOREST_API_KEY not configured")

        data = await self._call_api(query)
        if not isinstance(data, dict):
            raise self._fail(FailureKind.PARSE_ERROR, "unexpected response shape")

        # Rainforest reports key problems in the body with a 200 status
        info = data.get("request_info") or {}
        if info.get("success") is False:
            message = info.get("message") or "request rejected"
            kind = FailureKind.AUTH_ERROR if "api_key" in message.lower() else FailureKind.NETWORK_ERROR
            raise self._fail(kind, message)

        results = data.get("search_results") or []
        return [self._normalize_result(r) for r in results[:max_results]]

    @http_retry
    async def _call_api(self, query: str) -> Any:
        body = {
            "api_key": self.api_key,
            "type": "search",
            "amazon_domain": self.amazon_domain,
            "search_term": query,
            "max_page": 1,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        self.logger.debug("amazon_search_api_call", query=query, domain=self.amazon_domain)
        return await self._request_json("POST", self.api_url, json=body, headers=headers)

    def _normalize_result(self, result: Dict[str, Any]) -> PriceQuote:
        price = result.get("price") or {}
        prices = result.get("prices") or [{}]
        fallback = prices[0] if isinstance(prices[0], dict) else {}

        return self._quote(
            title=result.get("title"),
            raw_price=self._first_price(price.get("value"), fallback.get("value")),
            url=result.get("link"),
            image_url=result.get("image"),
            currency=price.get("currency") or fallback.get("currency"),
        )
