"""Kroger Products API adapter.

Searches Kroger using the public Products API.
Documentation: https://developer.kroger.com/reference/api/product-api-public
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from pricecrawler.config import settings
from pricecrawler.scrapers.base import BaseAPIAdapter, FailureKind, PriceQuote
from pricecrawler.scrapers.utils.retry import http_retry


class KrogerAdapter(BaseAPIAdapter):
    """Kroger adapter using the OAuth 2.0 Client Credentials flow.

    Requires KROGER_CLIENT_ID and KROGER_CLIENT_SECRET in environment
    variables. Prefers the promo price and falls back to the regular one.
    """

    shop_slug = "kroger"
    shop_name = "Kroger"
    SITE_URL = "https://kroger.com"
    OAUTH_SCOPE = "product.compact"

    # Refresh the token this long before it actually expires
    TOKEN_EXPIRY_BUFFER = timedelta(seconds=60)

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        api_url: Optional[str] = None,
        oauth_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, max_results=max_results, http_client=http_client)
        self.client_id = client_id if client_id is not None else settings.KROGER_CLIENT_ID
        self.client_secret = (
            client_secret if client_secret is not None else settings.KROGER_CLIENT_SECRET
        )
        self.api_url = api_url or settings.KROGER_API_URL
        self.oauth_url = oauth_url or settings.KROGER_OAUTH_URL

        if not self.client_id or not self.client_secret:
            self.logger.warning(
                "kroger_credentials_missing",
                message="KROGER_CLIENT_ID or KROGER_CLIENT_SECRET not set",
            )

        # OAuth token caching
        self._access_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._token_lock = asyncio.Lock()

    async def _search(self, query: str, max_results: int) -> List[PriceQuote]:
        if not self.client_id or not self.client_secret:
            raise self._fail(
                FailureKind.AUTH_ERROR,
                "KROGER_CLIENT_ID or KROGER_CLIENT_SECRET not configured",
            )

        token = await self._get_access_token()
        try:
            data = await self._call_search_api(query, max_results, token)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                # Token revoked or expired early; next call fetches a fresh one
                self._access_token = None
                self._token_expires_at = None
            raise

        if not isinstance(data, dict):
            raise self._fail(FailureKind.PARSE_ERROR, "unexpected response shape")

        return [self._normalize_product(p) for p in (data.get("data") or [])[:max_results]]

    async def _get_access_token(self) -> str:
        """Get an OAuth 2.0 access token using the Client Credentials flow.

        Caches the token until shortly before it expires.

        Returns:
            Access token string

        Raises:
            SourceError: AUTH_ERROR if the token exchange is rejected
        """
        async with self._token_lock:
            if self._access_token and self._token_expires_at:
                if datetime.now(timezone.utc) < self._token_expires_at:
                    self.logger.debug("kroger_using_cached_token")
                    return self._access_token

            self.logger.info("kroger_requesting_new_token")

            data = {
                "grant_type": "client_credentials",
                "scope": self.OAUTH_SCOPE,
            }
            headers = {
                "Content-Type": "application/x-www-form-urlencoded",
            }

            try:
                token_data = await self._request_json(
                    "POST",
                    self.oauth_url,
                    auth=(self.client_id, self.client_secret),
                    data=data,
                    headers=headers,
                )
            except httpx.HTTPStatusError as e:
                self.logger.error(
                    "kroger_token_acquisition_failed",
                    status=e.response.status_code,
                )
                raise self._fail(
                    FailureKind.AUTH_ERROR,
                    f"token exchange rejected with HTTP {e.response.status_code}",
                ) from e

            access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
            if not access_token:
                raise self._fail(FailureKind.AUTH_ERROR, "token response had no access_token")

            expires_in = int(token_data.get("expires_in", 1800))
            self._access_token = access_token
            self._token_expires_at = (
                datetime.now(timezone.utc)
                + timedelta(seconds=expires_in)
                - self.TOKEN_EXPIRY_BUFFER
            )

            self.logger.info("kroger_token_acquired", expires_in=expires_in)
            return access_token

    @http_retry
    async def _call_search_api(self, query: str, max_results: int, token: str) -> Any:
        params = {
            "filter.term": query,
            "filter.limit": str(max_results),
        }
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        self.logger.debug("kroger_search_api_call", query=query)
        return await self._request_json("GET", self.api_url, params=params, headers=headers)

    def _normalize_product(self, product: Dict[str, Any]) -> PriceQuote:
        items = product.get("items") or [{}]
        price = (items[0] or {}).get("price") or {}

        images = product.get("images") or [{}]
        sizes = (images[0] or {}).get("sizes") or [{}]

        product_id = product.get("productId")
        return self._quote(
            title=product.get("description"),
            raw_price=self._first_price(price.get("promo"), price.get("regular")),
            url=f"{self.SITE_URL}/p/{product_id}" if product_id else None,
            image_url=(sizes[0] or {}).get("url"),
            currency="USD",
        )
