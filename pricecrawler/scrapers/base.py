"""Base source adapter interface.

All retailer-specific adapters inherit from BaseAdapter and implement
_search(). The public fetch() wraps it with the adapter's own timeout
and converts every fault into a failed SourceOutcome, so nothing an
adapter does can unwind into the aggregator.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog

from pricecrawler.core.exceptions import SourceError
from pricecrawler.scrapers.utils.normalizer import PriceNormalizer, normalize_whitespace

try:
    from playwright.async_api import Error as PlaywrightError
    from playwright.async_api import TimeoutError as PlaywrightTimeout
except ImportError:
    PlaywrightError = None
    PlaywrightTimeout = None


class FailureKind(str, Enum):
    """Classification of a single source's failure."""

    NETWORK_ERROR = "network_error"
    AUTH_ERROR = "auth_error"
    PARSE_ERROR = "parse_error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class PriceQuote:
    """One retailer's offer for a search term.

    ``price`` holds whatever the adapter could parse (None when the
    source gave nothing usable). Ranking drops quotes whose price is not
    a finite positive decimal. Currencies are never converted.
    """

    store: str
    title: str = ""
    price: Optional[Decimal] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    price_text: Optional[str] = None
    currency: Optional[str] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.store:
            raise ValueError("store is required")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["price"] = str(self.price) if self.price is not None else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceQuote":
        price = data.get("price")
        return cls(
            store=data["store"],
            title=data.get("title") or "",
            price=Decimal(price) if price is not None else None,
            url=data.get("url"),
            image_url=data.get("image_url"),
            price_text=data.get("price_text"),
            currency=data.get("currency"),
        )


@dataclass(frozen=True)
class SourceFailure:
    """Why one adapter produced no quotes."""

    source: str
    store: str
    kind: FailureKind
    message: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "source": self.source,
            "store": self.store,
            "kind": self.kind.value,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "SourceFailure":
        return cls(
            source=data["source"],
            store=data["store"],
            kind=FailureKind(data["kind"]),
            message=data.get("message", ""),
        )


@dataclass(frozen=True)
class SourceOutcome:
    """Result of calling one adapter: quotes or a failure, never both."""

    source: str
    store: str
    quotes: Optional[Tuple[PriceQuote, ...]] = None
    failure: Optional[SourceFailure] = None

    def __post_init__(self):
        if (self.quotes is None) == (self.failure is None):
            raise ValueError("SourceOutcome needs exactly one of quotes or failure")

    @classmethod
    def success(cls, source: str, store: str, quotes) -> "SourceOutcome":
        return cls(source=source, store=store, quotes=tuple(quotes))

    @classmethod
    def failed(
        cls, source: str, store: str, kind: FailureKind, message: str = ""
    ) -> "SourceOutcome":
        return cls(
            source=source,
            store=store,
            failure=SourceFailure(source=source, store=store, kind=kind, message=message),
        )

    @property
    def succeeded(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class AggregateResult:
    """Price-ordered quotes across every source that answered a query."""

    query: str
    quotes: Tuple[PriceQuote, ...] = ()
    failures: Tuple[SourceFailure, ...] = ()
    sources: Tuple[str, ...] = field(default=())

    @property
    def no_usable_prices(self) -> bool:
        """True when the query worked but nothing had a usable price."""
        return not self.quotes

    @property
    def best_quote(self) -> Optional[PriceQuote]:
        return self.quotes[0] if self.quotes else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "quotes": [q.to_dict() for q in self.quotes],
            "failures": [f.to_dict() for f in self.failures],
            "sources": list(self.sources),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregateResult":
        return cls(
            query=data["query"],
            quotes=tuple(PriceQuote.from_dict(q) for q in data.get("quotes", [])),
            failures=tuple(SourceFailure.from_dict(f) for f in data.get("failures", [])),
            sources=tuple(data.get("sources", [])),
        )


def classify_exception(exc: BaseException) -> FailureKind:
    """Map an exception raised while talking to a source onto a FailureKind."""
    if isinstance(exc, SourceError):
        return exc.kind
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return FailureKind.TIMEOUT
    if PlaywrightTimeout is not None and isinstance(exc, PlaywrightTimeout):
        return FailureKind.TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code in (401, 403):
            return FailureKind.AUTH_ERROR
        return FailureKind.NETWORK_ERROR
    if isinstance(exc, httpx.TransportError):
        return FailureKind.NETWORK_ERROR
    if PlaywrightError is not None and isinstance(exc, PlaywrightError):
        return FailureKind.NETWORK_ERROR
    # JSONDecodeError is a ValueError
    if isinstance(exc, (ValueError, KeyError, TypeError, IndexError, AttributeError)):
        return FailureKind.PARSE_ERROR
    return FailureKind.NETWORK_ERROR


class BaseAdapter(ABC):
    """Abstract base class for all source adapters (API and scraper).

    Subclasses implement _search(), which may raise freely. Callers only
    ever use fetch(), which never raises.
    """

    shop_slug: str = ""  # Must be overridden in subclass (e.g., "walmart")
    shop_name: str = ""  # Must be overridden in subclass (e.g., "Walmart")
    adapter_type: str = ""  # Must be 'api' or 'scraper'

    DEFAULT_TIMEOUT = 8.0

    def __init__(self, timeout: Optional[float] = None, max_results: int = 3):
        """Initialize the adapter.

        Args:
            timeout: Seconds this adapter may spend on one fetch
            max_results: Maximum quotes mapped from one response
        """
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self.max_results = max_results
        self.logger = structlog.get_logger(adapter=self.shop_slug)

    async def fetch(self, product_name: str) -> SourceOutcome:
        """Search this source and return a SourceOutcome.

        Args:
            product_name: Non-empty product query

        Returns:
            Successful outcome with up to max_results quotes, or a failed
            outcome carrying the failure classification
        """
        query = product_name.strip()
        try:
            quotes = await asyncio.wait_for(
                self._search(query, self.max_results), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            message = f"no response within {self.timeout:g}s"
            self.logger.warning("fetch_timeout", query=query, timeout=self.timeout)
            return SourceOutcome.failed(
                self.shop_slug, self.shop_name, FailureKind.TIMEOUT, message
            )
        except Exception as e:
            kind = classify_exception(e)
            message = str(e) or type(e).__name__
            if kind is FailureKind.NETWORK_ERROR and not isinstance(
                e, (SourceError, httpx.HTTPError)
            ):
                self.logger.error("fetch_unexpected_error", query=query, error=message, exc_info=True)
            else:
                self.logger.warning("fetch_failed", query=query, kind=kind.value, error=message)
            return SourceOutcome.failed(self.shop_slug, self.shop_name, kind, message)

        quotes = list(quotes)[: self.max_results]
        self.logger.info("fetch_complete", query=query, count=len(quotes))
        return SourceOutcome.success(self.shop_slug, self.shop_name, quotes)

    @abstractmethod
    async def _search(self, query: str, max_results: int) -> List[PriceQuote]:
        """Return up to max_results quotes for the query.

        Args:
            query: Trimmed product name
            max_results: Maximum number of quotes to map

        Returns:
            List of PriceQuote objects, empty if the source has no match

        Raises:
            SourceError, httpx errors, parse errors: converted by fetch()
        """
        pass

    async def cleanup(self) -> None:
        """Release adapter resources."""
        return None

    def _fail(self, kind: FailureKind, message: str) -> SourceError:
        return SourceError(self.shop_slug, kind, message)

    def _quote(
        self,
        title: Any,
        raw_price: Any,
        url: Optional[str] = None,
        image_url: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> PriceQuote:
        """Build a PriceQuote from raw source fields.

        Missing or oddly typed fields degrade to empty values; an
        unusable price is kept as None so ranking can drop the quote.
        """
        return PriceQuote(
            store=self.shop_name,
            title=normalize_whitespace(title) if isinstance(title, str) else "",
            price=PriceNormalizer.to_price(raw_price),
            url=url or None,
            image_url=image_url or None,
            price_text=None if raw_price is None else str(raw_price),
            currency=currency,
        )

    @staticmethod
    def _first_price(*candidates: Any) -> Any:
        """Pick the first candidate that parses as a usable price.

        Used for fallbacks such as sale price, then list price. When none
        is usable the first non-empty raw value is returned so it still
        shows up in price_text.
        """
        for value in candidates:
            if PriceNormalizer.to_price(value) is not None:
                return value
        return next((v for v in candidates if v not in (None, "")), None)


class BaseAPIAdapter(BaseAdapter):
    """Base class for REST API adapters.

    Provides a shared helper for JSON calls. An httpx.AsyncClient may be
    injected (tests use a MockTransport); otherwise one is created per
    request to avoid lifecycle issues.
    """

    adapter_type = "api"

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_results: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, max_results=max_results)
        self.http_client = http_client

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            ValueError: If the body is not JSON
        """
        if self.http_client is not None:
            response = await self.http_client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, **kwargs)

        response.raise_for_status()
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise self._fail(FailureKind.PARSE_ERROR, f"invalid JSON body: {e}") from e


class BaseScraperAdapter(BaseAdapter):
    """Base class for browser-based adapters using Playwright.

    The browser manager is injected by the factory; pages are opened in
    a context named after the shop slug.
    """

    adapter_type = "scraper"
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_results: int = 3,
        browser_manager=None,
    ):
        super().__init__(timeout=timeout, max_results=max_results)
        self.browser_manager = browser_manager

    def _get_browser_manager(self):
        if self.browser_manager is None:
            from pricecrawler.scrapers.utils.browser_manager import get_browser_manager

            self.browser_manager = get_browser_manager()
        return self.browser_manager

    async def cleanup(self) -> None:
        """Close this shop's browser context."""
        if self.browser_manager is not None:
            await self.browser_manager.close_context(self.shop_slug)
