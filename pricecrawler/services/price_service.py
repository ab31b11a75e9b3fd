"""Price check service: the caller layer around the aggregator.

Wraps PriceAggregator with the result cache and implements the
sequential "check every item on the list" workflow with a courtesy
delay between network queries.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Tuple

import structlog

from pricecrawler.core.exceptions import AllSourcesFailedError, InvalidInputError
from pricecrawler.scrapers.aggregator import PriceAggregator
from pricecrawler.scrapers.base import AggregateResult, PriceQuote, SourceFailure
from pricecrawler.services.cache_service import ResultCache

logger = structlog.get_logger(__name__)


class PriceCheckStatus(str, Enum):
    OK = "ok"
    NO_PRICES = "no_prices"  # every source answered, none had a usable price
    FAILED = "failed"  # every source failed
    INVALID = "invalid"  # empty product name


@dataclass(frozen=True)
class PriceCheck:
    """Outcome of checking one product, as shown to an end user."""

    product_name: str
    status: PriceCheckStatus
    result: Optional[AggregateResult] = None
    failures: Tuple[SourceFailure, ...] = ()
    error: Optional[str] = None
    from_cache: bool = False

    @property
    def quotes(self) -> Tuple[PriceQuote, ...]:
        return self.result.quotes if self.result else ()

    @property
    def best_quote(self) -> Optional[PriceQuote]:
        return self.result.best_quote if self.result else None

    @property
    def best_price(self) -> Optional[Decimal]:
        best = self.best_quote
        return best.price if best else None

    @classmethod
    def from_result(cls, product_name: str, result: AggregateResult, from_cache: bool = False) -> "PriceCheck":
        status = PriceCheckStatus.NO_PRICES if result.no_usable_prices else PriceCheckStatus.OK
        return cls(
            product_name=product_name,
            status=status,
            result=result,
            failures=result.failures,
            from_cache=from_cache,
        )


def total_best_price(checks: Iterable[PriceCheck]) -> Decimal:
    """Sum of the cheapest price found for every item that has one."""
    return sum((c.best_price for c in checks if c.best_price is not None), Decimal("0"))


class PriceCheckService:
    """Cache-aware price lookups for one or many products."""

    DEFAULT_INTER_QUERY_DELAY = 1.0

    def __init__(
        self,
        aggregator: PriceAggregator,
        cache: Optional[ResultCache] = None,
        inter_query_delay: float = DEFAULT_INTER_QUERY_DELAY,
    ):
        """Initialize price check service.

        Args:
            aggregator: Aggregator that owns the configured adapters
            cache: Optional result cache; None disables caching
            inter_query_delay: Seconds to wait between sequential network queries
        """
        self.aggregator = aggregator
        self.cache = cache
        self.inter_query_delay = inter_query_delay
        self.logger = logger.bind(service="price_check_service")

    async def check_price(self, product_name: str, use_cache: bool = True) -> PriceCheck:
        """Look up prices for one product, consulting the cache first.

        Raises:
            InvalidInputError: If product_name is empty or whitespace-only
            AllSourcesFailedError: If every source failed
        """
        if product_name is None or not product_name.strip():
            raise InvalidInputError()

        if use_cache and self.cache is not None:
            cached = await self.cache.get(product_name)
            if cached is not None:
                self.logger.info("price_check_cache_hit", product=product_name)
                return PriceCheck.from_result(product_name, cached, from_cache=True)

        result = await self.aggregator.query(product_name)

        if self.cache is not None:
            await self.cache.put(product_name, result)

        return PriceCheck.from_result(product_name, result)

    async def check_source(self, source: str, product_name: str) -> PriceCheck:
        """Look up prices from one source only. Never cached.

        Raises:
            UnknownSourceError, InvalidInputError, AllSourcesFailedError
        """
        result = await self.aggregator.query_source(source, product_name)
        return PriceCheck.from_result(product_name, result)

    async def check_prices(
        self,
        product_names: Iterable[str],
        delay: Optional[float] = None,
        use_cache: bool = True,
    ) -> List[PriceCheck]:
        """Check every product in order, pausing between network queries.

        The pause is a courtesy rate limit and is skipped after cache hits.
        A failing item is recorded in its PriceCheck and never stops the
        rest of the list.

        Args:
            product_names: Products in list order
            delay: Seconds between queries, defaults to inter_query_delay
            use_cache: Whether to consult and fill the cache

        Returns:
            One PriceCheck per product, in input order
        """
        pause = self.inter_query_delay if delay is None else delay
        checks: List[PriceCheck] = []
        queried_before = False

        for name in product_names:
            if use_cache and self.cache is not None and name and name.strip():
                cached = await self.cache.get(name)
                if cached is not None:
                    checks.append(PriceCheck.from_result(name, cached, from_cache=True))
                    continue

            if queried_before and pause > 0:
                await asyncio.sleep(pause)

            checks.append(await self._check_one(name, use_cache))
            queried_before = True

        self.logger.info(
            "price_checks_complete",
            items=len(checks),
            ok=sum(1 for c in checks if c.status is PriceCheckStatus.OK),
            failed=sum(1 for c in checks if c.status is PriceCheckStatus.FAILED),
        )
        return checks

    async def invalidate(self, product_name: str) -> bool:
        """Forget the cached result for a product (e.g. its text was edited)."""
        if self.cache is None:
            return False
        return await self.cache.invalidate(product_name)

    async def clear_cache(self) -> int:
        if self.cache is None:
            return 0
        return await self.cache.clear()

    async def _check_one(self, product_name: str, use_cache: bool) -> PriceCheck:
        try:
            return await self.check_price(product_name, use_cache=use_cache)
        except InvalidInputError as e:
            self.logger.warning("price_check_invalid", product=product_name)
            return PriceCheck(
                product_name=product_name,
                status=PriceCheckStatus.INVALID,
                error=e.message,
            )
        except AllSourcesFailedError as e:
            self.logger.warning("price_check_failed", product=product_name, error=e.message)
            return PriceCheck(
                product_name=product_name,
                status=PriceCheckStatus.FAILED,
                failures=e.failures,
                error=e.message,
            )
