"""Concurrent fan-out of one product query across every source adapter.

The aggregator starts all adapters at once, waits for every one of them
up to a single overall deadline and keeps one outcome slot per adapter.
A failing or hanging adapter only ever affects its own slot.
"""

import asyncio
import time
from typing import List, Optional, Sequence

import structlog

from pricecrawler.core.exceptions import (
    AllSourcesFailedError,
    InvalidInputError,
    UnknownSourceError,
)
from pricecrawler.scrapers.base import (
    AggregateResult,
    BaseAdapter,
    FailureKind,
    SourceOutcome,
    classify_exception,
)
from pricecrawler.scrapers.ranker import rank_quotes

logger = structlog.get_logger(__name__)


class PriceAggregator:
    """Query a fixed, ordered set of adapters and merge their quotes.

    Adapter order is registration order: it decides the tie-break for
    equal prices, never completion order.
    """

    DEFAULT_DEADLINE = 15.0
    # Time granted to cancelled adapters to unwind after the deadline
    CANCEL_GRACE = 0.5

    def __init__(
        self,
        adapters: Sequence[BaseAdapter],
        deadline: float = DEFAULT_DEADLINE,
    ):
        """Initialize the aggregator.

        Args:
            adapters: Source adapters in registration order
            deadline: Overall seconds a query may take
        """
        self._adapters: List[BaseAdapter] = list(adapters)
        self.deadline = deadline
        self.logger = logger.bind(service="aggregator")

    @property
    def adapters(self) -> List[BaseAdapter]:
        return list(self._adapters)

    def get_adapter(self, source: str) -> BaseAdapter:
        """Look up a registered adapter by slug.

        Raises:
            UnknownSourceError: If no adapter has that slug
        """
        slug = source.strip().lower()
        for adapter in self._adapters:
            if adapter.shop_slug == slug:
                return adapter
        raise UnknownSourceError(source)

    async def query(
        self,
        product_name: str,
        adapters: Optional[Sequence[BaseAdapter]] = None,
    ) -> AggregateResult:
        """Search every adapter for a product and rank the merged quotes.

        Args:
            product_name: Product to search for
            adapters: Optional adapter subset, defaults to every registered adapter

        Returns:
            AggregateResult with quotes cheapest first and per-source failures

        Raises:
            InvalidInputError: If product_name is empty or whitespace-only
            AllSourcesFailedError: If no adapter produced an outcome
        """
        if product_name is None or not product_name.strip():
            raise InvalidInputError()

        query = product_name.strip()
        selected = list(self._adapters if adapters is None else adapters)

        started = time.monotonic()
        self.logger.info("query_started", query=query, sources=len(selected))

        outcomes = await self._gather(query, selected)

        failures = tuple(o.failure for o in outcomes if not o.succeeded)
        succeeded = [o for o in outcomes if o.succeeded]

        elapsed = round(time.monotonic() - started, 3)
        if not succeeded:
            self.logger.warning(
                "query_all_sources_failed",
                query=query,
                failures=[f.to_dict() for f in failures],
                elapsed=elapsed,
            )
            raise AllSourcesFailedError(query, failures)

        merged = [quote for outcome in succeeded for quote in outcome.quotes]
        ranked = rank_quotes(merged)

        self.logger.info(
            "query_complete",
            query=query,
            quotes=len(ranked),
            dropped=len(merged) - len(ranked),
            failed_sources=[f.source for f in failures],
            elapsed=elapsed,
        )

        return AggregateResult(
            query=query,
            quotes=ranked,
            failures=failures,
            sources=tuple(o.source for o in succeeded),
        )

    async def query_source(self, source: str, product_name: str) -> AggregateResult:
        """Run the query pipeline against a single registered adapter.

        Raises:
            UnknownSourceError: If the slug is not registered
            InvalidInputError: If product_name is empty or whitespace-only
            AllSourcesFailedError: If that adapter failed
        """
        adapter = self.get_adapter(source)
        return await self.query(product_name, adapters=[adapter])

    async def _gather(
        self, query: str, adapters: Sequence[BaseAdapter]
    ) -> List[SourceOutcome]:
        """Fan out to every adapter and resolve one outcome per adapter."""
        if not adapters:
            return []

        tasks = [
            asyncio.create_task(self._run_adapter(adapter, query))
            for adapter in adapters
        ]

        try:
            _, pending = await asyncio.wait(tasks, timeout=self.deadline)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.wait(pending, timeout=self.CANCEL_GRACE)

        outcomes: List[SourceOutcome] = []
        for adapter, task in zip(adapters, tasks):
            if task in pending or task.cancelled():
                self.logger.warning(
                    "source_deadline_exceeded",
                    adapter=adapter.shop_slug,
                    deadline=self.deadline,
                )
                outcomes.append(
                    SourceOutcome.failed(
                        adapter.shop_slug,
                        adapter.shop_name,
                        FailureKind.TIMEOUT,
                        f"cancelled at query deadline ({self.deadline:g}s)",
                    )
                )
            else:
                outcomes.append(task.result())
        return outcomes

    async def _run_adapter(self, adapter: BaseAdapter, query: str) -> SourceOutcome:
        """Call one adapter, converting contract violations into failures."""
        try:
            return await adapter.fetch(query)
        except Exception as e:
            self.logger.error(
                "adapter_raised",
                adapter=adapter.shop_slug,
                error=str(e),
                exc_info=True,
            )
            return SourceOutcome.failed(
                adapter.shop_slug,
                adapter.shop_name,
                classify_exception(e),
                str(e) or type(e).__name__,
            )
