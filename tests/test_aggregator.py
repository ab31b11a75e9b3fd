"""Tests for the concurrent price aggregator."""

import time
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from pricecrawler.core.exceptions import (
    AllSourcesFailedError,
    InvalidInputError,
    SourceError,
    UnknownSourceError,
)
from pricecrawler.scrapers.aggregator import PriceAggregator
from pricecrawler.scrapers.base import FailureKind, SourceOutcome


class TestQuery:
    """Tests for PriceAggregator.query."""

    async def test_partial_failure_returns_ranked_quotes_and_failures(self, stub_adapter):
        """A: 19.99, B: 15.50, C: network error."""
        a = stub_adapter("shop-a", prices=[Decimal("19.99")])
        b = stub_adapter("shop-b", prices=[Decimal("15.50")])
        c = stub_adapter("shop-c", error=httpx.ConnectError("connection refused"))

        result = await PriceAggregator([a, b, c]).query("milk")

        assert [(q.store, q.price) for q in result.quotes] == [
            ("Shop B", Decimal("15.50")),
            ("Shop A", Decimal("19.99")),
        ]
        assert len(result.failures) == 1
        assert result.failures[0].source == "shop-c"
        assert result.failures[0].kind is FailureKind.NETWORK_ERROR
        assert result.sources == ("shop-a", "shop-b")
        assert result.best_quote.store == "Shop B"

    async def test_all_failed_carries_one_failure_per_adapter(self, stub_adapter):
        adapters = [
            stub_adapter("shop-a", error=SourceError("shop-a", FailureKind.AUTH_ERROR, "bad key")),
            stub_adapter("shop-b", error=ValueError("unexpected payload")),
            stub_adapter("shop-c", delay=5, timeout=0.05),
        ]

        with pytest.raises(AllSourcesFailedError) as exc_info:
            await PriceAggregator(adapters).query("milk")

        failures = exc_info.value.failures
        assert [f.source for f in failures] == ["shop-a", "shop-b", "shop-c"]
        assert [f.kind for f in failures] == [
            FailureKind.AUTH_ERROR,
            FailureKind.PARSE_ERROR,
            FailureKind.TIMEOUT,
        ]
        assert exc_info.value.query == "milk"

    async def test_all_sources_empty_is_a_success(self, stub_adapter):
        """Empty results are not failures: the caller gets no_usable_prices."""
        adapters = [stub_adapter("shop-a"), stub_adapter("shop-b", prices=[None, "n/a"])]

        result = await PriceAggregator(adapters).query("unicorn food")

        assert result.quotes == ()
        assert result.failures == ()
        assert result.no_usable_prices is True

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    async def test_blank_query_calls_no_adapter(self, stub_adapter, name):
        adapter = stub_adapter("shop-a", prices=[1])
        adapter.fetch = AsyncMock()

        with pytest.raises(InvalidInputError):
            await PriceAggregator([adapter]).query(name)

        adapter.fetch.assert_not_called()

    async def test_query_is_trimmed(self, stub_adapter):
        adapter = stub_adapter("shop-a", prices=[1])

        result = await PriceAggregator([adapter]).query("  milk  ")

        assert adapter.calls == ["milk"]
        assert result.query == "milk"

    async def test_no_adapters_configured(self):
        with pytest.raises(AllSourcesFailedError) as exc_info:
            await PriceAggregator([]).query("milk")

        assert exc_info.value.failures == ()

    async def test_unparseable_prices_never_surface(self, stub_adapter):
        adapter = stub_adapter(
            "shop-a",
            prices=["abc", Decimal("0"), Decimal("-3"), Decimal("2.50")],
            max_results=4,
        )

        result = await PriceAggregator([adapter]).query("bread")

        assert [q.price for q in result.quotes] == [Decimal("2.50")]

    async def test_results_truncated_to_max_results(self, stub_adapter):
        adapter = stub_adapter("shop-a", prices=[5, 4, 3, 2, 1])

        result = await PriceAggregator([adapter]).query("eggs")

        assert len(result.quotes) == 3
        assert [q.price for q in result.quotes] == [Decimal("3"), Decimal("4"), Decimal("5")]


class TestOrdering:
    """Output order never depends on completion order."""

    async def test_equal_prices_follow_registration_order(self, stub_adapter):
        # shop-a finishes last but was registered first
        a = stub_adapter("shop-a", prices=[Decimal("10.00")], delay=0.05)
        b = stub_adapter("shop-b", prices=[Decimal("10.00")])

        result = await PriceAggregator([a, b]).query("milk")

        assert [q.store for q in result.quotes] == ["Shop A", "Shop B"]

    async def test_failures_follow_registration_order(self, stub_adapter):
        a = stub_adapter("shop-a", error=httpx.ConnectError("down"), delay=0.05)
        b = stub_adapter("shop-b", prices=[1])
        c = stub_adapter("shop-c", error=KeyError("price"))

        result = await PriceAggregator([a, b, c]).query("milk")

        assert [f.source for f in result.failures] == ["shop-a", "shop-c"]

    async def test_repeated_queries_are_identical(self, stub_adapter):
        adapters = [
            stub_adapter("shop-a", prices=[Decimal("3.10"), Decimal("2.00")], delay=0.02),
            stub_adapter("shop-b", prices=[Decimal("2.00"), Decimal("1.99")]),
        ]
        aggregator = PriceAggregator(adapters)

        first = await aggregator.query("milk")
        second = await aggregator.query("milk")

        assert first == second


class TestDeadline:
    """Slow sources are isolated and the query stays bounded."""

    async def test_slow_adapter_times_out_without_blocking_others(self, stub_adapter):
        slow = stub_adapter("slow", prices=[1], delay=10, timeout=0.1)
        fast = stub_adapter("fast", prices=[Decimal("4.20")])

        started = time.monotonic()
        result = await PriceAggregator([slow, fast], deadline=5).query("milk")
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert [q.store for q in result.quotes] == ["Fast"]
        assert result.failures[0].source == "slow"
        assert result.failures[0].kind is FailureKind.TIMEOUT

    async def test_overall_deadline_cancels_hung_adapters(self, stub_adapter):
        hung = stub_adapter("hung", prices=[1], delay=30, timeout=60)
        fast = stub_adapter("fast", prices=[Decimal("1.00")])
        aggregator = PriceAggregator([hung, fast], deadline=0.2)

        started = time.monotonic()
        result = await aggregator.query("milk")
        elapsed = time.monotonic() - started

        assert elapsed < 0.2 + aggregator.CANCEL_GRACE + 0.3
        assert result.failures[0].kind is FailureKind.TIMEOUT
        assert "deadline" in result.failures[0].message
        assert [q.store for q in result.quotes] == ["Fast"]

    async def test_deadline_with_every_adapter_hung(self, stub_adapter):
        adapters = [stub_adapter(f"hung-{i}", delay=30, timeout=60) for i in range(3)]

        with pytest.raises(AllSourcesFailedError) as exc_info:
            await PriceAggregator(adapters, deadline=0.1).query("milk")

        assert all(f.kind is FailureKind.TIMEOUT for f in exc_info.value.failures)
        assert len(exc_info.value.failures) == 3


class TestMisbehavingAdapters:
    """Exceptions escaping fetch() only affect their own slot."""

    async def test_fetch_raising_is_converted(self, stub_adapter):
        broken = stub_adapter("broken")
        broken.fetch = AsyncMock(side_effect=RuntimeError("boom"))
        ok = stub_adapter("ok", prices=[2])

        result = await PriceAggregator([broken, ok]).query("milk")

        assert result.failures[0].source == "broken"
        assert result.failures[0].kind is FailureKind.NETWORK_ERROR
        assert result.failures[0].message == "boom"

    async def test_fetch_returning_outcome_directly(self, stub_adapter):
        adapter = stub_adapter("direct")
        adapter.fetch = AsyncMock(
            return_value=SourceOutcome.failed("direct", "Direct", FailureKind.PARSE_ERROR, "bad html")
        )

        with pytest.raises(AllSourcesFailedError) as exc_info:
            await PriceAggregator([adapter]).query("milk")

        assert exc_info.value.failures[0].kind is FailureKind.PARSE_ERROR


class TestQuerySource:
    """Tests for single-source queries."""

    async def test_query_source_uses_only_that_adapter(self, stub_adapter):
        a = stub_adapter("shop-a", prices=[1])
        b = stub_adapter("shop-b", prices=[2])

        result = await PriceAggregator([a, b]).query_source("SHOP-B", "milk")

        assert [q.store for q in result.quotes] == ["Shop B"]
        assert a.calls == []

    async def test_unknown_source(self, stub_adapter):
        aggregator = PriceAggregator([stub_adapter("shop-a")])

        with pytest.raises(UnknownSourceError):
            await aggregator.query_source("nope", "milk")

    async def test_failed_single_source(self, stub_adapter):
        aggregator = PriceAggregator([stub_adapter("shop-a", error=httpx.ReadError("reset"))])

        with pytest.raises(AllSourcesFailedError):
            await aggregator.query_source("shop-a", "milk")
