"""Tests for PriceCheckService and the sequential shopping-list workflow."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from pricecrawler.core.exceptions import AllSourcesFailedError, InvalidInputError
from pricecrawler.scrapers.aggregator import PriceAggregator
from pricecrawler.scrapers.base import FailureKind
from pricecrawler.services import price_service
from pricecrawler.services.cache_service import MemoryResultCache
from pricecrawler.services.price_service import (
    PriceCheck,
    PriceCheckService,
    PriceCheckStatus,
    total_best_price,
)


@pytest.fixture
def shop_a(stub_adapter):
    return stub_adapter("shop-a", prices=[Decimal("2.50"), Decimal("1.75")])


@pytest.fixture
def service(shop_a):
    return PriceCheckService(PriceAggregator([shop_a]), cache=MemoryResultCache(), inter_query_delay=0.5)


class TestCheckPrice:
    """Tests for single lookups and the cache around them."""

    async def test_result_is_cached(self, service, shop_a):
        first = await service.check_price("milk")
        second = await service.check_price("  MILK ")

        assert first.status is PriceCheckStatus.OK
        assert first.from_cache is False
        assert second.from_cache is True
        assert second.best_price == Decimal("1.75")
        assert shop_a.calls == ["milk"]

    async def test_bypass_cache(self, service, shop_a):
        await service.check_price("milk")
        await service.check_price("milk", use_cache=False)

        assert len(shop_a.calls) == 2

    async def test_invalidate_forces_requery(self, service, shop_a):
        await service.check_price("milk")

        assert await service.invalidate("Milk") is True
        await service.check_price("milk")

        assert len(shop_a.calls) == 2

    async def test_clear_cache(self, service):
        await service.check_price("milk")
        await service.check_price("bread")

        assert await service.clear_cache() == 2

    async def test_without_cache(self, shop_a):
        service = PriceCheckService(PriceAggregator([shop_a]))

        await service.check_price("milk")
        await service.check_price("milk")

        assert len(shop_a.calls) == 2
        assert await service.invalidate("milk") is False
        assert await service.clear_cache() == 0

    async def test_blank_name(self, service, shop_a):
        with pytest.raises(InvalidInputError):
            await service.check_price("   ")
        assert shop_a.calls == []

    async def test_all_failed_is_not_cached(self, stub_adapter):
        broken = stub_adapter("broken", fail_for={"milk"})
        cache = MemoryResultCache()
        service = PriceCheckService(PriceAggregator([broken]), cache=cache)

        with pytest.raises(AllSourcesFailedError):
            await service.check_price("milk")

        assert len(cache) == 0

    async def test_no_prices(self, stub_adapter):
        service = PriceCheckService(PriceAggregator([stub_adapter("shop-a", prices=[None])]))

        check = await service.check_price("milk")

        assert check.status is PriceCheckStatus.NO_PRICES
        assert check.best_price is None
        assert check.quotes == ()

    async def test_check_source(self, stub_adapter, shop_a):
        other = stub_adapter("shop-b", prices=[Decimal("0.99")])
        service = PriceCheckService(PriceAggregator([shop_a, other]), cache=MemoryResultCache())

        check = await service.check_source("shop-a", "milk")

        assert check.best_price == Decimal("1.75")
        assert other.calls == []


class TestCheckPrices:
    """Tests for sequential multi-item checks."""

    async def test_items_run_in_order_with_delay(self, service, shop_a):
        with patch.object(price_service.asyncio, "sleep", new_callable=AsyncMock) as sleep:
            checks = await service.check_prices(["milk", "bread", "eggs"])

        assert [c.product_name for c in checks] == ["milk", "bread", "eggs"]
        assert shop_a.calls == ["milk", "bread", "eggs"]
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    async def test_delay_override(self, service):
        with patch.object(price_service.asyncio, "sleep", new_callable=AsyncMock) as sleep:
            await service.check_prices(["milk", "bread"], delay=2.0)

        sleep.assert_awaited_once_with(2.0)

    async def test_zero_delay(self, service):
        with patch.object(price_service.asyncio, "sleep", new_callable=AsyncMock) as sleep:
            await service.check_prices(["milk", "bread"], delay=0)

        sleep.assert_not_awaited()

    async def test_cache_hits_skip_the_delay(self, service, shop_a):
        await service.check_price("milk")

        with patch.object(price_service.asyncio, "sleep", new_callable=AsyncMock) as sleep:
            checks = await service.check_prices(["bread", "Milk", "eggs"])

        assert [c.from_cache for c in checks] == [False, True, False]
        assert shop_a.calls == ["milk", "bread", "eggs"]
        assert sleep.await_count == 1

    async def test_one_bad_item_never_aborts_the_list(self, stub_adapter):
        adapter = stub_adapter("shop-a", prices=[Decimal("3.00")], fail_for={"bread"})
        service = PriceCheckService(PriceAggregator([adapter]), inter_query_delay=0)

        checks = await service.check_prices(["milk", "  ", "bread", "eggs"])

        assert [c.status for c in checks] == [
            PriceCheckStatus.OK,
            PriceCheckStatus.INVALID,
            PriceCheckStatus.FAILED,
            PriceCheckStatus.OK,
        ]
        assert checks[1].error
        assert checks[2].failures[0].kind is FailureKind.NETWORK_ERROR
        assert total_best_price(checks) == Decimal("6.00")


class TestTotalBestPrice:
    """Tests for total_best_price."""

    def test_empty(self):
        assert total_best_price([]) == Decimal("0")

    def test_skips_items_without_prices(self):
        checks = [
            PriceCheck(product_name="x", status=PriceCheckStatus.FAILED),
            PriceCheck(product_name="y", status=PriceCheckStatus.INVALID),
        ]

        assert total_best_price(checks) == Decimal("0")
