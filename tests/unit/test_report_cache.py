"""Report cache tests against an in-memory stand-in for the Redis client."""
from fnmatch import fnmatchcase

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from backoffice.commands import AdjustStockCommand, CommitSaleCommand, SaleLineInput
from backoffice.services import cache_service, report_service
from backoffice.services.cache_service import ReportCache
from backoffice.services.inventory_service import adjust_stock
from backoffice.services.sales_service import commit_sale


class FakeRedis:
    """The handful of redis.Redis calls the report cache makes."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def scan_iter(self, match='*', count=None):
        return [key for key in list(self.data) if fnmatchcase(key, match)]

    def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)


class DownRedis(FakeRedis):

    def ping(self):
        raise RedisConnectionError('down')

    def get(self, key):
        raise RedisConnectionError('down')

    def setex(self, key, ttl, value):
        raise RedisConnectionError('down')


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def report_cache(monkeypatch, redis_client):
    cache = ReportCache(redis_client, prefix='test', ttl=30)
    monkeypatch.setattr(cache_service, '_report_cache', cache)
    return cache


class TestReportCache:

    def test_report_is_stored_per_store_and_type(self, report_cache, redis_client, ctx1, product_a, product_b):
        summary = report_service.get_report(ctx1, 'summary')

        key = f'test:store:{ctx1.store_id}:reports:summary'
        assert list(redis_client.data) == [key]
        assert redis_client.ttls[key] == 30
        assert report_service.get_report(ctx1, 'summary') == summary

    def test_cached_copy_is_served(self, report_cache, ctx1, product_a):
        report_cache.set(ctx1.store_id, 'summary', {'totalUnits': 999})
        assert report_service.get_report(ctx1, 'summary') == {'totalUnits': 999}

    def test_stock_adjustment_drops_cached_reports(self, report_cache, redis_client, ctx1, product_a, product_b):
        assert report_service.get_report(ctx1, 'summary')['totalUnits'] == 8
        report_service.get_report(ctx1, 'low-stock')
        assert len(redis_client.data) == 2

        adjust_stock(ctx1, AdjustStockCommand(product_a.id, -5, 'DAMAGED'))

        assert redis_client.data == {}
        assert report_service.get_report(ctx1, 'summary')['totalUnits'] == 3
        low_stock = report_service.get_report(ctx1, 'low-stock')
        assert {row['name']: row['status'] for row in low_stock['products']} == {
            'Producto A': 'SIN_STOCK',
            'Producto B': 'STOCK_BAJO',
        }

    def test_sale_drops_cached_reports(self, report_cache, redis_client, ctx1, product_a):
        report_service.get_report(ctx1, 'valuation')

        commit_sale(ctx1, CommitSaleCommand([SaleLineInput(product_a.id, 2, '10')], 'CASH'))

        assert redis_client.data == {}
        assert report_service.get_report(ctx1, 'valuation')['products'][0]['stock'] == 3

    def test_other_store_reports_survive(self, report_cache, redis_client, ctx1, ctx2, product_a, product_store2):
        report_service.get_report(ctx1, 'summary')
        report_service.get_report(ctx2, 'summary')

        adjust_stock(ctx1, AdjustStockCommand(product_a.id, 1, 'PURCHASE'))

        assert list(redis_client.data) == [f'test:store:{ctx2.store_id}:reports:summary']

    def test_unreadable_entry_is_rebuilt(self, report_cache, redis_client, ctx1, product_a):
        redis_client.data[report_cache.key(ctx1.store_id, 'summary')] = 'not json'
        assert report_service.get_report(ctx1, 'summary')['totalProducts'] == 1


class TestWithoutRedis:

    def test_no_client_builds_every_time(self):
        cache = ReportCache(None)
        calls = []

        def build():
            calls.append(1)
            return {'n': len(calls)}

        assert cache.get_or_build(1, 'summary', build) == {'n': 1}
        assert cache.get_or_build(1, 'summary', build) == {'n': 2}
        assert cache.is_available() is False
        assert cache.invalidate_reports(1) == 0

    def test_redis_errors_fall_back_to_building(self):
        cache = ReportCache(DownRedis())

        assert cache.get_or_build(1, 'summary', lambda: {'ok': True}) == {'ok': True}
        assert cache.is_available() is False
