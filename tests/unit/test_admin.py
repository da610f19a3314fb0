"""Unit tests for the cache administration handlers."""

from unittest.mock import AsyncMock

import pytest

from findash.admin import cache_delete_handler, cache_stats_handler


class TestCacheStatsHandler:

    @pytest.mark.asyncio
    async def test_reports_both_tiers(self, cache_manager):
        await cache_manager.get_cached_data("quote_aapl", 60, AsyncMock(return_value={'price': 1}))
        await cache_manager.get_cached_data("quote_aapl", 60, AsyncMock())

        status, body = await cache_stats_handler(cache_manager)

        assert status == 200
        assert body['memory_cache']['hits'] == 1
        assert body['memory_cache']['misses'] == 1
        assert body['file_cache']['size'] == 1

    @pytest.mark.asyncio
    async def test_failure(self):
        manager = AsyncMock()
        manager.get_cache_stats.side_effect = OSError("disk gone")

        assert await cache_stats_handler(manager) == (500, {'error': 'Failed to fetch cache statistics'})


class TestCacheDeleteHandler:

    @pytest.mark.asyncio
    async def test_invalidates_key(self, cache_manager):
        fetch = AsyncMock(return_value={'price': 1})
        await cache_manager.get_cached_data("quote_aapl", 60, fetch)

        status, body = await cache_delete_handler(cache_manager, "quote_aapl")

        assert status == 200
        assert body == {'message': 'Cache invalidated for key: quote_aapl'}
        await cache_manager.get_cached_data("quote_aapl", 60, fetch)
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_unknown_key_succeeds(self, cache_manager):
        status, _ = await cache_delete_handler(cache_manager, "quote_nope")
        assert status == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [None, ""])
    async def test_missing_key(self, cache_manager, key):
        assert await cache_delete_handler(cache_manager, key) == (400, {'error': 'Cache key is required'})

    @pytest.mark.asyncio
    async def test_failure(self):
        manager = AsyncMock()
        manager.invalidate_cache.side_effect = PermissionError("read-only")

        assert await cache_delete_handler(manager, "quote_aapl") == (500, {'error': 'Failed to invalidate cache'})
