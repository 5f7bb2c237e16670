"""Tests for the feed refresher."""

import pytest

from status_page.cache import FeedCache
from status_page.config import MAX_RETRY_DELAY_SECONDS, RETRY_BASE_DELAY_SECONDS
from status_page.http_client import FeedError
from status_page.watcher import FeedRefresher

from tests.fakes import FEED, FakeClock, FakeFeedClient


class TestFeedRefresher:
    @pytest.mark.asyncio
    async def test_new_data_is_stored(self):
        cache = FeedCache(clock=FakeClock())
        refresher = FeedRefresher(FakeFeedClient((True, FEED)), cache, interval=60)
        assert await refresher.refresh_once() is True
        assert cache.data == FEED

    @pytest.mark.asyncio
    async def test_not_modified_touches_cache(self):
        clock = FakeClock()
        cache = FeedCache(ttl_seconds=120, clock=clock)
        cache.store(FEED)
        clock.now += 90
        refresher = FeedRefresher(FakeFeedClient((False, None)), cache, interval=60)

        assert await refresher.refresh_once() is False
        assert cache.age() == 0
        assert cache.data == FEED

    @pytest.mark.asyncio
    async def test_failure_leaves_cache_alone(self):
        clock = FakeClock()
        cache = FeedCache(clock=clock)
        cache.store(FEED)
        refresher = FeedRefresher(FakeFeedClient(FeedError("boom")), cache, interval=60)

        with pytest.raises(FeedError):
            await refresher.refresh_once()
        assert cache.data == FEED

    def test_backoff_grows_and_caps(self):
        refresher = FeedRefresher(FakeFeedClient(), FeedCache(), interval=60)
        delays = [refresher.next_delay(failed=True) for _ in range(8)]
        assert delays[0] == RETRY_BASE_DELAY_SECONDS * 2
        assert delays == sorted(delays)
        assert max(delays) <= MAX_RETRY_DELAY_SECONDS
        assert delays[-1] == delays[-2]

    def test_success_resets_backoff(self):
        refresher = FeedRefresher(FakeFeedClient(), FeedCache(), interval=60)
        refresher.next_delay(failed=True)
        refresher.next_delay(failed=True)
        assert refresher.next_delay(failed=False) == 60
        assert refresher.next_delay(failed=True) == RETRY_BASE_DELAY_SECONDS * 2
