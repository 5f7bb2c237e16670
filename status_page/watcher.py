# FeedRefresher: keeps the FeedCache warm on a fixed interval.

# responsibilities:
#   - fetch the incident feed every REFRESH_INTERVAL_SECONDS
#   - treat 304 Not Modified as confirmation of the cached payload
#   - never clear the cache on failure: stale rows beat an empty page
#   - retry with exponential backoff on transient failures

import asyncio
import logging

from status_page.cache import FeedCache
from status_page.config import (
    MAX_RETRIES,
    MAX_RETRY_DELAY_SECONDS,
    REFRESH_INTERVAL_SECONDS,
    RETRY_BASE_DELAY_SECONDS,
)
from status_page.http_client import FeedClient, FeedError
from status_page.parser import parse_feed


class FeedRefresher:
    """
    Runs an infinite refresh loop for the incident feed.

    Backoff formula: delay = RETRY_BASE_DELAY_SECONDS * 2^retry_count
    Capped at MAX_RETRY_DELAY_SECONDS; retry_count is capped at MAX_RETRIES
    before the formula is applied.
    """

    def __init__(
        self,
        client: FeedClient,
        cache: FeedCache,
        interval: float = REFRESH_INTERVAL_SECONDS,
    ) -> None:
        self._client = client
        self._cache = cache
        self._interval = interval
        self._retry_count = 0
        self._log = logging.getLogger("refresher")

    async def refresh_once(self) -> bool:
        """
        Fetch once and update the cache. Returns True if new data was stored.

        Raises:
            FeedError  when the fetch fails; the cache is left untouched
        """
        changed, data = await self._client.fetch_if_changed()
        if not changed:
            self._cache.touch()
            self._log.debug("304 Not Modified, cached feed still current")
            return False

        self._cache.store(data)
        self._log.info("Feed refreshed. Rows: %d", len(parse_feed(data)))
        return True

    def next_delay(self, failed: bool) -> float:
        if not failed:
            self._retry_count = 0
            return self._interval
        self._retry_count = min(self._retry_count + 1, MAX_RETRIES)
        return min(RETRY_BASE_DELAY_SECONDS * (2 ** self._retry_count), MAX_RETRY_DELAY_SECONDS)

    async def run_forever(self) -> None:
        self._log.info("Refreshing %s every %ss", self._client.url, self._interval)

        while True:
            failed = False
            try:
                await self.refresh_once()

            except FeedError:
                failed = True

            except asyncio.CancelledError:
                self._log.info("Feed refresher cancelled.")
                raise

            except Exception as exc:
                self._log.exception("Unexpected error refreshing feed: %s", exc)

            delay = self.next_delay(failed)
            if failed:
                self._log.warning(
                    "Feed refresh failed. Retry %d/%d in %ds.",
                    self._retry_count, MAX_RETRIES, delay,
                )
            await asyncio.sleep(delay)
