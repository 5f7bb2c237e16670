# Caller-owned cache for the incident feed.

# The feed is slow and rate limited, so the page never hits it directly:
#   - FeedCache holds the last good payload with the instant it was fetched
#   - serve_feed() answers from the cache while it is fresh, refetches when it
#     has expired, and falls back to the stale payload if the refetch fails
# One FeedCache is created by the orchestrator and passed to everything that
# reads or refreshes it; there is no module-level state.

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from status_page.config import CACHE_TTL_SECONDS
from status_page.http_client import FeedClient, FeedError

log = logging.getLogger(__name__)

HIT = "HIT"
MISS = "MISS"
REVALIDATED = "REVALIDATED"
STALE = "STALE"


class FeedCache:
    """Last fetched feed payload plus its age, with a fixed TTL."""

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: Any = None
        self._stored_at: float | None = None

    @property
    def data(self) -> Any:
        return self._data

    @property
    def has_data(self) -> bool:
        return self._stored_at is not None

    def store(self, data: Any) -> None:
        self._data = data
        self._stored_at = self._clock()

    def touch(self) -> None:
        """Mark the cached payload as confirmed current (e.g. after a 304)."""
        if self._stored_at is not None:
            self._stored_at = self._clock()

    def age(self) -> float | None:
        """Seconds since the payload was stored or confirmed, None if empty."""
        if self._stored_at is None:
            return None
        return self._clock() - self._stored_at

    def is_fresh(self) -> bool:
        age = self.age()
        return age is not None and age < self.ttl_seconds


@dataclass
class FeedResponse:
    status: int
    body: Any
    headers: dict[str, str] = field(default_factory=dict)


def _cached(cache: FeedCache, state: str) -> FeedResponse:
    headers = {"X-Cache": state}
    age = cache.age()
    if state != MISS and age is not None:
        headers["X-Cache-Age"] = str(round(age))
    return FeedResponse(status=200, body=cache.data, headers=headers)


async def serve_feed(cache: FeedCache, client: FeedClient) -> FeedResponse:
    """
    Answer a request for the current incident feed.

    Fresh cache → HIT. Otherwise the feed is fetched: new data → MISS,
    304 → REVALIDATED, failure with something cached → STALE, failure with
    nothing cached → 502.
    """
    if cache.is_fresh():
        log.debug("Serving cached feed (age: %.0fs)", cache.age())
        return _cached(cache, HIT)

    log.info("Cache miss, fetching %s", client.url)
    try:
        if cache.has_data:
            changed, data = await client.fetch_if_changed()
        else:
            changed, data = True, await client.fetch()
    except FeedError as exc:
        if cache.has_data:
            log.warning("Returning stale feed due to error: %s", exc)
            return _cached(cache, STALE)
        log.error("Failed to fetch incident feed and nothing is cached: %s", exc)
        return FeedResponse(status=502, body={"error": "Failed to fetch incident data"})

    if changed:
        cache.store(data)
        return _cached(cache, MISS)

    cache.touch()
    return _cached(cache, REVALIDATED)
