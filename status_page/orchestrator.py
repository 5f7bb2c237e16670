# StatusPage: the top-level orchestrator.

# Responsibilities:
#   - Create a shared aiohttp session for the incident feed
#   - Own the one FeedCache and hand it to the refresher and the web app
#   - Run the feed refresher and the HTTP server in a single event loop
#   - Produce a one-shot console report for the `report` command
#   - Provide a clean stop() method for graceful shutdown

import asyncio
import functools
import logging

import aiohttp
from aiohttp import web

from status_page.archive import load_archive
from status_page.cache import FeedCache
from status_page.config import (
    ARCHIVE_PATH,
    CACHE_TTL_SECONDS,
    DEFAULT_DAY_BUCKETS,
    FEED_URL,
    HTTP_HOST,
    HTTP_PORT,
    REFRESH_INTERVAL_SECONDS,
)
from status_page.current import summarize_current_incident
from status_page.grouping import group_by_day
from status_page.handlers import ConsoleReportHandler
from status_page.http_client import FeedClient, FeedError
from status_page.models import UptimeConfig
from status_page.parser import parse_feed
from status_page.server import create_app
from status_page.slo import compute_uptime
from status_page.watcher import FeedRefresher

log = logging.getLogger(__name__)

USER_AGENT = "StatusPage/1.0 (status-page)"


class StatusPage:

    def __init__(
        self,
        archive_path: str = ARCHIVE_PATH,
        feed_url: str = FEED_URL,
        uptime_config: UptimeConfig | None = None,
        host: str = HTTP_HOST,
        port: int = HTTP_PORT,
    ) -> None:
        self._archive_path = archive_path
        self._feed_url = feed_url
        self._uptime_config = uptime_config or UptimeConfig()
        self._host = host
        self._port = port
        self._cache = FeedCache(ttl_seconds=CACHE_TTL_SECONDS)
        self._tasks: list[asyncio.Task] = []

    async def run(self) -> None:
        async with aiohttp.ClientSession(headers={"User-Agent": USER_AGENT}) as session:
            client = FeedClient(session, self._feed_url)
            refresher = FeedRefresher(client, self._cache, interval=REFRESH_INTERVAL_SECONDS)

            app = create_app(
                self._cache,
                client,
                functools.partial(load_archive, self._archive_path),
                self._uptime_config,
            )
            runner = web.AppRunner(app)
            await runner.setup()
            site = web.TCPSite(runner, self._host, self._port)
            await site.start()

            self._tasks.append(asyncio.create_task(refresher.run_forever(), name="feed-refresher"))

            log.info(
                "StatusPage serving on http://%s:%d (archive: %s). Press Ctrl+C to stop.",
                self._host, self._port, self._archive_path,
            )

            try:
                # blocks until the refresher is cancelled
                await asyncio.gather(*self._tasks, return_exceptions=True)
            finally:
                await runner.cleanup()

    def stop(self) -> None:
        """Cancel the background tasks. The event loop will drain them cleanly."""
        for task in self._tasks:
            task.cancel()

    async def report(
        self,
        handler: ConsoleReportHandler | None = None,
        days: int = DEFAULT_DAY_BUCKETS,
        with_feed: bool = True,
    ) -> None:
        """Print current incident, uptime per service and the last `days` days once."""
        handler = handler or ConsoleReportHandler()
        incidents = load_archive(self._archive_path)

        if with_feed:
            async with aiohttp.ClientSession(headers={"User-Agent": USER_AGENT}) as session:
                try:
                    data = await FeedClient(session, self._feed_url).fetch()
                except FeedError as exc:
                    log.warning("Current incident unavailable: %s", exc)
                else:
                    summary = summarize_current_incident(
                        parse_feed(data), self._uptime_config.services,
                    )
                    handler.handle_current(summary)

        handler.handle_uptime(
            compute_uptime(incidents, self._uptime_config),
            self._uptime_config.window_days,
        )
        handler.handle_days(group_by_day(incidents, days=days))
