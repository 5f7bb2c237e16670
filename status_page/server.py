# JSON endpoints for the status page front end.

#   GET /api/current-incident      feed rows, through the FeedCache
#   GET /api/uptime                per-service uptime over the trailing window
#   GET /api/incidents/days?days=N last N UTC days (N <= 366), newest first
#   GET /api/incidents/months      archive grouped by month, newest first
#
# The archive is re-read on every request through the loader callable, so a
# fresh index.json is picked up without a restart.

import logging
from typing import Any, Callable

from aiohttp import web

from status_page.cache import FeedCache, serve_feed
from status_page.config import DEFAULT_DAY_BUCKETS, MAX_DAY_BUCKETS
from status_page.grouping import group_by_day, group_by_month
from status_page.http_client import FeedClient
from status_page.models import IncidentRecord, UptimeConfig
from status_page.slo import compute_uptime

log = logging.getLogger(__name__)

ArchiveLoader = Callable[[], list[dict[str, Any]]]

CACHE_KEY = web.AppKey("feed_cache", FeedCache)
CLIENT_KEY = web.AppKey("feed_client", FeedClient)
ARCHIVE_KEY: web.AppKey[ArchiveLoader] = web.AppKey("archive_loader")
UPTIME_CONFIG_KEY = web.AppKey("uptime_config", UptimeConfig)


def _iso(dt) -> str | None:
    return dt.isoformat().replace("+00:00", "Z") if dt else None


def record_to_dict(record: IncidentRecord) -> dict[str, Any]:
    return {
        "code": record.code,
        "name": record.name,
        "impact": record.impact,
        "message": record.message,
        "impactedService": record.impacted_service,
        "startTime": _iso(record.start_time),
        "endTime": _iso(record.end_time),
        "timestamp": _iso(record.timestamp),
    }


def _load_archive(request: web.Request) -> list[dict[str, Any]]:
    try:
        return request.app[ARCHIVE_KEY]()
    except (OSError, ValueError) as exc:
        log.error("Could not load incident archive: %s", exc)
        raise web.HTTPServiceUnavailable(
            text='{"error": "Incident archive unavailable"}',
            content_type="application/json",
        ) from exc


async def current_incident(request: web.Request) -> web.Response:
    resp = await serve_feed(request.app[CACHE_KEY], request.app[CLIENT_KEY])
    return web.json_response(resp.body, status=resp.status, headers=resp.headers)


async def uptime(request: web.Request) -> web.Response:
    config = request.app[UPTIME_CONFIG_KEY]
    statuses = compute_uptime(_load_archive(request), config)
    return web.json_response({
        "windowDays": config.window_days,
        "services": {service: s.to_dict() for service, s in statuses.items()},
    })


async def incidents_by_day(request: web.Request) -> web.Response:
    try:
        days = int(request.query.get("days", DEFAULT_DAY_BUCKETS))
        if days > MAX_DAY_BUCKETS:
            raise ValueError(f"days above {MAX_DAY_BUCKETS}")
        buckets = group_by_day(_load_archive(request), days=days)
    except ValueError:
        raise web.HTTPBadRequest(
            text=f'{{"error": "days must be an integer between 1 and {MAX_DAY_BUCKETS}"}}',
            content_type="application/json",
        ) from None
    return web.json_response([
        {
            "date": bucket.day.isoformat(),
            "label": bucket.label,
            "incidents": [record_to_dict(r) for r in bucket.incidents],
        }
        for bucket in buckets
    ])


async def incidents_by_month(request: web.Request) -> web.Response:
    buckets = group_by_month(_load_archive(request))
    return web.json_response([
        {
            "year": bucket.year,
            "month": bucket.month,
            "label": bucket.label,
            "incidents": [record_to_dict(r) for r in bucket.incidents],
        }
        for bucket in buckets
    ])


def create_app(
    cache: FeedCache,
    client: FeedClient,
    archive_loader: ArchiveLoader,
    uptime_config: UptimeConfig | None = None,
) -> web.Application:
    app = web.Application()
    app[CACHE_KEY] = cache
    app[CLIENT_KEY] = client
    app[ARCHIVE_KEY] = archive_loader
    app[UPTIME_CONFIG_KEY] = uptime_config or UptimeConfig()
    app.router.add_get("/api/current-incident", current_incident)
    app.router.add_get("/api/uptime", uptime)
    app.router.add_get("/api/incidents/days", incidents_by_day)
    app.router.add_get("/api/incidents/months", incidents_by_month)
    return app
