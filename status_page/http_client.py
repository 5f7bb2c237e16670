# ETag-based conditional HTTP GET client for the incident feed.

# The spreadsheet behind the feed changes rarely. We keep the last ETag and
# send it back as If-None-Match; a 304 means the cached rows are still current
# and nothing needs parsing.

import asyncio
import logging
from typing import Any

import aiohttp

from status_page.config import REQUEST_TIMEOUT_SECONDS

log = logging.getLogger(__name__)


class FeedError(Exception):
    """The incident feed could not be fetched or did not return JSON."""


class FeedClient:
    """
    Fetches the incident feed over a shared aiohttp.ClientSession.

    The session is owned by the caller; this class only remembers the ETag
    of the last 200 response.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self.url = url
        self._timeout = timeout
        self._etag: str | None = None

    async def fetch_if_changed(self) -> tuple[bool, Any]:
        """
        Perform a conditional GET.

        Returns:
            (True, data)   server returned 200 with new data
            (False, None)  server returned 304 (nothing changed)

        Raises:
            FeedError  on non-2xx / non-304 responses, timeouts, connection
                       failures and undecodable bodies
        """
        headers = {"Accept": "application/json"}
        if self._etag:
            headers["If-None-Match"] = self._etag

        try:
            async with self._session.get(
                self.url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status == 304:
                    return False, None

                resp.raise_for_status()
                data = await resp.json(content_type=None)

                etag = resp.headers.get("ETag")
                if etag:
                    self._etag = etag
                return True, data

        except aiohttp.ClientResponseError as exc:
            log.warning("HTTP error fetching %s: %s %s", self.url, exc.status, exc.message)
            raise FeedError(f"feed returned {exc.status}") from exc
        except asyncio.TimeoutError as exc:
            log.warning("Timeout fetching %s", self.url)
            raise FeedError("feed request timed out") from exc
        except aiohttp.ClientError as exc:
            log.warning("Error fetching %s: %s", self.url, exc)
            raise FeedError(str(exc)) from exc
        except ValueError as exc:
            log.warning("Feed at %s did not return JSON: %s", self.url, exc)
            raise FeedError("feed body is not JSON") from exc

    async def fetch(self) -> Any:
        """Unconditional GET, used when there is nothing cached to fall back on."""
        self._etag = None
        _, data = await self.fetch_if_changed()
        return data
