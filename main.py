import argparse
import asyncio
import json
import logging
import platform
import signal
import sys

from status_page.config import (
    ARCHIVE_PATH,
    DEFAULT_DAY_BUCKETS,
    DEFAULT_SERVICE_SLAS,
    DEFAULT_WINDOW_DAYS,
    FEED_URL,
    HTTP_HOST,
    HTTP_PORT,
)
from status_page.models import ConfigError, UptimeConfig
from status_page.orchestrator import StatusPage

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="status-page", description="Public status page backend")
    parser.add_argument("--archive", default=ARCHIVE_PATH, help="incident index.json")
    parser.add_argument("--feed-url", default=FEED_URL, help="current incident feed")
    parser.add_argument("--window-days", type=int, default=DEFAULT_WINDOW_DAYS)
    parser.add_argument(
        "--services",
        default=json.dumps(DEFAULT_SERVICE_SLAS),
        help='JSON map of service to SLA, e.g. \'{"delivery": 0.9999}\'',
    )
    parser.add_argument("--debug", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="print the status page once and exit")
    report.add_argument("--days", type=int, default=DEFAULT_DAY_BUCKETS)
    report.add_argument("--no-feed", action="store_true", help="skip the current incident feed")

    serve = sub.add_parser("serve", help="run the refresher and the JSON API")
    serve.add_argument("--host", default=HTTP_HOST)
    serve.add_argument("--port", type=int, default=HTTP_PORT)

    return parser.parse_args(argv)


async def serve(page: StatusPage) -> None:
    loop = asyncio.get_running_loop()

    if platform.system() != "Windows":

        def _shutdown(sig: signal.Signals) -> None:
            log.info("Received %s, shutting down gracefully...", sig.name)
            page.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _shutdown, sig)

        try:
            await page.run()
        except asyncio.CancelledError:
            log.info("Status page stopped.")

    else:
        try:
            await page.run()
        except (asyncio.CancelledError, KeyboardInterrupt):
            log.info("Shutting down...")
            page.stop()
            log.info("Status page stopped.")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = UptimeConfig(window_days=args.window_days, services=json.loads(args.services))
    except (ConfigError, json.JSONDecodeError) as exc:
        log.error("Invalid uptime configuration: %s", exc)
        return 2

    if args.command == "report":
        page = StatusPage(archive_path=args.archive, feed_url=args.feed_url, uptime_config=config)
        try:
            asyncio.run(page.report(days=args.days, with_feed=not args.no_feed))
        except (OSError, ValueError) as exc:
            log.error("Could not build report: %s", exc)
            return 1
        return 0

    page = StatusPage(
        archive_path=args.archive,
        feed_url=args.feed_url,
        uptime_config=config,
        host=args.host,
        port=args.port,
    )
    asyncio.run(serve(page))
    return 0


if __name__ == "__main__":
    sys.exit(main())
