# console output: the text rendering of the engine's results.

# all formatting decisions live here. The calculator, grouping and summary
# objects carry no display logic; this module only reads uptime_percentage,
# num_incidents, status_class and the bucket/update contents.

# Over-counted downtime can make a computed uptime negative; the console
# clamps it for display (see slo.clamp_uptime) and flags the raw value.

import logging
import sys
from datetime import datetime, timezone
from typing import Mapping, Sequence, TextIO

from status_page.current import CurrentIncidentSummary
from status_page.grouping import DayBucket, MonthBucket
from status_page.models import ServiceUptimeStatus, format_dt
from status_page.slo import clamp_uptime, format_uptime_percentage

log = logging.getLogger(__name__)

# ─── Colour maps (ANSI, only emitted when colour is enabled) ──────────────────

_R = "\033[0m"   # reset

_CLASS_COLOR: dict[str, str] = {
    "ok":   "\033[32m",   # green
    "warn": "\033[33m",   # yellow
    "err":  "\033[31m",   # red
}

_IMPACT_COLOR: dict[str, str] = {
    "critical":    "\033[91m",   # bright red
    "major":       "\033[33m",   # yellow
    "minor":       "\033[34m",   # blue
    "maintenance": "\033[36m",   # cyan
    "none":        "\033[32m",   # green
}


def _paint(text: str, color: str, enabled: bool) -> str:
    return f"{color}{text}{_R}" if enabled and color else text


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'}"


def time_ago(dt: datetime | None, now: datetime | None = None) -> str:
    """'just now', '5 minutes ago', 'yesterday', 'in 2 hours', ..."""
    if dt is None:
        return ""
    now = now or datetime.now(tz=timezone.utc)
    diff = (now - dt).total_seconds()
    past = diff >= 0
    seconds = int(abs(diff))

    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    weeks, months, years = days // 7, days // 30, days // 365

    def rel(text: str) -> str:
        return f"{text} ago" if past else f"in {text}"

    if seconds < 5:
        return "just now"
    if seconds < 60:
        return rel(_plural(seconds, "second"))
    if minutes < 2:
        return rel("a minute")
    if minutes < 60:
        return rel(_plural(minutes, "minute"))
    if hours < 2:
        return rel("an hour")
    if hours < 24:
        return rel(_plural(hours, "hour"))
    if days == 1:
        return "yesterday" if past else "tomorrow"
    if days < 7:
        return rel(_plural(days, "day"))
    if weeks < 2:
        return rel("a week")
    if weeks < 5:
        return rel(_plural(weeks, "week"))
    if months < 2:
        return rel("a month")
    if months < 12:
        return rel(_plural(months, "month"))
    if years < 2:
        return rel("a year")
    return rel(_plural(years, "year"))


class ConsoleReportHandler:
    """
    Writes the status page as plain text lines.

    Format (one line per service):
        delivery    | 90-Day Uptime: 99.953% | 1 incident, 2h of potential disruptions | ERR
    """

    _MAX_MSG_LEN = 120

    def __init__(self, stream: TextIO | None = None, color: bool | None = None) -> None:
        self._stream = stream or sys.stdout
        self._color = self._stream.isatty() if color is None else color

    def _emit(self, line: str = "") -> None:
        print(line, file=self._stream, flush=True)

    def handle_uptime(self, statuses: Mapping[str, ServiceUptimeStatus], window_days: int) -> None:
        for service, s in statuses.items():
            self._emit(self.format_uptime(service, s, window_days))

    def format_uptime(self, service: str, s: ServiceUptimeStatus, window_days: int) -> str:
        percentage = s.uptime_percentage
        if s.uptime < 0 or s.uptime > 1:
            log.warning("Uptime for %s out of range (%s), clamping for display", service, s.uptime)
            percentage = format_uptime_percentage(clamp_uptime(s.uptime))

        incidents = _plural(s.num_incidents, "incident")
        if s.disruption_mins:
            incidents += f", {s.disruption_time} of potential disruptions"

        status = _paint(s.status_class.upper(), _CLASS_COLOR.get(s.status_class, ""), self._color)
        return (
            f"{service:<12}| "
            f"{window_days}-Day Uptime: {percentage}% | "
            f"{incidents} | "
            f"{status}"
        )

    def handle_current(self, summary: CurrentIncidentSummary, now: datetime | None = None) -> None:
        if not summary.active:
            self._emit("All systems operational")
            return

        impact = _paint(summary.impact.upper(), _IMPACT_COLOR.get(summary.impact, ""), self._color)
        self._emit(f"{summary.title} | {summary.status.upper()} | Impact={impact}")
        for service, state in summary.services.items():
            self._emit(f"  {service:<12}{_paint(state, _CLASS_COLOR.get(state, ''), self._color)}")
        for update in summary.updates:
            when = time_ago(update.timestamp, now)
            self._emit(
                f"  [{format_dt(update.timestamp)}] ({when}) "
                f"{update.status} | {self._truncate(update.comment)}"
            )

    def handle_days(self, buckets: Sequence[DayBucket]) -> None:
        for bucket in buckets:
            self._emit(bucket.label)
            if not bucket.incidents:
                self._emit("  No incidents reported")
            for incident in bucket.incidents:
                self._emit(f"  {self._incident_line(incident)}")

    def handle_months(self, buckets: Sequence[MonthBucket]) -> None:
        for bucket in buckets:
            self._emit(bucket.label)
            for incident in bucket.incidents:
                self._emit(f"  {self._incident_line(incident)}")

    def _incident_line(self, incident) -> str:
        impact = _paint(incident.impact, _IMPACT_COLOR.get(incident.impact, ""), self._color)
        return f"{incident.code} | {incident.name} | {impact} | {format_dt(incident.timestamp)}"

    def _truncate(self, text: str) -> str:
        text = " ".join(text.split())          # collapse internal whitespace
        if len(text) <= self._MAX_MSG_LEN:
            return text
        return text[: self._MAX_MSG_LEN - 1].rstrip() + "…"
