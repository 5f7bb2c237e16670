# Buckets archive incidents by calendar day and calendar month for the
# "last 30 days" timeline and the incident archive.

# Design decisions:
#   - Day boundaries are UTC dates. A local-time boundary would move incidents
#     between buckets depending on who renders the page.
#   - Bucketing uses IncidentRecord.timestamp (startTime → incidentUpdated →
#     timestamp); records without a valid one are left out of both groupings.
#   - Both functions return new tuples and never reorder the input list.

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping

from status_page.config import DEFAULT_DAY_BUCKETS
from status_page.models import IncidentRecord, resolve_now
from status_page.parser import as_records

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayBucket:
    day: date
    incidents: tuple[IncidentRecord, ...]

    @property
    def label(self) -> str:
        """e.g. 'Tuesday, January 9, 2024'"""
        return f"{self.day:%A}, {self.day:%B} {self.day.day}, {self.day.year}"


@dataclass(frozen=True)
class MonthBucket:
    year: int
    month: int
    incidents: tuple[IncidentRecord, ...]

    @property
    def label(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"


def _newest_first(records: Iterable[IncidentRecord]) -> tuple[IncidentRecord, ...]:
    # sorted() is stable, so equal timestamps keep archive order
    return tuple(sorted(records, key=lambda r: r.timestamp, reverse=True))


def _dated(incidents: Iterable[Mapping[str, Any] | IncidentRecord]) -> list[IncidentRecord]:
    records = []
    for record in as_records(incidents):
        if record.timestamp is None:
            log.debug("No usable timestamp for %s, not grouped", record.code or "<no code>")
            continue
        records.append(record)
    return records


def group_by_day(
    incidents: Iterable[Mapping[str, Any] | IncidentRecord],
    days: int = DEFAULT_DAY_BUCKETS,
    now: datetime | None = None,
) -> list[DayBucket]:
    """
    One bucket per UTC calendar day for the last `days` days, today included.

    Days without incidents are returned as empty buckets. Buckets are ordered
    most recent day first; incidents inside a bucket most recent first.
    """
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValueError(f"days must be a positive integer, got {days!r}")

    now = resolve_now(now)
    today = now.date()
    if days > today.toordinal():
        raise ValueError(f"days={days} reaches past {date.min}")
    all_days = [today - timedelta(days=i) for i in range(days)]

    by_day: dict[date, list[IncidentRecord]] = {d: [] for d in all_days}
    for record in _dated(incidents):
        bucket = by_day.get(record.timestamp.date())
        if bucket is not None:
            bucket.append(record)

    return [DayBucket(day=d, incidents=_newest_first(by_day[d])) for d in all_days]


def group_by_month(
    incidents: Iterable[Mapping[str, Any] | IncidentRecord],
) -> list[MonthBucket]:
    """
    Group every dated incident by (year, month), newest month first.

    Only months with at least one incident get a bucket.
    """
    by_month: dict[tuple[int, int], list[IncidentRecord]] = {}
    for record in _dated(incidents):
        key = (record.timestamp.year, record.timestamp.month)
        by_month.setdefault(key, []).append(record)

    return [
        MonthBucket(year=year, month=month, incidents=_newest_first(by_month[(year, month)]))
        for year, month in sorted(by_month, reverse=True)
    ]
