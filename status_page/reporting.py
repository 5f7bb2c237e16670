"""
Archive-wide reporting aggregations.

Feeds the "what breaks" page (root causes, internal services, external
vendors and their co-occurrence) and the "when does it break" heatmap.
Every function takes the full incident list and returns plain data.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from status_page.models import IncidentRecord, resolve_now
from status_page.parser import as_records

log = logging.getLogger(__name__)

# business-facing services always lead the dependency matrix
PRIMARY_SERVICES: tuple[str, ...] = ("delivery", "publishing")

WEEKDAYS: tuple[str, ...] = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)


@dataclass(frozen=True)
class CountEntry:
    key: str
    count: int


def _ranked(counts: Counter) -> list[CountEntry]:
    return [
        CountEntry(key=key, count=count)
        for key, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def aggregate_root_causes(incidents: Iterable[Mapping[str, Any] | IncidentRecord]) -> list[CountEntry]:
    return _ranked(Counter(r.root_cause or "unknown" for r in as_records(incidents)))


def aggregate_internal_services(incidents: Iterable[Mapping[str, Any] | IncidentRecord]) -> list[CountEntry]:
    return _ranked(Counter(s for r in as_records(incidents) for s in r.internal_services))


def aggregate_vendors(incidents: Iterable[Mapping[str, Any] | IncidentRecord]) -> list[CountEntry]:
    return _ranked(Counter(v for r in as_records(incidents) for v in r.external_vendors))


def mixed_cause_percent(incidents: Iterable[Mapping[str, Any] | IncidentRecord]) -> str:
    """Share of incidents naming both an internal service and an external vendor."""
    records = as_records(incidents)
    if not records:
        return "0.0"
    mixed = sum(1 for r in records if r.internal_services and r.external_vendors)
    return f"{mixed / len(records) * 100:.1f}"


@dataclass(frozen=True)
class DependencyMatrix:
    services: tuple[str, ...]
    vendors: tuple[str, ...]
    counts: dict[tuple[str, str], int]

    def count(self, service: str, vendor: str) -> int:
        return self.counts.get((service, vendor), 0)


def dependency_matrix(incidents: Iterable[Mapping[str, Any] | IncidentRecord]) -> DependencyMatrix:
    """
    Co-occurrence of services (affected components + internal services)
    and external vendors within the same incident.
    """
    counts: Counter = Counter()
    all_services: set[str] = set()
    all_vendors: set[str] = set()

    for record in as_records(incidents):
        services = record.affected_components + record.internal_services
        all_services.update(services)
        all_vendors.update(record.external_vendors)
        for service in services:
            for vendor in record.external_vendors:
                counts[(service, vendor)] += 1

    ordered = [s for s in PRIMARY_SERVICES if s in all_services]
    ordered += sorted(all_services - set(PRIMARY_SERVICES))

    return DependencyMatrix(
        services=tuple(ordered),
        vendors=tuple(sorted(all_vendors)),
        counts=dict(counts),
    )


# ─── Heatmap ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Slot:
    weekday: int        # 0 = Sunday
    hour: int           # UTC
    count: int

    @property
    def label(self) -> str:
        return f"{WEEKDAYS[self.weekday][:3]} {self.hour}:00"


@dataclass(frozen=True)
class Heatmap:
    grid: tuple[tuple[int, ...], ...]       # [weekday][hour] -> incident count
    rates: tuple[tuple[float, ...], ...]    # [weekday][hour] -> incidents per week
    weeks: int
    total: int

    @property
    def busiest(self) -> Slot:
        return max(self._slots(), key=lambda s: s.count)

    @property
    def quietest(self) -> Slot:
        return min(self._slots(), key=lambda s: s.count)

    @property
    def avg_per_week(self) -> float:
        return self.total / max(self.weeks, 1)

    def _slots(self) -> list[Slot]:
        # first slot wins ties, scanning Sunday 0:00 onwards
        return [Slot(d, h, self.grid[d][h]) for d in range(7) for h in range(24)]


def _weekday(dt: datetime) -> int:
    # datetime.weekday() has Monday = 0; the heatmap starts on Sunday
    return (dt.weekday() + 1) % 7


def incident_heatmap(
    incidents: Iterable[Mapping[str, Any] | IncidentRecord],
    now: datetime | None = None,
) -> Heatmap:
    """Count incidents per (UTC weekday, hour) and turn counts into weekly rates."""
    now = resolve_now(now)
    grid = [[0] * 24 for _ in range(7)]
    oldest = now
    total = 0

    for record in as_records(incidents):
        if record.timestamp is None:
            continue
        grid[_weekday(record.timestamp)][record.timestamp.hour] += 1
        oldest = min(oldest, record.timestamp)
        total += 1

    weeks = (now - oldest).days // 7
    divisor = weeks if weeks > 0 else 1
    log.debug("Heatmap over %d incident(s), %d week(s)", total, weeks)

    return Heatmap(
        grid=tuple(tuple(row) for row in grid),
        rates=tuple(tuple(c / divisor for c in row) for row in grid),
        weeks=weeks,
        total=total,
    )


def color_level(rate: float, max_rate: float) -> int:
    """Map a rate onto the 0-10 colour scale of the heatmap."""
    if rate == 0 or max_rate <= 0:
        return 0
    return min(math.ceil(rate / max_rate * 10), 10)


def format_frequency(rate: float) -> str:
    """Turn an incidents-per-week rate into a phrase for the heatmap tooltip."""
    if rate == 0:
        return "Never happened"

    weeks_per_occurrence = 1 / rate
    if weeks_per_occurrence < 1:
        if rate >= 2:
            return f"~{round(rate)} times per week"
        return "About once per week"
    if weeks_per_occurrence < 4.33:
        weeks = round(weeks_per_occurrence)
        return f"Every {weeks} week{'s' if weeks != 1 else ''}"
    if weeks_per_occurrence < 52:
        months = round(weeks_per_occurrence / 4.33)
        return f"Every {months} month{'s' if months != 1 else ''}"
    years = round(weeks_per_occurrence / 52)
    if years > 10:
        return "Very rarely (10+ years)"
    return f"Every {years} year{'s' if years != 1 else ''}"
