"""Headline state of the page derived from the live incident feed."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from status_page.config import DEFAULT_SERVICE_SLAS
from status_page.models import CurrentIncidentStatusUpdate

log = logging.getLogger(__name__)

IMPACT_CLASSES: dict[str, str] = {
    "none": "ok",
    "minor": "warn",
    "major": "err",
    "critical": "err",
}

# statuses after which the services are considered healthy again
SETTLED_STATUSES: frozenset[str] = frozenset({"resolved", "monitoring"})


@dataclass(frozen=True)
class CurrentIncidentSummary:
    active: bool
    title: str
    status: str
    impact: str
    state_class: str                                  # ok | warn | err
    services: dict[str, str] = field(default_factory=dict)   # service -> ok | warn | err
    updates: tuple[CurrentIncidentStatusUpdate, ...] = ()    # newest first


def summarize_current_incident(
    updates: Sequence[CurrentIncidentStatusUpdate],
    services: Iterable[str] = tuple(DEFAULT_SERVICE_SLAS),
) -> CurrentIncidentSummary:
    """
    Reduce the feed (oldest first) to what the page header shows.

    The newest update decides status and impact. Impacted services are read
    from the first update's comment, which is where the opening report names
    them.
    """
    services = list(services)
    if not updates:
        return CurrentIncidentSummary(
            active=False,
            title="",
            status="",
            impact="",
            state_class="ok",
            services={s: "ok" for s in services},
        )

    latest = updates[-1]
    state_class = IMPACT_CLASSES.get(latest.impact, "ok")
    title = "Recent Incident" if latest.status == "resolved" else "On-going Incident"

    if latest.status in SETTLED_STATUSES:
        per_service = {s: "ok" for s in services}
        state_class = "ok"
    else:
        opening = updates[0].comment.lower()
        per_service = {s: state_class if s.lower() in opening else "ok" for s in services}

    log.debug("Current incident %s/%s → %s", latest.status, latest.impact, per_service)
    return CurrentIncidentSummary(
        active=True,
        title=title,
        status=latest.status,
        impact=latest.impact,
        state_class=state_class,
        services=per_service,
        updates=tuple(reversed(updates)),
    )
