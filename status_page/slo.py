"""
Uptime / SLO calculator for the status page.

Given the closed-incident archive, computes per service the time-weighted
availability over a trailing window:

    downtime  = sum(round(end - start in minutes) * errorRate)
    uptime    = (window_minutes - downtime) / window_minutes

Every incident in the window is accumulated; a service with three incidents
loses the downtime of all three. The result is a pure function of
(incidents, config, now) and the incident list is never modified.
"""

import logging
import math
from datetime import datetime, timedelta
from decimal import ROUND_DOWN, Decimal
from typing import Any, Iterable, Mapping

from status_page.models import IncidentRecord, ServiceUptimeStatus, UptimeConfig, resolve_now
from status_page.parser import as_records

log = logging.getLogger(__name__)

_PERCENT_STEP = Decimal("0.001")


def uptime_status(uptime: float, sla: float) -> str:
    """
    'ok' when the target is met, 'warn' while the shortfall is within the
    SLA's own failure budget, 'err' beyond that.
    """
    if uptime >= sla:
        return "ok"
    if uptime >= sla - (1 - sla):
        return "warn"
    return "err"


def format_uptime_percentage(uptime: float) -> str:
    """
    Percentage string truncated (never rounded) to three decimals.

    99.99953 must not be shown as 100, so digits are cut, not rounded.
    The ratio goes through its shortest repr so 0.9999 reads '99.99'
    and not '99.989'.
    """
    value = Decimal(repr(float(uptime))) * 100
    truncated = value.quantize(_PERCENT_STEP, rounding=ROUND_DOWN)
    if truncated == 0:
        return "0"
    text = format(truncated, "f")
    return text.rstrip("0").rstrip(".")


def format_disruption_time(minutes: int) -> str:
    """'45m' up to an hour, '2h 5m' / '3h' beyond."""
    if minutes > 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    return f"{minutes}m"


def clamp_uptime(uptime: float) -> float:
    """Display policy for over-counted downtime: keep the ratio inside [0, 1]."""
    return min(max(uptime, 0.0), 1.0)


def _disruption_minutes(incident: IncidentRecord) -> int:
    if incident.end_time < incident.start_time:
        # still counted as an incident, but with no downtime
        log.warning(
            "%s: endTime is before startTime, counting 0 minutes", incident.code or "<no code>",
        )
        return 0
    minutes = (incident.end_time - incident.start_time).total_seconds() / 60
    return math.floor(minutes + 0.5)


def _qualifies(
    incident: IncidentRecord,
    services: Mapping[str, float],
    window_start: datetime,
) -> bool:
    if incident.start_time is None or incident.end_time is None:
        log.debug("Skipping %s: missing or invalid start/end time", incident.code or "<no code>")
        return False
    if incident.impacted_service is None or incident.impacted_service not in services:
        log.debug(
            "Skipping %s: service %r is not tracked",
            incident.code or "<no code>", incident.impacted_service,
        )
        return False
    # strict look-back on the start: an incident that began before the
    # window is excluded even if it ended inside it
    return incident.start_time > window_start


def compute_uptime(
    incidents: Iterable[Mapping[str, Any] | IncidentRecord],
    config: UptimeConfig | Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> dict[str, ServiceUptimeStatus]:
    """
    Compute a ServiceUptimeStatus for every service in config.services.

    Args:
        incidents: archive entries (dicts with the index.json field names) or
                   IncidentRecord objects. Records for unknown services or
                   with invalid timestamps are skipped.
        config:    UptimeConfig or its wire form {"windowDays", "services"}.
                   Defaults to 90 days with the delivery/publishing targets
                   from status_page.config.
        now:       evaluation instant, defaults to the current UTC time.

    Raises:
        ConfigError  on a non-positive window, an empty service map or an
                     SLA outside (0, 1].
    """
    if config is None:
        config = UptimeConfig()
    elif not isinstance(config, UptimeConfig):
        config = UptimeConfig.from_dict(config)
    now = resolve_now(now)
    window_minutes = config.window_minutes
    window_start = now - timedelta(minutes=window_minutes)

    num_incidents = {service: 0 for service in config.services}
    disruption = {service: 0 for service in config.services}
    downtime = {service: 0.0 for service in config.services}

    for incident in as_records(incidents):
        if not _qualifies(incident, config.services, window_start):
            continue
        service = incident.impacted_service
        minutes = _disruption_minutes(incident)
        num_incidents[service] += 1
        disruption[service] += minutes
        downtime[service] += minutes * incident.error_rate

    result: dict[str, ServiceUptimeStatus] = {}
    for service, sla in config.services.items():
        # not clamped: overlapping incidents can push this below zero
        uptime = (window_minutes - downtime[service]) / window_minutes
        result[service] = ServiceUptimeStatus(
            sla=sla,
            uptime=uptime,
            num_incidents=num_incidents[service],
            disruption_mins=disruption[service],
            total_downtime_mins=downtime[service],
            uptime_percentage=format_uptime_percentage(uptime),
            disruption_time=format_disruption_time(disruption[service]),
            status_class=uptime_status(uptime, sla),
        )
        log.debug(
            "%s: uptime=%s%% incidents=%d downtime=%.2fm",
            service, result[service].uptime_percentage,
            num_incidents[service], downtime[service],
        )

    return result
