# parses raw archive entries and feed payloads into model objects.

# Design decisions:
#   - Archive entries are plain dicts (deserialized index.json); field names are
#     the camelCase wire names and are read exactly as written.
#   - All timestamps go through parse_dt; invalid ones become None and the
#     record is kept, so the grouping/uptime code decides what to skip.
#   - The bucketing instant uses one fallback chain everywhere:
#     startTime → incidentUpdated → timestamp.

import logging
import math
import re
from datetime import datetime
from typing import Any, Iterable, Mapping

from status_page.models import CurrentIncidentStatusUpdate, IncidentRecord, parse_dt

log = logging.getLogger(__name__)

TIMESTAMP_FIELDS: tuple[str, ...] = ("startTime", "incidentUpdated", "timestamp")

_LEADING_NUMBER = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def incident_timestamp(raw: Mapping[str, Any]) -> datetime | None:
    """First present, valid value of startTime, incidentUpdated, timestamp."""
    for name in TIMESTAMP_FIELDS:
        dt = parse_dt(raw.get(name))
        if dt is not None:
            return dt
    return None


def parse_error_rate(value: Any) -> float:
    """
    Float in [0, 1]; anything unparseable counts as 0.

    Strings are read by their leading number, so "0.5%" is 0.5.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        value = match.group(0) if match else None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(rate):
        return 0.0
    if not 0.0 <= rate <= 1.0:
        log.warning("errorRate %r out of range, clamping to [0, 1]", value)
        rate = min(max(rate, 0.0), 1.0)
    return rate


def _str_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v) for v in value if v)


def parse_incident(raw: Mapping[str, Any]) -> IncidentRecord:
    """Parse one index.json entry. Never raises on bad field values."""
    service = raw.get("impactedService") or None
    return IncidentRecord(
        code=str(raw.get("code", "")),
        name=str(raw.get("name", "")),
        start_time=parse_dt(raw.get("startTime")),
        end_time=parse_dt(raw.get("endTime")),
        impacted_service=str(service) if service is not None else None,
        error_rate=parse_error_rate(raw.get("errorRate")),
        impact=str(raw.get("impact") or "none").lower(),
        timestamp=incident_timestamp(raw),
        message=str(raw.get("message") or ""),
        affected_components=_str_tuple(raw.get("affectedComponents")),
        internal_services=_str_tuple(raw.get("internalServices")),
        external_vendors=_str_tuple(raw.get("externalVendors")),
        root_cause=raw.get("rootCause") or None,
    )


def as_records(incidents: Iterable[Mapping[str, Any] | IncidentRecord]) -> list[IncidentRecord]:
    """Accept raw dicts or already-parsed records; the input is never modified."""
    return [
        item if isinstance(item, IncidentRecord) else parse_incident(item)
        for item in incidents
    ]


def parse_feed(data: Any) -> list[CurrentIncidentStatusUpdate]:
    """
    Parse the spreadsheet feed payload: {"rows": [{"Status", "Impact", "Timestamp", "Comment"}]}.

    Returns updates in feed order (oldest first, as the sheet is appended to).
    """
    if not isinstance(data, Mapping):
        return []

    updates: list[CurrentIncidentStatusUpdate] = []
    for row in data.get("rows") or []:
        if not isinstance(row, Mapping):
            continue
        updates.append(CurrentIncidentStatusUpdate(
            status=str(row.get("Status", "")).strip().lower(),
            impact=str(row.get("Impact", "")).strip().lower(),
            timestamp=parse_dt(row.get("Timestamp")),
            comment=str(row.get("Comment", "")),
        ))
    return updates
