import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from status_page.config import DEFAULT_SERVICE_SLAS, DEFAULT_WINDOW_DAYS

log = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when an uptime configuration cannot be used for a calculation."""


def parse_dt(value: Any) -> datetime | None:
    """
    Normalize a timestamp into an aware UTC datetime.

    Archive entries carry strings like '2024-12-10T02:26:00.000Z'.
    Returns None for anything that isn't a parseable instant, so callers
    exclude the record instead of treating it as epoch zero:
      - Two spellings of the same instant compare equal after parsing
      - A naive value is taken to be UTC
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            log.warning("Could not parse datetime string: %r", value)
            return None
    else:
        if value not in (None, ""):
            log.debug("Ignoring non-string timestamp: %r", value)
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_now(now: Any = None) -> datetime:
    """Evaluation instant as aware UTC; the current time when not given."""
    if now is None:
        return datetime.now(tz=timezone.utc)
    dt = parse_dt(now)
    if dt is None:
        raise ValueError(f"now must be a datetime or ISO-8601 string, got {now!r}")
    return dt


def format_dt(dt: datetime | None) -> str:
    """Human-readable UTC timestamp for console display."""
    if dt is None:
        return "Unknown"
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


@dataclass(frozen=True)
class IncidentRecord:
    """
    One closed incident from the archive, with timestamps already normalized.

    start_time / end_time / impacted_service may be None; such records are
    still listed in the archive but never contribute to uptime.
    """
    code: str
    name: str
    start_time: datetime | None
    end_time: datetime | None
    impacted_service: str | None
    error_rate: float                  # fraction of failed requests, [0, 1]
    impact: str                        # none | minor | major | critical | maintenance
    timestamp: datetime | None         # bucketing instant (startTime → incidentUpdated → timestamp)
    message: str = ""
    affected_components: tuple[str, ...] = ()
    internal_services: tuple[str, ...] = ()
    external_vendors: tuple[str, ...] = ()
    root_cause: str | None = None


@dataclass(frozen=True)
class UptimeConfig:
    """Trailing window length plus the SLA target of every tracked service."""
    window_days: int = DEFAULT_WINDOW_DAYS
    services: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_SERVICE_SLAS))

    def __post_init__(self) -> None:
        if isinstance(self.window_days, bool) or not isinstance(self.window_days, int):
            raise ConfigError(f"window_days must be an integer, got {self.window_days!r}")
        if self.window_days <= 0:
            raise ConfigError(f"window_days must be positive, got {self.window_days}")
        if not isinstance(self.services, Mapping):
            raise ConfigError(f"services must be a mapping, got {type(self.services).__name__}")
        if not self.services:
            raise ConfigError("services must name at least one service")
        for service, sla in self.services.items():
            if not isinstance(sla, (int, float)) or isinstance(sla, bool) or math.isnan(sla):
                raise ConfigError(f"SLA for {service!r} must be a number, got {sla!r}")
            if not 0 < sla <= 1:
                raise ConfigError(f"SLA for {service!r} must be in (0, 1], got {sla}")
        # private copy so later changes to the caller's dict can't leak in
        object.__setattr__(self, "services", dict(self.services))

    @property
    def window_minutes(self) -> int:
        return self.window_days * 24 * 60

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UptimeConfig":
        """Build from the camelCase wire form: {"windowDays": 90, "services": {...}}."""
        services = data.get("services")
        if services is None:
            services = dict(DEFAULT_SERVICE_SLAS)
        elif not isinstance(services, Mapping):
            raise ConfigError(f"services must be a mapping, got {type(services).__name__}")
        return cls(
            window_days=data.get("windowDays", DEFAULT_WINDOW_DAYS),
            services=services,
        )


@dataclass(frozen=True)
class ServiceUptimeStatus:
    """Per-service result of one uptime calculation."""
    sla: float
    uptime: float
    num_incidents: int
    disruption_mins: int               # wall-clock minutes, unweighted
    total_downtime_mins: float         # disruption weighted by error rate
    uptime_percentage: str
    disruption_time: str
    status_class: str                  # ok | warn | err

    def to_dict(self) -> dict[str, Any]:
        return {
            "sla": self.sla,
            "uptime": self.uptime,
            "numIncidents": self.num_incidents,
            "disruptionMins": self.disruption_mins,
            "totalDowntimeMins": self.total_downtime_mins,
            "uptimePercentage": self.uptime_percentage,
            "disruptionTime": self.disruption_time,
            "statusClass": self.status_class,
        }


@dataclass(frozen=True)
class CurrentIncidentStatusUpdate:
    """One row of the live incident feed. Feed order is kept as-is."""
    status: str                        # investigating | identified | monitoring | resolved
    impact: str                        # none | minor | major | critical
    timestamp: datetime | None
    comment: str
