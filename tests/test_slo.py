"""Tests for the uptime / SLO calculator."""

import copy
from datetime import datetime, timedelta, timezone

import pytest

from status_page.models import ConfigError, UptimeConfig
from status_page.parser import parse_incident
from status_page.slo import (
    clamp_uptime,
    compute_uptime,
    format_disruption_time,
    format_uptime_percentage,
    uptime_status,
)

NOW = datetime(2024, 1, 10, tzinfo=timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def incident(start: datetime, minutes: int, service="delivery", error_rate=1.0, **extra) -> dict:
    entry = {
        "code": extra.pop("code", "AEM-test"),
        "name": "Test incident",
        "startTime": _iso(start),
        "endTime": _iso(start + timedelta(minutes=minutes)),
        "impactedService": service,
        "errorRate": error_rate,
        "impact": "minor",
    }
    entry.update(extra)
    return entry


class TestComputeUptime:
    def test_documented_scenario(self):
        config = UptimeConfig(window_days=90, services={"delivery": 0.9999})
        incidents = [{
            "code": "AEM-1",
            "name": "Delivery errors",
            "startTime": "2024-01-01T00:00:00Z",
            "endTime": "2024-01-01T02:00:00Z",
            "impactedService": "delivery",
            "errorRate": 0.5,
            "impact": "major",
        }]

        status = compute_uptime(incidents, config, now=NOW)["delivery"]

        assert status.disruption_mins == 120
        assert status.total_downtime_mins == 60
        assert config.window_minutes == 129600
        assert status.uptime == pytest.approx((129600 - 60) / 129600)
        assert status.uptime_percentage == "99.953"
        assert status.status_class == "err"
        assert status.num_incidents == 1

    def test_no_incidents_is_full_uptime(self):
        statuses = compute_uptime([], now=NOW)
        assert set(statuses) == {"delivery", "publishing"}
        for status in statuses.values():
            assert status.uptime == 1
            assert status.num_incidents == 0
            assert status.total_downtime_mins == 0
            assert status.uptime_percentage == "100"
            assert status.status_class == "ok"

    def test_zero_error_rate_counts_but_costs_nothing(self):
        incidents = [
            incident(NOW - timedelta(days=1), 300, error_rate=0),
            incident(NOW - timedelta(days=2), 45, error_rate="not a number"),
            incident(NOW - timedelta(days=3), 45, error_rate=None),
        ]
        status = compute_uptime(incidents, now=NOW)["delivery"]
        assert status.uptime == 1
        assert status.num_incidents == 3
        assert status.disruption_mins == 390

    def test_downtime_accumulates_across_incidents(self):
        config = UptimeConfig(window_days=1, services={"delivery": 0.9})
        incidents = [
            incident(NOW - timedelta(hours=5), 60, error_rate=1.0),
            incident(NOW - timedelta(hours=2), 30, error_rate=0.5),
        ]
        status = compute_uptime(incidents, config, now=NOW)["delivery"]
        assert status.num_incidents == 2
        assert status.total_downtime_mins == 75
        assert status.disruption_mins == 90
        assert status.disruption_time == "1h 30m"
        assert status.uptime == pytest.approx((1440 - 75) / 1440)

    def test_incident_started_before_window_is_excluded(self):
        config = UptimeConfig(window_days=1, services={"delivery": 0.999})
        # started 25h ago, ended inside the window
        incidents = [incident(NOW - timedelta(hours=25), 180)]
        status = compute_uptime(incidents, config, now=NOW)["delivery"]
        assert status.num_incidents == 0
        assert status.uptime == 1

    def test_incident_starting_exactly_at_window_start_is_excluded(self):
        config = UptimeConfig(window_days=1, services={"delivery": 0.999})
        incidents = [incident(NOW - timedelta(days=1), 10)]
        status = compute_uptime(incidents, config, now=NOW)["delivery"]
        assert status.num_incidents == 0

    def test_unknown_service_does_not_change_results(self):
        baseline = compute_uptime([incident(NOW - timedelta(days=1), 60)], now=NOW)
        with_unknown = compute_uptime(
            [
                incident(NOW - timedelta(days=1), 60),
                incident(NOW - timedelta(days=2), 600, service="forms"),
                incident(NOW - timedelta(days=2), 600, service=None),
            ],
            now=NOW,
        )
        assert with_unknown == baseline
        assert "forms" not in with_unknown

    def test_invalid_timestamps_are_excluded(self):
        incidents = [
            incident(NOW - timedelta(days=1), 60, startTime="yesterday-ish"),
            incident(NOW - timedelta(days=1), 60, endTime=""),
            {"code": "AEM-x", "impactedService": "delivery", "errorRate": 1},
        ]
        status = compute_uptime(incidents, now=NOW)["delivery"]
        assert status.num_incidents == 0
        assert status.uptime == 1

    def test_end_before_start_counts_without_downtime(self):
        start = NOW - timedelta(days=1)
        bad = incident(start, 60, endTime=_iso(start - timedelta(hours=1)))
        status = compute_uptime([bad], now=NOW)["delivery"]
        assert status.num_incidents == 1
        assert status.disruption_mins == 0
        assert status.uptime == 1

    def test_tiny_downtime_never_shows_full_uptime(self):
        status = compute_uptime([incident(NOW - timedelta(days=1), 1, error_rate=1e-8)], now=NOW)["delivery"]
        assert status.uptime < 1
        assert status.uptime_percentage == "99.999"

    def test_invalid_now(self):
        with pytest.raises(ValueError, match="now"):
            compute_uptime([], now="not a date")

    def test_equivalent_timestamp_spellings_agree(self):
        a = incident(NOW - timedelta(days=1), 0,
                     startTime="2024-01-09T00:00:00Z", endTime="2024-01-09T01:00:00Z")
        b = incident(NOW - timedelta(days=1), 0,
                     startTime="2024-01-09T02:00:00+02:00", endTime="2024-01-09T01:00:00.000+00:00")
        assert compute_uptime([a], now=NOW) == compute_uptime([b], now=NOW)

    def test_overlapping_downtime_can_go_negative(self):
        config = UptimeConfig(window_days=1, services={"delivery": 0.999})
        incidents = [
            incident(NOW - timedelta(hours=20), 1000),
            incident(NOW - timedelta(hours=19), 1000),
        ]
        status = compute_uptime(incidents, config, now=NOW)["delivery"]
        assert status.uptime < 0
        assert status.uptime_percentage == "-38.888"
        assert status.status_class == "err"
        assert clamp_uptime(status.uptime) == 0.0

    def test_idempotent_and_input_untouched(self):
        incidents = [incident(NOW - timedelta(days=d), 30 * d) for d in range(1, 5)]
        snapshot = copy.deepcopy(incidents)
        first = compute_uptime(incidents, now=NOW)
        second = compute_uptime(incidents, now=NOW)
        assert first == second
        assert incidents == snapshot

    def test_accepts_parsed_records_and_wire_config(self):
        records = [parse_incident(incident(NOW - timedelta(days=1), 60, error_rate=0.5))]
        statuses = compute_uptime(
            records, {"windowDays": 30, "services": {"delivery": 0.99}}, now=NOW,
        )
        assert statuses["delivery"].total_downtime_mins == 30
        assert statuses["delivery"].uptime == pytest.approx((43200 - 30) / 43200)

    def test_naive_now_is_treated_as_utc(self):
        naive = datetime(2024, 1, 10)
        incidents = [incident(NOW - timedelta(days=1), 60)]
        assert compute_uptime(incidents, now=naive) == compute_uptime(incidents, now=NOW)

    def test_to_dict_uses_wire_names(self):
        status = compute_uptime([incident(NOW - timedelta(days=1), 120)], now=NOW)["delivery"]
        data = status.to_dict()
        assert data["numIncidents"] == 1
        assert data["uptimePercentage"] == status.uptime_percentage
        assert data["statusClass"] == status.status_class
        assert data["disruptionTime"] == "2h"


class TestConfigValidation:
    @pytest.mark.parametrize("window", [0, -5, 1.5, True])
    def test_bad_window(self, window):
        with pytest.raises(ConfigError, match="window_days"):
            UptimeConfig(window_days=window, services={"delivery": 0.9999})

    def test_empty_services(self):
        with pytest.raises(ConfigError, match="services"):
            UptimeConfig(window_days=90, services={})

    @pytest.mark.parametrize("sla", [0, -0.1, 1.01, "0.99", float("nan")])
    def test_bad_sla(self, sla):
        with pytest.raises(ConfigError, match="SLA"):
            UptimeConfig(services={"delivery": sla})

    def test_sla_of_one_is_allowed(self):
        assert UptimeConfig(services={"delivery": 1}).services == {"delivery": 1}

    def test_compute_uptime_refuses_bad_wire_config(self):
        with pytest.raises(ConfigError):
            compute_uptime([], {"windowDays": 0, "services": {"delivery": 0.9999}})
        with pytest.raises(ConfigError):
            compute_uptime([], {"windowDays": 90, "services": {}})

    def test_services_are_copied(self):
        services = {"delivery": 0.9999}
        config = UptimeConfig(services=services)
        services["publishing"] = 0.999
        assert list(config.services) == ["delivery"]


class TestUptimeStatus:
    @pytest.mark.parametrize(
        "uptime, sla, expected",
        [
            (1.0, 0.999, "ok"),
            (0.999, 0.999, "ok"),
            (0.9985, 0.999, "warn"),
            (0.9981, 0.999, "warn"),
            (0.997, 0.999, "err"),
            (0.95, 0.9, "ok"),
            (0.85, 0.9, "warn"),
            (0.81, 0.9, "warn"),
            (0.79, 0.9, "err"),
        ],
    )
    def test_classification(self, uptime, sla, expected):
        assert uptime_status(uptime, sla) == expected

    def test_classification_through_calculator(self):
        config = UptimeConfig(window_days=1, services={"delivery": 0.999})
        start = NOW - timedelta(hours=3)
        cases = {
            "ok": incident(start, 1),                    # 1 min down → 0.99930
            "warn": incident(start, 4, error_rate=0.5),  # 2 min down → 0.99861
            "err": incident(start, 10),                  # 10 min down → 0.99305
        }
        for expected, entry in cases.items():
            assert compute_uptime([entry], config, now=NOW)["delivery"].status_class == expected


class TestFormatting:
    @pytest.mark.parametrize(
        "uptime, expected",
        [
            (1, "100"),
            (0.9999, "99.99"),
            (0.999999, "99.999"),
            ((129600 - 60) / 129600, "99.953"),
            (0.5, "50"),
            (0.0, "0"),
            (0.12345678, "12.345"),
            (0.9999999999999228, "99.999"),
            (0.99999, "99.999"),
        ],
    )
    def test_uptime_percentage_truncates(self, uptime, expected):
        assert format_uptime_percentage(uptime) == expected

    @pytest.mark.parametrize(
        "minutes, expected",
        [(0, "0m"), (45, "45m"), (60, "60m"), (61, "1h 1m"), (125, "2h 5m"), (180, "3h")],
    )
    def test_disruption_time(self, minutes, expected):
        assert format_disruption_time(minutes) == expected

    def test_clamp(self):
        assert clamp_uptime(1.2) == 1.0
        assert clamp_uptime(-3) == 0.0
        assert clamp_uptime(0.42) == 0.42
