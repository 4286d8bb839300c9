"""
Shared pytest fixtures for the SLA vault test suite.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from settings.config_loader import DatabaseConfig, DataSourceConfig, VaultConfig

SLA_PATH = "Business Transaction Performance|Business Transaction Groups|SLA"
T0 = 1_700_000_040_000          # a minute boundary, epoch millis


# ── Payload helpers ───────────────────────────────────────────────────────────

def metric(label: str, samples: list[tuple[int, int]], frequency: str = "ONE_MIN",
           name: str | None = None) -> dict:
    """One controller metric object for ``label`` (last path segment)."""
    return {
        "metricName": name or f"BTM|BTs|SLA|{label}",
        "metricId": 4711,
        "metricPath": f"{SLA_PATH}|{label}",
        "frequency": frequency,
        "metricValues": [
            {
                "startTimeInMillis": ts, "sum": total, "occurrences": 1,
                "current": total, "min": 0, "max": total, "useRange": True,
                "count": 1, "value": total, "standardDeviation": 0,
            }
            for ts, total in samples
        ],
    }


def no_data() -> dict:
    return {
        "metricName": "METRIC DATA NOT FOUND",
        "metricId": -1,
        "metricPath": f"{SLA_PATH}|Calls per Minute",
        "frequency": "ONE_MIN",
        "metricValues": [],
    }


def body(*metrics: dict) -> bytes:
    """Raw controller response body: a bare JSON array."""
    return json.dumps(list(metrics)).encode()


# ── Config fixtures ───────────────────────────────────────────────────────────

@pytest.fixture()
def data_source() -> DataSourceConfig:
    return DataSourceConfig(
        unique_name="prod",
        host="http://controller.test:8090/controller/rest/applications/Shop",
        metric_path=f"{SLA_PATH}|*",
        rest_user="api@customer1",
        rest_pwd="secret",
    )


@pytest.fixture()
def database() -> DatabaseConfig:
    return DatabaseConfig(host="http://influx.test:8086", name="slavault",
                          user="vault", password="pwd")


@pytest.fixture()
def vault_config(data_source, database) -> VaultConfig:
    perf = DataSourceConfig(
        unique_name="perf",
        host="http://perf.test:8090/controller/rest/applications/Shop",
        metric_path=f"{SLA_PATH}|*",
        rest_user="api@customer1",
        rest_pwd="secret",
    )
    return VaultConfig(database=database, data_sources=(data_source, perf))


def _raw_config() -> dict:
    return {
        "database": {
            "db_host": "http://influx.test:8086",
            "db_name": "slavault",
            "db_user": "vault",
            "db_pwd": "pwd",
        },
        "data_sources": [
            {
                "unique_name": "prod",
                "host": "http://controller.test:8090/controller/rest/applications/Shop/",
                "metric_path": f"{SLA_PATH}|*",
                "rest_user": "api@customer1",
                "rest_pwd": "secret",
            },
        ],
    }


@pytest.fixture()
def raw_config() -> dict:
    return _raw_config()


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    """Write a minimal config.yaml to a temp dir and return the path."""
    p = tmp_path / "config.yaml"
    p.write_text(yaml.dump(_raw_config()))
    return p
