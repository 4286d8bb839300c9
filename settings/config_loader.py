"""
Config Loader — reads the vault's configuration document once at start-up.

Reads:
  • config/config.yaml (or the path in ``SLA_VAULT_CONFIG``)

The document holds one shared time-series database and any number of
controller data sources. JSON documents are accepted as-is since JSON is
a subset of YAML.

Usage::

    from settings.config_loader import load_config
    cfg = load_config()
    for ds in cfg.data_sources:
        print(ds.unique_name, ds.host)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from utils.errors import ConfigurationError

ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG = ROOT / "config" / "config.yaml"
CONFIG_ENV = "SLA_VAULT_CONFIG"


# ── Config dataclasses ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DataSourceConfig:
    """One AppDynamics controller and the BT metric path to pump from it."""

    unique_name: str        # tag value separating environments: prod, perf, ...
    host: str               # controller base URL incl. scheme and port
    metric_path: str
    rest_user: str
    rest_pwd: str = field(repr=False)


@dataclass(frozen=True)
class DatabaseConfig:
    host: str
    name: str               # database, also used as measurement and tag key
    user: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class VaultConfig:
    database: DatabaseConfig
    data_sources: tuple[DataSourceConfig, ...]
    http_timeout_s: float | None = None


# ── Loader ────────────────────────────────────────────────────────────────────

def _require(section: dict, key: str, where: str) -> str:
    value = section.get(key)
    if value is None or value == "":
        raise ConfigurationError(
            f"Missing required key '{key}' in {where}", {"key": key, "section": where}
        )
    return str(value)


def _parse_database(raw: Any) -> DatabaseConfig:
    if not isinstance(raw, dict):
        raise ConfigurationError("'database' section must be a mapping")
    return DatabaseConfig(
        host=_require(raw, "db_host", "database"),
        name=_require(raw, "db_name", "database"),
        user=str(raw.get("db_user", "")),
        password=str(raw.get("db_pwd", "")),
    )


def _parse_data_sources(raw: Any) -> tuple[DataSourceConfig, ...]:
    if not isinstance(raw, list) or not raw:
        raise ConfigurationError("'data_sources' must be a non-empty list")

    sources = []
    seen: set[str] = set()
    for idx, entry in enumerate(raw):
        where = f"data_sources[{idx}]"
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{where} must be a mapping")
        ds = DataSourceConfig(
            unique_name=_require(entry, "unique_name", where),
            host=_require(entry, "host", where).rstrip("/"),
            metric_path=_require(entry, "metric_path", where),
            rest_user=str(entry.get("rest_user", "")),
            rest_pwd=str(entry.get("rest_pwd", "")),
        )
        if ds.unique_name in seen:
            raise ConfigurationError(
                f"Duplicate unique_name '{ds.unique_name}' in {where}",
                {"unique_name": ds.unique_name},
            )
        seen.add(ds.unique_name)
        sources.append(ds)
    return tuple(sources)


def parse_config(data: Any) -> VaultConfig:
    """Build a ``VaultConfig`` from an already decoded document."""
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration document must be a mapping")

    timeout = data.get("http_timeout_s")
    try:
        timeout = float(timeout) if timeout is not None else None
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid http_timeout_s: {timeout!r}") from exc

    return VaultConfig(
        database=_parse_database(data.get("database")),
        data_sources=_parse_data_sources(data.get("data_sources")),
        http_timeout_s=timeout,
    )


def load_config(path: str | Path | None = None) -> VaultConfig:
    """Read and validate the configuration file.

    The path defaults to ``SLA_VAULT_CONFIG`` and then to
    ``config/config.yaml`` next to the packages.
    """
    cfg_path = Path(path or os.getenv(CONFIG_ENV, str(DEFAULT_CONFIG)))
    try:
        with cfg_path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration {cfg_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid configuration {cfg_path}: {exc}") from exc
    return parse_config(data)
