"""
Tests for settings/config_loader.py
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from settings.config_loader import (
    DEFAULT_CONFIG,
    DataSourceConfig,
    VaultConfig,
    load_config,
    parse_config,
)
from utils.errors import ConfigurationError


class TestLoadConfig:
    def test_returns_vault_config(self, config_path):
        cfg = load_config(config_path)
        assert isinstance(cfg, VaultConfig)
        assert cfg.database.name == "slavault"
        assert cfg.database.password == "pwd"
        assert cfg.http_timeout_s is None

    def test_data_source_fields(self, config_path):
        ds = load_config(config_path).data_sources[0]
        assert isinstance(ds, DataSourceConfig)
        assert ds.unique_name == "prod"
        assert ds.rest_user == "api@customer1"
        assert ds.metric_path.endswith("|SLA|*")

    def test_trailing_slash_stripped_from_host(self, config_path):
        ds = load_config(config_path).data_sources[0]
        assert not ds.host.endswith("/")

    def test_reads_path_from_environment(self, config_path, monkeypatch):
        monkeypatch.setenv("SLA_VAULT_CONFIG", str(config_path))
        assert load_config().data_sources[0].unique_name == "prod"

    def test_accepts_json_document(self, tmp_path, raw_config):
        p = tmp_path / "config.json"
        p.write_text(json.dumps(raw_config))
        assert load_config(p).database.host == "http://influx.test:8086"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        p = tmp_path / "bad.yaml"
        p.write_text("database: [unclosed")
        with pytest.raises(ConfigurationError):
            load_config(p)

    def test_passwords_not_in_repr(self, config_path):
        cfg = load_config(config_path)
        assert "secret" not in repr(cfg.data_sources[0])
        assert "pwd" not in repr(cfg.database)


class TestParseConfig:
    def test_timeout(self, raw_config):
        raw_config["http_timeout_s"] = "30"
        assert parse_config(raw_config).http_timeout_s == 30.0

    def test_invalid_timeout(self, raw_config):
        raw_config["http_timeout_s"] = "soon"
        with pytest.raises(ConfigurationError):
            parse_config(raw_config)

    @pytest.mark.parametrize("doc", [None, [], "text"])
    def test_document_must_be_mapping(self, doc):
        with pytest.raises(ConfigurationError):
            parse_config(doc)

    def test_missing_database(self, raw_config):
        del raw_config["database"]
        with pytest.raises(ConfigurationError):
            parse_config(raw_config)

    @pytest.mark.parametrize("key", ["db_host", "db_name"])
    def test_missing_database_key(self, raw_config, key):
        del raw_config["database"][key]
        with pytest.raises(ConfigurationError, match=key):
            parse_config(raw_config)

    @pytest.mark.parametrize("value", [None, [], {}])
    def test_data_sources_required(self, raw_config, value):
        raw_config["data_sources"] = value
        with pytest.raises(ConfigurationError):
            parse_config(raw_config)

    @pytest.mark.parametrize("key", ["unique_name", "host", "metric_path"])
    def test_missing_data_source_key(self, raw_config, key):
        del raw_config["data_sources"][0][key]
        with pytest.raises(ConfigurationError, match=r"data_sources\[0\]"):
            parse_config(raw_config)

    def test_duplicate_unique_name(self, raw_config):
        raw_config["data_sources"].append(dict(raw_config["data_sources"][0]))
        with pytest.raises(ConfigurationError, match="Duplicate"):
            parse_config(raw_config)

    def test_several_data_sources_keep_order(self, raw_config):
        second = dict(raw_config["data_sources"][0], unique_name="perf")
        raw_config["data_sources"].append(second)
        names = [ds.unique_name for ds in parse_config(raw_config).data_sources]
        assert names == ["prod", "perf"]


class TestDefaultConfig:
    """Integration test — uses the sample config file in the repo."""

    def test_sample_config_loads(self):
        cfg = load_config(DEFAULT_CONFIG)
        assert len(cfg.data_sources) >= 1
        assert Path(DEFAULT_CONFIG).name == "config.yaml"

    def test_sample_config_is_valid_yaml(self):
        assert "data_sources" in yaml.safe_load(DEFAULT_CONFIG.read_text())
