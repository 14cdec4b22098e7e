"""Tests for the config_loader module."""

from decimal import Decimal
from pathlib import Path
from tempfile import NamedTemporaryFile

import pytest
import yaml
from cross_arbitrage.config_loader import (
    ENV_ADVISORY_URL,
    ENV_DB_PATH,
    ENV_HTTP_TIMEOUT,
    ENV_POLL_INTERVAL,
    AppConfig,
    CatalogConfig,
    RetryConfig,
    apply_env_overrides,
    get_default_config,
    load_app_config,
    load_yaml_config,
)
from cross_arbitrage.config_schema import validate_config_file
from cross_arbitrage.constants import FALLBACK_ASSETS, Exchange
from cross_arbitrage.exceptions import ConfigurationError, ValidationError


def write_yaml(tmp_path, data, name="config.yaml"):
    path = tmp_path / name
    path.write_text(yaml.dump(data))
    return path


def test_load_yaml_config_valid():
    """Test loading a valid YAML configuration."""
    config_data = {"retry": {"max_attempts": 5}, "fees": {"MEXC": 0.1}}

    with NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(config_data, f)
        f.flush()

        result = load_yaml_config(f.name)
        assert result == config_data

    Path(f.name).unlink()


def test_load_yaml_config_file_not_found():
    with pytest.raises(ConfigurationError, match="Configuration file not found"):
        load_yaml_config("/non/existent/file.yaml")


def test_load_yaml_config_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    with pytest.raises(ConfigurationError, match="Empty configuration file"):
        load_yaml_config(path)


def test_load_yaml_config_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("invalid: yaml: content: [")
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_yaml_config(path)


def test_load_yaml_config_not_a_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError, match="must be a mapping"):
        load_yaml_config(path)


def test_get_default_config():
    config = get_default_config()
    assert isinstance(config, AppConfig)
    assert config.retry == RetryConfig(max_attempts=3, base_delay_seconds=1.0)
    assert config.poll.interval_seconds == 15.0
    assert config.evaluator.neutral_band_pct == Decimal("0.0001")
    assert config.catalog.fallback_for(Exchange.MEXC) == FALLBACK_ASSETS[Exchange.MEXC]
    assert config.fee_for(Exchange.GATEIO) == Decimal("0")


def test_config_is_frozen():
    config = get_default_config()
    with pytest.raises(AttributeError):
        config.retry = RetryConfig(max_attempts=9)


def test_fallback_catalog_is_total():
    config = CatalogConfig()
    for exchange in Exchange:
        assert config.fallback_for(exchange)


def test_load_app_config_from_file(tmp_path):
    path = write_yaml(tmp_path, {
        "retry": {"max_attempts": 4, "base_delay_seconds": 0.5},
        "evaluator": {"neutral_band_pct": "0.001"},
        "catalog": {"fallback_assets": {"gate.io": ["btc", "eth"]}},
        "fees": {"MEXC": 0.1, "Gate.io": 0.2},
    })

    config = load_app_config(path, environ={})

    assert config.retry.max_attempts == 4
    assert config.retry.base_delay_seconds == 0.5
    assert config.evaluator.neutral_band_pct == Decimal("0.001")
    assert config.catalog.fallback_for(Exchange.GATEIO) == ("BTC", "ETH")
    assert config.catalog.fallback_for(Exchange.MEXC) == FALLBACK_ASSETS[Exchange.MEXC]
    assert config.fee_for(Exchange.MEXC) == Decimal("0.1")
    assert config.fee_for(Exchange.GATEIO) == Decimal("0.2")


def test_load_app_config_without_file_uses_defaults():
    config = load_app_config(environ={})
    assert config == get_default_config()


def test_env_overrides():
    environ = {
        ENV_DB_PATH: "/tmp/catalog.db",
        ENV_ADVISORY_URL: "http://localhost:9000/advisory",
        ENV_POLL_INTERVAL: "30",
        ENV_HTTP_TIMEOUT: "5",
    }

    config = load_app_config(environ=environ)

    assert config.catalog.db_path == "/tmp/catalog.db"
    assert config.advisory.endpoint_url == "http://localhost:9000/advisory"
    assert config.poll.interval_seconds == 30.0
    assert config.http.timeout_seconds == 5.0


def test_env_overrides_do_not_mutate_input():
    raw = {"poll": {"interval_seconds": 20}}
    result = apply_env_overrides(raw, {ENV_POLL_INTERVAL: "45"})
    assert result["poll"]["interval_seconds"] == 45.0
    assert raw["poll"]["interval_seconds"] == 20


def test_env_override_not_numeric():
    with pytest.raises(ConfigurationError, match="Invalid numeric environment override"):
        apply_env_overrides({}, {ENV_POLL_INTERVAL: "soon"})


@pytest.mark.parametrize(
    "data",
    [
        {"fees": {"Binance": 0.1}},
        {"fees": {"MEXC": 100}},
        {"fees": {"MEXC": -0.1}},
        {"retry": {"max_attempts": 0}},
        {"poll": {"interval_seconds": 0}},
        {"advisory": {"endpoint_url": "ftp://example.com"}},
        {"catalog": {"fallback_assets": {"MEXC": ["BTC", " "]}}},
        {"unknown_section": {}},
    ],
)
def test_invalid_config_rejected(tmp_path, data):
    path = write_yaml(tmp_path, data)
    with pytest.raises(ValidationError, match="Configuration validation failed"):
        load_app_config(path, environ={})


def test_validate_config_file(tmp_path):
    path = write_yaml(tmp_path, {"http": {"timeout_seconds": 3}})
    schema = validate_config_file(path)
    assert schema.http.timeout_seconds == 3


def test_validate_config_file_missing():
    with pytest.raises(FileNotFoundError):
        validate_config_file("/non/existent/config.yaml")


def test_example_config_loads():
    example = Path(__file__).resolve().parents[2] / "config" / "example.yaml"
    config = load_app_config(example, environ={})
    assert config.fee_for(Exchange.BITMART) == Decimal("0.25")
