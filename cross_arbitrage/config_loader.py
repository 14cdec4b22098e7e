"""
Configuration loading and normalization for the arbitrage evaluator.

Provides a centralized way to load, validate, and normalize configuration
files with proper defaults and read-only access. Fee tables and fallback
catalogs live here and are injected into components, never kept as mutable
module state.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from .config_schema import AppConfigSchema, validate_app_config
from .constants import (
    DEFAULT_ADVISORY_MIN_SPREAD_PCT,
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_DB_PATH,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_NEUTRAL_BAND_PCT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    FALLBACK_ASSETS,
    Exchange,
)
from .exceptions import ConfigurationError, ValidationError
from .utils import normalize_symbol

ENV_DB_PATH = "CROSS_ARB_DB_PATH"
ENV_ADVISORY_URL = "CROSS_ARB_ADVISORY_URL"
ENV_POLL_INTERVAL = "CROSS_ARB_POLL_INTERVAL"
ENV_HTTP_TIMEOUT = "CROSS_ARB_HTTP_TIMEOUT"


@dataclass(frozen=True)
class RetryConfig:
    """Normalized retry configuration."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS


@dataclass(frozen=True)
class PollConfig:
    """Normalized live polling configuration."""

    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS


@dataclass(frozen=True)
class EvaluatorConfig:
    """Normalized evaluator configuration."""

    neutral_band_pct: Decimal = Decimal(DEFAULT_NEUTRAL_BAND_PCT)
    default_capital_usdt: Decimal = Decimal("100")


def _default_fallback_assets() -> Dict[Exchange, Tuple[str, ...]]:
    return dict(FALLBACK_ASSETS)


@dataclass(frozen=True)
class CatalogConfig:
    """Normalized asset catalog configuration."""

    db_path: str = DEFAULT_DB_PATH
    fallback_assets: Dict[Exchange, Tuple[str, ...]] = field(
        default_factory=_default_fallback_assets
    )

    def fallback_for(self, exchange: Exchange) -> Tuple[str, ...]:
        return self.fallback_assets.get(exchange, ())


@dataclass(frozen=True)
class AdvisoryConfig:
    """Normalized advisory configuration."""

    enabled: bool = True
    endpoint_url: Optional[str] = None
    timeout_seconds: float = 30.0
    min_spread_pct: Decimal = Decimal(DEFAULT_ADVISORY_MIN_SPREAD_PCT)


@dataclass(frozen=True)
class HttpConfig:
    """Normalized outbound HTTP configuration."""

    timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS


@dataclass(frozen=True)
class AppConfig:
    """Immutable runtime configuration object."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    evaluator: EvaluatorConfig = field(default_factory=EvaluatorConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    advisory: AdvisoryConfig = field(default_factory=AdvisoryConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    fees: Dict[Exchange, Decimal] = field(default_factory=dict)

    def fee_for(self, exchange: Exchange) -> Decimal:
        """Default trading fee (percent) for an exchange, zero if unset."""
        return self.fees.get(exchange, Decimal("0"))


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

    return config_dict


def apply_env_overrides(
    config_dict: Dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Overlay environment variables onto a raw configuration dictionary."""
    environ = os.environ if environ is None else environ
    result = {key: dict(value) if isinstance(value, dict) else value
              for key, value in config_dict.items()}

    if environ.get(ENV_DB_PATH):
        result.setdefault("catalog", {})["db_path"] = environ[ENV_DB_PATH]
    if environ.get(ENV_ADVISORY_URL):
        result.setdefault("advisory", {})["endpoint_url"] = environ[ENV_ADVISORY_URL]
    try:
        if environ.get(ENV_POLL_INTERVAL):
            result.setdefault("poll", {})["interval_seconds"] = float(
                environ[ENV_POLL_INTERVAL]
            )
        if environ.get(ENV_HTTP_TIMEOUT):
            result.setdefault("http", {})["timeout_seconds"] = float(
                environ[ENV_HTTP_TIMEOUT]
            )
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric environment override: {e}")

    return result


def _normalize(schema: AppConfigSchema) -> AppConfig:
    fallback = _default_fallback_assets()
    if schema.catalog.fallback_assets is not None:
        for name, assets in schema.catalog.fallback_assets.items():
            fallback[Exchange.parse(name)] = tuple(normalize_symbol(a) for a in assets)

    return AppConfig(
        retry=RetryConfig(
            max_attempts=schema.retry.max_attempts,
            base_delay_seconds=schema.retry.base_delay_seconds,
        ),
        poll=PollConfig(interval_seconds=schema.poll.interval_seconds),
        evaluator=EvaluatorConfig(
            neutral_band_pct=schema.evaluator.neutral_band_pct,
            default_capital_usdt=schema.evaluator.default_capital_usdt,
        ),
        catalog=CatalogConfig(db_path=schema.catalog.db_path, fallback_assets=fallback),
        advisory=AdvisoryConfig(
            enabled=schema.advisory.enabled,
            endpoint_url=schema.advisory.endpoint_url,
            timeout_seconds=schema.advisory.timeout_seconds,
            min_spread_pct=schema.advisory.min_spread_pct,
        ),
        http=HttpConfig(timeout_seconds=schema.http.timeout_seconds),
        fees={Exchange.parse(k): Decimal(str(v)) for k, v in schema.fees.items()},
    )


def load_app_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = False,
) -> AppConfig:
    """
    Load, validate and normalize the application configuration.

    Args:
        config_path: Optional YAML file; defaults apply when omitted
        environ: Environment mapping for overrides (defaults to ``os.environ``)
        use_dotenv: Load a ``.env`` file into the process environment first

    Returns:
        Normalized and frozen application configuration

    Raises:
        ConfigurationError: If the configuration cannot be loaded
        ValidationError: If the configuration fails schema validation
    """
    if use_dotenv:
        load_dotenv()

    config_dict = load_yaml_config(config_path) if config_path else {}
    config_dict = apply_env_overrides(config_dict, environ)

    try:
        schema = validate_app_config(config_dict)
    except PydanticValidationError as e:
        raise ValidationError(f"Configuration validation failed: {e}")

    return _normalize(schema)


def get_default_config() -> AppConfig:
    """Get a default configuration for testing or fallback purposes."""
    return AppConfig()
