"""
Configuration schema validation using Pydantic
"""

from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .constants import (
    DEFAULT_ADVISORY_MIN_SPREAD_PCT,
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_DB_PATH,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_NEUTRAL_BAND_PCT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    Exchange,
)
from .exceptions import UnknownExchangeError


def _check_exchange_keys(mapping: Dict[str, object]) -> None:
    for name in mapping:
        try:
            Exchange.parse(name)
        except UnknownExchangeError as e:
            raise ValueError(str(e))


class RetrySettings(BaseModel):
    """Retry policy shared by network lookups and advisory calls"""

    max_attempts: int = Field(ge=1, le=10, default=DEFAULT_MAX_ATTEMPTS)
    base_delay_seconds: float = Field(
        ge=0, le=60, default=DEFAULT_BACKOFF_BASE_SECONDS,
        description="Delay before retry n is base * 2**n",
    )

    model_config = {"extra": "forbid"}


class PollSettings(BaseModel):
    """Live refresh loop configuration"""

    interval_seconds: float = Field(ge=1, le=3600, default=DEFAULT_POLL_INTERVAL_SECONDS)

    model_config = {"extra": "forbid"}


class EvaluatorSettings(BaseModel):
    """Arithmetic core configuration"""

    neutral_band_pct: Decimal = Field(
        ge=0, le=1, default=Decimal(DEFAULT_NEUTRAL_BAND_PCT),
        description="Spread dead zone (percentage points) reported as neutral",
    )
    default_capital_usdt: Decimal = Field(gt=0, default=Decimal("100"))

    model_config = {"extra": "forbid"}


class CatalogSettings(BaseModel):
    """Asset catalog configuration"""

    db_path: str = DEFAULT_DB_PATH
    fallback_assets: Optional[Dict[str, List[str]]] = None

    @field_validator("fallback_assets")
    @classmethod
    def validate_fallback_assets(cls, v):
        if v is None:
            return v
        _check_exchange_keys(v)
        for name, assets in v.items():
            if any(not str(asset).strip() for asset in assets):
                raise ValueError(f"Empty asset symbol in fallback list for {name}")
        return v

    model_config = {"extra": "forbid"}


class AdvisorySettings(BaseModel):
    """Advisory commentary configuration"""

    enabled: bool = True
    endpoint_url: Optional[str] = None
    timeout_seconds: float = Field(gt=0, le=300, default=30.0)
    min_spread_pct: Decimal = Field(default=Decimal(DEFAULT_ADVISORY_MIN_SPREAD_PCT))

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, v):
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError(f"endpoint_url must be an http(s) URL: {v}")
        return v

    model_config = {"extra": "forbid"}


class HttpSettings(BaseModel):
    """Outbound HTTP configuration"""

    timeout_seconds: float = Field(gt=0, le=120, default=DEFAULT_HTTP_TIMEOUT_SECONDS)

    model_config = {"extra": "forbid"}


class AppConfigSchema(BaseModel):
    """Top-level application configuration"""

    retry: RetrySettings = Field(default_factory=RetrySettings)
    poll: PollSettings = Field(default_factory=PollSettings)
    evaluator: EvaluatorSettings = Field(default_factory=EvaluatorSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    advisory: AdvisorySettings = Field(default_factory=AdvisorySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    fees: Dict[str, float] = Field(
        default_factory=dict, description="Default trading fee per exchange, in percent"
    )

    @field_validator("fees")
    @classmethod
    def validate_fees(cls, v):
        _check_exchange_keys(v)
        for name, fee in v.items():
            if not 0 <= fee < 100:
                raise ValueError(f"Fee for {name} must be in [0, 100): {fee}")
        return v

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
    }


def validate_app_config(config_dict: Dict) -> AppConfigSchema:
    """
    Validate an application configuration dictionary

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    return AppConfigSchema(**config_dict)


def validate_config_file(config_path: Union[str, Path]) -> AppConfigSchema:
    """
    Validate an application configuration file

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If configuration is invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        raise ValueError("Configuration file is empty or invalid")

    return validate_app_config(config_dict)
