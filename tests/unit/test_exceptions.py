"""Tests for the exceptions module."""

import pytest
from cross_arbitrage.exceptions import (
    AdvisoryGenerationError,
    ConfigurationError,
    CrossArbitrageError,
    DataError,
    ExchangeError,
    InvalidPriceError,
    NetworkError,
    PersistenceError,
    RetryExhaustedError,
    TransientServiceError,
    UnknownExchangeError,
    UnknownPairError,
    ValidationError,
)


def test_base_exception():
    """Test the base exception class."""
    error = CrossArbitrageError("Test error")
    assert str(error) == "Test error"
    assert error.details == {}

    error_with_details = CrossArbitrageError("Test error", {"key": "value"})
    assert error_with_details.details == {"key": "value"}


def test_configuration_error():
    """Test configuration error."""
    error = ConfigurationError("Config error", {"config_file": "test.yaml"})
    assert str(error) == "Config error"
    assert error.details["config_file"] == "test.yaml"
    assert isinstance(error, CrossArbitrageError)


def test_validation_error():
    error = ValidationError("Validation failed")
    assert str(error) == "Validation failed"
    assert isinstance(error, CrossArbitrageError)


def test_exchange_error_family():
    """Unknown exchange and unknown pair are exchange errors."""
    error = ExchangeError("Exchange failed", exchange="MEXC", symbol="JASMYUSDT")
    assert error.exchange == "MEXC"
    assert error.symbol == "JASMYUSDT"
    assert isinstance(error, CrossArbitrageError)

    assert isinstance(UnknownExchangeError("nope", exchange="Kraken"), ExchangeError)
    pair_error = UnknownPairError("no pair", exchange="Gate.io", symbol="FOO_USDT")
    assert isinstance(pair_error, ExchangeError)
    assert pair_error.symbol == "FOO_USDT"


def test_data_error_family():
    error = InvalidPriceError("bad price", source="Bitmart", symbol="PEPE_USDT")
    assert isinstance(error, DataError)
    assert error.source == "Bitmart"
    assert error.symbol == "PEPE_USDT"


def test_transient_service_error_defaults_to_503():
    """Transient errors carry the service unavailable status."""
    error = TransientServiceError("down", endpoint="https://api.mexc.com")
    assert isinstance(error, NetworkError)
    assert error.status_code == 503
    assert error.endpoint == "https://api.mexc.com"


def test_network_error():
    error = NetworkError("Connection failed", endpoint="https://api.gateio.ws", status_code=500)
    assert str(error) == "Connection failed"
    assert error.status_code == 500
    assert isinstance(error, CrossArbitrageError)


def test_retry_exhausted_error():
    cause = TransientServiceError("down")
    error = RetryExhaustedError("gave up", attempts=3, last_error=cause)
    assert error.attempts == 3
    assert error.last_error is cause


def test_persistence_and_advisory_errors():
    persistence = PersistenceError("disk full", exchange="Poloniex")
    assert persistence.exchange == "Poloniex"

    advisory = AdvisoryGenerationError("advisory generation failed after 3 attempts", attempts=3)
    assert advisory.attempts == 3
    assert isinstance(advisory, CrossArbitrageError)


def test_exception_inheritance():
    """All custom exceptions inherit from the base exception."""
    exceptions = [
        ConfigurationError("test"),
        ValidationError("test"),
        ExchangeError("test"),
        DataError("test"),
        NetworkError("test"),
        RetryExhaustedError("test", attempts=1),
        PersistenceError("test"),
        AdvisoryGenerationError("test"),
    ]
    for exc in exceptions:
        assert isinstance(exc, CrossArbitrageError)
        assert isinstance(exc, Exception)


def test_exception_raising():
    with pytest.raises(UnknownPairError) as exc_info:
        raise UnknownPairError("Pair not listed", exchange="MEXC", symbol="XYZUSDT")

    assert exc_info.value.exchange == "MEXC"
    assert str(exc_info.value) == "Pair not listed"
