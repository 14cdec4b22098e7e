"""
Exception hierarchy for the cross-exchange arbitrage evaluator.

Provides specific exception types for each failure category so callers can
decide which errors are retried, which degrade to a safe default and which
surface to the user.
"""

from typing import Any, Dict, Optional


class CrossArbitrageError(Exception):
    """Base exception for all cross-exchange arbitrage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(CrossArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class ValidationError(CrossArbitrageError):
    """Raised when validation of input data fails."""

    pass


class ExchangeError(CrossArbitrageError):
    """Raised when an exchange call fails or returns an error payload."""

    def __init__(
        self,
        message: str,
        exchange: Optional[str] = None,
        symbol: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.exchange = exchange
        self.symbol = symbol


class UnknownExchangeError(ExchangeError):
    """Raised when an exchange is outside the supported enumeration."""

    pass


class UnknownPairError(ExchangeError):
    """Raised when an exchange rejects the formatted trading pair."""

    pass


class DataError(CrossArbitrageError):
    """Raised when market data from an external source is malformed."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        symbol: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.source = source
        self.symbol = symbol


class InvalidPriceError(DataError):
    """Raised when a parsed price is not finite or is not strictly positive."""

    pass


class NetworkError(CrossArbitrageError):
    """Raised when network or connectivity issues occur."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class TransientServiceError(NetworkError):
    """Raised for retry-worthy failures such as HTTP 503 Service Unavailable."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = 503,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, endpoint, status_code, details)


class RetryExhaustedError(CrossArbitrageError):
    """Raised when a retried operation keeps failing after every attempt."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.attempts = attempts
        self.last_error = last_error


class PersistenceError(CrossArbitrageError):
    """Raised when the asset catalog store cannot be read or written."""

    def __init__(
        self,
        message: str,
        exchange: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.exchange = exchange


class AdvisoryGenerationError(CrossArbitrageError):
    """Raised when advisory commentary could not be produced."""

    def __init__(
        self,
        message: str,
        attempts: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.attempts = attempts
