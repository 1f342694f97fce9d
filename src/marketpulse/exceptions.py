"""Custom exception classes for the MarketPulse application."""

from typing import Any, Dict, List, Optional


class MarketPulseError(Exception):
    """Base exception for MarketPulse application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidPositionError(MarketPulseError):
    """Exception for invalid position, watchlist or alert input."""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, str]] = None,
    ):
        super().__init__(
            message=message,
            details={"field_errors": field_errors or {}},
        )


class NotFoundError(MarketPulseError):
    """Exception for resource not found errors."""

    def __init__(self, resource: str, identifier: str):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(
            message=message,
            details={"resource": resource, "identifier": identifier},
        )


class QuoteFetchError(MarketPulseError):
    """Raised when no quote provider could serve a batch request."""

    def __init__(self, symbols: List[str], message: str):
        super().__init__(
            message=f"Quote fetch failed for {','.join(symbols)}: {message}",
            details={"symbols": list(symbols)},
        )
        self.symbols = list(symbols)


class PersistenceError(MarketPulseError):
    """Exception for remote backend insert, delete or select failures."""

    def __init__(self, operation: str, message: str):
        super().__init__(
            message=f"Persistence {operation} failed: {message}",
            details={"operation": operation},
        )
        self.operation = operation
