"""Application-level exceptions."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class FetchError(AppError):
    """
    Base class for quote provider failures.

    Carries the symbol it applies to (None for the exchange rate) so that
    per-symbol failures can be reported next to the affected row.
    """

    code = "FETCH_ERROR"
    transient = True

    def __init__(self, message: str, symbol: Optional[str] = None):
        self.symbol = symbol
        super().__init__(message, code=self.code)


class FetchTimeout(FetchError):
    """The provider did not answer within the configured timeout."""

    code = "FETCH_TIMEOUT"


class FetchUnavailable(FetchError):
    """The provider is unreachable or rate-limiting us."""

    code = "FETCH_UNAVAILABLE"


class SymbolNotFound(FetchError):
    """The provider returned no data for the requested symbol."""

    code = "SYMBOL_NOT_FOUND"
    transient = False

    def __init__(self, symbol: str, message: Optional[str] = None):
        super().__init__(message or f"No market data for symbol: {symbol}", symbol=symbol)


class MalformedResponse(FetchError):
    """The provider answered but the payload failed numeric/shape validation."""

    code = "MALFORMED_RESPONSE"
