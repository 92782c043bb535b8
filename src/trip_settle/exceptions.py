"""Custom exceptions for TripSettle."""

from decimal import Decimal


class TripSettleError(Exception):
    """Base exception for all TripSettle errors."""

    pass


class ConfigurationError(TripSettleError):
    """Raised when configuration is invalid or missing."""

    pass


class UnsupportedCurrencyError(TripSettleError):
    """Raised when a currency code is unknown or absent from a rate snapshot."""

    def __init__(self, currency: str, message: str | None = None):
        self.currency = currency
        super().__init__(
            message
            or f"Currency '{currency}' is not supported. "
            f"Refresh exchange rates or choose a different currency."
        )


class CurrencyMismatchError(TripSettleError):
    """Raised when combining Money values of different currencies."""

    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right
        super().__init__(f"Cannot combine amounts in {left} and {right}")


class RateFetchError(TripSettleError):
    """Raised when live exchange rates cannot be fetched or decoded."""

    pass


class InvalidGroupStateError(TripSettleError):
    """Raised when a group snapshot is internally inconsistent."""

    pass


class MixedCurrencyError(InvalidGroupStateError):
    """Raised when raw amounts in different currencies would be aggregated."""

    def __init__(self, currencies: list[str]):
        self.currencies = currencies
        super().__init__(
            f"Expenses span several currencies ({', '.join(currencies)}); "
            f"aggregate per currency and normalize before combining"
        )


class InvalidSettlementAmountError(TripSettleError):
    """Raised when a settlement is recorded with an unacceptable amount."""

    def __init__(self, amount: Decimal, suggested: Decimal, message: str | None = None):
        self.amount = amount
        self.suggested = suggested
        super().__init__(
            message
            or f"Settlement amount {amount} must be greater than zero "
            f"and at most the suggested {suggested}"
        )
