"""Currency-tagged exact decimal amounts."""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict

from .currencies import CurrencyCode, decimal_places, format_amount
from .exceptions import CurrencyMismatchError


class Money(BaseModel):
    """
    An exact amount in a single currency.

    Arithmetic never rounds. Call quantized() or format() only when the
    value is about to be displayed or stored in minor units.
    """

    model_config = ConfigDict(frozen=True)

    amount: Decimal
    currency: CurrencyCode

    @classmethod
    def zero(cls, currency: str) -> "Money":
        """A zero amount in the given currency."""
        return cls(amount=Decimal("0"), currency=currency)

    def _check_currency(self, other: "Money"):
        if other.currency != self.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> "Money":
        return Money(amount=-self.amount, currency=self.currency)

    def __abs__(self) -> "Money":
        return Money(amount=abs(self.amount), currency=self.currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def quantized(self) -> "Money":
        """Round to the currency's minor units using ROUND_HALF_UP."""
        exponent = Decimal(1).scaleb(-decimal_places(self.currency))
        return Money(
            amount=self.amount.quantize(exponent, rounding=ROUND_HALF_UP),
            currency=self.currency,
        )

    def to_minor_units(self) -> int:
        """
        Convert to an integer count of minor units (cents, sen, fils...).

        Returns:
            Amount in minor units, rounded with ROUND_HALF_UP
        """
        return int(self.quantized().amount.scaleb(decimal_places(self.currency)))

    def format(self) -> str:
        """Human-readable amount, e.g. '¥3,000' or '$12.50'."""
        return format_amount(self.amount, self.currency)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"
