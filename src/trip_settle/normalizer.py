"""Currency conversion through a single quote currency.

Every function here takes the rate snapshot explicitly. A computation that
converts several amounts must pass the same snapshot to each call so that
all cross-rates are consistent.
"""

from decimal import ROUND_HALF_UP, Decimal, localcontext

from .exceptions import CurrencyMismatchError
from .models import Expense, ExchangeRateSnapshot, MemberBalance, Participant, Payment
from .money import Money

# Never let an ambient decimal context drop below this precision mid-computation
MIN_PRECISION = 28


def convert_amount(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    snapshot: ExchangeRateSnapshot,
) -> Decimal:
    """
    Convert a bare decimal amount between currencies.

    Path: amount / rate[from] * rate[to]. No rounding is applied.

    Raises:
        UnsupportedCurrencyError: If either currency is missing from the snapshot
    """
    if from_currency == to_currency:
        return amount

    from_rate = snapshot.rate_for(from_currency)
    to_rate = snapshot.rate_for(to_currency)

    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, MIN_PRECISION)
        return amount / from_rate * to_rate


def normalize(
    amount: Money,
    from_currency: str,
    to_currency: str,
    snapshot: ExchangeRateSnapshot,
) -> Money:
    """
    Express `amount` in `to_currency`.

    When the currencies match the input is returned unchanged, without
    consulting the snapshot.

    Args:
        amount: The value to convert
        from_currency: Currency the amount is denominated in
        to_currency: Target currency
        snapshot: Rate snapshot for the whole computation

    Returns:
        Converted Money (unrounded)

    Raises:
        UnsupportedCurrencyError: If either currency is missing from the snapshot
        CurrencyMismatchError: If `amount` is tagged with a different currency
            than `from_currency`
    """
    if from_currency == to_currency:
        return amount

    if amount.currency != from_currency:
        raise CurrencyMismatchError(amount.currency, from_currency)

    converted = convert_amount(amount.amount, from_currency, to_currency, snapshot)
    return Money(amount=converted, currency=to_currency)


def exchange_rate(
    from_currency: str, to_currency: str, snapshot: ExchangeRateSnapshot
) -> Decimal:
    """Units of `to_currency` per 1 unit of `from_currency`."""
    if from_currency == to_currency:
        return Decimal("1")
    return convert_amount(Decimal("1"), from_currency, to_currency, snapshot)


def format_exchange_rate(
    from_currency: str, to_currency: str, snapshot: ExchangeRateSnapshot
) -> str:
    """Display string for a cross rate, e.g. '0.0067'."""
    rate = exchange_rate(from_currency, to_currency, snapshot)
    return str(rate.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))


def convert_expense(
    expense: Expense, to_currency: str, snapshot: ExchangeRateSnapshot
) -> Expense:
    """
    Return a copy of an expense with every amount expressed in `to_currency`.

    The original expense is left untouched.
    """
    if expense.currency == to_currency:
        return expense

    def conv(value: Decimal) -> Decimal:
        return convert_amount(value, expense.currency, to_currency, snapshot)

    return expense.model_copy(
        update={
            "amount": conv(expense.amount),
            "currency": to_currency,
            "payments": [
                Payment(amount=conv(p.amount), payer_id=p.payer_id, expense_id=p.expense_id)
                for p in expense.payments
            ],
            "participants": [
                Participant(
                    member_id=p.member_id,
                    share_amount=conv(p.share_amount),
                    expense_id=p.expense_id,
                )
                for p in expense.participants
            ],
        }
    )


def normalize_balances(
    balances_by_currency: dict[str, list[MemberBalance]],
    to_currency: str,
    snapshot: ExchangeRateSnapshot,
) -> list[MemberBalance]:
    """
    Fold per-currency balances into a single currency.

    Member order follows first appearance across the input. Values are left
    unrounded; round only when displaying.

    Raises:
        UnsupportedCurrencyError: If any currency is missing from the snapshot
    """
    totals: dict[str, Decimal] = {}
    for currency, balances in balances_by_currency.items():
        for balance in balances:
            converted = convert_amount(balance.balance, currency, to_currency, snapshot)
            totals[balance.member_id] = totals.get(balance.member_id, Decimal("0")) + converted

    return [
        MemberBalance(member_id=member_id, balance=total)
        for member_id, total in totals.items()
    ]
