"""Core balance aggregation from group expense records."""

import logging
from collections import Counter
from collections.abc import Iterable
from decimal import Decimal

from .exceptions import MixedCurrencyError
from .models import Expense, ExchangeRateSnapshot, GroupSnapshot, Member, MemberBalance
from .normalizer import convert_amount

logger = logging.getLogger(__name__)


def _active_expenses(expenses: Iterable[Expense]) -> list[Expense]:
    return [e for e in expenses if e.is_active]


def _aggregate(
    members: Iterable[Member], expenses: Iterable[Expense]
) -> list[MemberBalance]:
    # Roster order is preserved; dict insertion order does the work
    balances: dict[str, Decimal] = {m.id: Decimal("0") for m in members if m.is_active}

    for expense in expenses:
        for payment in expense.payments:
            if payment.payer_id in balances:
                balances[payment.payer_id] += payment.amount
        for participant in expense.participants:
            if participant.member_id in balances:
                balances[participant.member_id] -= participant.share_amount

    return [
        MemberBalance(member_id=member_id, balance=balance)
        for member_id, balance in balances.items()
    ]


def compute_balances(
    members: Iterable[Member], expenses: Iterable[Expense]
) -> list[MemberBalance]:
    """
    Compute one net balance per active member.

    Steps:
    1. Every active member starts at zero (members with no activity included)
    2. For each active expense, credit each payer with their payment
    3. Debit each participant with their share

    Payments or shares that reference a member outside the active roster are
    skipped. This is deliberate leniency; use find_dangling_references to
    surface them.

    Raw amounts in different currencies are never added together. If the
    active expenses span several currencies, only the dominant one (see
    dominant_currency) is aggregated and the rest are skipped with a
    warning. Use compute_balances_by_currency and normalize the results to
    include every currency.

    Args:
        members: Group roster
        expenses: Expenses, expected to share one currency

    Returns:
        Balances in roster order
    """
    members = list(members)
    active = _active_expenses(expenses)

    currency = dominant_currency(active)
    included = [e for e in active if e.currency == currency]
    if len(included) < len(active):
        excluded = sorted({e.currency for e in active} - {currency})
        logger.warning(
            f"Expenses span several currencies; aggregating {currency} only and "
            f"skipping {len(active) - len(included)} expenses in "
            f"{', '.join(excluded)}"
        )

    return _aggregate(members, included)


def dominant_currency(expenses: Iterable[Expense]) -> str | None:
    """
    The currency used by the most active expenses.

    Ties go to the alphabetically first code, so the result does not depend
    on expense order. Returns None when there are no active expenses.
    """
    counts = Counter(e.currency for e in _active_expenses(expenses))
    if not counts:
        return None
    return min(counts, key=lambda code: (-counts[code], code))


def compute_balances_by_currency(
    members: Iterable[Member], expenses: Iterable[Expense]
) -> dict[str, list[MemberBalance]]:
    """
    Compute balances separately for each currency used by active expenses.

    Args:
        members: Group roster
        expenses: Expenses in any mix of currencies

    Returns:
        Mapping of currency code to balances (roster order), in order of
        first appearance of each currency
    """
    members = list(members)
    grouped: dict[str, list[Expense]] = {}
    for expense in _active_expenses(expenses):
        grouped.setdefault(expense.currency, []).append(expense)

    return {
        currency: _aggregate(members, currency_expenses)
        for currency, currency_expenses in grouped.items()
    }


def total_paid(member_id: str, expenses: Iterable[Expense]) -> Decimal:
    """Sum of a member's payments across active expenses."""
    return sum(
        (
            payment.amount
            for expense in _active_expenses(expenses)
            for payment in expense.payments
            if payment.payer_id == member_id
        ),
        Decimal("0"),
    )


def total_owed(
    member_id: str, members: Iterable[Member], expenses: Iterable[Expense]
) -> Decimal:
    """
    How much a member still owes the group.

    Computed from compute_balances, so only the dominant currency counts
    when expenses are mixed.

    Returns:
        The debt as a positive amount, or zero if the member is a creditor
    """
    for balance in compute_balances(members, expenses):
        if balance.member_id == member_id:
            return max(Decimal("0"), -balance.balance)
    return Decimal("0")


def find_dangling_references(
    members: Iterable[Member], expenses: Iterable[Expense]
) -> list[tuple[str, str]]:
    """
    Find payments and shares that point at members outside the active roster.

    Args:
        members: Group roster
        expenses: Group expenses

    Returns:
        List of (expense_id, member_id) pairs, one per dangling reference
    """
    roster = {m.id for m in members if m.is_active}
    dangling = []
    for expense in _active_expenses(expenses):
        referenced = [p.payer_id for p in expense.payments] + [
            p.member_id for p in expense.participants
        ]
        for member_id in referenced:
            if member_id not in roster:
                dangling.append((expense.id, member_id))

    for expense_id, member_id in dangling:
        logger.warning(
            f"Expense {expense_id} references member {member_id} "
            f"who is not in the active roster; ignoring"
        )

    return dangling


def find_payment_mismatches(expenses: Iterable[Expense]) -> list[Expense]:
    """
    Find active expenses whose payments do not add up to the stated total.

    This is a warning, not an error: payments remain the source of truth.
    """
    mismatched = []
    for expense in _active_expenses(expenses):
        if expense.payments_total != expense.amount:
            logger.warning(
                f"Expense {expense.id} total is {expense.amount} {expense.currency} "
                f"but payments sum to {expense.payments_total}"
            )
            mismatched.append(expense)
    return mismatched


def total_expenses(
    group: GroupSnapshot, snapshot: ExchangeRateSnapshot | None = None
) -> Decimal:
    """
    Total of the group's active expenses in the group currency.

    Args:
        group: Group snapshot
        snapshot: Rates used for expenses recorded in other currencies

    Raises:
        MixedCurrencyError: If foreign-currency expenses exist and no
            snapshot is supplied
        UnsupportedCurrencyError: If a currency is missing from the snapshot
    """
    foreign = [c for c in group.currencies if c != group.currency]
    if foreign and snapshot is None:
        raise MixedCurrencyError([group.currency, *foreign])

    total = Decimal("0")
    for expense in group.expenses:
        if expense.currency == group.currency:
            total += expense.amount
        else:
            total += convert_amount(
                expense.amount, expense.currency, group.currency, snapshot
            )
    return total


def remaining_budget(
    group: GroupSnapshot, snapshot: ExchangeRateSnapshot | None = None
) -> Decimal | None:
    """Budget minus spend, or None when the group has no budget."""
    if group.budget is None:
        return None
    return group.budget - total_expenses(group, snapshot)


def is_over_budget(
    group: GroupSnapshot, snapshot: ExchangeRateSnapshot | None = None
) -> bool:
    remaining = remaining_budget(group, snapshot)
    return remaining is not None and remaining < 0


def split_evenly(
    amount: Decimal, member_ids: list[str], places: int = 2
) -> dict[str, Decimal]:
    """
    Divide an amount into equal shares rounded to `places` decimals.

    Any remainder left by rounding goes one minor unit at a time to the
    first members in the list, so the shares always sum to `amount`.

    Args:
        amount: Expense total, already expressed in `places` decimals
        member_ids: Participants, in the order that receives remainders
        places: Minor-unit count of the currency

    Returns:
        Mapping of member id to share

    Raises:
        ValueError: If `amount` is not finite or is finer than `places` decimals
    """
    unit = Decimal(1).scaleb(-places)
    if not amount.is_finite():
        raise ValueError(f"Amount {amount} is not a finite number")
    if amount.quantize(unit) != amount:
        raise ValueError(f"Amount {amount} has more than {places} decimal places")

    if not member_ids:
        return {}

    total_units = int((amount / unit).to_integral_value())
    base, remainder = divmod(total_units, len(member_ids))

    return {
        member_id: (base + (1 if i < remainder else 0)) * unit
        for i, member_id in enumerate(member_ids)
    }
