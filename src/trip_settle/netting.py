"""Greedy bilateral debt netting."""

import logging
from decimal import Decimal

from .models import MemberBalance, SettlementSuggestion

logger = logging.getLogger(__name__)


def generate_settlements(
    balances: list[MemberBalance], currency: str
) -> list[SettlementSuggestion]:
    """
    Turn signed balances into a short list of debtor -> creditor transfers.

    Steps:
    1. Split into creditors (balance > 0) and debtors (balance < 0)
    2. Sort creditors largest first and debtors most negative first; ties
       keep input order
    3. Walk both lists, each time moving min(creditor, |debtor|) from the
       current debtor to the current creditor
    4. Move past a creditor once it is covered, and past a debtor once it
       is cleared

    At most (#creditors + #debtors - 1) transfers are produced. When the
    balances do not sum to exactly zero, the side with the larger total keeps
    an unmatched remainder. It is logged, not reassigned.

    Args:
        balances: Net balances, all in `currency`
        currency: Currency code stamped on every suggestion

    Returns:
        Suggested transfers in matching order; empty when there is nobody
        to pay or nobody to receive
    """
    creditors = sorted(
        (b for b in balances if b.balance > 0), key=lambda b: b.balance, reverse=True
    )
    debtors = sorted((b for b in balances if b.balance < 0), key=lambda b: b.balance)

    # Working copies of what is still outstanding
    credit_left = [c.balance for c in creditors]
    debt_left = [d.balance for d in debtors]

    suggestions = []
    ci = di = 0
    while ci < len(creditors) and di < len(debtors):
        amount = min(credit_left[ci], abs(debt_left[di]))

        if amount > 0:
            suggestions.append(
                SettlementSuggestion(
                    from_member_id=debtors[di].member_id,
                    to_member_id=creditors[ci].member_id,
                    amount=amount,
                    currency=currency,
                )
            )
            credit_left[ci] -= amount
            debt_left[di] += amount

        if credit_left[ci] <= 0:
            ci += 1
        if debt_left[di] >= 0:
            di += 1

    residual = sum(credit_left[ci:], Decimal("0")) + sum(debt_left[di:], Decimal("0"))
    if residual != 0:
        logger.warning(
            f"Balances do not net to zero; {residual} {currency} left unmatched "
            f"after {len(suggestions)} transfers"
        )

    logger.debug(
        f"Netted {len(creditors)} creditors and {len(debtors)} debtors "
        f"into {len(suggestions)} transfers"
    )

    return [s for s in suggestions if s.amount > 0]


def unmatched_remainder(balances: list[MemberBalance]) -> Decimal:
    """
    Net amount that netting cannot assign.

    Positive means creditors are left partly unpaid; negative means debtors
    keep some debt with nobody to pay it to.
    """
    return sum((b.balance for b in balances), Decimal("0"))
