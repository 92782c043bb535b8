"""Service layer that composes rates, balances, netting and settlement records.

This module provides a higher-level API over the pure ledger and netting
functions. One call to plan() uses exactly one rate snapshot.
"""

import logging
import threading
from decimal import Decimal

from pydantic import BaseModel

from .config import Settings
from .currencies import parse_currency_code
from .db import Database
from .exceptions import InvalidGroupStateError
from .ledger import (
    compute_balances,
    compute_balances_by_currency,
    find_dangling_references,
    find_payment_mismatches,
)
from .models import (
    ExchangeRateSnapshot,
    GroupSnapshot,
    MemberBalance,
    Settlement,
    SettlementSuggestion,
)
from .money import Money
from .netting import generate_settlements
from .normalizer import normalize, normalize_balances
from .rates import ExchangeRateProvider
from .settlements import SettlementLedger

logger = logging.getLogger(__name__)


class SettlementPlan(BaseModel):
    """Balances and suggested transfers for one group, in one currency."""

    group_id: str
    currency: str
    balances: list[MemberBalance]
    suggestions: list[SettlementSuggestion]
    rates: ExchangeRateSnapshot | None = None  # None when no conversion was needed


class SettlementService:
    """Service for computing and recording group settlements."""

    def __init__(
        self,
        settings: Settings,
        database: Database | None = None,
        provider: ExchangeRateProvider | None = None,
    ):
        """Initialize the settlement service."""
        self.settings = settings
        self.db = database
        self.provider = provider or ExchangeRateProvider.from_settings(settings)
        self._ledgers: dict[str, SettlementLedger] = {}
        self._ledgers_lock = threading.Lock()

    def ledger_for(self, group_id: str) -> SettlementLedger:
        """Get the single settlement ledger that owns a group's history."""
        with self._ledgers_lock:
            ledger = self._ledgers.get(group_id)
            if ledger is None:
                ledger = SettlementLedger(group_id, store=self.db)
                self._ledgers[group_id] = ledger
            return ledger

    def check_group_state(self, group: GroupSnapshot) -> list[tuple[str, str]]:
        """
        Report inconsistencies in a group snapshot.

        Dangling member references are logged and tolerated, unless
        strict_group_state is enabled.

        Returns:
            Dangling (expense_id, member_id) references

        Raises:
            InvalidGroupStateError: In strict mode, if any reference dangles
        """
        dangling = find_dangling_references(group.members, group.expenses)
        find_payment_mismatches(group.expenses)

        if dangling and self.settings.strict_group_state:
            details = ", ".join(f"{m} in expense {e}" for e, m in dangling)
            raise InvalidGroupStateError(
                f"Group {group.id} references members outside its roster: {details}"
            )

        return dangling

    def plan(self, group: GroupSnapshot, currency: str | None = None) -> SettlementPlan:
        """
        Compute balances and suggested transfers for a group.

        Single-currency groups are netted directly without touching exchange
        rates. Mixed-currency groups are aggregated per currency, then
        normalized into the target currency with one snapshot.

        Args:
            group: The group snapshot
            currency: Target currency; defaults to the group currency

        Returns:
            The settlement plan

        Raises:
            UnsupportedCurrencyError: If a currency cannot be converted
            InvalidGroupStateError: In strict mode, on dangling references
        """
        target = parse_currency_code(currency or group.currency)
        self.check_group_state(group)

        rates = None
        if not group.currencies or group.currencies == [target]:
            balances = compute_balances(group.members, group.expenses)
        else:
            rates = self.provider.get_rates()
            per_currency = compute_balances_by_currency(group.members, group.expenses)
            balances = normalize_balances(per_currency, target, rates)
            logger.info(
                f"Normalized balances from {', '.join(per_currency)} to {target} "
                f"using {rates.source} rates as of {rates.as_of}"
            )

        suggestions = generate_settlements(balances, target)

        logger.info(
            f"Group {group.id}: {len(balances)} balances, "
            f"{len(suggestions)} suggested transfers in {target}"
        )

        return SettlementPlan(
            group_id=group.id,
            currency=target,
            balances=balances,
            suggestions=suggestions,
            rates=rates,
        )

    def record_settlement(
        self,
        group_id: str,
        suggestion: SettlementSuggestion,
        amount: Decimal | None = None,
        note: str | None = None,
    ) -> Settlement:
        """
        Record a confirmed transfer, possibly for less than suggested.

        Raises:
            InvalidSettlementAmountError: If the amount is rejected
        """
        return self.ledger_for(group_id).record_settlement(suggestion, amount, note)

    def history(self, group_id: str) -> list[Settlement]:
        """Completed settlements for a group, newest first."""
        return self.ledger_for(group_id).history()

    def convert(
        self, amount: Decimal, from_currency: str, to_currency: str | None = None
    ) -> Money:
        """
        Convert an amount using the current rate snapshot.

        The target defaults to the configured display currency.

        Raises:
            UnsupportedCurrencyError: If a code is unknown or missing from the rates
        """
        from_code = parse_currency_code(from_currency)
        to_code = parse_currency_code(to_currency or self.settings.display_currency)
        money = Money(amount=amount, currency=from_code)
        if from_code == to_code:
            return money
        return normalize(money, from_code, to_code, self.provider.get_rates())
