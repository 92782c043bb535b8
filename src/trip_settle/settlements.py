"""Completed settlement records for a group.

Recording a settlement does not change the balances computed from
expenses. The next netting run will suggest the same transfers again until
the expenses themselves change.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from .exceptions import InvalidSettlementAmountError
from .models import Settlement, SettlementSuggestion

logger = logging.getLogger(__name__)


class SettlementStore(Protocol):
    """Persistence accessor for completed settlements."""

    def append(self, settlement: Settlement) -> None: ...

    def list_for_group(self, group_id: str) -> list[Settlement]: ...


class SettlementLedger:
    """Append-only history of completed settlements for one group."""

    def __init__(
        self,
        group_id: str,
        store: SettlementStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the ledger, loading any history already in the store.

        Args:
            group_id: The group this ledger owns
            store: Optional persistence for appended settlements
            clock: Source of the settled timestamp
        """
        self.group_id = group_id
        self.store = store
        self.clock = clock
        self._lock = threading.Lock()
        self._settlements: list[Settlement] = (
            list(store.list_for_group(group_id)) if store else []
        )

    def record_settlement(
        self,
        suggestion: SettlementSuggestion,
        amount: Decimal | None = None,
        note: str | None = None,
    ) -> Settlement:
        """
        Record a suggestion as paid, in full or in part.

        Args:
            suggestion: The transfer being confirmed
            amount: Amount actually transferred; defaults to the suggested amount
            note: Optional free-text note

        Returns:
            The recorded settlement

        Raises:
            InvalidSettlementAmountError: If amount is not a finite positive
                number or exceeds the suggested amount
        """
        paid = suggestion.amount if amount is None else amount

        # NaN would raise InvalidOperation in the comparisons below
        if not paid.is_finite():
            raise InvalidSettlementAmountError(
                paid,
                suggestion.amount,
                f"Settlement amount must be a finite number greater than zero "
                f"(got {paid})",
            )
        if paid <= 0:
            raise InvalidSettlementAmountError(
                paid,
                suggestion.amount,
                f"Settlement amount must be greater than zero (got {paid})",
            )
        if paid > suggestion.amount:
            raise InvalidSettlementAmountError(
                paid,
                suggestion.amount,
                f"Settlement amount {paid} {suggestion.currency} is more than "
                f"the suggested {suggestion.amount} {suggestion.currency}",
            )

        now = self.clock()
        settlement = Settlement(
            amount=paid,
            currency=suggestion.currency,
            payer_id=suggestion.from_member_id,
            receiver_id=suggestion.to_member_id,
            group_id=self.group_id,
            created_at=now,
            settled_at=now,
            completed=True,
            note=note,
        )

        with self._lock:
            if self.store is not None:
                self.store.append(settlement)
            self._settlements.append(settlement)

        partial = " (partial)" if paid < suggestion.amount else ""
        logger.info(
            f"Recorded settlement{partial}: {settlement.payer_id} -> "
            f"{settlement.receiver_id} {paid} {settlement.currency}"
        )

        return settlement

    def history(self) -> list[Settlement]:
        """All recorded settlements, most recently settled first."""
        with self._lock:
            settlements = list(self._settlements)
        return sorted(
            settlements,
            key=lambda s: s.settled_at or datetime.min,
            reverse=True,
        )

    def total_settled(self, payer_id: str, receiver_id: str) -> Decimal:
        """Sum of everything `payer_id` has paid `receiver_id`."""
        with self._lock:
            return sum(
                (
                    s.amount
                    for s in self._settlements
                    if s.payer_id == payer_id and s.receiver_id == receiver_id
                ),
                Decimal("0"),
            )
