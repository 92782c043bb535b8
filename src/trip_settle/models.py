"""Pydantic domain models for TripSettle."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .currencies import CurrencyCode
from .exceptions import UnsupportedCurrencyError


def new_id() -> str:
    """Generate an opaque record identifier."""
    return uuid4().hex


class RecordState(str, Enum):
    """Soft-delete state of a member or expense."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class ExpenseCategory(str, Enum):
    FOOD = "food"
    TRANSPORTATION = "transportation"
    ACCOMMODATION = "accommodation"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    OTHER = "other"


# ============================================================================
# Group Records
# ============================================================================


class Member(BaseModel):
    """A member of a travel group."""

    id: str = Field(default_factory=new_id)
    name: str
    group_id: str | None = None
    state: RecordState = RecordState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state is RecordState.ACTIVE


class Payment(BaseModel):
    """Money actually paid by one member toward an expense."""

    amount: Decimal
    payer_id: str
    expense_id: str | None = None


class Participant(BaseModel):
    """A member's allocated share of an expense."""

    member_id: str
    share_amount: Decimal
    expense_id: str | None = None


class Expense(BaseModel):
    """
    A shared expense.

    Payments are the source of truth for who paid. They are not required to
    sum to `amount`; see ledger.find_payment_mismatches.
    """

    id: str = Field(default_factory=new_id)
    amount: Decimal
    currency: CurrencyCode
    category: ExpenseCategory = ExpenseCategory.OTHER
    description: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    group_id: str | None = None
    state: RecordState = RecordState.ACTIVE
    payments: list[Payment] = Field(default_factory=list)
    participants: list[Participant] = Field(default_factory=list)

    @model_validator(mode="after")
    def _link_children(self) -> "Expense":
        # Link copies; the caller's Payment and Participant objects stay as given
        link = {"expense_id": self.id}
        self.payments = [
            p if p.expense_id is not None else p.model_copy(update=link)
            for p in self.payments
        ]
        self.participants = [
            p if p.expense_id is not None else p.model_copy(update=link)
            for p in self.participants
        ]
        return self

    @property
    def is_active(self) -> bool:
        return self.state is RecordState.ACTIVE

    @property
    def payments_total(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0"))

    @property
    def shares_total(self) -> Decimal:
        return sum((p.share_amount for p in self.participants), Decimal("0"))


class GroupSnapshot(BaseModel):
    """
    An already-materialized view of one group's records.

    Archived members and expenses are dropped when the snapshot is built,
    so everything downstream sees active records only.
    """

    id: str = Field(default_factory=new_id)
    name: str
    currency: CurrencyCode = "JPY"
    budget: Decimal | None = None
    members: list[Member] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    @field_validator("members")
    @classmethod
    def _active_members(cls, members: list[Member]) -> list[Member]:
        return [m for m in members if m.is_active]

    @field_validator("expenses")
    @classmethod
    def _active_expenses(cls, expenses: list[Expense]) -> list[Expense]:
        return [e for e in expenses if e.is_active]

    @property
    def currencies(self) -> list[str]:
        """Distinct expense currencies, in first-seen order."""
        return list(dict.fromkeys(e.currency for e in self.expenses))

    def member_name(self, member_id: str) -> str:
        for member in self.members:
            if member.id == member_id:
                return member.name
        return member_id


# ============================================================================
# Balances & Settlements
# ============================================================================


class MemberBalance(BaseModel):
    """
    A member's net position.

    Positive: the group owes this member. Negative: this member owes the group.
    """

    model_config = ConfigDict(frozen=True)

    member_id: str
    balance: Decimal


class SettlementSuggestion(BaseModel):
    """A proposed transfer from a debtor to a creditor."""

    model_config = ConfigDict(frozen=True)

    from_member_id: str
    to_member_id: str
    amount: Decimal
    currency: CurrencyCode


class Settlement(BaseModel):
    """A completed transfer. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    amount: Decimal
    currency: CurrencyCode
    payer_id: str
    receiver_id: str
    group_id: str
    created_at: datetime = Field(default_factory=datetime.now)
    settled_at: datetime | None = None
    completed: bool = False
    note: str | None = None


# ============================================================================
# Exchange Rates
# ============================================================================


class ExchangeRateSnapshot(BaseModel):
    """
    A set of rates relative to one base (quote) currency.

    Each rate is "units of currency per 1 unit of base". Snapshots are
    superseded by the next refresh, never mutated.
    """

    model_config = ConfigDict(frozen=True)

    base: str
    as_of: date
    rates: dict[str, Decimal]
    fetched_at: datetime = Field(default_factory=datetime.now)
    source: Literal["live", "fallback"] = "live"

    def rate_for(self, currency: str) -> Decimal:
        """
        Get the rate for a currency code.

        Raises:
            UnsupportedCurrencyError: If the code is absent from this snapshot
        """
        rate = self.rates.get(currency)
        if rate is None:
            raise UnsupportedCurrencyError(
                currency,
                f"Currency '{currency}' is not available in the exchange rates "
                f"as of {self.as_of}",
            )
        return rate

    def supports(self, currency: str) -> bool:
        return currency in self.rates
