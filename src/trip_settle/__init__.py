"""TripSettle - Shared trip expense balances and settlement suggestions."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .ledger import compute_balances, compute_balances_by_currency
from .models import (
    Expense,
    ExchangeRateSnapshot,
    GroupSnapshot,
    Member,
    MemberBalance,
    Participant,
    Payment,
    Settlement,
    SettlementSuggestion,
)
from .money import Money
from .netting import generate_settlements
from .normalizer import normalize
from .rates import ExchangeRateProvider
from .service import SettlementService
from .settlements import SettlementLedger

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "compute_balances",
    "compute_balances_by_currency",
    "Expense",
    "ExchangeRateSnapshot",
    "GroupSnapshot",
    "Member",
    "MemberBalance",
    "Participant",
    "Payment",
    "Settlement",
    "SettlementSuggestion",
    "Money",
    "generate_settlements",
    "normalize",
    "ExchangeRateProvider",
    "SettlementService",
    "SettlementLedger",
]
