"""Tests for recording completed settlements."""

import threading
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from trip_settle.db import Database
from trip_settle.exceptions import InvalidSettlementAmountError
from trip_settle.ledger import compute_balances
from trip_settle.models import Expense, Member, Participant, Payment, SettlementSuggestion
from trip_settle.netting import generate_settlements
from trip_settle.settlements import SettlementLedger


class StepClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self):
        self.current = datetime(2025, 9, 22, 9, 0, 0)

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


@pytest.fixture
def mock_db(tmp_path):
    """Create a temporary database."""
    db_path = tmp_path / "test.db"
    db = Database(db_path)
    yield db
    db.close()


@pytest.fixture
def suggestion():
    return SettlementSuggestion(
        from_member_id="bob", to_member_id="alice", amount=Decimal("1000"), currency="JPY"
    )


class TestRecordSettlement:
    """Tests for SettlementLedger.record_settlement."""

    def test_full_amount_by_default(self, suggestion):
        ledger = SettlementLedger("g1")

        settlement = ledger.record_settlement(suggestion)

        assert settlement.amount == Decimal("1000")
        assert settlement.currency == "JPY"
        assert settlement.payer_id == "bob"
        assert settlement.receiver_id == "alice"
        assert settlement.group_id == "g1"
        assert settlement.completed
        assert settlement.settled_at is not None

    def test_partial_amount_is_kept_exactly(self, suggestion):
        ledger = SettlementLedger("g1")

        settlement = ledger.record_settlement(suggestion, amount=Decimal("400"), note="cash")

        assert settlement.amount == Decimal("400")
        assert settlement.note == "cash"
        assert ledger.history()[0].amount == Decimal("400")

    def test_exact_suggested_amount_allowed(self, suggestion):
        ledger = SettlementLedger("g1")
        assert ledger.record_settlement(suggestion, amount=Decimal("1000.00")).amount == Decimal("1000")

    @pytest.mark.parametrize(
        "amount",
        [
            Decimal("0"),
            Decimal("-5"),
            Decimal("NaN"),
            Decimal("Infinity"),
            Decimal("-Infinity"),
        ],
    )
    def test_non_positive_rejected(self, suggestion, amount):
        ledger = SettlementLedger("g1")

        with pytest.raises(InvalidSettlementAmountError, match="greater than zero"):
            ledger.record_settlement(suggestion, amount=amount)

        assert ledger.history() == []

    def test_more_than_suggested_rejected(self, suggestion):
        ledger = SettlementLedger("g1")

        with pytest.raises(InvalidSettlementAmountError) as exc_info:
            ledger.record_settlement(suggestion, amount=Decimal("1000.01"))

        assert exc_info.value.amount == Decimal("1000.01")
        assert exc_info.value.suggested == Decimal("1000")
        assert ledger.history() == []


class TestHistory:
    """Tests for history ordering and totals."""

    def test_newest_first(self, suggestion):
        ledger = SettlementLedger("g1", clock=StepClock())

        first = ledger.record_settlement(suggestion, amount=Decimal("100"))
        second = ledger.record_settlement(suggestion, amount=Decimal("200"))
        third = ledger.record_settlement(suggestion, amount=Decimal("300"))

        assert [s.id for s in ledger.history()] == [third.id, second.id, first.id]

    def test_total_settled(self, suggestion):
        ledger = SettlementLedger("g1")
        ledger.record_settlement(suggestion, amount=Decimal("250"))
        ledger.record_settlement(suggestion, amount=Decimal("250.50"))

        assert ledger.total_settled("bob", "alice") == Decimal("500.50")
        assert ledger.total_settled("alice", "bob") == Decimal("0")


class TestPersistence:
    """Tests for settlements stored in SQLite."""

    def test_reload_from_database(self, mock_db, suggestion):
        ledger = SettlementLedger("g1", store=mock_db, clock=StepClock())
        recorded = ledger.record_settlement(suggestion, amount=Decimal("333.33"), note="bank")

        reloaded = SettlementLedger("g1", store=mock_db)

        history = reloaded.history()
        assert len(history) == 1
        assert history[0] == recorded
        assert history[0].amount == Decimal("333.33")

    def test_groups_are_separate(self, mock_db, suggestion):
        SettlementLedger("g1", store=mock_db).record_settlement(suggestion)
        SettlementLedger("g2", store=mock_db).record_settlement(suggestion)

        assert len(mock_db.list_for_group("g1")) == 1
        assert len(mock_db.list_for_group("g2")) == 1
        assert mock_db.list_for_group("g3") == []

    def test_concurrent_appends_are_all_kept(self, mock_db, suggestion):
        ledger = SettlementLedger("g1", store=mock_db)
        barrier = threading.Barrier(10)

        def worker():
            barrier.wait()
            ledger.record_settlement(suggestion, amount=Decimal("10"))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(ledger.history()) == 10
        assert len(mock_db.list_for_group("g1")) == 10
        assert ledger.total_settled("bob", "alice") == Decimal("100")


def test_recording_does_not_change_suggestions():
    """Balances come from expenses only; a recorded payment is not netted in."""
    members = [Member(id="alice", name="Alice"), Member(id="bob", name="Bob")]
    expenses = [
        Expense(
            amount=Decimal("2000"),
            currency="JPY",
            payments=[Payment(payer_id="alice", amount=Decimal("2000"))],
            participants=[
                Participant(member_id="alice", share_amount=Decimal("1000")),
                Participant(member_id="bob", share_amount=Decimal("1000")),
            ],
        )
    ]
    before = generate_settlements(compute_balances(members, expenses), "JPY")

    ledger = SettlementLedger("g1")
    ledger.record_settlement(before[0])

    after = generate_settlements(compute_balances(members, expenses), "JPY")
    assert after == before
