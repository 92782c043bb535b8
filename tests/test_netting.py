"""Tests for greedy debt netting."""

import random
from decimal import Decimal

from trip_settle.models import MemberBalance
from trip_settle.netting import generate_settlements, unmatched_remainder


def balances(**values: str) -> list[MemberBalance]:
    return [MemberBalance(member_id=k, balance=Decimal(v)) for k, v in values.items()]


def transfers(suggestions) -> list[tuple[str, str, Decimal]]:
    return [(s.from_member_id, s.to_member_id, s.amount) for s in suggestions]


class TestGenerateSettlements:
    """Tests for generate_settlements."""

    def test_one_creditor_two_debtors(self):
        """Balances {1: +2000, 2: -1000, 3: -1000} settle in two transfers."""
        result = generate_settlements(balances(m1="2000", m2="-1000", m3="-1000"), "JPY")

        assert transfers(result) == [
            ("m2", "m1", Decimal("1000")),
            ("m3", "m1", Decimal("1000")),
        ]
        assert all(s.currency == "JPY" for s in result)

    def test_tie_break_keeps_creditor_input_order(self):
        """Equal creditors are paid in input order: C->A before C->B."""
        result = generate_settlements(balances(A="300", B="300", C="-600"), "JPY")

        assert transfers(result) == [
            ("C", "A", Decimal("300")),
            ("C", "B", Decimal("300")),
        ]

    def test_largest_creditor_and_debtor_matched_first(self):
        result = generate_settlements(
            balances(a="100", b="500", c="-200", d="-400"), "USD"
        )

        assert transfers(result) == [
            ("d", "b", Decimal("400")),
            ("c", "b", Decimal("100")),
            ("c", "a", Decimal("100")),
        ]

    def test_simultaneous_clear_advances_both(self):
        """When a pair cancels exactly, both cursors move on."""
        result = generate_settlements(balances(a="50", b="30", c="-50", d="-30"), "EUR")

        assert transfers(result) == [
            ("c", "a", Decimal("50")),
            ("d", "b", Decimal("30")),
        ]

    def test_zero_balances_ignored(self):
        result = generate_settlements(balances(a="0", b="10", c="-10", d="0"), "EUR")
        assert transfers(result) == [("c", "b", Decimal("10"))]

    def test_no_debtors(self):
        assert generate_settlements(balances(a="10", b="0"), "USD") == []

    def test_no_creditors(self):
        assert generate_settlements(balances(a="-10", b="0"), "USD") == []

    def test_empty(self):
        assert generate_settlements([], "USD") == []

    def test_does_not_mutate_input(self):
        original = balances(a="100", b="-60", c="-40")
        snapshot = list(original)

        generate_settlements(original, "USD")

        assert original == snapshot

    def test_coverage_and_size_bound_randomized(self):
        """Sum of transfers equals the positive total; count <= n - 1."""
        rng = random.Random(7)
        for _ in range(50):
            count = rng.randint(2, 12)
            values = [Decimal(rng.randint(-100000, 100000)) / 100 for _ in range(count - 1)]
            values.append(-sum(values))
            input_balances = [
                MemberBalance(member_id=f"m{i}", balance=v) for i, v in enumerate(values)
            ]

            result = generate_settlements(input_balances, "USD")

            positive_total = sum(v for v in values if v > 0)
            assert sum((s.amount for s in result), Decimal("0")) == positive_total
            nonzero = sum(1 for v in values if v != 0)
            assert len(result) <= max(nonzero - 1, 0)
            assert all(s.amount > 0 for s in result)

            # Applying every transfer clears all balances
            remaining = {b.member_id: b.balance for b in input_balances}
            for s in result:
                remaining[s.from_member_id] += s.amount
                remaining[s.to_member_id] -= s.amount
            assert all(v == 0 for v in remaining.values())


class TestRoundingResidue:
    """Balances that do not net to zero leave a documented remainder."""

    def test_creditor_surplus_left_unpaid(self, caplog):
        input_balances = balances(a="100.01", b="-100.00")

        result = generate_settlements(input_balances, "USD")

        assert transfers(result) == [("b", "a", Decimal("100.00"))]
        assert unmatched_remainder(input_balances) == Decimal("0.01")
        assert "left unmatched" in caplog.text

    def test_debtor_surplus_left_unassigned(self):
        input_balances = balances(a="50", b="-30", c="-20.5")

        result = generate_settlements(input_balances, "USD")

        assert transfers(result) == [
            ("b", "a", Decimal("30")),
            ("c", "a", Decimal("20")),
        ]
        assert unmatched_remainder(input_balances) == Decimal("-0.5")
