"""
Unit Tests for the Debt Simplifier

Tests cover:
- Greedy largest-creditor / largest-debtor matching
- Deterministic tie-breaking by user id
- n - 1 transaction bound
- Settlement correctness (every balance driven to exactly zero)
- Invariant violations on non-zero-sum input
"""

import random
import pytest
from decimal import Decimal

from split_ledger.schemas.ledger_schema import Transaction
from split_ledger.utils.balance_calculator import compute_balances
from split_ledger.utils.debt_simplifier import apply_transactions, simplify
from split_ledger.utils.errors import InvariantViolationError, SettlementErrorKind
from split_ledger.tests.conftest import make_expense, verify_settlements_settle_debts


def nonzero_count(balances):
    return sum(1 for amount in balances.values() if amount != 0)


@pytest.mark.unit
class TestSimplify:
    """Test the simplify function."""

    def test_self_share_scenario(self):
        balances = compute_balances([make_expense("e1", "A", "100", {"A": "50", "B": "50"})])
        assert simplify(balances) == [
            Transaction(debtor_id="B", creditor_id="A", amount=Decimal("50"))
        ]

    def test_three_way_equal_split_scenario(self):
        balances = {"A": Decimal("60"), "B": Decimal("-30"), "C": Decimal("-30")}
        assert simplify(balances) == [
            Transaction(debtor_id="B", creditor_id="A", amount=Decimal("30")),
            Transaction(debtor_id="C", creditor_id="A", amount=Decimal("30")),
        ]

    def test_largest_debtor_settles_first(self):
        balances = {"A": Decimal("80"), "B": Decimal("-10"), "C": Decimal("-70")}
        assert simplify(balances) == [
            Transaction(debtor_id="C", creditor_id="A", amount=Decimal("70")),
            Transaction(debtor_id="B", creditor_id="A", amount=Decimal("10")),
        ]

    def test_sample_group(self, sample_balances):
        transactions = simplify(sample_balances)
        assert transactions == [
            Transaction(debtor_id="C", creditor_id="A", amount=Decimal("43.33")),
            Transaction(debtor_id="D", creditor_id="A", amount=Decimal("13.33")),
            Transaction(debtor_id="B", creditor_id="A", amount=Decimal("10.00")),
        ]
        verify_settlements_settle_debts(sample_balances, transactions)

    def test_partial_remainder_goes_back_into_ordering(self):
        """A creditor with credit left over is matched again in order."""
        balances = {
            "A": Decimal("50"), "B": Decimal("40"),
            "C": Decimal("-45"), "D": Decimal("-45"),
        }
        assert simplify(balances) == [
            Transaction(debtor_id="C", creditor_id="A", amount=Decimal("45")),
            Transaction(debtor_id="D", creditor_id="B", amount=Decimal("40")),
            Transaction(debtor_id="D", creditor_id="A", amount=Decimal("5")),
        ]

    def test_ties_broken_by_user_id(self):
        balances = {"z": Decimal("10"), "y": Decimal("10"), "b": Decimal("-10"), "a": Decimal("-10")}
        assert simplify(balances) == [
            Transaction(debtor_id="a", creditor_id="y", amount=Decimal("10")),
            Transaction(debtor_id="b", creditor_id="z", amount=Decimal("10")),
        ]

    def test_deterministic_regardless_of_input_order(self, sample_balances):
        reversed_balances = dict(reversed(list(sample_balances.items())))
        assert simplify(sample_balances) == simplify(sample_balances)
        assert simplify(sample_balances) == simplify(reversed_balances)

    def test_zero_balances_dropped(self):
        balances = {"A": Decimal("0"), "B": Decimal("5"), "C": Decimal("-5"), "D": Decimal("0.00")}
        transactions = simplify(balances)
        assert transactions == [Transaction(debtor_id="C", creditor_id="B", amount=Decimal("5"))]

    def test_empty_balances(self):
        assert simplify({}) == []

    def test_all_zero_balances(self):
        assert simplify({"A": Decimal("0"), "B": Decimal("0")}) == []

    def test_input_not_modified(self, sample_balances):
        snapshot = dict(sample_balances)
        simplify(sample_balances)
        assert sample_balances == snapshot


@pytest.mark.unit
class TestInvariantViolations:
    """Non-zero-sum input can never be settled and must fail loudly."""

    def test_unsettled_creditor(self):
        with pytest.raises(InvariantViolationError) as exc_info:
            simplify({"A": Decimal("50"), "B": Decimal("-40")})
        assert exc_info.value.user_id == "A"
        assert exc_info.value.kind is SettlementErrorKind.invariant_violation

    def test_unsettled_debtor(self):
        with pytest.raises(InvariantViolationError) as exc_info:
            simplify({"A": Decimal("50"), "B": Decimal("-30"), "C": Decimal("-30")})
        assert exc_info.value.user_id == "C"

    def test_only_creditors(self):
        with pytest.raises(InvariantViolationError):
            simplify({"A": Decimal("0.01")})

    def test_tolerance_accepts_small_residual(self):
        transactions = simplify({"A": Decimal("10.001"), "B": Decimal("-10")}, tolerance=Decimal("0.01"))
        assert transactions == [Transaction(debtor_id="B", creditor_id="A", amount=Decimal("10"))]


@pytest.mark.unit
class TestSettlementProperties:
    """Properties that must hold for any valid group."""

    @pytest.mark.parametrize("seed", range(25))
    def test_random_groups(self, seed):
        rng = random.Random(seed)
        users = [f"user{i:02d}" for i in range(rng.randint(2, 12))]

        expenses = []
        for index in range(rng.randint(1, 30)):
            debtors = rng.sample(users, rng.randint(1, len(users)))
            shares = {debtor: Decimal(rng.randint(0, 10000)) / 100 for debtor in debtors}
            amount = sum(shares.values(), Decimal("0"))
            if amount == 0:
                continue
            expenses.append(make_expense(f"e{index}", rng.choice(users), str(amount),
                                         {debtor: str(owed) for debtor, owed in shares.items()}))

        balances = compute_balances(expenses)
        assert sum(balances.values(), Decimal("0")) == 0

        transactions = simplify(balances)
        verify_settlements_settle_debts(balances, transactions)
        assert len(transactions) <= max(nonzero_count(balances) - 1, 0)
        assert simplify(balances) == transactions

    def test_apply_transactions_zeroes_balances(self, sample_balances):
        remaining = apply_transactions(sample_balances, simplify(sample_balances))
        assert all(amount == 0 for amount in remaining.values())

    def test_apply_transactions_direction(self):
        remaining = apply_transactions(
            {"A": Decimal("10"), "B": Decimal("-10")},
            [Transaction(debtor_id="B", creditor_id="A", amount=Decimal("4"))]
        )
        assert remaining == {"A": Decimal("6"), "B": Decimal("-6")}

    def test_large_group_bound(self):
        balances = {f"c{i:03d}": Decimal(i + 1) for i in range(100)}
        balances["sink"] = -sum(balances.values(), Decimal("0"))
        transactions = simplify(balances)
        assert len(transactions) == 100
        assert all(t.debtor_id == "sink" for t in transactions)
        verify_settlements_settle_debts(balances, transactions)
