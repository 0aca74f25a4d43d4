"""
Debt Simplifier Module

Reduces a group's net balances to a short list of payments that settles
every debt.

The algorithm works by:
1. Dropping users whose balance is exactly zero
2. Separating the rest into creditors (positive balance) and debtors (negative balance)
3. Repeatedly matching the largest creditor with the largest debtor
4. Transferring the smaller of the two amounts, which zeroes at least one of them
5. Putting the other party back with whatever it has left

Ties in amount are broken by user id (ascending), so the same balances always
produce the same transactions in the same order.

Every step zeroes at least one party and the last step zeroes two, so for n
users with a non-zero balance the result has at most n - 1 transactions. This
is a greedy heuristic: it does not guarantee the smallest possible number of
transactions (finding that is NP-hard).

Time Complexity: O(n log n) with two binary heaps
Space Complexity: O(n)

Example Usage:
    from split_ledger.utils.debt_simplifier import simplify

    simplify({"A": Decimal("60"), "B": Decimal("-30"), "C": Decimal("-30")})
    # [Transaction(debtor_id='B', creditor_id='A', amount=Decimal('30')),
    #  Transaction(debtor_id='C', creditor_id='A', amount=Decimal('30'))]
"""

import heapq
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Tuple

from split_ledger.schemas.ledger_schema import Transaction
from split_ledger.utils.errors import InvariantViolationError

logger = logging.getLogger(__name__)

# Exact Decimal arithmetic leaves no rounding residue to tolerate
DEFAULT_TOLERANCE = Decimal("0")

# Heap entry: (-outstanding amount, user_id); the smallest entry is the largest amount
_HeapEntry = Tuple[Decimal, str]


def _build_heaps(balances: Mapping[str, Decimal]) -> Tuple[List[_HeapEntry], List[_HeapEntry]]:
    creditors: List[_HeapEntry] = []
    debtors: List[_HeapEntry] = []

    for user_id, balance in balances.items():
        if balance > 0:
            creditors.append((-balance, user_id))
        elif balance < 0:
            debtors.append((balance, user_id))  # already negative

    heapq.heapify(creditors)
    heapq.heapify(debtors)
    return creditors, debtors


def simplify(
    balances: Mapping[str, Decimal],
    tolerance: Decimal = DEFAULT_TOLERANCE
) -> List[Transaction]:
    """
    Compute settlement transactions for a balance map.

    Args:
        balances: Dictionary mapping user_id -> net_balance. Must sum to zero.
        tolerance: Largest residual balance accepted after matching (default: 0)

    Returns:
        List of Transaction records in the order they were matched

    Raises:
        InvariantViolationError: If a non-positive amount would be transferred,
            the loop runs past n - 1 transactions, or a balance is left over
            after matching (which is what a non-zero-sum input produces)

    Example:
        >>> simplify({"A": Decimal("50"), "B": Decimal("-50")})
        [Transaction(debtor_id='B', creditor_id='A', amount=Decimal('50'))]
    """
    creditors, debtors = _build_heaps(balances)
    max_transactions = max(len(creditors) + len(debtors) - 1, 0)

    transactions: List[Transaction] = []

    while creditors and debtors:
        credit_neg, creditor_id = heapq.heappop(creditors)
        debt_neg, debtor_id = heapq.heappop(debtors)

        credit = -credit_neg  # positive: amount owed to creditor
        debt = -debt_neg      # positive: amount debtor owes

        settled = min(credit, debt)
        if settled <= 0:
            raise InvariantViolationError(
                f"non-positive transfer {settled} from {debtor_id} to {creditor_id}", debtor_id
            )

        transactions.append(Transaction(debtor_id=debtor_id, creditor_id=creditor_id, amount=settled))
        if len(transactions) > max_transactions:
            raise InvariantViolationError(
                f"exceeded {max_transactions} transactions for {max_transactions + 1} balances"
            )

        logger.debug(f"Step {len(transactions)}: {debtor_id} (owes {debt}) pays "
                     f"{creditor_id} (owed {credit}) {settled}")

        remaining_credit = credit - settled
        remaining_debt = debt - settled

        if remaining_credit != 0:
            heapq.heappush(creditors, (-remaining_credit, creditor_id))
        if remaining_debt != 0:
            heapq.heappush(debtors, (-remaining_debt, debtor_id))

    for amount_neg, user_id in creditors:
        if -amount_neg > tolerance:
            raise InvariantViolationError(f"creditor {user_id} left with {-amount_neg} unsettled", user_id)
    for amount, user_id in debtors:
        if -amount > tolerance:
            raise InvariantViolationError(f"debtor {user_id} left with {amount} unsettled", user_id)

    logger.debug(f"Simplified {len(balances)} balances into {len(transactions)} transactions")
    return transactions


def apply_transactions(
    balances: Mapping[str, Decimal],
    transactions: Iterable[Transaction]
) -> Dict[str, Decimal]:
    """
    Apply settlement transactions to a balance map.

    A payment reduces what the creditor is owed and what the debtor owes, so
    applying the output of simplify() to its input leaves every balance at zero.

    Args:
        balances: Dictionary mapping user_id -> net_balance
        transactions: Payments to apply

    Returns:
        New dictionary with the resulting balances; the input is not modified
    """
    result = dict(balances)
    for transaction in transactions:
        result[transaction.creditor_id] = result.get(transaction.creditor_id, Decimal("0")) - transaction.amount
        result[transaction.debtor_id] = result.get(transaction.debtor_id, Decimal("0")) + transaction.amount
    return result
