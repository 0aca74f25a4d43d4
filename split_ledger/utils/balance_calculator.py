"""
Balance Calculator Module

Folds a group's expenses into a net balance per member.

Net balance = total_paid - total_owed
- Positive balance: the member is owed money (creditor)
- Negative balance: the member owes money (debtor)

Every expense is re-validated before it is folded in. The expense service
already rejects malformed splits at write time, but balances are only as good
as the rows they are computed from, so a bad row aborts the whole computation
instead of silently skewing the result.

All arithmetic is exact Decimal arithmetic; nothing is rounded. For valid
input the balances therefore sum to exactly zero.

Example Usage:
    from split_ledger.utils.balance_calculator import compute_balances

    expenses = [
        Expense(id="e1", group_id="g1", payer_id="A", amount=Decimal("90"),
                shares=[ExpenseShare(debtor_id=u, amount_owed=Decimal("30"))
                        for u in ("A", "B", "C")]),
    ]

    compute_balances(expenses)
    # {'A': Decimal('60'), 'B': Decimal('-30'), 'C': Decimal('-30')}
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List

from split_ledger.schemas.ledger_schema import Balance, Expense
from split_ledger.utils.errors import InconsistentExpenseError

logger = logging.getLogger(__name__)

DEFAULT_MINOR_UNIT = Decimal("0.01")


def _check_whole_units(expense_id: str, label: str, value: Decimal, minor_unit: Decimal) -> None:
    try:
        remainder = value % minor_unit
    except InvalidOperation:
        # value / minor_unit needs more digits than the decimal context holds
        raise InconsistentExpenseError(
            expense_id, f"{label} is too large to count in units of {minor_unit}"
        ) from None
    if remainder != 0:
        raise InconsistentExpenseError(expense_id, f"{label} is not a multiple of {minor_unit}")


def validate_expense(expense: Expense, minor_unit: Decimal = DEFAULT_MINOR_UNIT) -> None:
    """
    Check that an expense can safely be folded into the ledger.

    Args:
        expense: The expense to check
        minor_unit: Smallest currency unit amounts must be a multiple of (default: 0.01)

    Raises:
        InconsistentExpenseError: If the amount is not positive, a share is
            negative, an amount is not a whole number of minor units, the
            expense has no shares, or the shares do not sum exactly to the amount

    Example:
        >>> shares = [ExpenseShare(debtor_id=u, amount_owed=Decimal("33.33")) for u in "ABC"]
        >>> validate_expense(Expense(id="e1", group_id="g", payer_id="A",
        ...                          amount=Decimal("100.00"), shares=shares))
        Traceback (most recent call last):
        InconsistentExpenseError: Expense e1 is inconsistent: shares sum to 99.99, expected 100.00
    """
    amount = expense.amount
    if not amount.is_finite() or amount <= 0:
        raise InconsistentExpenseError(expense.id, f"amount must be positive, got {amount}")
    _check_whole_units(expense.id, f"amount {amount}", amount, minor_unit)

    if not expense.shares:
        raise InconsistentExpenseError(expense.id, "expense has no shares")

    for share in expense.shares:
        owed = share.amount_owed
        if not owed.is_finite() or owed < 0:
            raise InconsistentExpenseError(
                expense.id, f"share of {share.debtor_id} must be non-negative, got {owed}"
            )
        _check_whole_units(expense.id, f"share of {share.debtor_id} ({owed})", owed, minor_unit)

    total_shares = sum((share.amount_owed for share in expense.shares), Decimal("0"))
    if total_shares != amount:
        raise InconsistentExpenseError(
            expense.id, f"shares sum to {total_shares}, expected {amount}"
        )


def compute_balances(
    expenses: Iterable[Expense],
    minor_unit: Decimal = DEFAULT_MINOR_UNIT
) -> Dict[str, Decimal]:
    """
    Calculate the net balance of every user referenced by the expenses.

    The payer is credited with the full amount and every debtor is charged
    their share. A payer who is also among the debtors is charged like anyone
    else, so their own share nets out.

    Args:
        expenses: The group's expenses
        minor_unit: Smallest currency unit (default: 0.01)

    Returns:
        Dictionary mapping user_id -> net_balance, in order of first appearance.
        Users whose balance nets to zero are kept with Decimal('0').

    Raises:
        InconsistentExpenseError: If any expense fails validate_expense()
    """
    balances: Dict[str, Decimal] = {}

    for expense in expenses:
        validate_expense(expense, minor_unit)

        balances[expense.payer_id] = balances.get(expense.payer_id, Decimal("0")) + expense.amount

        for share in expense.shares:
            balances[share.debtor_id] = balances.get(share.debtor_id, Decimal("0")) - share.amount_owed

        logger.debug(f"Folded expense {expense.id}: {expense.payer_id} paid {expense.amount} "
                     f"across {len(expense.shares)} shares")

    return balances


def to_balance_records(balances: Dict[str, Decimal]) -> List[Balance]:
    """Balance map as Balance records ordered by user id"""
    return [Balance(user_id=user_id, amount=amount) for user_id, amount in sorted(balances.items())]
