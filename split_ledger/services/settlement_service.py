import logging
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Session
from typing import Iterable, List, Optional
from split_ledger.config import get_settings
from split_ledger.schemas.ledger_schema import Expense
from split_ledger.schemas.settlement_schema import (
    MemberBalance, MemberLookup, MemberSummary, SettlementReport, SettlementTransaction
)
from split_ledger.utils.balance_calculator import compute_balances, to_balance_records
from split_ledger.utils.debt_simplifier import apply_transactions, simplify
from split_ledger.utils.errors import InconsistentExpenseError, InvariantViolationError, UnknownMemberError

logger = logging.getLogger(__name__)


def validate_membership(group_id: str, expenses: Iterable[Expense], member_lookup: MemberLookup) -> None:
    """
    Check every payer and debtor against the group's membership.

    Raises:
        InconsistentExpenseError: If an expense belongs to another group
        UnknownMemberError: For the first payer or debtor who is not a member
    """
    for expense in expenses:
        if expense.group_id != group_id:
            raise InconsistentExpenseError(expense.id, f"belongs to group {expense.group_id}, not {group_id}")

        if member_lookup(expense.payer_id) is None:
            raise UnknownMemberError(expense.payer_id, expense.id)
        for share in expense.shares:
            if member_lookup(share.debtor_id) is None:
                raise UnknownMemberError(share.debtor_id, expense.id)


def _resolve(member_lookup: MemberLookup, user_id: str) -> MemberSummary:
    member = member_lookup(user_id)
    if member is None:
        # Every id reaching here was validated against the same lookup
        raise InvariantViolationError(f"member {user_id} disappeared during settlement", user_id)
    return member


def build_report(
    group_id: str,
    expenses: List[Expense],
    member_lookup: MemberLookup,
    as_of: Optional[datetime] = None,
    minor_unit: Optional[Decimal] = None
) -> SettlementReport:
    """
    Compute balances and settlement transactions for a group.

    Pipeline:
        1. Validate all payers and debtors against member_lookup
        2. Fold expenses into net balances (BalanceCalculator)
        3. Reduce balances to transactions (DebtSimplifier)
        4. Resolve user ids to display-safe member summaries

    Args:
        group_id: The group being settled
        expenses: A consistent snapshot of the group's expenses
        member_lookup: Returns a MemberSummary for current members, None otherwise
        as_of: Cut-off the expenses were selected with, echoed in the report
        minor_unit: Smallest currency unit (default: from settings)

    Returns:
        SettlementReport with balances ordered by user id and transactions in
        the order the simplifier produced them

    Raises:
        UnknownMemberError: An expense references a non-member
        InconsistentExpenseError: An expense's shares do not add up
        InvariantViolationError: Simplification left a residual balance
    """
    if minor_unit is None:
        minor_unit = get_settings().currency_minor_unit

    validate_membership(group_id, expenses, member_lookup)

    balances = compute_balances(expenses, minor_unit)
    total = sum(balances.values(), Decimal("0"))
    if total != 0:
        raise InvariantViolationError(f"balances of group {group_id} sum to {total}, not zero")

    transactions = simplify(balances)

    residual = {user_id: amount for user_id, amount in apply_transactions(balances, transactions).items() if amount != 0}
    if residual:
        user_id = sorted(residual)[0]
        raise InvariantViolationError(f"{user_id} left with {residual[user_id]} after settlement", user_id)

    report = SettlementReport(
        group_id=group_id,
        as_of=as_of,
        balances=[
            MemberBalance(user_id=balance.user_id, amount=balance.amount,
                          member=_resolve(member_lookup, balance.user_id))
            for balance in to_balance_records(balances)
        ],
        transactions=[
            SettlementTransaction(
                debtor_id=transaction.debtor_id,
                creditor_id=transaction.creditor_id,
                amount=transaction.amount,
                debtor=_resolve(member_lookup, transaction.debtor_id),
                creditor=_resolve(member_lookup, transaction.creditor_id)
            )
            for transaction in transactions
        ]
    )

    logger.info(f"Settlement for group {group_id}: {len(expenses)} expenses, "
                f"{len(report.balances)} balances, {len(report.transactions)} transactions")
    return report


def compute_settlement(db: Session, group_id: str, as_of: Optional[datetime] = None) -> SettlementReport:
    """
    Settlement report for a group straight from the database.

    Expenses, shares and members are all read through the same session
    transaction, so the report reflects one snapshot of the group.
    """
    from .expense_service import load_ledger_expenses
    from .group_service import get_member_lookup

    expenses = load_ledger_expenses(db, group_id, as_of)
    member_lookup = get_member_lookup(db, group_id)
    return build_report(group_id, expenses, member_lookup, as_of)
