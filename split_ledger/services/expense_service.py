import logging
from collections import defaultdict
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from fastapi import HTTPException
from typing import Dict, List, Optional
from decimal import Decimal
from split_ledger.config import get_settings
from split_ledger.models.expenses import Expense, ExpenseShare
from split_ledger.schemas.expense_schema import ExpenseCreate
from split_ledger.schemas import ledger_schema
from split_ledger.utils.balance_calculator import validate_expense
from split_ledger.utils.errors import InconsistentExpenseError

logger = logging.getLogger(__name__)


def to_utc(moment: datetime) -> datetime:
    """Timezone-aware UTC copy of moment; naive values are taken to be UTC already"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def create_expense(db: Session, group_id: str, expense_data: ExpenseCreate, created_by: str) -> Expense:
    """Create a new expense together with its shares"""
    from .group_service import is_group_member, get_group_members

    if not is_group_member(db, group_id, created_by):
        raise HTTPException(status_code=403, detail="Only group members can create expenses")

    paid_by = expense_data.paid_by or created_by
    group_members = {member.user_id for member in get_group_members(db, group_id)}

    if paid_by not in group_members:
        raise HTTPException(status_code=400, detail=f"Payer {paid_by} is not a member of this group")

    # Validate total shares equal expense amount, exactly
    total_shares = sum((share.share_amount for share in expense_data.shares), Decimal("0"))
    if total_shares != expense_data.amount:
        raise HTTPException(
            status_code=400,
            detail=f"Total shares ({total_shares}) must equal expense amount ({expense_data.amount})"
        )

    for share in expense_data.shares:
        if share.user_id not in group_members:
            raise HTTPException(status_code=400, detail=f"User {share.user_id} is not a member of this group")

    # Same rules the settlement engine applies when it reads the expense back
    record = ledger_schema.Expense(
        id="new",
        group_id=group_id,
        payer_id=paid_by,
        amount=expense_data.amount,
        shares=[
            ledger_schema.ExpenseShare(debtor_id=share.user_id, amount_owed=share.share_amount)
            for share in expense_data.shares
        ]
    )
    try:
        validate_expense(record, get_settings().currency_minor_unit)
    except InconsistentExpenseError as e:
        raise HTTPException(status_code=400, detail=e.reason)

    expense = Expense(
        group_id=group_id,
        title=expense_data.title,
        amount=expense_data.amount,
        paid_by=paid_by,
        description=expense_data.description,
        date=to_utc(expense_data.date)
    )
    db.add(expense)
    db.flush()

    for share_data in expense_data.shares:
        db.add(ExpenseShare(
            expense_id=expense.id,
            user_id=share_data.user_id,
            share_amount=share_data.share_amount
        ))

    db.commit()
    db.refresh(expense)
    logger.info(f"Expense {expense.id} of {expense.amount} created in group {group_id} "
                f"with {len(expense_data.shares)} shares")
    return expense


def get_expense(db: Session, expense_id: str) -> Optional[Expense]:
    """Get an expense by ID"""
    return db.query(Expense).filter(Expense.id == expense_id).first()


def get_group_expenses(db: Session, group_id: str, as_of: Optional[datetime] = None) -> List[Expense]:
    """Get a group's expenses, oldest first, optionally only those dated up to as_of"""
    query = db.query(Expense).filter(Expense.group_id == group_id)
    if as_of is not None:
        query = query.filter(Expense.date <= to_utc(as_of))
    return query.order_by(Expense.date, Expense.created_at, Expense.id).all()


def get_expense_shares(db: Session, expense_id: str) -> List[ExpenseShare]:
    """Get all shares for an expense"""
    return db.query(ExpenseShare).filter(ExpenseShare.expense_id == expense_id).all()


def delete_expense(db: Session, expense_id: str, user_id: str):
    """Delete an expense (payer or admin only)"""
    from .group_service import is_group_admin

    expense = get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")

    is_admin = is_group_admin(db, expense.group_id, user_id)
    if expense.paid_by != user_id and not is_admin:
        raise HTTPException(status_code=403, detail="Only the payer or a group admin can delete an expense")

    db.query(ExpenseShare).filter(ExpenseShare.expense_id == expense_id).delete()
    db.delete(expense)
    db.commit()
    logger.info(f"Expense {expense_id} deleted by {user_id}")


def load_ledger_expenses(db: Session, group_id: str, as_of: Optional[datetime] = None) -> List[ledger_schema.Expense]:
    """
    Load a group's expenses as immutable ledger records.

    Expenses and their shares are fetched with two queries and joined in
    memory; each resulting record owns its shares by value.

    Args:
        db: Database session
        group_id: Group to load
        as_of: If given, only expenses dated at or before this moment

    Returns:
        List of ledger_schema.Expense, oldest first
    """
    expenses = get_group_expenses(db, group_id, as_of)
    if not expenses:
        return []

    shares_by_expense: Dict[str, List[ExpenseShare]] = defaultdict(list)
    shares = db.query(ExpenseShare).filter(
        ExpenseShare.expense_id.in_([expense.id for expense in expenses])
    ).order_by(ExpenseShare.user_id, ExpenseShare.id).all()
    for share in shares:
        shares_by_expense[share.expense_id].append(share)

    return [
        ledger_schema.Expense(
            id=expense.id,
            group_id=expense.group_id,
            payer_id=expense.paid_by,
            amount=Decimal(str(expense.amount)),
            shares=[
                ledger_schema.ExpenseShare(debtor_id=share.user_id, amount_owed=Decimal(str(share.share_amount)))
                for share in shares_by_expense[expense.id]
            ]
        )
        for expense in expenses
    ]
