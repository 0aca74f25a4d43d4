from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from split_ledger.api.dependencies import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.expense_service import (
    create_expense, get_expense, get_group_expenses, delete_expense, get_expense_shares
)
from split_ledger.services.group_service import get_group, is_group_member
from split_ledger.schemas.expense_schema import (
    ExpenseCreate, ExpenseOut, ExpenseWithShares, ExpenseShareOut
)

router = APIRouter(prefix="/expenses", tags=["expenses"])


def _with_shares(db: Session, expense) -> ExpenseWithShares:
    shares = get_expense_shares(db, expense.id)
    return ExpenseWithShares(
        id=expense.id,
        group_id=expense.group_id,
        title=expense.title,
        amount=expense.amount,
        paid_by=expense.paid_by,
        description=expense.description,
        date=expense.date,
        created_at=expense.created_at,
        shares=[ExpenseShareOut.model_validate(share) for share in shares]
    )


@router.post("/groups/{group_id}", response_model=ExpenseOut)
def create_new_expense(
    group_id: str,
    expense_data: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new expense with shares"""
    group = get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    return create_expense(db, group.id, expense_data, user_id)


@router.get("/groups/{group_id}", response_model=List[ExpenseWithShares])
def get_group_expenses_list(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all expenses for a group"""
    group = get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    if not is_group_member(db, group.id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this group")

    return [_with_shares(db, expense) for expense in get_group_expenses(db, group.id)]


@router.get("/{expense_id}", response_model=ExpenseWithShares)
def get_expense_details(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get an expense with its shares"""
    expense = get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")

    if not is_group_member(db, expense.group_id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this group")

    return _with_shares(db, expense)


@router.delete("/{expense_id}")
def delete_existing_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete an expense (payer or admin only)"""
    delete_expense(db, expense_id, user_id)
    return {"message": "Expense deleted"}
