from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
from split_ledger.api.dependencies import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.group_service import get_group, is_group_member
from split_ledger.services.settlement_service import compute_settlement
from split_ledger.schemas.settlement_schema import MemberBalance, SettlementReport

router = APIRouter(prefix="/settlements", tags=["settlements"])


def _check_access(db: Session, group_id: str, user_id: str):
    group = get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    if not is_group_member(db, group.id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this group")


@router.get("/groups/{group_id}", response_model=SettlementReport)
def get_settlement_report(
    group_id: str,
    as_of: Optional[datetime] = Query(None, description="Only settle expenses dated up to this moment"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get balances and suggested payments for a group"""
    _check_access(db, group_id, user_id)
    return compute_settlement(db, group_id, as_of)


@router.get("/groups/{group_id}/balances", response_model=List[MemberBalance])
def get_group_balances(
    group_id: str,
    as_of: Optional[datetime] = Query(None, description="Only include expenses dated up to this moment"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get net balance of every member involved in the group's expenses"""
    _check_access(db, group_id, user_id)
    return compute_settlement(db, group_id, as_of).balances
