from pydantic import BaseModel, ConfigDict
from typing import Callable, List, Optional
from datetime import datetime
from decimal import Decimal


class MemberSummary(BaseModel):
    """Display-safe view of a group member"""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id: str
    display_name: str


# Returns None when the user is not currently a member of the group
MemberLookup = Callable[[str], Optional[MemberSummary]]


class MemberBalance(BaseModel):
    user_id: str
    amount: Decimal
    member: MemberSummary


class SettlementTransaction(BaseModel):
    debtor_id: str
    creditor_id: str
    amount: Decimal
    debtor: MemberSummary
    creditor: MemberSummary


class SettlementReport(BaseModel):
    group_id: str
    as_of: Optional[datetime] = None
    balances: List[MemberBalance] = []
    transactions: List[SettlementTransaction] = []
