from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class ExpenseShareBase(BaseModel):
    user_id: str
    share_amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class ExpenseShareCreate(ExpenseShareBase):
    pass


class ExpenseShareOut(ExpenseShareBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    expense_id: str


class ExpenseBase(BaseModel):
    title: str = Field(..., max_length=200)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    date: datetime


class ExpenseCreate(ExpenseBase):
    # Defaults to the authenticated user
    paid_by: Optional[str] = None
    shares: List[ExpenseShareCreate] = Field(..., min_length=1)


class ExpenseOut(ExpenseBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    paid_by: str
    created_at: datetime


class ExpenseWithShares(ExpenseOut):
    shares: List[ExpenseShareOut] = []
