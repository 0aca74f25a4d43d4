from pydantic import BaseModel, ConfigDict, field_validator
from typing import Tuple
from decimal import Decimal


def _reject_float(value):
    # Binary floats cannot represent cents exactly
    if isinstance(value, float):
        raise ValueError("Monetary amounts must be Decimal, int or str, not float")
    return value


class ExpenseShare(BaseModel):
    model_config = ConfigDict(frozen=True)

    debtor_id: str
    amount_owed: Decimal

    @field_validator("amount_owed", mode="before")
    @classmethod
    def reject_float(cls, value):
        return _reject_float(value)


class Expense(BaseModel):
    """An expense as the settlement engine sees it; shares are owned by value"""
    model_config = ConfigDict(frozen=True)

    id: str
    group_id: str
    payer_id: str
    amount: Decimal
    shares: Tuple[ExpenseShare, ...] = ()

    @field_validator("amount", mode="before")
    @classmethod
    def reject_float(cls, value):
        return _reject_float(value)


class Balance(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    amount: Decimal


class Transaction(BaseModel):
    """A suggested payment from a debtor to a creditor"""
    model_config = ConfigDict(frozen=True)

    debtor_id: str
    creditor_id: str
    amount: Decimal
