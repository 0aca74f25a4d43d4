"""
Settlement Error Taxonomy

Every way a settlement computation can fail is one of a small, closed set of
kinds. Each kind has its own exception class so callers can either catch the
specific class or switch on ``error.kind`` from the common base.

All of them are fail-fast and non-retryable: the computation aborts and the
error names the offending expense or user.
"""

import enum
from typing import Optional


class SettlementErrorKind(str, enum.Enum):
    inconsistent_expense = "inconsistent_expense"
    unknown_member = "unknown_member"
    invariant_violation = "invariant_violation"


class SettlementError(Exception):
    """Base class for settlement engine failures"""

    kind: SettlementErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InconsistentExpenseError(SettlementError):
    """An expense whose shares do not add up, or whose amounts are malformed"""

    kind = SettlementErrorKind.inconsistent_expense

    def __init__(self, expense_id: str, reason: str):
        super().__init__(f"Expense {expense_id} is inconsistent: {reason}")
        self.expense_id = expense_id
        self.reason = reason


class UnknownMemberError(SettlementError):
    """An expense references a payer or debtor who is not a group member"""

    kind = SettlementErrorKind.unknown_member

    def __init__(self, user_id: str, expense_id: Optional[str] = None):
        message = f"User {user_id} is not a member of this group"
        if expense_id is not None:
            message += f" (referenced by expense {expense_id})"
        super().__init__(message)
        self.user_id = user_id
        self.expense_id = expense_id


class InvariantViolationError(SettlementError):
    """Internal consistency check failed; always a data or programming bug"""

    kind = SettlementErrorKind.invariant_violation

    def __init__(self, detail: str, user_id: Optional[str] = None):
        super().__init__(f"Settlement invariant violated: {detail}")
        self.detail = detail
        self.user_id = user_id
