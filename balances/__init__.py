"""
Shared-Expense Balance Engine

This module provides:
- Net balance per member (positive = is owed, negative = owes)
- Directed pairwise ledger of who owes whom
- Optional netting of opposite debts between the same two members
- Member-centric balance records for the client
"""

from .models import (
    MemberId,
    Member,
    Split,
    Expense,
    Settlement,
    BalanceRecord,
)
from .service import (
    BalanceService,
    BalanceServiceError,
    UnknownMemberError,
    NegativeAmountError,
    InvalidAmountError,
    DuplicateMemberError,
    NetTotals,
    PairwiseLedger,
    accumulate,
    net_pairwise,
    present,
)

__all__ = [
    "MemberId",
    "Member",
    "Split",
    "Expense",
    "Settlement",
    "BalanceRecord",
    "BalanceService",
    "BalanceServiceError",
    "UnknownMemberError",
    "NegativeAmountError",
    "InvalidAmountError",
    "DuplicateMemberError",
    "NetTotals",
    "PairwiseLedger",
    "accumulate",
    "net_pairwise",
    "present",
]
