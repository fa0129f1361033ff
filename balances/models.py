from decimal import Decimal
from typing import NewType, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MemberId = NewType("MemberId", str)


class CamelModel(BaseModel):
    """Base for models exchanged with the client, which speaks camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Member(CamelModel):
    id: MemberId
    name: Optional[str] = None
    image_url: Optional[str] = None
    role: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "u1",
            "name": "Alice",
            "imageUrl": "https://example.com/alice.png",
            "role": "admin",
        }
    })


class Split(CamelModel):
    user_id: MemberId
    amount: Decimal
    paid: bool = False


class Expense(CamelModel):
    """An expense paid by one member and split into per-member shares.

    Fields other than the payer and splits (description, date, category...)
    are kept as-is so they can be echoed back to the client.
    """

    paid_by_user_id: MemberId
    splits: list[Split] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow", json_schema_extra={
        "example": {
            "paidByUserId": "u1",
            "description": "Dinner",
            "splits": [
                {"userId": "u1", "amount": 20.00, "paid": False},
                {"userId": "u2", "amount": 20.00, "paid": False},
                {"userId": "u3", "amount": 20.00, "paid": False},
            ],
        }
    })


class Settlement(CamelModel):
    paid_by_user_id: MemberId
    received_by_user_id: MemberId
    amount: Decimal

    model_config = ConfigDict(extra="allow", json_schema_extra={
        "example": {
            "paidByUserId": "u2",
            "receivedByUserId": "u1",
            "amount": 10.00,
        }
    })


class DebtTo(CamelModel):
    to: MemberId
    amount: Decimal


class DebtFrom(CamelModel):
    from_: MemberId = Field(..., alias="from")
    amount: Decimal


class BalanceRecord(CamelModel):
    id: MemberId
    name: Optional[str] = None
    image_url: Optional[str] = None
    role: Optional[str] = None
    total_balance: Decimal
    owes: list[DebtTo] = Field(default_factory=list)
    owed_by: list[DebtFrom] = Field(default_factory=list)


class GroupInfo(CamelModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None


class GroupBalancesRequest(CamelModel):
    group: GroupInfo
    members: list[Member]
    expenses: list[Expense] = Field(default_factory=list)
    settlements: list[Settlement] = Field(default_factory=list)


class GroupBalancesResponse(CamelModel):
    group: GroupInfo
    members: list[Member]
    expenses: list[Expense]
    settlements: list[Settlement]
    balances: list[BalanceRecord]
    user_lookup_map: dict[MemberId, Member]
