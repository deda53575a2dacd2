from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.models import CategoryGroup, Money, Principal, Transaction, TransactionType


class TransactionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user: str
    type: TransactionType
    amount: Money
    category: str
    category_group: CategoryGroup | None = Field(default=None, alias="categoryGroup")
    note: str
    date: datetime
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionOut":
        return cls(
            id=transaction.id,
            user=transaction.owner,
            type=transaction.type,
            amount=transaction.amount,
            category=transaction.category,
            category_group=transaction.category_group,
            note=transaction.note,
            date=transaction.occurred_at,
            created_at=transaction.created_at,
        )


class MessageOut(BaseModel):
    message: str


class ClearedOut(MessageOut):
    deleted: int


class RegisterRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class AuthOut(BaseModel):
    token: str
    user: Principal


class MeOut(BaseModel):
    user: Principal
