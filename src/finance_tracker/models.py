from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

MAX_AMOUNT = Decimal("999999999999.99")

# Decimal internally, plain JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"
    savings = "savings"


class CategoryGroup(str, Enum):
    home_share = "home_share"      # direct home share, groceries included
    self_ = "self"                 # food, movies, party, transport, outings
    gifts_family = "gifts_family"
    trip_family = "trip_family"
    trip_self = "trip_self"


class Principal(BaseModel):
    id: str
    name: str = ""
    email: str


class UserAccount(BaseModel):
    id: str
    name: str = ""
    email: str
    password_hash: str
    created_at: datetime

    def to_principal(self) -> Principal:
        return Principal(id=self.id, name=self.name, email=self.email)


class Transaction(BaseModel):
    id: str
    owner: str
    type: TransactionType
    amount: Decimal
    category: str = ""
    category_group: CategoryGroup | None = None
    note: str = ""
    occurred_at: datetime
    created_at: datetime


class TransactionDraft(BaseModel):
    """Client input for a new transaction, before validation and defaults."""

    model_config = ConfigDict(populate_by_name=True)

    type: TransactionType | None = None
    amount: Decimal | None = Field(default=None, ge=0, le=MAX_AMOUNT)
    category: str | None = None
    category_group: CategoryGroup | None = Field(default=None, alias="categoryGroup")
    note: str | None = None
    # Numbers are accepted and treated like any other unparseable date.
    date: str | int | float | None = None


class ClassAmounts(BaseModel):
    income: Money = Decimal(0)
    expense: Money = Decimal(0)
    savings: Money = Decimal(0)


class BalanceAmounts(ClassAmounts):
    balance: Money = Decimal(0)


class DayTotals(ClassAmounts):
    day: str


class MonthTotals(ClassAmounts):
    month: str


class MonthlyReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    period: str = "monthly"
    year: int
    data: list[MonthTotals]
    carry: ClassAmounts
    latest_month: int = Field(alias="latestMonth")


class TotalReport(BaseModel):
    period: str = "total"
    data: list[MonthTotals]
    totals: BalanceAmounts


class SeriesEntry(BalanceAmounts):
    key: str
    running: Money = Decimal(0)


class SeriesReport(BaseModel):
    period: str
    start: str
    end: str
    data: list[SeriesEntry]
    carry: BalanceAmounts
    totals: BalanceAmounts


class YearsList(BaseModel):
    years: list[int]
