from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import CurrencyCode, ExpenseTag


class MonthIn(BaseModel):
    user_id: int
    year: int = Field(..., ge=1970, le=3000)
    month: int = Field(..., ge=0, le=11)


class EntryIn(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    amount_cents: int = Field(..., ge=0)
    note: str = Field(default="", max_length=200)
    tag: Optional[ExpenseTag] = None


class EntryUpdateIn(BaseModel):
    amount_cents: int = Field(..., ge=0)
    note: str = Field(default="", max_length=200)
    tag: Optional[ExpenseTag] = None


class RecurringTemplateIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    category: str = Field(..., min_length=1, max_length=100)
    amount_cents: int = Field(..., ge=0)
    note: str = Field(default="", max_length=200)
    tag: ExpenseTag = ExpenseTag.neutral


class RecurringTemplateUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount_cents: Optional[int] = Field(default=None, ge=0)
    note: Optional[str] = Field(default=None, max_length=200)
    tag: Optional[ExpenseTag] = None


class UserIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    name: Optional[str] = Field(default=None, max_length=100)
    currency: CurrencyCode = CurrencyCode.inr
    is_demo: bool = False


class UserProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    currency: Optional[CurrencyCode] = None


class EntryOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    amount_cents: int
    note: str
    tag: Optional[ExpenseTag] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    amount_cents: int
    breakdown: str
    entries: list[EntryOut]


class MonthOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    year: int
    month: int
    display_name: str
    income: list[CategoryOut]
    expenses: list[CategoryOut]
    total_income_cents: int
    total_expense_cents: int
    carry_forward_cents: int
    revision: int
    created_at: datetime
    updated_at: datetime


class RecurringTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    category: str
    amount_cents: int
    note: str
    tag: ExpenseTag
    created_at: datetime
    updated_at: datetime


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    name: Optional[str]
    currency: CurrencyCode
    is_demo: bool
