from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class LedgerSide(str, Enum):
    income = "income"
    expense = "expense"


class ExpenseTag(str, Enum):
    need = "need"
    want = "want"
    neutral = "neutral"


class CurrencyCode(str, Enum):
    usd = "USD"
    inr = "INR"


CURRENCY_CODE_ENUM = SAEnum(
    CurrencyCode,
    name="currencycode",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(String(100))
    currency: Mapped[CurrencyCode] = mapped_column(
        CURRENCY_CODE_ENUM, nullable=False, default=CurrencyCode.inr
    )
    is_demo: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Month(Base, TimestampMixin):
    __tablename__ = "months"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    display_name: Mapped[str] = mapped_column(String(40), nullable=False)
    income: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    expenses: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    total_income_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_expense_cents: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    carry_forward_cents: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": revision}

    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_month_user_year_month"),
        Index("ix_months_user_year_month", "user_id", "year", "month"),
        CheckConstraint("month >= 0 AND month <= 11", name="ck_month_index_range"),
        CheckConstraint("total_income_cents >= 0", name="ck_month_income_positive"),
        CheckConstraint("total_expense_cents >= 0", name="ck_month_expense_positive"),
    )


class RecurringTemplate(Base, TimestampMixin):
    __tablename__ = "recurring_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tag: Mapped[ExpenseTag] = mapped_column(
        SAEnum(ExpenseTag), nullable=False, default=ExpenseTag.neutral
    )

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_template_amount_positive"),
        Index("ix_recurring_templates_user", "user_id"),
    )
