"""In-memory month aggregate.

A ``Ledger`` holds the income and expense categories of one month, each
category owning its entries by value. Every mutating method finishes with
``recompute`` so category amounts, breakdown strings and month totals always
agree with the entries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from errors import EntryNotFound
from ids import generate_id
from models import ExpenseTag, LedgerSide

CARRY_FORWARD_CATEGORY = "Carry Forward"

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

_CATEGORY_ID_PREFIX = {LedgerSide.income: "inc", LedgerSide.expense: "exp"}


def month_display_name(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month]} {year}"


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 0:
        return year - 1, 11
    return year, month - 1


def format_amount(cents: int) -> str:
    whole, rest = divmod(cents, 100)
    if rest == 0:
        return str(whole)
    return f"{cents / 100:.2f}"


def _entry_tag(
    side: LedgerSide, tag: Union[ExpenseTag, str, None]
) -> Optional[ExpenseTag]:
    if side == LedgerSide.income:
        return None
    if not tag:
        return ExpenseTag.neutral
    return ExpenseTag(tag)


@dataclass
class Entry:
    id: str
    amount_cents: int
    note: str = ""
    tag: Optional[ExpenseTag] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "note": self.note,
        }
        if self.tag is not None:
            data["tag"] = self.tag.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        tag = data.get("tag")
        return cls(
            id=data["id"],
            amount_cents=int(data["amount_cents"]),
            note=data.get("note") or "",
            tag=ExpenseTag(tag) if tag else None,
        )


@dataclass
class Category:
    id: str
    name: str
    entries: list[Entry] = field(default_factory=list)
    amount_cents: int = 0
    breakdown: str = ""

    def entry_index(self, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return index
        return None

    def recompute(self) -> None:
        self.amount_cents = sum(entry.amount_cents for entry in self.entries)
        self.breakdown = "+".join(
            f"{format_amount(entry.amount_cents)}({entry.note or 'No note'})"
            for entry in self.entries
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount_cents": self.amount_cents,
            "breakdown": self.breakdown,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Category:
        return cls(
            id=data["id"],
            name=data["name"],
            entries=[Entry.from_dict(item) for item in data.get("entries") or []],
            amount_cents=int(data.get("amount_cents") or 0),
            breakdown=data.get("breakdown") or "",
        )


@dataclass
class Ledger:
    income: list[Category] = field(default_factory=list)
    expenses: list[Category] = field(default_factory=list)
    total_income_cents: int = 0
    total_expense_cents: int = 0
    carry_forward_cents: int = 0

    @classmethod
    def from_dicts(
        cls,
        income: list[dict[str, Any]],
        expenses: list[dict[str, Any]],
        *,
        total_income_cents: int = 0,
        total_expense_cents: int = 0,
        carry_forward_cents: int = 0,
    ) -> Ledger:
        return cls(
            income=[Category.from_dict(item) for item in income or []],
            expenses=[Category.from_dict(item) for item in expenses or []],
            total_income_cents=total_income_cents,
            total_expense_cents=total_expense_cents,
            carry_forward_cents=carry_forward_cents,
        )

    def categories(self, side: LedgerSide) -> list[Category]:
        if side == LedgerSide.income:
            return self.income
        return self.expenses

    def find_category(self, side: LedgerSide, name: str) -> Optional[Category]:
        for category in self.categories(side):
            if category.name == name:
                return category
        return None

    def add_entry(
        self,
        side: LedgerSide,
        category_name: str,
        amount_cents: int,
        note: str = "",
        tag: Union[ExpenseTag, str, None] = None,
    ) -> Entry:
        entry = Entry(
            id=generate_id("entry"),
            amount_cents=amount_cents,
            note=note or "",
            tag=_entry_tag(side, tag),
        )
        category = self.find_category(side, category_name)
        if category is None:
            category = Category(
                id=generate_id(_CATEGORY_ID_PREFIX[side]), name=category_name
            )
            self.categories(side).append(category)
        category.entries.append(entry)
        self.recompute()
        return entry

    def _locate(self, side: LedgerSide, entry_id: str) -> tuple[Category, int]:
        for category in self.categories(side):
            index = category.entry_index(entry_id)
            if index is not None:
                return category, index
        raise EntryNotFound(entry_id)

    def update_entry(
        self,
        side: LedgerSide,
        entry_id: str,
        amount_cents: int,
        note: str = "",
        tag: Union[ExpenseTag, str, None] = None,
    ) -> Entry:
        category, index = self._locate(side, entry_id)
        entry = category.entries[index]
        entry.amount_cents = amount_cents
        entry.note = note or ""
        entry.tag = _entry_tag(side, tag)
        self.recompute()
        return entry

    def delete_entry(self, side: LedgerSide, entry_id: str) -> Entry:
        category, index = self._locate(side, entry_id)
        entry = category.entries.pop(index)
        if not category.entries:
            self.categories(side).remove(category)
        self.recompute()
        return entry

    def delete_category(self, side: LedgerSide, category_id: str) -> Optional[Category]:
        categories = self.categories(side)
        removed = None
        for category in categories:
            if category.id == category_id:
                removed = category
                break
        if removed is not None:
            categories.remove(removed)
        self.recompute()
        return removed

    def drop_empty_categories(self) -> int:
        before = len(self.income) + len(self.expenses)
        self.income = [c for c in self.income if c.entries]
        self.expenses = [c for c in self.expenses if c.entries]
        return before - len(self.income) - len(self.expenses)

    def recompute(self) -> None:
        for category in self.income:
            category.recompute()
        for category in self.expenses:
            category.recompute()
        self.total_income_cents = sum(c.amount_cents for c in self.income)
        self.total_expense_cents = sum(c.amount_cents for c in self.expenses)
        self.carry_forward_cents = self.total_income_cents - self.total_expense_cents

    def totals(self) -> tuple[int, int, int]:
        return (
            self.total_income_cents,
            self.total_expense_cents,
            self.carry_forward_cents,
        )
