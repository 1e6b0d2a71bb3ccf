import random

import pytest

from errors import EntryNotFound
from ledger import (
    Ledger,
    format_amount,
    month_display_name,
    previous_month,
)
from models import ExpenseTag, LedgerSide


def _assert_consistent(ledger: Ledger) -> None:
    for category in ledger.income + ledger.expenses:
        assert category.entries, f"empty category {category.name} retained"
        assert category.amount_cents == sum(e.amount_cents for e in category.entries)
    assert ledger.total_income_cents == sum(c.amount_cents for c in ledger.income)
    assert ledger.total_expense_cents == sum(c.amount_cents for c in ledger.expenses)
    assert (
        ledger.carry_forward_cents
        == ledger.total_income_cents - ledger.total_expense_cents
    )


def test_salary_bonus_rent_walkthrough():
    ledger = Ledger()

    ledger.add_entry(LedgerSide.income, "Salary", 50000, "pay")
    assert ledger.totals() == (50000, 0, 50000)

    bonus = ledger.add_entry(LedgerSide.income, "Salary", 5000, "bonus")
    assert len(ledger.income) == 1
    assert ledger.income[0].amount_cents == 55000
    assert ledger.total_income_cents == 55000

    ledger.add_entry(LedgerSide.expense, "Rent", 25000, "rent", ExpenseTag.need)
    assert ledger.total_expense_cents == 25000
    assert ledger.carry_forward_cents == 30000

    ledger.update_entry(LedgerSide.income, bonus.id, 10000, "bonus")
    assert ledger.income[0].amount_cents == 60000
    assert ledger.total_income_cents == 60000
    assert ledger.carry_forward_cents == 35000

    rent_entry = ledger.expenses[0].entries[0]
    ledger.delete_entry(LedgerSide.expense, rent_entry.id)
    assert ledger.expenses == []
    assert ledger.total_expense_cents == 0
    _assert_consistent(ledger)


def test_breakdown_lists_each_entry():
    ledger = Ledger()
    ledger.add_entry(LedgerSide.expense, "Groceries", 120000, "weekly shop")
    ledger.add_entry(LedgerSide.expense, "Groceries", 1050, "")

    assert ledger.expenses[0].breakdown == "1200(weekly shop)+10.50(No note)"


def test_category_names_match_case_sensitively():
    ledger = Ledger()
    ledger.add_entry(LedgerSide.expense, "Rent", 100)
    ledger.add_entry(LedgerSide.expense, "rent", 200)

    assert [c.name for c in ledger.expenses] == ["Rent", "rent"]


def test_same_name_on_both_sides_stays_separate():
    ledger = Ledger()
    ledger.add_entry(LedgerSide.income, "Others", 300)
    ledger.add_entry(LedgerSide.expense, "Others", 100)

    assert ledger.totals() == (300, 100, 200)
    assert ledger.income[0].id.startswith("inc_")
    assert ledger.expenses[0].id.startswith("exp_")


def test_income_entries_never_carry_a_tag():
    ledger = Ledger()
    entry = ledger.add_entry(LedgerSide.income, "Salary", 100, "pay", ExpenseTag.want)
    assert entry.tag is None
    assert "tag" not in ledger.income[0].to_dict()["entries"][0]


def test_expense_tag_defaults_to_neutral():
    ledger = Ledger()
    entry = ledger.add_entry(LedgerSide.expense, "Shopping", 100)
    assert entry.tag == ExpenseTag.neutral

    ledger.update_entry(LedgerSide.expense, entry.id, 150, "shoes", "want")
    assert ledger.expenses[0].entries[0].tag == ExpenseTag.want
    assert ledger.expenses[0].entries[0].note == "shoes"


def test_update_keeps_entry_id():
    ledger = Ledger()
    entry = ledger.add_entry(LedgerSide.expense, "Medical", 500, "pharmacy")
    updated = ledger.update_entry(LedgerSide.expense, entry.id, 700, "pharmacy")
    assert updated.id == entry.id
    assert ledger.expenses[0].entries[0].amount_cents == 700


def test_unknown_entry_raises():
    ledger = Ledger()
    ledger.add_entry(LedgerSide.income, "Salary", 100)
    entry_id = ledger.income[0].entries[0].id

    with pytest.raises(EntryNotFound):
        ledger.update_entry(LedgerSide.income, "entry_missing", 1)
    # Entries are only searched on the requested side.
    with pytest.raises(EntryNotFound):
        ledger.delete_entry(LedgerSide.expense, entry_id)
    assert ledger.total_income_cents == 100


def test_deleting_one_of_several_entries_keeps_category():
    ledger = Ledger()
    first = ledger.add_entry(LedgerSide.expense, "Food & Drinks", 300, "lunch")
    ledger.add_entry(LedgerSide.expense, "Food & Drinks", 200, "coffee")

    ledger.delete_entry(LedgerSide.expense, first.id)

    assert len(ledger.expenses) == 1
    assert ledger.expenses[0].amount_cents == 200
    assert ledger.expenses[0].breakdown == "2(coffee)"


def test_delete_category_removes_all_entries():
    ledger = Ledger()
    ledger.add_entry(LedgerSide.expense, "Rent", 25000)
    ledger.add_entry(LedgerSide.expense, "EMIs", 5000)
    ledger.add_entry(LedgerSide.expense, "EMIs", 5000)
    emis = ledger.find_category(LedgerSide.expense, "EMIs")

    removed = ledger.delete_category(LedgerSide.expense, emis.id)

    assert removed is emis
    assert [c.name for c in ledger.expenses] == ["Rent"]
    assert ledger.total_expense_cents == 25000
    assert ledger.delete_category(LedgerSide.expense, "exp_missing") is None


def test_recompute_is_idempotent():
    ledger = Ledger()
    ledger.add_entry(LedgerSide.income, "Salary", 90000)
    ledger.add_entry(LedgerSide.expense, "Rent", 120000)

    ledger.recompute()
    first = (ledger.totals(), [c.to_dict() for c in ledger.expenses])
    ledger.recompute()
    second = (ledger.totals(), [c.to_dict() for c in ledger.expenses])

    assert first == second
    assert ledger.carry_forward_cents == -30000


def test_dict_round_trip_preserves_stored_totals():
    ledger = Ledger()
    ledger.add_entry(LedgerSide.income, "Salary", 1000, "pay")
    ledger.add_entry(LedgerSide.expense, "Rent", 400, "rent", ExpenseTag.need)

    loaded = Ledger.from_dicts(
        [c.to_dict() for c in ledger.income],
        [c.to_dict() for c in ledger.expenses],
        total_income_cents=1000,
        total_expense_cents=400,
        carry_forward_cents=600,
    )

    assert loaded == ledger


def test_drop_empty_categories():
    loaded = Ledger.from_dicts(
        [{"id": "inc_1", "name": "Bonus", "amount_cents": 0, "entries": []}],
        [],
    )
    assert loaded.drop_empty_categories() == 1
    assert loaded.income == []


def test_random_operation_sequences_keep_invariants():
    rng = random.Random(20240601)
    names = ["Salary", "Bonus", "Rent", "Groceries", "Shopping"]

    for _ in range(25):
        ledger = Ledger()
        for _ in range(60):
            side = rng.choice([LedgerSide.income, LedgerSide.expense])
            entries = [e for c in ledger.categories(side) for e in c.entries]
            action = rng.random()
            if action < 0.5 or not entries:
                ledger.add_entry(
                    side,
                    rng.choice(names),
                    rng.randint(0, 100_000),
                    rng.choice(["", "note"]),
                    rng.choice([None, "need", "want", "neutral"]),
                )
            elif action < 0.7:
                entry = rng.choice(entries)
                ledger.update_entry(side, entry.id, rng.randint(0, 100_000), "edited")
            elif action < 0.9:
                ledger.delete_entry(side, rng.choice(entries).id)
            else:
                category = rng.choice(ledger.categories(side))
                ledger.delete_category(side, category.id)
            _assert_consistent(ledger)
            for side_categories in (ledger.income, ledger.expenses):
                category_names = [c.name for c in side_categories]
                assert len(category_names) == len(set(category_names))


def test_month_helpers():
    assert previous_month(2025, 0) == (2024, 11)
    assert previous_month(2025, 6) == (2025, 5)
    assert month_display_name(2024, 11) == "December 2024"
    assert format_amount(64900) == "649"
    assert format_amount(5) == "0.05"
