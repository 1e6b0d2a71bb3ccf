from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config import get_settings
from errors import (
    ConcurrentUpdate,
    DeletionBlocked,
    MonthExists,
    MonthNotFound,
    TemplateNotFound,
    UserNotFound,
)
from insights import InsightsCache, MonthChangeListener
from ledger import (
    CARRY_FORWARD_CATEGORY,
    Category,
    Ledger,
    month_display_name,
    previous_month,
)
from models import (
    ExpenseTag,
    LedgerSide,
    Month,
    RecurringTemplate,
    User,
)
from schemas import (
    RecurringTemplateIn,
    RecurringTemplateUpdate,
    UserIn,
    UserProfileUpdate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def ledger_from_month(month: Month) -> Ledger:
    return Ledger.from_dicts(
        month.income,
        month.expenses,
        total_income_cents=month.total_income_cents,
        total_expense_cents=month.total_expense_cents,
        carry_forward_cents=month.carry_forward_cents,
    )


def store_ledger(month: Month, ledger: Ledger) -> None:
    month.income = [category.to_dict() for category in ledger.income]
    month.expenses = [category.to_dict() for category in ledger.expenses]
    (
        month.total_income_cents,
        month.total_expense_cents,
        month.carry_forward_cents,
    ) = ledger.totals()
    month.updated_at = datetime.utcnow()


class RecurringTemplateService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list(self) -> list[RecurringTemplate]:
        stmt = (
            select(RecurringTemplate)
            .where(RecurringTemplate.user_id == self.user_id)
            .order_by(RecurringTemplate.created_at.desc(), RecurringTemplate.id.desc())
        )
        return self.session.scalars(stmt).all()

    def get(self, template_id: int) -> RecurringTemplate:
        template = self.session.get(RecurringTemplate, template_id)
        if not template or template.user_id != self.user_id:
            raise TemplateNotFound(template_id)
        return template

    def create(self, data: RecurringTemplateIn) -> RecurringTemplate:
        template = RecurringTemplate(
            user_id=self.user_id,
            category=data.category,
            amount_cents=data.amount_cents,
            note=data.note,
            tag=data.tag,
        )
        self.session.add(template)
        self.session.commit()
        self.session.refresh(template)
        logger.info(
            f"recurring_created: user_id={self.user_id} id={template.id} "
            f"category={template.category!r} amount_cents={template.amount_cents}"
        )
        return template

    def update(self, template_id: int, data: RecurringTemplateUpdate) -> RecurringTemplate:
        template = self.get(template_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(template, field, value)
        self.session.commit()
        self.session.refresh(template)
        logger.info(f"recurring_updated: user_id={self.user_id} id={template_id}")
        return template

    def delete(self, template_id: int) -> None:
        template = self.get(template_id)
        category = template.category
        self.session.delete(template)
        self.session.commit()
        logger.info(
            f"recurring_deleted: user_id={self.user_id} id={template_id} "
            f"category={category!r}"
        )


class MonthService:
    def __init__(
        self, session: Session, listener: Optional[MonthChangeListener] = None
    ) -> None:
        self.session = session
        self.listener = listener
        self.settings = get_settings()

    def _notify(self, user_id: int, month_id: int) -> None:
        if self.listener is not None:
            self.listener.month_changed(user_id, month_id)

    def get(self, month_id: int) -> Month:
        month = self.session.get(Month, month_id)
        if not month:
            raise MonthNotFound(month_id)
        return month

    def find(self, user_id: int, year: int, month: int) -> Optional[Month]:
        return self.session.scalar(
            select(Month).where(
                Month.user_id == user_id,
                Month.year == year,
                Month.month == month,
            )
        )

    def list_for_user(self, user_id: int) -> list[Month]:
        stmt = (
            select(Month)
            .where(Month.user_id == user_id)
            .order_by(Month.year.desc(), Month.month.desc())
        )
        return self.session.scalars(stmt).all()

    def create(self, user_id: int, year: int, month: int) -> Month:
        if not 0 <= month <= 11:
            raise ValueError("Month index must be between 0 and 11")
        if self.find(user_id, year, month):
            raise MonthExists(year, month)

        ledger = Ledger()
        carried_cents = 0
        prev_year, prev_month = previous_month(year, month)
        predecessor = self.find(user_id, prev_year, prev_month)
        if predecessor is not None and predecessor.carry_forward_cents > 0:
            carried_cents = predecessor.carry_forward_cents
            ledger.add_entry(
                LedgerSide.income,
                CARRY_FORWARD_CATEGORY,
                carried_cents,
                note=f"From {month_display_name(prev_year, prev_month)}",
            )

        templates = RecurringTemplateService(self.session, user_id).list()
        for template in templates:
            ledger.add_entry(
                LedgerSide.expense,
                template.category,
                template.amount_cents,
                note=template.note,
                tag=template.tag,
            )
        ledger.recompute()

        record = Month(
            user_id=user_id,
            year=year,
            month=month,
            display_name=month_display_name(year, month),
        )
        store_ledger(record, ledger)
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise MonthExists(year, month) from exc

        logger.info(
            f"month_created: user_id={user_id} month={record.display_name!r} "
            f"id={record.id} recurring={len(templates)} "
            f"carried_cents={carried_cents}"
        )
        self._notify(user_id, record.id)
        return record

    def _deletion_blocked(self, user_id: int) -> bool:
        owner = self.session.get(User, user_id)
        if owner is None:
            return False
        return owner.is_demo or owner.username in self.settings.protected_usernames

    def delete(self, month_id: int, user_id: int) -> None:
        attempts = 0
        while True:
            month = self.session.get(Month, month_id)
            if not month or month.user_id != user_id:
                raise MonthNotFound(month_id)
            if self._deletion_blocked(user_id):
                raise DeletionBlocked(
                    "Deleting months is disabled for this account to protect the demo data"
                )
            display_name = month.display_name
            self.session.delete(month)
            try:
                self.session.commit()
            except StaleDataError as exc:
                self.session.rollback()
                attempts += 1
                if attempts > self.settings.max_write_retries:
                    raise ConcurrentUpdate(
                        f"Month {month_id} kept changing; gave up after {attempts} attempts"
                    ) from exc
                logger.warning(
                    f"month_delete_conflict: month_id={month_id} attempt={attempts}"
                )
                continue
            break

        logger.info(
            f"month_deleted: user_id={user_id} id={month_id} month={display_name!r}"
        )
        self._notify(user_id, month_id)

    def rebuild_totals(self, user_id: int) -> int:
        repaired: list[Month] = []
        for month in self.list_for_user(user_id):
            ledger = ledger_from_month(month)
            stored_totals = ledger.totals()
            dropped = ledger.drop_empty_categories()
            ledger.recompute()
            documents_match = [c.to_dict() for c in ledger.income] == month.income and [
                c.to_dict() for c in ledger.expenses
            ] == month.expenses
            if dropped or ledger.totals() != stored_totals or not documents_match:
                store_ledger(month, ledger)
                repaired.append(month)

        if not repaired:
            return 0
        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise ConcurrentUpdate(
                f"Months of user {user_id} changed during rebuild"
            ) from exc

        for month in repaired:
            logger.info(
                f"month_totals_repaired: user_id={user_id} id={month.id} "
                f"month={month.display_name!r}"
            )
            self._notify(user_id, month.id)
        return len(repaired)


class LedgerService:
    def __init__(
        self, session: Session, listener: Optional[MonthChangeListener] = None
    ) -> None:
        self.session = session
        self.listener = listener
        self.settings = get_settings()

    def _mutate(self, month_id: int, apply: Callable[[Ledger], T]) -> tuple[Month, T]:
        attempts = 0
        while True:
            month = self.session.get(Month, month_id)
            if month is None:
                raise MonthNotFound(month_id)
            ledger = ledger_from_month(month)
            result = apply(ledger)
            store_ledger(month, ledger)
            try:
                self.session.commit()
            except StaleDataError as exc:
                self.session.rollback()
                attempts += 1
                if attempts > self.settings.max_write_retries:
                    raise ConcurrentUpdate(
                        f"Month {month_id} kept changing; gave up after {attempts} attempts"
                    ) from exc
                logger.warning(
                    f"month_write_conflict: month_id={month_id} attempt={attempts}"
                )
                continue
            break

        if self.listener is not None:
            self.listener.month_changed(month.user_id, month.id)
        return month, result

    def add_entry(
        self,
        side: Union[LedgerSide, str],
        month_id: int,
        category: str,
        amount_cents: int,
        note: str = "",
        tag: Union[ExpenseTag, str, None] = None,
    ) -> Month:
        side = LedgerSide(side)
        month, entry = self._mutate(
            month_id,
            lambda ledger: ledger.add_entry(side, category, amount_cents, note, tag),
        )
        logger.info(
            f"entry_added: month_id={month_id} side={side.value} "
            f"category={category!r} entry_id={entry.id} amount_cents={amount_cents}"
        )
        return month

    def update_entry(
        self,
        side: Union[LedgerSide, str],
        entry_id: str,
        month_id: int,
        amount_cents: int,
        note: str = "",
        tag: Union[ExpenseTag, str, None] = None,
    ) -> Month:
        side = LedgerSide(side)
        month, _entry = self._mutate(
            month_id,
            lambda ledger: ledger.update_entry(side, entry_id, amount_cents, note, tag),
        )
        logger.info(
            f"entry_updated: month_id={month_id} side={side.value} "
            f"entry_id={entry_id} amount_cents={amount_cents}"
        )
        return month

    def delete_entry(
        self, side: Union[LedgerSide, str], entry_id: str, month_id: int
    ) -> Month:
        side = LedgerSide(side)
        month, _entry = self._mutate(
            month_id, lambda ledger: ledger.delete_entry(side, entry_id)
        )
        logger.info(
            f"entry_deleted: month_id={month_id} side={side.value} entry_id={entry_id}"
        )
        return month

    def delete_category(
        self, side: Union[LedgerSide, str], category_id: str, month_id: int
    ) -> Month:
        side = LedgerSide(side)
        month, removed = self._mutate(
            month_id, lambda ledger: ledger.delete_category(side, category_id)
        )
        logger.info(
            f"category_deleted: month_id={month_id} side={side.value} "
            f"category_id={category_id} found={removed is not None}"
        )
        return month


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise UserNotFound(user_id)
        return user

    def create(self, data: UserIn) -> User:
        username = data.username.strip()
        existing = self.session.scalar(select(User).where(User.username == username))
        if existing:
            raise ValueError("Username already taken")
        user = User(
            username=username,
            name=data.name,
            currency=data.currency,
            is_demo=data.is_demo,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info(f"user_created: id={user.id} username={username!r}")
        return user

    def update_profile(self, user_id: int, data: UserProfileUpdate) -> User:
        user = self.get(user_id)
        changed = []
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(user, field, value)
            changed.append(field)
        self.session.commit()
        self.session.refresh(user)
        logger.info(f"user_updated: id={user_id} fields={changed}")
        return user


class InsightsService:
    def __init__(self, session: Session, cache: InsightsCache) -> None:
        self.session = session
        self.cache = cache

    @staticmethod
    def _breakdown(categories: list[Category], total: int) -> list[dict[str, Any]]:
        if total == 0:
            return []
        items = sorted(categories, key=lambda c: c.amount_cents, reverse=True)
        return [
            {
                "name": category.name,
                "amount_cents": category.amount_cents,
                "percent": category.amount_cents * 100 / total,
            }
            for category in items
        ]

    def month_summary(self, month_id: int) -> dict[str, Any]:
        month = MonthService(self.session).get(month_id)
        cached = self.cache.get_month(month.user_id, month.id, month.revision)
        if cached is not None:
            return cached

        ledger = ledger_from_month(month)
        expense_by_tag = {tag.value: 0 for tag in ExpenseTag}
        for category in ledger.expenses:
            for entry in category.entries:
                tag = entry.tag or ExpenseTag.neutral
                expense_by_tag[tag.value] += entry.amount_cents

        income = month.total_income_cents
        savings_rate = (month.carry_forward_cents * 100 / income) if income > 0 else 0.0
        summary = {
            "month_id": month.id,
            "display_name": month.display_name,
            "revision": month.revision,
            "total_income_cents": income,
            "total_expense_cents": month.total_expense_cents,
            "carry_forward_cents": month.carry_forward_cents,
            "savings_rate": savings_rate,
            "expense_by_tag": expense_by_tag,
            "income_breakdown": self._breakdown(ledger.income, income),
            "expense_breakdown": self._breakdown(
                ledger.expenses, month.total_expense_cents
            ),
        }
        self.cache.put_month(month.user_id, month.id, month.revision, summary)
        return summary

    def overview(self, user_id: int) -> dict[str, Any]:
        months = sorted(
            MonthService(self.session).list_for_user(user_id),
            key=lambda m: (m.year, m.month),
        )
        fingerprint = tuple((m.id, m.revision) for m in months)
        cached = self.cache.get_overview(user_id, fingerprint)
        if cached is not None:
            return cached

        total_income = sum(m.total_income_cents for m in months)
        total_expense = sum(m.total_expense_cents for m in months)
        net = total_income - total_expense
        overview = {
            "user_id": user_id,
            "months": [
                {
                    "month_id": m.id,
                    "display_name": m.display_name,
                    "year": m.year,
                    "month": m.month,
                    "total_income_cents": m.total_income_cents,
                    "total_expense_cents": m.total_expense_cents,
                    "carry_forward_cents": m.carry_forward_cents,
                }
                for m in months
            ],
            "total_income_cents": total_income,
            "total_expense_cents": total_expense,
            "net_cents": net,
            "average_carry_forward_cents": round(net / len(months)) if months else 0,
        }
        self.cache.put_overview(user_id, fingerprint, overview)
        return overview
