import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from errors import TemplateNotFound
from models import ExpenseTag
from schemas import RecurringTemplateIn, RecurringTemplateUpdate
from services import RecurringTemplateService


def test_create_and_list_newest_first() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        templates = RecurringTemplateService(session, 1)
        templates.create(RecurringTemplateIn(category="Rent", amount_cents=25000))
        templates.create(
            RecurringTemplateIn(
                category=" Netflix ",
                amount_cents=649,
                note="premium",
                tag=ExpenseTag.want,
            )
        )

        listed = templates.list()
        assert [t.category for t in listed] == ["Netflix", "Rent"]
        assert listed[0].tag == ExpenseTag.want
        assert listed[1].tag == ExpenseTag.neutral
        assert listed[1].note == ""


def test_partial_update_keeps_other_fields() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        templates = RecurringTemplateService(session, 1)
        created = templates.create(
            RecurringTemplateIn(
                category="Insurance", amount_cents=3000, note="term", tag=ExpenseTag.need
            )
        )

        updated = templates.update(created.id, RecurringTemplateUpdate(amount_cents=3500))

        assert updated.amount_cents == 3500
        assert updated.category == "Insurance"
        assert updated.note == "term"
        assert updated.tag == ExpenseTag.need


def test_templates_are_scoped_to_their_owner() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        mine = RecurringTemplateService(session, 1).create(
            RecurringTemplateIn(category="EMIs", amount_cents=12000)
        )
        theirs = RecurringTemplateService(session, 2)

        assert theirs.list() == []
        with pytest.raises(TemplateNotFound):
            theirs.update(mine.id, RecurringTemplateUpdate(note="hijack"))
        with pytest.raises(TemplateNotFound):
            theirs.delete(mine.id)

        RecurringTemplateService(session, 1).delete(mine.id)
        with pytest.raises(TemplateNotFound):
            RecurringTemplateService(session, 1).get(mine.id)


def test_blank_category_is_rejected() -> None:
    with pytest.raises(ValidationError):
        RecurringTemplateIn(category="   ", amount_cents=100)
    with pytest.raises(ValidationError):
        RecurringTemplateUpdate(category=" ")

    assert RecurringTemplateUpdate(category=" Gym ").category == "Gym"
