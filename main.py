import logging

from fastapi import Depends, FastAPI, HTTPException, Response
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionLocal
from errors import (
    ConcurrentUpdate,
    DeletionBlocked,
    LedgerError,
    MonthExists,
)
from insights import InsightsCache
from models import LedgerSide
from schemas import (
    EntryIn,
    EntryUpdateIn,
    MonthIn,
    MonthOut,
    RecurringTemplateIn,
    RecurringTemplateOut,
    RecurringTemplateUpdate,
    UserIn,
    UserOut,
    UserProfileUpdate,
)
from services import (
    InsightsService,
    LedgerService,
    MonthService,
    RecurringTemplateService,
    UserService,
)

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Monthly Ledger")

insights_cache = InsightsCache()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_insights_cache() -> InsightsCache:
    return insights_cache


def http_error(exc: LedgerError) -> HTTPException:
    if isinstance(exc, (MonthExists, ConcurrentUpdate)):
        status_code = 409
    elif isinstance(exc, DeletionBlocked):
        status_code = 403
    else:
        status_code = 404
    return HTTPException(
        status_code=status_code, detail={"error": exc.kind, "message": str(exc)}
    )


# ========== Months ==========


@app.get("/api/months", response_model=list[MonthOut])
def list_months(user_id: int, db: Session = Depends(get_db)):
    return MonthService(db).list_for_user(user_id)


@app.post("/api/months", response_model=MonthOut, status_code=201)
def create_month(
    data: MonthIn,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    try:
        return MonthService(db, cache).create(data.user_id, data.year, data.month)
    except LedgerError as exc:
        raise http_error(exc) from exc


@app.get("/api/months/{month_id}", response_model=MonthOut)
def get_month(month_id: int, db: Session = Depends(get_db)):
    try:
        return MonthService(db).get(month_id)
    except LedgerError as exc:
        raise http_error(exc) from exc


@app.delete("/api/months/{month_id}")
def delete_month(
    month_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    try:
        MonthService(db, cache).delete(month_id, user_id)
    except LedgerError as exc:
        raise http_error(exc) from exc
    return {"success": True, "month_id": month_id}


@app.get("/api/months/{month_id}/summary")
def month_summary(
    month_id: int,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    try:
        return InsightsService(db, cache).month_summary(month_id)
    except LedgerError as exc:
        raise http_error(exc) from exc


# ========== Entries ==========


@app.post(
    "/api/months/{month_id}/{side}/entries", response_model=MonthOut, status_code=201
)
def add_entry(
    month_id: int,
    side: LedgerSide,
    data: EntryIn,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    try:
        return LedgerService(db, cache).add_entry(
            side, month_id, data.category, data.amount_cents, data.note, data.tag
        )
    except LedgerError as exc:
        raise http_error(exc) from exc


@app.put("/api/months/{month_id}/{side}/entries/{entry_id}", response_model=MonthOut)
def update_entry(
    month_id: int,
    side: LedgerSide,
    entry_id: str,
    data: EntryUpdateIn,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    try:
        return LedgerService(db, cache).update_entry(
            side, entry_id, month_id, data.amount_cents, data.note, data.tag
        )
    except LedgerError as exc:
        raise http_error(exc) from exc


@app.delete(
    "/api/months/{month_id}/{side}/entries/{entry_id}", response_model=MonthOut
)
def delete_entry(
    month_id: int,
    side: LedgerSide,
    entry_id: str,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    try:
        return LedgerService(db, cache).delete_entry(side, entry_id, month_id)
    except LedgerError as exc:
        raise http_error(exc) from exc


@app.delete(
    "/api/months/{month_id}/{side}/categories/{category_id}", response_model=MonthOut
)
def delete_category(
    month_id: int,
    side: LedgerSide,
    category_id: str,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    try:
        return LedgerService(db, cache).delete_category(side, category_id, month_id)
    except LedgerError as exc:
        raise http_error(exc) from exc


# ========== Recurring expenses ==========


@app.get("/api/recurring", response_model=list[RecurringTemplateOut])
def list_recurring(user_id: int, db: Session = Depends(get_db)):
    return RecurringTemplateService(db, user_id).list()


@app.post("/api/recurring", response_model=RecurringTemplateOut, status_code=201)
def create_recurring(
    user_id: int, data: RecurringTemplateIn, db: Session = Depends(get_db)
):
    return RecurringTemplateService(db, user_id).create(data)


@app.put("/api/recurring/{template_id}", response_model=RecurringTemplateOut)
def update_recurring(
    template_id: int,
    user_id: int,
    data: RecurringTemplateUpdate,
    db: Session = Depends(get_db),
):
    try:
        return RecurringTemplateService(db, user_id).update(template_id, data)
    except LedgerError as exc:
        raise http_error(exc) from exc


@app.delete("/api/recurring/{template_id}")
def delete_recurring(template_id: int, user_id: int, db: Session = Depends(get_db)):
    try:
        RecurringTemplateService(db, user_id).delete(template_id)
    except LedgerError as exc:
        raise http_error(exc) from exc
    return Response(status_code=204)


# ========== Users ==========


@app.post("/api/users", response_model=UserOut, status_code=201)
def create_user(data: UserIn, db: Session = Depends(get_db)):
    try:
        return UserService(db).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/api/users/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db)):
    try:
        return UserService(db).get(user_id)
    except LedgerError as exc:
        raise http_error(exc) from exc


@app.put("/api/users/{user_id}", response_model=UserOut)
def update_profile(user_id: int, data: UserProfileUpdate, db: Session = Depends(get_db)):
    try:
        return UserService(db).update_profile(user_id, data)
    except LedgerError as exc:
        raise http_error(exc) from exc


@app.get("/api/users/{user_id}/overview")
def user_overview(
    user_id: int,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    return InsightsService(db, cache).overview(user_id)


# ========== Admin ==========


@app.post("/api/admin/rebuild-totals")
def admin_rebuild_totals(
    user_id: int,
    db: Session = Depends(get_db),
    cache: InsightsCache = Depends(get_insights_cache),
):
    try:
        repaired = MonthService(db, cache).rebuild_totals(user_id)
    except LedgerError as exc:
        raise http_error(exc) from exc
    logger.info(f"admin_rebuild_totals: user_id={user_id} repaired={repaired}")
    return {"user_id": user_id, "repaired": repaired}


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
