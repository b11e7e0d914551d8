from datetime import date
from functools import partial

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from .. import crud
from ..config import get_settings
from ..db import get_db
from ..domain.summaries import compute_custom_range_summary, compute_summary
from ..images import render_expenses_summary
from ..models import UserModel
from ..schemas import ExpenseCategoryName, LocaleName, PeriodName, SummaryOut

router = APIRouter(prefix="/users/{user_id}", tags=["reports"])

settings = get_settings()


def _require_user(db: Session, user_id: int) -> UserModel:
    user = crud.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return user


@router.get("/summary", response_model=SummaryOut)
def get_summary(
    user_id: int,
    period: PeriodName = Query(default="month"),
    reference_date: date | None = Query(default=None, alias="date"),
    category: ExpenseCategoryName | None = Query(default=None),
    db: Session = Depends(get_db),
) -> SummaryOut:
    user = _require_user(db, user_id)
    summary = compute_summary(
        partial(crud.find_expenses, db),
        user.id,
        period,
        reference_date,
        category,
        tz_offset_hours=settings.timezone_offset_hours,
    )
    return SummaryOut.model_validate(summary)


@router.get("/summary/range", response_model=SummaryOut)
def get_range_summary(
    user_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
) -> SummaryOut:
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="end_date must not be before start_date.")
    user = _require_user(db, user_id)
    summary = compute_custom_range_summary(
        partial(crud.find_expenses, db),
        user.id,
        start_date,
        end_date,
        tz_offset_hours=settings.timezone_offset_hours,
    )
    return SummaryOut.model_validate(summary)


@router.get("/summary/image", response_class=Response)
def get_summary_image(
    user_id: int,
    period: PeriodName = Query(default="month"),
    reference_date: date | None = Query(default=None, alias="date"),
    category: ExpenseCategoryName | None = Query(default=None),
    locale: LocaleName | None = Query(default=None),
    db: Session = Depends(get_db),
) -> Response:
    user = _require_user(db, user_id)
    summary = compute_summary(
        partial(crud.find_expenses, db),
        user.id,
        period,
        reference_date,
        category,
        tz_offset_hours=settings.timezone_offset_hours,
    )
    content = render_expenses_summary(
        summary,
        currency=settings.default_currency,
        locale=locale or user.locale,
        tz_offset_hours=settings.timezone_offset_hours,
    )
    return Response(content=content, media_type="image/png")
