from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud
from ..db import get_db
from ..schemas import ExpenseCategoryName, ExpenseOut

router = APIRouter(prefix="/users/{user_id}/expenses", tags=["expenses"])


@router.get("", response_model=list[ExpenseOut])
def list_expenses(
    user_id: int,
    category: ExpenseCategoryName | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[ExpenseOut]:
    if not crud.get_user(db, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    expenses = crud.list_expenses(
        db,
        user_id=user_id,
        category=category,
        start_date=start_date,
        end_date=end_date,
    )
    return [ExpenseOut.model_validate(expense) for expense in expenses]
