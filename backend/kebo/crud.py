from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import get_settings
from .domain.entities import ExpenseRecord, FoodRecord, expense_record_from_model, food_record_from_model
from .domain.periods import local_midnight_utc, local_timezone
from .models import ExpenseCategory, ExpenseModel, FoodEntryModel, MealType, UserModel
from .schemas import LogExpenseParams, LogFoodParams

settings = get_settings()

CENTS = Decimal("0.01")


def _to_money(value: float | Decimal) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _to_utc(value: datetime, tz_offset_hours: int) -> datetime:
    # Naive timestamps coming from the model are local wall-clock times.
    if value.tzinfo is None:
        value = value.replace(tzinfo=local_timezone(tz_offset_hours))
    return value.astimezone(timezone.utc)


def get_user(db: Session, user_id: int) -> UserModel | None:
    return db.get(UserModel, user_id)


def get_user_by_phone(db: Session, phone_number: str) -> UserModel | None:
    return db.scalar(select(UserModel).where(UserModel.phone_number == phone_number))


def get_or_create_user(db: Session, phone_number: str) -> UserModel:
    user = get_user_by_phone(db, phone_number)
    if user:
        return user
    user = UserModel(
        phone_number=phone_number,
        timezone=settings.default_timezone,
        locale=settings.default_locale,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Another request registered the same number first.
        db.rollback()
        existing = get_user_by_phone(db, phone_number)
        if existing is None:
            raise
        return existing
    db.refresh(user)
    return user


def create_expense(
    db: Session,
    user_id: int,
    data: LogExpenseParams,
    raw_message: str,
    tz_offset_hours: int | None = None,
) -> ExpenseModel:
    offset = settings.timezone_offset_hours if tz_offset_hours is None else tz_offset_hours
    expense = ExpenseModel(
        user_id=user_id,
        description=data.description,
        amount=_to_money(data.amount),
        category=ExpenseCategory(data.category),
        vendor=data.vendor,
        spent_at=_to_utc(data.spent_at, offset),
        raw_message=raw_message,
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def create_food_entry(
    db: Session,
    user_id: int,
    data: LogFoodParams,
    raw_message: str,
    tz_offset_hours: int | None = None,
) -> FoodEntryModel:
    offset = settings.timezone_offset_hours if tz_offset_hours is None else tz_offset_hours
    entry = FoodEntryModel(
        user_id=user_id,
        food_name=data.food_name,
        food_id=data.food_id,
        quantity=_to_money(data.quantity),
        unit=data.unit,
        calories=_to_money(data.calories),
        protein=_to_money(data.protein),
        carbs=_to_money(data.carbs),
        fat=_to_money(data.fat),
        fiber=_to_money(data.fiber) if data.fiber is not None else None,
        eaten_at=_to_utc(data.eaten_at, offset),
        meal_type=MealType(data.meal_type),
        raw_message=raw_message,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def find_expenses(
    db: Session,
    user_id: int,
    start: datetime,
    end: datetime,
    category: str | None = None,
) -> list[ExpenseRecord]:
    """Expenses for ``user_id`` with ``start <= spent_at < end``."""
    stmt = select(ExpenseModel).where(
        ExpenseModel.user_id == user_id,
        ExpenseModel.spent_at >= start,
        ExpenseModel.spent_at < end,
    )
    if category:
        stmt = stmt.where(ExpenseModel.category == ExpenseCategory(category))
    return [expense_record_from_model(model) for model in db.scalars(stmt)]


def find_food_entries(
    db: Session,
    user_id: int,
    start: datetime,
    end: datetime,
    meal_type: str | None = None,
) -> list[FoodRecord]:
    """Food entries for ``user_id`` with ``start <= eaten_at < end``."""
    stmt = select(FoodEntryModel).where(
        FoodEntryModel.user_id == user_id,
        FoodEntryModel.eaten_at >= start,
        FoodEntryModel.eaten_at < end,
    )
    if meal_type:
        stmt = stmt.where(FoodEntryModel.meal_type == MealType(meal_type))
    return [food_record_from_model(model) for model in db.scalars(stmt)]


def list_expenses(
    db: Session,
    user_id: int,
    category: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[ExpenseModel]:
    offset = settings.timezone_offset_hours
    stmt = select(ExpenseModel).where(ExpenseModel.user_id == user_id)

    if category:
        stmt = stmt.where(ExpenseModel.category == ExpenseCategory(category))
    if start_date:
        stmt = stmt.where(ExpenseModel.spent_at >= local_midnight_utc(start_date, offset))
    if end_date:
        stmt = stmt.where(ExpenseModel.spent_at < local_midnight_utc(end_date + timedelta(days=1), offset))

    stmt = stmt.order_by(ExpenseModel.spent_at.desc(), ExpenseModel.id.desc())
    return list(db.scalars(stmt))
