from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from ..models import ExpenseModel, FoodEntryModel


@dataclass(slots=True, frozen=True)
class ExpenseRecord:
    """A logged expense as seen by the aggregation layer."""

    id: int | None
    user_id: int
    amount: Decimal
    category: str
    occurred_at: datetime
    description: str
    vendor: str | None = None


@dataclass(slots=True, frozen=True)
class FoodRecord:
    """A logged food entry. The meal type acts as its category tag."""

    id: int | None
    user_id: int
    food_name: str
    meal_type: str
    occurred_at: datetime
    quantity: Decimal
    unit: str
    calories: Decimal
    protein: Decimal
    carbs: Decimal
    fat: Decimal
    fiber: Decimal | None = None

    @property
    def category(self) -> str:
        return self.meal_type

    @property
    def description(self) -> str:
        return self.food_name


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _as_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def expense_record_from_model(model: object) -> ExpenseRecord:
    if not isinstance(model, ExpenseModel):
        raise TypeError("Expected ExpenseModel instance.")

    category = model.category
    return ExpenseRecord(
        id=model.id,
        user_id=model.user_id,
        amount=_as_decimal(model.amount),
        category=getattr(category, "value", category),
        occurred_at=_as_utc(model.spent_at),
        description=model.description,
        vendor=model.vendor,
    )


def food_record_from_model(model: object) -> FoodRecord:
    if not isinstance(model, FoodEntryModel):
        raise TypeError("Expected FoodEntryModel instance.")

    meal_type = model.meal_type
    return FoodRecord(
        id=model.id,
        user_id=model.user_id,
        food_name=model.food_name,
        meal_type=getattr(meal_type, "value", meal_type),
        occurred_at=_as_utc(model.eaten_at),
        quantity=_as_decimal(model.quantity),
        unit=model.unit,
        calories=_as_decimal(model.calories),
        protein=_as_decimal(model.protein),
        carbs=_as_decimal(model.carbs),
        fat=_as_decimal(model.fat),
        fiber=_as_decimal(model.fiber) if model.fiber is not None else None,
    )
