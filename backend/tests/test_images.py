from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from kebo.domain.summaries import CategoryBreakdown, NutritionSummary, NutritionTotals, Summary
from kebo.images import (
    ExpenseAddedData,
    FoodAddedData,
    format_currency,
    format_number,
    format_time,
    render_daily_summary,
    render_expense_added,
    render_expenses_summary,
    render_food_added,
)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
BOGOTA = timezone(timedelta(hours=-5))


@pytest.mark.parametrize(
    "amount, currency, expected",
    [
        (Decimal("1234.5"), "USD", "$1,234.50"),
        (Decimal("0"), "usd", "$0.00"),
        (Decimal("12"), "PEN", "S/12.00"),
        (Decimal("99.999"), "CHF", "100.00 CHF"),
    ],
)
def test_format_currency(amount, currency, expected):
    assert format_currency(amount, currency) == expected


def test_format_number_and_time():
    assert format_number(Decimal("1070.5")) == "1,070"
    assert format_number(1234.6) == "1,235"
    assert format_time(datetime(2024, 10, 19, 9, 5)) == "9:05 AM"


@pytest.mark.parametrize("locale", ["en", "es"])
def test_render_expense_added(locale):
    png = render_expense_added(
        ExpenseAddedData(
            description="New headphones",
            amount=Decimal("89.90"),
            category="shopping",
            vendor="Falabella",
            spent_at=datetime(2024, 10, 19, 15, 45, tzinfo=BOGOTA),
            locale=locale,
        )
    )
    assert png.startswith(PNG_MAGIC)


def summary(by_category):
    total = sum((item.total for item in by_category), Decimal("0"))
    return Summary(
        period_label="This Month",
        start=datetime(2024, 10, 1, 5, tzinfo=timezone.utc),
        end=datetime(2024, 11, 1, 5, tzinfo=timezone.utc),
        total_amount=total,
        entry_count=sum(item.count for item in by_category),
        by_category=by_category,
    )


def test_render_expenses_summary_with_categories():
    png = render_expenses_summary(
        summary(
            [
                CategoryBreakdown("food_dining", Decimal("35.00"), 2),
                CategoryBreakdown("transportation", Decimal("50.00"), 1),
            ]
        ),
        currency="USD",
        locale="es",
        tz_offset_hours=-5,
    )
    assert png.startswith(PNG_MAGIC)


def test_render_empty_expenses_summary():
    assert render_expenses_summary(summary([]), tz_offset_hours=-5).startswith(PNG_MAGIC)


def test_render_food_added():
    png = render_food_added(
        FoodAddedData(
            food_name="Bandeja paisa",
            quantity=1,
            unit="plate",
            calories=1200,
            protein=55,
            carbs=110,
            fat=60,
            fiber=12,
            meal_type="lunch",
            eaten_at=datetime(2024, 10, 19, 13, tzinfo=BOGOTA),
            locale="es",
        )
    )
    assert png.startswith(PNG_MAGIC)


def test_render_daily_summary():
    breakfast = NutritionTotals(Decimal("420"), Decimal("12"), Decimal("40"), Decimal("8"), 2)
    nutrition = NutritionSummary(
        period_label="Today",
        start=datetime(2024, 10, 19, 5, tzinfo=timezone.utc),
        end=datetime(2024, 10, 20, 5, tzinfo=timezone.utc),
        totals=breakfast,
        by_meal={"breakfast": breakfast},
    )
    assert render_daily_summary(nutrition, date(2024, 10, 19), "en").startswith(PNG_MAGIC)
    empty = NutritionSummary("Today", nutrition.start, nutrition.end, NutritionTotals())
    assert render_daily_summary(empty, date(2024, 10, 19), "es").startswith(PNG_MAGIC)
