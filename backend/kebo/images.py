"""PNG cards sent back to the user after logging or asking for a summary."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from functools import lru_cache
from io import BytesIO

from PIL import Image, ImageDraw, ImageFont

from . import i18n
from .domain.periods import local_timezone
from .domain.summaries import NutritionSummary, Summary, sorted_by_total

WIDTH = 800
PADDING = 40

COLORS = {
    "primary": "#10B981",
    "secondary": "#6366F1",
    "background": "#FFFFFF",
    "surface": "#F3F4F6",
    "text": "#1F2937",
    "text_secondary": "#6B7280",
    "border": "#E5E7EB",
    "calories": "#EF4444",
    "protein": "#3B82F6",
    "carbs": "#F59E0B",
    "fat": "#8B5CF6",
    "fiber": "#10B981",
}

# category -> (colour, badge text)
CATEGORY_INFO: dict[str, tuple[str, str]] = {
    "food_dining": ("#F97316", "FD"),
    "transportation": ("#3B82F6", "TR"),
    "shopping": ("#EC4899", "SH"),
    "entertainment": ("#8B5CF6", "EN"),
    "bills_utilities": ("#EF4444", "BU"),
    "health": ("#10B981", "HE"),
    "education": ("#6366F1", "ED"),
    "travel": ("#06B6D4", "TV"),
    "other": ("#6B7280", "OT"),
}

MEAL_COLORS: dict[str, str] = {
    "breakfast": "#F59E0B",
    "lunch": "#10B981",
    "dinner": "#6366F1",
    "snack": "#EC4899",
}

CURRENCY_SYMBOLS = {"USD": "$", "COP": "$", "PEN": "S/", "EUR": "€", "GBP": "£"}


@lru_cache(maxsize=16)
def _font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def format_currency(amount: Decimal | float, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{amount:,.2f} {currency.upper()}"


def format_number(value: Decimal | float) -> str:
    return f"{round(value):,}"


def format_time(value: datetime) -> str:
    return value.strftime("%I:%M %p").lstrip("0")


def _to_png(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _new_canvas(height: int) -> tuple[Image.Image, ImageDraw.ImageDraw]:
    image = Image.new("RGB", (WIDTH, height), COLORS["background"])
    return image, ImageDraw.Draw(image)


def _header(draw: ImageDraw.ImageDraw, title: str, subtitle: str, color: str) -> int:
    draw.rectangle((0, 0, WIDTH, 8), fill=color)
    draw.text((PADDING, 36), title, font=_font(34), fill=COLORS["text"])
    draw.text((PADDING, 84), subtitle, font=_font(20), fill=COLORS["text_secondary"])
    return 130


def _badge(draw: ImageDraw.ImageDraw, x: int, y: int, radius: int, color: str, label: str) -> None:
    draw.ellipse((x, y, x + radius * 2, y + radius * 2), fill=color)
    draw.text((x + radius, y + radius), label, font=_font(max(radius - 4, 10)), fill="white", anchor="mm")


def _stat_box(draw: ImageDraw.ImageDraw, box: tuple[int, int, int, int], label: str, value: str, color: str) -> None:
    draw.rounded_rectangle(box, radius=16, fill=COLORS["surface"])
    x0, y0, x1, _ = box
    center = (x0 + x1) // 2
    draw.text((center, y0 + 38), value, font=_font(30), fill=color, anchor="mm")
    draw.text((center, y0 + 78), label, font=_font(16), fill=COLORS["text_secondary"], anchor="mm")


@dataclass(frozen=True)
class ExpenseAddedData:
    description: str
    amount: Decimal
    category: str
    spent_at: datetime
    vendor: str | None = None
    currency: str = "USD"
    locale: str = "en"


def render_expense_added(data: ExpenseAddedData) -> bytes:
    t = i18n.get_translations(data.locale)
    color, badge = CATEGORY_INFO.get(data.category, CATEGORY_INFO["other"])
    image, draw = _new_canvas(420)

    y = _header(draw, t.expense_logged, i18n.format_date(data.spent_at.date(), data.locale), color)
    draw.rounded_rectangle((PADDING, y, WIDTH - PADDING, y + 240), radius=20, fill=COLORS["surface"])
    _badge(draw, PADDING + 24, y + 24, 26, color, badge)
    draw.text(
        (PADDING + 90, y + 30),
        i18n.category_name(data.category, data.locale),
        font=_font(22),
        fill=color,
    )
    draw.text((PADDING + 90, y + 60), format_time(data.spent_at), font=_font(16), fill=COLORS["text_secondary"])

    draw.text(
        (WIDTH // 2, y + 130),
        format_currency(data.amount, data.currency),
        font=_font(56),
        fill=COLORS["text"],
        anchor="mm",
    )
    detail = data.description
    if data.vendor:
        detail = f"{detail} {t.at} {data.vendor}"
    draw.text((WIDTH // 2, y + 195), detail[:60], font=_font(20), fill=COLORS["text_secondary"], anchor="mm")
    return _to_png(image)


def render_expenses_summary(
    summary: Summary,
    *,
    currency: str = "USD",
    locale: str = "en",
    tz_offset_hours: int = 0,
) -> bytes:
    """Total and per-category bars, largest category first."""
    t = i18n.get_translations(locale)
    categories = sorted_by_total(summary.by_category)
    row_height = 64
    height = 330 + max(len(categories), 1) * row_height
    image, draw = _new_canvas(height)

    tz = local_timezone(tz_offset_hours)
    first_day: date = summary.start.astimezone(tz).date()
    last_day: date = (summary.end.astimezone(tz) - timedelta(days=1)).date()
    if first_day == last_day:
        subtitle = i18n.format_short_date(first_day, locale)
    else:
        subtitle = f"{i18n.format_short_date(first_day, locale)} - {i18n.format_short_date(last_day, locale)}"

    y = _header(draw, i18n.translate_period_label(summary.period_label, locale), subtitle, COLORS["primary"])
    draw.rounded_rectangle((PADDING, y, WIDTH - PADDING, y + 130), radius=20, fill=COLORS["surface"])
    draw.text((PADDING + 28, y + 24), t.total_spent, font=_font(18), fill=COLORS["text_secondary"])
    draw.text(
        (PADDING + 28, y + 54),
        format_currency(summary.total_amount, currency),
        font=_font(44),
        fill=COLORS["text"],
    )
    count_text = f"{summary.entry_count} {i18n.format_expense_count(summary.entry_count, locale)} {t.expenses_logged}"
    draw.text((WIDTH - PADDING - 28, y + 76), count_text, font=_font(18), fill=COLORS["text_secondary"], anchor="ra")
    y += 160

    if not categories:
        draw.text((WIDTH // 2, y + 30), t.no_expenses, font=_font(20), fill=COLORS["text_secondary"], anchor="mm")
        return _to_png(image)

    max_total = max(item.total for item in categories)
    bar_width = WIDTH - PADDING * 2
    for item in categories:
        color, badge = CATEGORY_INFO.get(item.category, CATEGORY_INFO["other"])
        _badge(draw, PADDING, y, 12, color, badge)
        draw.text(
            (PADDING + 34, y + 2),
            f"{i18n.category_name(item.category, locale)} ({item.count})",
            font=_font(17),
            fill=COLORS["text"],
        )
        draw.text(
            (WIDTH - PADDING, y + 2),
            format_currency(item.total, currency),
            font=_font(17),
            fill=color,
            anchor="ra",
        )
        bar_y = y + 32
        draw.rounded_rectangle((PADDING, bar_y, PADDING + bar_width, bar_y + 10), radius=5, fill=COLORS["border"])
        filled = int(bar_width * (item.total / max_total)) if max_total > 0 else 0
        if filled > 0:
            draw.rounded_rectangle((PADDING, bar_y, PADDING + filled, bar_y + 10), radius=5, fill=color)
        y += row_height
    return _to_png(image)


@dataclass(frozen=True)
class FoodAddedData:
    food_name: str
    quantity: Decimal | float
    unit: str
    calories: Decimal | float
    protein: Decimal | float
    carbs: Decimal | float
    fat: Decimal | float
    meal_type: str
    eaten_at: datetime
    fiber: Decimal | float | None = None
    locale: str = "en"


def render_food_added(data: FoodAddedData) -> bytes:
    t = i18n.get_translations(data.locale)
    meal_color = MEAL_COLORS.get(data.meal_type, COLORS["primary"])
    image, draw = _new_canvas(460)

    subtitle = f"{i18n.meal_name(data.meal_type, data.locale)} · {format_time(data.eaten_at)}"
    y = _header(draw, t.food_logged, subtitle, meal_color)
    draw.text((PADDING, y), data.food_name[:48], font=_font(28), fill=COLORS["text"])
    draw.text(
        (PADDING, y + 40),
        f"{data.quantity:g} {data.unit}" if isinstance(data.quantity, float) else f"{data.quantity} {data.unit}",
        font=_font(18),
        fill=COLORS["text_secondary"],
    )
    y += 90

    draw.rounded_rectangle((PADDING, y, WIDTH - PADDING, y + 90), radius=18, fill=COLORS["surface"])
    draw.text((PADDING + 28, y + 45), t.calories, font=_font(20), fill=COLORS["text_secondary"], anchor="lm")
    draw.text(
        (WIDTH - PADDING - 28, y + 45),
        f"{format_number(data.calories)} kcal",
        font=_font(34),
        fill=COLORS["calories"],
        anchor="rm",
    )
    y += 110

    macros = [
        (t.protein, data.protein, COLORS["protein"]),
        (t.carbs, data.carbs, COLORS["carbs"]),
        (t.fat, data.fat, COLORS["fat"]),
    ]
    if data.fiber is not None:
        macros.append((t.fiber, data.fiber, COLORS["fiber"]))
    gap = 16
    box_width = (WIDTH - PADDING * 2 - gap * (len(macros) - 1)) // len(macros)
    for index, (label, value, color) in enumerate(macros):
        x0 = PADDING + index * (box_width + gap)
        _stat_box(draw, (x0, y, x0 + box_width, y + 100), label, f"{format_number(value)}g", color)
    return _to_png(image)


def render_daily_summary(summary: NutritionSummary, day: date, locale: str = "en") -> bytes:
    t = i18n.get_translations(locale)
    meals = [meal for meal in ("breakfast", "lunch", "dinner", "snack") if meal in summary.by_meal]
    height = 420 + len(meals) * 44
    image, draw = _new_canvas(height)

    y = _header(draw, t.daily_summary, i18n.format_date(day, locale), COLORS["primary"])
    totals = summary.totals
    draw.rounded_rectangle((PADDING, y, WIDTH - PADDING, y + 110), radius=20, fill=COLORS["surface"])
    draw.text(
        (WIDTH // 2, y + 42),
        f"{format_number(totals.calories)} kcal",
        font=_font(46),
        fill=COLORS["calories"],
        anchor="mm",
    )
    draw.text(
        (WIDTH // 2, y + 86),
        f"{totals.entry_count} {i18n.format_entry_count(totals.entry_count, locale)}",
        font=_font(18),
        fill=COLORS["text_secondary"],
        anchor="mm",
    )
    y += 130

    gap = 16
    box_width = (WIDTH - PADDING * 2 - gap * 2) // 3
    for index, (label, value, color) in enumerate(
        [
            (t.protein, totals.protein, COLORS["protein"]),
            (t.carbs, totals.carbs, COLORS["carbs"]),
            (t.fat, totals.fat, COLORS["fat"]),
        ]
    ):
        x0 = PADDING + index * (box_width + gap)
        _stat_box(draw, (x0, y, x0 + box_width, y + 100), label, f"{format_number(value)}g", color)
    y += 130

    for meal in meals:
        meal_totals = summary.by_meal[meal]
        color = MEAL_COLORS[meal]
        draw.ellipse((PADDING, y + 6, PADDING + 14, y + 20), fill=color)
        draw.text((PADDING + 26, y), i18n.meal_name(meal, locale), font=_font(18), fill=COLORS["text"])
        draw.text(
            (WIDTH - PADDING, y),
            f"{format_number(meal_totals.calories)} kcal",
            font=_font(18),
            fill=color,
            anchor="ra",
        )
        y += 44
    return _to_png(image)
