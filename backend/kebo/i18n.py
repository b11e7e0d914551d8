"""Display strings for the rendered images, in English and Spanish."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal

SupportedLocale = Literal["en", "es"]
DEFAULT_LOCALE: SupportedLocale = "en"


@dataclass(frozen=True)
class Translations:
    expense_logged: str
    total_spent: str
    expenses_logged: str
    expense: str
    expenses: str
    at: str
    food_logged: str
    daily_summary: str
    calories: str
    protein: str
    carbs: str
    fat: str
    fiber: str
    entry: str
    entries: str
    no_expenses: str
    period_labels: dict[str, str]
    categories: dict[str, str]
    meals: dict[str, str]
    weekdays: tuple[str, ...]
    months: tuple[str, ...]


TRANSLATIONS: dict[str, Translations] = {
    "en": Translations(
        expense_logged="Expense Logged",
        total_spent="Total Spent",
        expenses_logged="logged",
        expense="expense",
        expenses="expenses",
        at="at",
        food_logged="Food Logged",
        daily_summary="Daily Summary",
        calories="Calories",
        protein="Protein",
        carbs="Carbs",
        fat="Fat",
        fiber="Fiber",
        entry="entry",
        entries="entries",
        no_expenses="No expenses in this period",
        period_labels={
            "Today": "Today",
            "This Week": "This Week",
            "This Month": "This Month",
            "This Year": "This Year",
            "Custom Range": "Custom Range",
        },
        categories={
            "food_dining": "Food & Dining",
            "transportation": "Transportation",
            "shopping": "Shopping",
            "entertainment": "Entertainment",
            "bills_utilities": "Bills & Utilities",
            "health": "Health",
            "education": "Education",
            "travel": "Travel",
            "other": "Other",
        },
        meals={
            "breakfast": "Breakfast",
            "lunch": "Lunch",
            "dinner": "Dinner",
            "snack": "Snack",
        },
        weekdays=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
        months=("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
    ),
    "es": Translations(
        expense_logged="Gasto Registrado",
        total_spent="Total Gastado",
        expenses_logged="registrados",
        expense="gasto",
        expenses="gastos",
        at="en",
        food_logged="Comida Registrada",
        daily_summary="Resumen del Día",
        calories="Calorías",
        protein="Proteína",
        carbs="Carbohidratos",
        fat="Grasa",
        fiber="Fibra",
        entry="registro",
        entries="registros",
        no_expenses="Sin gastos en este período",
        period_labels={
            "Today": "Hoy",
            "This Week": "Esta Semana",
            "This Month": "Este Mes",
            "This Year": "Este Año",
            "Custom Range": "Rango Personalizado",
        },
        categories={
            "food_dining": "Comida y Restaurantes",
            "transportation": "Transporte",
            "shopping": "Compras",
            "entertainment": "Entretenimiento",
            "bills_utilities": "Facturas y Servicios",
            "health": "Salud",
            "education": "Educación",
            "travel": "Viajes",
            "other": "Otros",
        },
        meals={
            "breakfast": "Desayuno",
            "lunch": "Almuerzo",
            "dinner": "Cena",
            "snack": "Merienda",
        },
        weekdays=("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"),
        months=("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sep", "oct", "nov", "dic"),
    ),
}


def get_translations(locale: str | None) -> Translations:
    """Translations for ``locale``; unknown locales fall back to English."""
    return TRANSLATIONS.get((locale or DEFAULT_LOCALE).lower(), TRANSLATIONS[DEFAULT_LOCALE])


def format_expense_count(count: int, locale: str | None) -> str:
    t = get_translations(locale)
    return t.expense if count == 1 else t.expenses


def format_entry_count(count: int, locale: str | None) -> str:
    t = get_translations(locale)
    return t.entry if count == 1 else t.entries


def translate_period_label(period_label: str, locale: str | None) -> str:
    return get_translations(locale).period_labels.get(period_label, period_label)


def category_name(category: str, locale: str | None) -> str:
    return get_translations(locale).categories.get(category, category)


def meal_name(meal_type: str, locale: str | None) -> str:
    return get_translations(locale).meals.get(meal_type, meal_type)


def format_date(day: date, locale: str | None) -> str:
    """Long weekday and short month, e.g. "Monday, Oct 19" / "lunes, 19 oct"."""
    t = get_translations(locale)
    weekday = t.weekdays[day.weekday()]
    month = t.months[day.month - 1]
    if t is TRANSLATIONS["es"]:
        return f"{weekday}, {day.day} {month}"
    return f"{weekday}, {month} {day.day}"


def format_short_date(day: date, locale: str | None) -> str:
    t = get_translations(locale)
    month = t.months[day.month - 1]
    if t is TRANSLATIONS["es"]:
        return f"{day.day} {month} {day.year}"
    return f"{month} {day.day}, {day.year}"
