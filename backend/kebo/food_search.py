"""Food lookups against the Open Food Facts public database."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "KeboWA/1.0 (macros-tracking-app)"
SEARCH_FIELDS = "code,product_name,product_name_es,brands,categories,nutriments,serving_size,serving_quantity"
PAGE_SIZE = 15

_GRAMS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*g(?:rams?)?", re.IGNORECASE)
_ML_RE = re.compile(r"(\d+(?:\.\d+)?)\s*ml", re.IGNORECASE)


class FoodSearchError(Exception):
    """Raised when the food database cannot be queried."""


@dataclass
class Serving:
    name: str
    size: float
    unit: str
    quantity: str
    calories: float
    protein: float
    carbs: float
    fat: float


@dataclass
class FoodItem:
    id: str
    name: str
    serving_name: str
    serving_size: float
    serving_unit: str
    calories_per_100g: float
    protein_per_100g: float
    carbs_per_100g: float
    fat_per_100g: float
    calories: float
    protein: float
    carbs: float
    fat: float
    brand: str | None = None
    category: str | None = None
    fiber_per_100g: float | None = None
    fiber: float | None = None
    servings: list[Serving] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _round1(value: float) -> float:
    return round(value * 10) / 10


def calculate_macros(per_100g: dict[str, float | None], portion_grams: float) -> dict[str, float | None]:
    """Scale per-100g values to a portion, rounded to one decimal."""
    factor = portion_grams / 100
    fiber = per_100g.get("fiber")
    return {
        "calories": _round1(per_100g["calories"] * factor),
        "protein": _round1(per_100g["protein"] * factor),
        "carbs": _round1(per_100g["carbs"] * factor),
        "fat": _round1(per_100g["fat"] * factor),
        "fiber": _round1(fiber * factor) if fiber else None,
    }


def parse_serving_size(raw: str | None) -> tuple[str, float, str]:
    """Return ``(name, size, unit)`` for strings like "30g" or "1 cup (240ml)"."""
    if not raw:
        return "100g", 100.0, "g"
    grams = _GRAMS_RE.search(raw)
    if grams:
        return raw, float(grams.group(1)), "g"
    millilitres = _ML_RE.search(raw)
    if millilitres:
        return raw, float(millilitres.group(1)), "ml"
    return raw, 100.0, "g"


def parse_product(product: dict[str, Any]) -> FoodItem | None:
    nutriments = product.get("nutriments") or {}
    calories = nutriments.get("energy-kcal_100g")
    if calories is None:
        return None
    name = product.get("product_name_es") or product.get("product_name")
    if not name:
        return None

    per_100g = {
        "calories": float(calories),
        "protein": float(nutriments.get("proteins_100g") or 0),
        "carbs": float(nutriments.get("carbohydrates_100g") or 0),
        "fat": float(nutriments.get("fat_100g") or 0),
        "fiber": float(nutriments["fiber_100g"]) if nutriments.get("fiber_100g") is not None else None,
    }

    serving_name, parsed_size, unit = parse_serving_size(product.get("serving_size"))
    serving_size = float(product.get("serving_quantity") or parsed_size)
    macros = calculate_macros(per_100g, serving_size)

    servings = [
        Serving(
            name="100g",
            size=100,
            unit="g",
            quantity="100",
            calories=per_100g["calories"],
            protein=per_100g["protein"],
            carbs=per_100g["carbs"],
            fat=per_100g["fat"],
        )
    ]
    if serving_size != 100:
        servings.insert(
            0,
            Serving(
                name=serving_name,
                size=serving_size,
                unit=unit,
                quantity=f"{serving_size:g}",
                calories=macros["calories"],
                protein=macros["protein"],
                carbs=macros["carbs"],
                fat=macros["fat"],
            ),
        )

    categories = product.get("categories") or ""
    return FoodItem(
        id=str(product.get("code", "")),
        name=name,
        brand=product.get("brands") or None,
        category=categories.split(",")[0].strip() or None,
        serving_name=serving_name if serving_size != 100 else "100g",
        serving_size=serving_size,
        serving_unit=unit,
        calories_per_100g=per_100g["calories"],
        protein_per_100g=per_100g["protein"],
        carbs_per_100g=per_100g["carbs"],
        fat_per_100g=per_100g["fat"],
        fiber_per_100g=per_100g["fiber"],
        calories=macros["calories"],
        protein=macros["protein"],
        carbs=macros["carbs"],
        fat=macros["fat"],
        fiber=macros["fiber"],
        servings=servings,
    )


class FoodSearchClient:
    def __init__(self, http: httpx.Client, search_url: str) -> None:
        self._http = http
        self._search_url = search_url

    def search_foods(self, query: str) -> list[FoodItem]:
        params = {
            "search_terms": query,
            "search_simple": "1",
            "action": "process",
            "json": "1",
            "page_size": str(PAGE_SIZE),
            "fields": SEARCH_FIELDS,
        }
        try:
            response = self._http.get(
                self._search_url,
                params=params,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise FoodSearchError(f"Open Food Facts API error: {exc}") from exc

        foods: list[FoodItem] = []
        for product in payload.get("products") or []:
            try:
                item = parse_product(product)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping product %s with malformed nutriments: %s", product.get("code"), exc)
                continue
            if item is not None:
                foods.append(item)
        logger.info("Found %d results from Open Food Facts for %r", len(foods), query)
        return foods

    def find_best_match(self, query: str) -> FoodItem | None:
        foods = self.search_foods(query)
        return foods[0] if foods else None
