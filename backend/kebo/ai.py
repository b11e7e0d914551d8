"""Tool-calling agent on top of OpenAI chat completions."""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from openai import OpenAI
from pydantic import BaseModel, ValidationError

from .food_search import FoodItem, FoodSearchError
from .media import DownloadedMedia
from .schemas import (
    GetDailySummaryParams,
    GetExpensesByCategoryParams,
    GetExpensesSummaryParams,
    LogExpenseParams,
    LogFoodParams,
    SearchFoodParams,
)

logger = logging.getLogger(__name__)

MAX_FOOD_RESULTS = 5
IMAGE_ONLY_PROMPT = "What is in this image? Please log it for me."


@dataclass(frozen=True)
class ToolSpec:
    name: str
    params: type[BaseModel]
    description: str


TOOLS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            "logExpense",
            LogExpenseParams,
            "Log an expense when a user mentions they bought or spent money on something.\n"
            "Examples: \"I just bought a new computer for 500 dollars\", \"Spent 25 on lunch today\", "
            "\"Paid 150 for electricity bill\", \"Got groceries for 80 bucks yesterday\".\n"
            "Infer the category from context:\n"
            "- food_dining: restaurants, groceries, coffee, food delivery\n"
            "- transportation: gas, uber, bus, car maintenance, parking\n"
            "- shopping: electronics, clothes, furniture, online shopping\n"
            "- entertainment: movies, games, streaming subscriptions, concerts\n"
            "- bills_utilities: electricity, water, internet, phone bill, rent\n"
            "- health: medicine, doctor visits, gym membership\n"
            "- education: books, courses, tuition, school supplies\n"
            "- travel: hotels, flights, vacation expenses\n"
            "- other: anything that doesn't fit above",
        ),
        ToolSpec(
            "getExpensesSummary",
            GetExpensesSummaryParams,
            "Get a summary of expenses for a specific time period. Use this when the user asks "
            "\"How much did I spend this week?\", \"What are my expenses this month?\", "
            "\"Show me my spending for today\" or \"How much did I spend on food this month?\"",
        ),
        ToolSpec(
            "getExpensesByCategory",
            GetExpensesByCategoryParams,
            "Get a breakdown of expenses by category for a date range. Use this when the user asks "
            "\"Show me my spending by category\", \"Where is my money going?\" or "
            "\"Breakdown of expenses this month\"",
        ),
        ToolSpec(
            "searchFood",
            SearchFoodParams,
            "Search the food database. Returns matching foods with macros per serving and per 100g. "
            "Search in Spanish for better results.",
        ),
        ToolSpec(
            "logFood",
            LogFoodParams,
            "Log food the user ate. Macros must already be multiplied by the quantity eaten.",
        ),
        ToolSpec(
            "getDailySummary",
            GetDailySummaryParams,
            "Get the user's total calories and macros for a day.",
        ),
    )
}


def tool_definitions() -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": spec.name,
                "description": spec.description,
                "parameters": spec.params.model_json_schema(by_alias=True),
            },
        }
        for spec in TOOLS.values()
    ]


def build_system_prompt(now: datetime) -> str:
    today = now.date().isoformat()
    return f"""You are a friendly expense and nutrition tracking assistant on WhatsApp for users in Colombia and Peru.
You help users log what they spend and what they eat, and answer questions about their totals.

Current date/time in Colombia: {now.isoformat()}
Current date: {today}

EXPENSES:
- When the user mentions spending money, call logExpense. Infer the category and the time it was spent.
- When the user asks how much they spent, call getExpensesSummary (day, week, month or year).
- For a breakdown between two dates, call getExpensesByCategory.

WHEN A USER SENDS AN IMAGE:
- A receipt or bill is an expense: read the final total and call logExpense.
- A plate of food: identify each item, estimate the portion, search it with searchFood and log it with logFood.
- If you can't identify the image clearly, ask the user for clarification.

FOOD:
1. Use searchFood first, in Spanish if possible (e.g., "manzana" instead of "apple").
2. Prefer generic foods over branded ones unless the user named a brand.
3. Call logFood with macros multiplied by the quantity eaten.
   Set mealType by time: breakfast (5-10am), lunch (11am-3pm), dinner (6-10pm), snack (other times).
4. When asked about calories or macros for a day, call getDailySummary (today is {today}).

AFTER LOGGING:
- The user receives an image with all the details. Do NOT repeat amounts or macros.
- Keep your reply very short: "Got it!", "Logged!", "Anything else?".

Reply in the user's language. Be concise and friendly."""


def build_user_content(text: str | None, image: DownloadedMedia | None) -> str | list[dict[str, Any]]:
    if image is None:
        return text or ""
    data_url = f"data:{image.mime_type};base64,{base64.b64encode(image.data).decode('ascii')}"
    return [
        {"type": "image_url", "image_url": {"url": data_url}},
        {"type": "text", "text": text or IMAGE_ONLY_PROMPT},
    ]


@dataclass(frozen=True)
class ToolResult:
    name: str
    params: BaseModel
    output: dict[str, Any]


@dataclass
class AgentResult:
    text: str
    model: str
    step_count: int = 0
    tool_results: list[ToolResult] = field(default_factory=list)


FoodSearch = Callable[[str], Sequence[FoodItem]]


class ExpenseAgent:
    """Runs the chat/tool loop and hands back validated tool calls for the caller to act on."""

    def __init__(
        self,
        client: OpenAI,
        model: str,
        food_search: FoodSearch | None = None,
        max_steps: int = 5,
    ) -> None:
        self._client = client
        self.model = model
        self._food_search = food_search
        self._max_steps = max_steps

    def _execute(self, name: str, raw_arguments: str | None) -> tuple[ToolResult | None, dict[str, Any]]:
        spec = TOOLS.get(name)
        if spec is None:
            return None, {"error": f"Unknown tool: {name}"}
        try:
            params = spec.params.model_validate_json(raw_arguments or "{}")
        except ValidationError as exc:
            logger.warning("Invalid arguments for %s: %s", name, exc)
            return None, {"error": f"Invalid arguments: {exc.errors(include_url=False)}"}

        if isinstance(params, SearchFoodParams):
            if self._food_search is None:
                return None, {"error": "Food search is not available."}
            try:
                foods = list(self._food_search(params.query))[:MAX_FOOD_RESULTS]
            except FoodSearchError as exc:
                logger.error("Food search failed: %s", exc)
                return None, {"error": str(exc)}
            output = {"query": params.query, "foods": [food.to_dict() for food in foods]}
        else:
            output = {**params.model_dump(mode="json", by_alias=True), "action": name}
        return ToolResult(name=name, params=params, output=output), output

    def run(self, system_prompt: str, messages: list[dict[str, Any]]) -> AgentResult:
        conversation: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}, *messages]
        result = AgentResult(text="", model=self.model)

        for _ in range(self._max_steps):
            result.step_count += 1
            response = self._client.chat.completions.create(
                model=self.model,
                messages=conversation,
                tools=tool_definitions(),
                temperature=0,
            )
            message = response.choices[0].message
            result.text = message.content or ""
            if not message.tool_calls:
                break

            conversation.append(
                {
                    "role": "assistant",
                    "content": message.content or "",
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.function.name, "arguments": call.function.arguments},
                        }
                        for call in message.tool_calls
                    ],
                }
            )
            for call in message.tool_calls:
                tool_result, output = self._execute(call.function.name, call.function.arguments)
                if tool_result is not None:
                    result.tool_results.append(tool_result)
                conversation.append(
                    {"role": "tool", "tool_call_id": call.id, "content": json.dumps(output, default=str)}
                )

        return result


def build_openai_client(api_key: str | None, timeout: float) -> OpenAI | None:
    if not api_key:
        logger.warning("OPENAI_API_KEY is not configured; the assistant cannot answer messages.")
        return None
    return OpenAI(api_key=api_key, timeout=timeout)
