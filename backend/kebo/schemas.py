from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ExpenseCategoryName = Literal[
    "food_dining",
    "transportation",
    "shopping",
    "entertainment",
    "bills_utilities",
    "health",
    "education",
    "travel",
    "other",
]
MealTypeName = Literal["breakfast", "lunch", "dinner", "snack"]
PeriodName = Literal["day", "week", "month", "year"]
LocaleName = Literal["en", "es"]


# --- Tool call arguments ---------------------------------------------------


class ToolParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LogExpenseParams(ToolParams):
    description: str = Field(
        min_length=1,
        max_length=500,
        description="Brief description of the expense (e.g., 'New MacBook Pro')",
    )
    amount: float = Field(ge=0.01, description="Amount spent, at least one cent")
    category: ExpenseCategoryName = Field(
        description=(
            "Expense category: food_dining, transportation, shopping, entertainment, "
            "bills_utilities, health, education, travel, or other"
        )
    )
    vendor: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Store or vendor name if mentioned (e.g., 'Apple Store', 'Amazon')",
    )
    spent_at: datetime = Field(
        alias="spentAt",
        description="ISO timestamp of when money was spent, inferred from context (default to now if not specified)",
    )


class GetExpensesSummaryParams(ToolParams):
    period: PeriodName = Field(description="Time period for the summary")
    reference_date: Optional[date] = Field(
        default=None,
        alias="date",
        description="Reference date in YYYY-MM-DD format (defaults to today)",
    )
    category: Optional[ExpenseCategoryName] = Field(
        default=None, description="Optional: filter by specific category"
    )


class GetExpensesByCategoryParams(ToolParams):
    start_date: date = Field(alias="startDate", description="Start date in YYYY-MM-DD format")
    end_date: date = Field(alias="endDate", description="End date in YYYY-MM-DD format")

    @model_validator(mode="after")
    def check_order(self) -> "GetExpensesByCategoryParams":
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate.")
        return self


class SearchFoodParams(ToolParams):
    query: str = Field(min_length=1, description="The food name to search for")


class LogFoodParams(ToolParams):
    food_name: str = Field(alias="foodName", min_length=1, description="Name of the food eaten")
    food_id: Optional[str] = Field(default=None, alias="foodId", description="Food id from searchFood results, if any")
    quantity: float = Field(ge=0, description="Quantity eaten, in the given unit")
    unit: str = Field(min_length=1, max_length=32, description="Unit of the quantity (g, ml, cup, unit...)")
    calories: float = Field(ge=0, description="Total kcal for the quantity eaten")
    protein: float = Field(ge=0, description="Total protein in grams")
    carbs: float = Field(ge=0, description="Total carbohydrates in grams")
    fat: float = Field(ge=0, description="Total fat in grams")
    fiber: Optional[float] = Field(default=None, ge=0, description="Total fiber in grams, if known")
    meal_type: MealTypeName = Field(alias="mealType", description="breakfast, lunch, dinner or snack")
    eaten_at: datetime = Field(alias="eatenAt", description="ISO timestamp of when the food was eaten")


class GetDailySummaryParams(ToolParams):
    reference_date: date = Field(alias="date", description="Date in YYYY-MM-DD format")


# --- Kapso webhook payload -------------------------------------------------


class KapsoText(BaseModel):
    body: str = ""


class KapsoMedia(BaseModel):
    id: Optional[str] = None
    mime_type: Optional[str] = None
    sha256: Optional[str] = None
    caption: Optional[str] = None


class KapsoMediaData(BaseModel):
    url: str
    filename: Optional[str] = None
    content_type: Optional[str] = None
    byte_size: Optional[int] = None


class KapsoMessageMeta(BaseModel):
    direction: Optional[Literal["inbound", "outbound"]] = None
    status: Optional[str] = None
    content: Optional[str] = None
    media_url: Optional[str] = None
    media_data: Optional[KapsoMediaData] = None


class KapsoMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    timestamp: Optional[str] = None
    type: str
    sender: str = Field(default="", alias="from")
    text: Optional[KapsoText] = None
    image: Optional[KapsoMedia] = None
    audio: Optional[KapsoMedia] = None
    kapso: Optional[KapsoMessageMeta] = None

    @property
    def is_inbound(self) -> bool:
        return self.kapso is not None and self.kapso.direction == "inbound"

    @property
    def media_url(self) -> Optional[str]:
        if not self.kapso:
            return None
        if self.kapso.media_url:
            return self.kapso.media_url
        if self.kapso.media_data:
            return self.kapso.media_data.url
        return None

    @property
    def media_content_type(self) -> Optional[str]:
        if self.kapso and self.kapso.media_data and self.kapso.media_data.content_type:
            return self.kapso.media_data.content_type
        media = self.image or self.audio
        return media.mime_type if media else None


class KapsoConversation(BaseModel):
    id: str
    phone_number: Optional[str] = None
    phone_number_id: Optional[str] = None


class KapsoWebhookItem(BaseModel):
    message: KapsoMessage
    conversation: Optional[KapsoConversation] = None
    phone_number_id: Optional[str] = None
    is_new_conversation: bool = False


class KapsoWebhookPayload(BaseModel):
    type: str = ""
    batch: bool = False
    data: list[KapsoWebhookItem] = Field(default_factory=list)
    # Legacy non-batch format
    message: Optional[KapsoMessage] = None
    conversation: Optional[KapsoConversation] = None
    phone_number_id: Optional[str] = None
    is_new_conversation: bool = False
    test: bool = False

    def first_item(self) -> tuple[Optional[KapsoMessage], Optional[KapsoConversation], Optional[str]]:
        """Return the message to handle from either payload shape."""
        if self.batch and self.data:
            item = self.data[0]
            return item.message, item.conversation, item.phone_number_id
        return self.message, self.conversation, self.phone_number_id


# --- API output ------------------------------------------------------------


class ExpenseOut(BaseModel):
    id: int
    user_id: int
    description: str
    amount: Decimal
    category: str
    vendor: Optional[str] = None
    spent_at: datetime

    @field_validator("category", mode="before")
    @classmethod
    def category_value(cls, value: object) -> object:
        return getattr(value, "value", value)

    class Config:
        from_attributes = True


class CategoryBreakdownOut(BaseModel):
    category: str
    total: Decimal
    count: int

    class Config:
        from_attributes = True


class SummaryOut(BaseModel):
    period_label: str
    start: datetime
    end: datetime
    total_amount: Decimal
    entry_count: int
    by_category: list[CategoryBreakdownOut]

    class Config:
        from_attributes = True
