"""WhatsApp webhook automation for the expense & food tracker."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import Decimal
from functools import lru_cache, partial

import httpx
from openai import OpenAI
from sqlalchemy.orm import Session

from . import crud, i18n
from .ai import AgentResult, ExpenseAgent, ToolResult, build_openai_client, build_system_prompt, build_user_content
from .config import Settings, get_settings
from .domain.periods import local_now, local_timezone
from .domain.summaries import compute_custom_range_summary, compute_daily_nutrition, compute_summary
from .food_search import FoodSearchClient
from .images import (
    ExpenseAddedData,
    FoodAddedData,
    format_currency,
    format_number,
    render_daily_summary,
    render_expense_added,
    render_expenses_summary,
    render_food_added,
)
from .media import DownloadedMedia, MediaDownloadError, MediaStore, download_audio, download_image
from .message_log import AudioInfo, CategoryDecisionLog, IncomingMessageLog, MessageLogger, ToolCallLog
from .models import UserModel
from .schemas import (
    GetDailySummaryParams,
    GetExpensesByCategoryParams,
    GetExpensesSummaryParams,
    KapsoWebhookPayload,
    LogExpenseParams,
    LogFoodParams,
)
from .transcription import transcribe_audio
from .whatsapp import WhatsAppClient, WhatsAppClientError

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = {"text", "image", "audio"}
ERROR_REPLY = "Sorry, I had trouble processing that. Could you try again?"
IMAGE_RAW_MESSAGE = "Image"


@dataclass
class BotServices:
    """Collaborators built once at start-up and shared by every request."""

    settings: Settings
    message_logger: MessageLogger
    whatsapp: WhatsAppClient
    media_store: MediaStore
    http: httpx.Client
    agent: ExpenseAgent | None = None
    openai_client: OpenAI | None = None


def build_services(settings: Settings) -> BotServices:
    http = httpx.Client(timeout=settings.http_timeout_seconds)
    openai_client = build_openai_client(settings.openai_api_key, settings.http_timeout_seconds * 4)
    food_search = FoodSearchClient(http, settings.food_search_url)
    agent = None
    if openai_client is not None:
        agent = ExpenseAgent(
            openai_client,
            settings.ai_model,
            food_search=food_search.search_foods,
            max_steps=settings.ai_max_steps,
        )
    return BotServices(
        settings=settings,
        message_logger=MessageLogger(),
        whatsapp=WhatsAppClient(http, settings.kapso_base_url, settings.kapso_api_key, settings.kapso_api_version),
        media_store=MediaStore(settings.media_dir, settings.public_base_url),
        http=http,
        agent=agent,
        openai_client=openai_client,
    )


@lru_cache
def get_services() -> BotServices:
    """FastAPI dependency returning the process-wide bot collaborators."""
    return build_services(get_settings())


def normalise_phone(raw: str) -> str:
    return re.sub(r"\D", "", raw)


class WebhookProcessor:
    def __init__(self, services: BotServices) -> None:
        self.services = services
        self.settings = services.settings
        self.log = services.message_logger

    @property
    def tz_offset(self) -> int:
        return self.settings.timezone_offset_hours

    def handle(self, db: Session, payload: KapsoWebhookPayload) -> str:
        """Process one webhook delivery. Returns a short outcome tag."""
        message, conversation, phone_number_id = payload.first_item()

        if message is None or not message.is_inbound:
            return "ignored"
        if message.type not in SUPPORTED_TYPES:
            return "ignored"

        sender = normalise_phone(message.sender)
        if not phone_number_id or not sender:
            return "ignored"

        if message.type == "text":
            user_text = message.text.body if message.text else None
        else:
            media = message.image or message.audio
            user_text = media.caption if media else None

        conversation_id = conversation.id if conversation else None
        image: DownloadedMedia | None = None
        audio_info: AudioInfo | None = None
        media_url = message.media_url
        if message.type == "image":
            if media_url:
                try:
                    image = download_image(self.services.http, media_url, message.media_content_type)
                except MediaDownloadError as exc:
                    self.log.log_error("download_image", exc)
            else:
                logger.error("No media URL in webhook payload for image message")
        elif message.type == "audio":
            if media_url:
                user_text, audio_info = self._transcribe(message.id, media_url, message.media_content_type)
            else:
                logger.error("No media URL in webhook payload for audio message")

        self.log.log_incoming_message(
            IncomingMessageLog(
                message_id=message.id,
                sender=sender,
                type=message.type,
                has_text=bool(user_text),
                has_image=image is not None,
                has_audio=message.type == "audio",
                text_content=user_text,
                conversation_id=conversation_id,
                audio=audio_info,
            )
        )

        if not user_text and image is None:
            return "ignored"

        try:
            self._respond(db, message.id, sender, phone_number_id, conversation_id, user_text, image)
        except Exception as exc:  # noqa: BLE001
            self.log.log_error("process_message", exc)
            try:
                self.services.whatsapp.send_text(phone_number_id, sender, ERROR_REPLY)
                self.log.log_message_sent(sender, "text", ERROR_REPLY)
            except WhatsAppClientError as send_exc:
                self.log.log_error("send_error_message", send_exc)
            return "failed"
        return "processed"

    def _transcribe(self, message_id: str, url: str, content_type: str | None) -> tuple[str | None, AudioInfo | None]:
        try:
            audio = download_audio(self.services.http, url, content_type)
        except MediaDownloadError as exc:
            self.log.log_error("download_audio", exc)
            return None, None
        if self.services.openai_client is None:
            self.log.log_error("transcribe_audio", "OPENAI_API_KEY environment variable is required")
            return None, AudioInfo(mime_type=audio.mime_type)
        text = transcribe_audio(self.services.openai_client, self.settings.transcription_model, audio)
        if text:
            self.log.log_audio_transcription(message_id, None, text)
        return text, AudioInfo(mime_type=audio.mime_type, transcription=text)

    def _respond(
        self,
        db: Session,
        message_id: str,
        sender: str,
        phone_number_id: str,
        conversation_id: str | None,
        user_text: str | None,
        image: DownloadedMedia | None,
    ) -> None:
        agent = self.services.agent
        if agent is None:
            raise RuntimeError("OPENAI_API_KEY is not configured.")

        user = crud.get_or_create_user(db, sender)
        history = []
        if conversation_id:
            history = self.services.whatsapp.get_conversation_messages(
                phone_number_id, conversation_id, limit=self.settings.history_limit
            )

        messages = [turn.to_message() for turn in history]
        messages.append({"role": "user", "content": build_user_content(user_text, image)})
        result = agent.run(build_system_prompt(local_now(self.tz_offset)), messages)
        self._log_decision(message_id, user_text, result)

        raw_message = user_text or IMAGE_RAW_MESSAGE
        for tool_result in result.tool_results:
            self._apply_tool_result(db, user, tool_result, phone_number_id, sender, raw_message)

        reply = result.text.strip()
        if reply:
            self.services.whatsapp.send_text(phone_number_id, sender, reply)
            self.log.log_message_sent(sender, "text", reply)

    def _log_decision(self, message_id: str, user_text: str | None, result: AgentResult) -> None:
        calls = []
        for tool_result in result.tool_results:
            params = tool_result.params
            calls.append(
                ToolCallLog(
                    tool_name=tool_result.name,
                    category=getattr(params, "category", None),
                    description=getattr(params, "description", None),
                    amount=getattr(params, "amount", None),
                    vendor=getattr(params, "vendor", None),
                )
            )
        self.log.log_category_decision(
            CategoryDecisionLog(
                message_id=message_id,
                user_message=user_text or IMAGE_RAW_MESSAGE,
                ai_response=result.text,
                step_count=result.step_count,
                model_used=result.model,
                tool_calls=calls,
            )
        )

    def _send_image(self, phone_number_id: str, to: str, png: bytes, name: str, kind: str, caption: str | None = None) -> None:
        self.log.log_image_generated(kind)
        url = self.services.media_store.save_png(png, name)
        self.services.whatsapp.send_image(phone_number_id, to, url, caption)
        self.log.log_message_sent(to, "image", caption)

    def _apply_tool_result(
        self,
        db: Session,
        user: UserModel,
        tool_result: ToolResult,
        phone_number_id: str,
        sender: str,
        raw_message: str,
    ) -> None:
        params = tool_result.params
        locale = user.locale
        currency = self.settings.default_currency
        local_tz = local_timezone(self.tz_offset)

        if isinstance(params, LogExpenseParams):
            expense = crud.create_expense(db, user.id, params, raw_message, self.tz_offset)
            amount = Decimal(expense.amount)
            self.log.log_expense_saved(expense.id, params.category, amount, expense.description)
            png = render_expense_added(
                ExpenseAddedData(
                    description=expense.description,
                    amount=amount,
                    category=params.category,
                    vendor=expense.vendor,
                    spent_at=_localise(params.spent_at, local_tz),
                    currency=currency,
                    locale=locale,
                )
            )
            self._send_image(phone_number_id, sender, png, f"expense-added-{expense.id}", "expense-added")

        elif isinstance(params, GetExpensesSummaryParams):
            summary = compute_summary(
                partial(crud.find_expenses, db),
                user.id,
                params.period,
                params.reference_date,
                params.category,
                tz_offset_hours=self.tz_offset,
            )
            png = render_expenses_summary(summary, currency=currency, locale=locale, tz_offset_hours=self.tz_offset)
            caption = (
                f"{i18n.translate_period_label(summary.period_label, locale)}: "
                f"{format_currency(summary.total_amount, currency)}"
            )
            self._send_image(phone_number_id, sender, png, f"summary-{user.id}-{params.period}", "summary", caption)

        elif isinstance(params, GetExpensesByCategoryParams):
            summary = compute_custom_range_summary(
                partial(crud.find_expenses, db),
                user.id,
                params.start_date,
                params.end_date,
                tz_offset_hours=self.tz_offset,
            )
            png = render_expenses_summary(summary, currency=currency, locale=locale, tz_offset_hours=self.tz_offset)
            self._send_image(
                phone_number_id,
                sender,
                png,
                f"category-breakdown-{user.id}-{params.start_date}-{params.end_date}",
                "category-breakdown",
            )

        elif isinstance(params, LogFoodParams):
            entry = crud.create_food_entry(db, user.id, params, raw_message, self.tz_offset)
            self.log.log_food_saved(entry.id, entry.food_name, Decimal(entry.calories), params.meal_type)
            png = render_food_added(
                FoodAddedData(
                    food_name=params.food_name,
                    quantity=params.quantity,
                    unit=params.unit,
                    calories=params.calories,
                    protein=params.protein,
                    carbs=params.carbs,
                    fat=params.fat,
                    fiber=params.fiber,
                    meal_type=params.meal_type,
                    eaten_at=_localise(params.eaten_at, local_tz),
                    locale=locale,
                )
            )
            self._send_image(phone_number_id, sender, png, f"food-added-{entry.id}", "food-added")

        elif isinstance(params, GetDailySummaryParams):
            nutrition = compute_daily_nutrition(
                partial(crud.find_food_entries, db),
                user.id,
                params.reference_date,
                tz_offset_hours=self.tz_offset,
            )
            png = render_daily_summary(nutrition, params.reference_date, locale)
            t = i18n.get_translations(locale)
            caption = f"{t.daily_summary}: {format_number(nutrition.totals.calories)} kcal"
            self._send_image(
                phone_number_id,
                sender,
                png,
                f"daily-summary-{user.id}-{params.reference_date}",
                "daily-summary",
                caption,
            )


def _localise(value: datetime, local_tz: tzinfo) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=local_tz)
    return value.astimezone(local_tz)
