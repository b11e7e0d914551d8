"""Structured log lines for WhatsApp message processing.

A single ``MessageLogger`` is built at start-up and handed to whatever needs
it; there is no module-level instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

LOG_PREFIX = "[KEBO-WA]"
RULE = "=" * 80


@dataclass
class AudioInfo:
    duration: float | None = None
    mime_type: str | None = None
    transcription: str | None = None


@dataclass
class IncomingMessageLog:
    message_id: str
    sender: str
    type: str
    has_text: bool
    has_image: bool
    has_audio: bool
    text_content: str | None = None
    conversation_id: str | None = None
    audio: AudioInfo | None = None


@dataclass
class ToolCallLog:
    tool_name: str
    category: str | None = None
    description: str | None = None
    amount: float | Decimal | None = None
    vendor: str | None = None


@dataclass
class CategoryDecisionLog:
    message_id: str
    user_message: str
    ai_response: str
    step_count: int
    model_used: str
    tool_calls: list[ToolCallLog] = field(default_factory=list)


class MessageLogger:
    def __init__(self, logger: logging.Logger | None = None, prefix: str = LOG_PREFIX) -> None:
        self._logger = logger or logging.getLogger("kebo.messages")
        self._prefix = prefix

    def log_incoming_message(self, data: IncomingMessageLog) -> None:
        lines = [
            RULE,
            f"{self._prefix} INCOMING MESSAGE",
            RULE,
            f"Message ID: {data.message_id}",
            f"From: {data.sender}",
            f"Type: {data.type}",
            f"Has Text: {data.has_text}",
            f"Has Image: {data.has_image}",
            f"Has Audio: {data.has_audio}",
        ]
        if data.conversation_id:
            lines.append(f"Conversation ID: {data.conversation_id}")
        if data.text_content:
            lines.append(f'Text Content: "{data.text_content}"')
        if data.audio:
            lines.append("Audio Details:")
            if data.audio.duration:
                lines.append(f"  ├─ Duration: {data.audio.duration}s")
            if data.audio.mime_type:
                lines.append(f"  ├─ MIME Type: {data.audio.mime_type}")
            if data.audio.transcription:
                lines.append(f'  └─ Transcription: "{data.audio.transcription}"')
        lines.append(RULE)
        self._logger.info("\n".join(lines))

    def log_category_decision(self, data: CategoryDecisionLog) -> None:
        lines = [
            RULE,
            f"{self._prefix} AI PROCESSING & CATEGORY DECISION",
            RULE,
            f"Message ID: {data.message_id}",
            f"Model: {data.model_used}",
            f"Step Count: {data.step_count}",
            f'User Message: "{data.user_message}"',
            f'AI Response: "{data.ai_response}"',
        ]
        if data.tool_calls:
            lines.append(f"Tool Calls ({len(data.tool_calls)}):")
            for index, call in enumerate(data.tool_calls, start=1):
                lines.append(f"  [{index}] {call.tool_name}")
                if call.category:
                    lines.append(f"      ├─ Category: {call.category.upper()}")
                if call.description:
                    lines.append(f"      ├─ Description: {call.description}")
                if call.amount is not None:
                    lines.append(f"      ├─ Amount: ${call.amount}")
                if call.vendor:
                    lines.append(f"      └─ Vendor: {call.vendor}")
        else:
            lines.append("  No tool calls made")
        lines.append(RULE)
        self._logger.info("\n".join(lines))

    def log_expense_saved(self, expense_id: int, category: str, amount: Decimal, description: str) -> None:
        self._logger.info(
            '%s EXPENSE SAVED - ID: %s | Category: %s | Amount: $%s | Description: "%s"',
            self._prefix,
            expense_id,
            category.upper(),
            amount,
            description,
        )

    def log_food_saved(self, entry_id: int, food_name: str, calories: Decimal, meal_type: str) -> None:
        self._logger.info(
            '%s FOOD SAVED - ID: %s | Meal: %s | Calories: %s | Food: "%s"',
            self._prefix,
            entry_id,
            meal_type.upper(),
            calories,
            food_name,
        )

    def log_image_generated(self, kind: str) -> None:
        self._logger.info("%s IMAGE GENERATED - Type: %s", self._prefix, kind)

    def log_message_sent(self, to: str, kind: str, content: str | None = None) -> None:
        if content:
            self._logger.info('%s MESSAGE SENT - To: %s | Type: %s | Content: "%s"', self._prefix, to, kind, content)
        else:
            self._logger.info("%s MESSAGE SENT - To: %s | Type: %s", self._prefix, to, kind)

    def log_audio_transcription(self, message_id: str, duration: float | None, transcription: str) -> None:
        self._logger.info(
            '%s AUDIO TRANSCRIBED - ID: %s | Duration: %ss | Text: "%s"',
            self._prefix,
            message_id,
            duration if duration is not None else "?",
            transcription,
        )

    def log_error(self, context: str, error: BaseException | str) -> None:
        if isinstance(error, BaseException):
            self._logger.error("%s ERROR in %s: %s", self._prefix, context, error, exc_info=error)
        else:
            self._logger.error("%s ERROR in %s: %s", self._prefix, context, error)
