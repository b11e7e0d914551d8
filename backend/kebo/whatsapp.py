"""
WhatsApp Client - Kapso Cloud API
=================================

Thin wrapper over the Kapso-hosted WhatsApp Cloud API: outbound text and
image messages plus conversation history for the AI prompt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

import httpx

logger = logging.getLogger(__name__)


class WhatsAppClientError(Exception):
    """Base exception for WhatsApp client errors."""


@dataclass(frozen=True)
class ChatTurn:
    role: Literal["user", "assistant"]
    content: str

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def history_from_messages(messages: list[dict[str, Any]]) -> list[ChatTurn]:
    """Convert a newest-first Kapso message page into chronological chat turns.

    Only text messages are kept. Inbound messages carry ``from``, outbound
    ones only ``to``. The newest message is the one being answered and is
    dropped.
    """
    turns: list[ChatTurn] = []
    for message in messages:
        if message.get("type") != "text":
            continue
        content = (message.get("kapso") or {}).get("content") or (message.get("text") or {}).get("body")
        if not content:
            continue
        role: Literal["user", "assistant"] = "user" if message.get("from") else "assistant"
        turns.append(ChatTurn(role=role, content=content))
    turns.reverse()
    if turns:
        turns.pop()
    return turns


class WhatsAppClient:
    def __init__(self, http: httpx.Client, base_url: str, api_key: str | None, api_version: str = "v24.0") -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._api_version = api_version

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise WhatsAppClientError("KAPSO_API_KEY environment variable is required")
        return {"X-API-Key": self._api_key}

    def _messages_url(self, phone_number_id: str) -> str:
        return f"{self._base_url}/{self._api_version}/{phone_number_id}/messages"

    def _send(self, phone_number_id: str, body: dict[str, Any]) -> dict[str, Any]:
        payload = {"messaging_product": "whatsapp", "recipient_type": "individual", **body}
        try:
            response = self._http.post(self._messages_url(phone_number_id), json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise WhatsAppClientError(f"Failed to send WhatsApp message: {exc}") from exc
        return response.json() if response.content else {}

    def send_text(self, phone_number_id: str, to: str, body: str) -> dict[str, Any]:
        return self._send(phone_number_id, {"to": to, "type": "text", "text": {"body": body}})

    def send_image(self, phone_number_id: str, to: str, link: str, caption: str | None = None) -> dict[str, Any]:
        image: dict[str, str] = {"link": link}
        if caption:
            image["caption"] = caption
        return self._send(phone_number_id, {"to": to, "type": "image", "image": image})

    def get_conversation_messages(self, phone_number_id: str, conversation_id: str, limit: int = 20) -> list[ChatTurn]:
        """Recent text turns of a conversation, oldest first. Failures yield no history."""
        try:
            response = self._http.get(
                self._messages_url(phone_number_id),
                params={"conversation_id": conversation_id, "limit": str(limit)},
                headers=self._headers(),
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch conversation messages: %s", exc)
            return []
        return history_from_messages(data.get("data") or [])
