from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import KapsoWebhookPayload
from ..whatsapp_bot import BotServices, WebhookProcessor, get_services

router = APIRouter(prefix="/kapso", tags=["webhook"])


@router.post("/webhook", response_class=PlainTextResponse)
def kapso_webhook(
    payload: KapsoWebhookPayload,
    db: Session = Depends(get_db),
    services: BotServices = Depends(get_services),
) -> str:
    """Kapso delivers every WhatsApp event here; it always gets a 200 back."""
    WebhookProcessor(services).handle(db, payload)
    return "OK"
