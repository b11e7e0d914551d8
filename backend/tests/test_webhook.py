from decimal import Decimal

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from kebo import crud, whatsapp_bot
from kebo.ai import ExpenseAgent
from kebo.db import get_db
from kebo.main import app
from kebo.media import MediaStore
from kebo.message_log import MessageLogger
from kebo.models import ExpenseModel, FoodEntryModel, UserModel
from kebo.schemas import LogExpenseParams, LogFoodParams
from kebo.whatsapp import WhatsAppClient
from kebo.whatsapp_bot import ERROR_REPLY, BotServices, get_services, normalise_phone

MEDIA_URL = "https://cdn.kapso.test/media/photo.jpg"


def inbound(message_type="text", body="Spent 25 on lunch", direction="inbound", **extra):
    message = {
        "id": "wamid.in.1",
        "timestamp": "1729353600",
        "type": message_type,
        "from": "+57 300 123 4567",
        "kapso": {"direction": direction},
    }
    if message_type == "text":
        message["text"] = {"body": body}
    message.update(extra)
    return {
        "type": "whatsapp.message.received",
        "batch": True,
        "data": [
            {
                "message": message,
                "conversation": {"id": "conv-1", "phone_number_id": "pn-1"},
                "phone_number_id": "pn-1",
            }
        ],
    }


@pytest.fixture
def make_client(db_session, settings, http_client, tmp_path, fake_openai):
    def build(replies, transcription=None):
        openai_client = fake_openai(replies, transcription=transcription)
        services = BotServices(
            settings=settings,
            message_logger=MessageLogger(),
            whatsapp=WhatsAppClient(http_client, "https://api.kapso.test/meta/whatsapp", "test-key"),
            media_store=MediaStore(tmp_path, "http://testserver"),
            http=http_client,
            agent=ExpenseAgent(openai_client, "gpt-test", food_search=lambda query: []),
            openai_client=openai_client,
        )
        app.dependency_overrides[get_db] = lambda: db_session
        app.dependency_overrides[get_services] = lambda: services
        return TestClient(app), openai_client

    yield build
    app.dependency_overrides.clear()


def test_normalise_phone():
    assert normalise_phone("+57 300-123 4567") == "573001234567"


def test_text_expense_is_logged_and_answered(make_client, replies, kapso, db_session):
    client, openai_client = make_client(
        [
            replies.tool(
                "logExpense",
                {"description": "Lunch", "amount": 25, "category": "food_dining", "spentAt": "2024-10-19T12:30:00"},
            ),
            replies.text("Logged!"),
        ]
    )

    response = client.post("/api/kapso/webhook", json=inbound())

    assert response.status_code == 200
    assert response.text == "OK"

    user = db_session.scalar(select(UserModel))
    assert user.phone_number == "573001234567"
    expense = db_session.scalar(select(ExpenseModel))
    assert expense.amount == Decimal("25.00")
    assert expense.category.value == "food_dining"
    assert expense.raw_message == "Spent 25 on lunch"

    sent = kapso.sent
    assert [message["type"] for message in sent] == ["image", "text"]
    assert sent[0]["to"] == "573001234567"
    assert sent[0]["image"]["link"].startswith("http://testserver/media/expense-added-")
    assert sent[1]["text"]["body"] == "Logged!"
    assert all(request.headers["X-API-Key"] == "test-key" for request in kapso.requests)
    assert len(openai_client.completions.calls) == 2


def test_history_is_sent_to_the_model(make_client, replies, kapso):
    kapso.history = [
        {"type": "text", "from": "573001234567", "text": {"body": "Spent 25 on lunch"}},
        {"type": "text", "to": "573001234567", "text": {"body": "Anything else?"}},
        {"type": "text", "from": "573001234567", "text": {"body": "hola"}},
    ]
    client, openai_client = make_client([replies.text("Hi!")])

    client.post("/api/kapso/webhook", json=inbound(body="Spent 25 on lunch"))

    messages = openai_client.completions.calls[0]["messages"]
    assert [message["role"] for message in messages] == ["system", "user", "assistant", "user"]
    assert messages[1]["content"] == "hola"
    assert messages[-1]["content"] == "Spent 25 on lunch"


def test_summary_request_sends_summary_image(make_client, replies, kapso):
    client, _ = make_client(
        [replies.tool("getExpensesSummary", {"period": "month", "date": "2024-10-19"}), replies.text("")]
    )

    client.post("/api/kapso/webhook", json=inbound(body="How much did I spend this month?"))

    sent = kapso.sent
    assert [message["type"] for message in sent] == ["image"]
    assert sent[0]["image"]["caption"] == "Este Mes: $0.00"


def test_food_is_logged(make_client, replies, kapso, db_session):
    client, _ = make_client(
        [
            replies.tool(
                "logFood",
                {
                    "foodName": "Arepa",
                    "quantity": 1,
                    "unit": "unit",
                    "calories": 220,
                    "protein": 5,
                    "carbs": 30,
                    "fat": 9,
                    "mealType": "breakfast",
                    "eatenAt": "2024-10-19T08:00:00",
                },
            ),
            replies.text("Done"),
        ]
    )

    client.post("/api/kapso/webhook", json=inbound(body="I had an arepa for breakfast"))

    entry = db_session.scalar(select(FoodEntryModel))
    assert entry.food_name == "Arepa"
    assert entry.calories == Decimal("220.00")
    assert kapso.sent[0]["image"]["link"].startswith("http://testserver/media/food-added-")


def test_image_message_is_passed_to_the_model(make_client, replies, kapso):
    kapso.media[MEDIA_URL] = httpx.Response(
        200, content=b"\x89PNG\r\n\x1a\n" + b"\x00" * 200, headers={"content-type": "application/octet-stream"}
    )
    client, openai_client = make_client([replies.text("What did you buy?")])
    payload = inbound(
        message_type="image",
        image={"id": "media-1", "mime_type": "image/png"},
        kapso={"direction": "inbound", "media_url": MEDIA_URL},
    )

    client.post("/api/kapso/webhook", json=payload)

    content = openai_client.completions.calls[0]["messages"][-1]["content"]
    assert content[0]["image_url"]["url"].startswith("data:image/png;base64,")
    assert content[1]["text"] == "What is in this image? Please log it for me."


def test_audio_message_is_transcribed(make_client, replies, kapso):
    kapso.media[MEDIA_URL] = httpx.Response(200, content=b"OggS" + b"\x00" * 300)
    client, openai_client = make_client([replies.text("Anything else?")], transcription="gasté 10 en taxi")
    payload = inbound(
        message_type="audio",
        audio={"id": "media-2", "mime_type": "audio/ogg; codecs=opus"},
        kapso={"direction": "inbound", "media_url": MEDIA_URL},
    )

    client.post("/api/kapso/webhook", json=payload)

    assert openai_client.transcription_calls[0]["file"][0] == "voice.ogg"
    assert openai_client.completions.calls[0]["messages"][-1]["content"] == "gasté 10 en taxi"


def test_outbound_and_unsupported_messages_are_ignored(make_client, replies, kapso):
    client, openai_client = make_client([replies.text("unused")])

    assert client.post("/api/kapso/webhook", json=inbound(direction="outbound")).text == "OK"
    assert client.post("/api/kapso/webhook", json=inbound(message_type="sticker")).text == "OK"
    assert client.post("/api/kapso/webhook", json={"type": "ping"}).text == "OK"

    assert kapso.requests == []
    assert openai_client.completions.calls == []


def test_failure_sends_apology(make_client, kapso):
    client, _ = make_client([RuntimeError("model unavailable")])

    response = client.post("/api/kapso/webhook", json=inbound())

    assert response.status_code == 200
    assert kapso.sent[-1]["text"]["body"] == ERROR_REPLY


SENDER = "573001234567"


def test_daily_summary_request_sends_nutrition_card(make_client, replies, kapso, db_session):
    user = crud.get_or_create_user(db_session, SENDER)
    food = LogFoodParams(
        foodName="Arepa",
        quantity=1,
        unit="unit",
        calories=220,
        protein=5,
        carbs=30,
        fat=9,
        mealType="breakfast",
        eatenAt="2024-10-19T08:00:00",
    )
    crud.create_food_entry(db_session, user.id, food, raw_message="arepa", tz_offset_hours=-5)
    client, _ = make_client([replies.tool("getDailySummary", {"date": "2024-10-19"}), replies.text("")])

    client.post("/api/kapso/webhook", json=inbound(body="How many calories today?"))

    [sent] = kapso.sent
    assert sent["type"] == "image"
    assert sent["image"]["caption"] == "Resumen del Día: 220 kcal"
    assert sent["image"]["link"].startswith(f"http://testserver/media/daily-summary-{user.id}-2024-10-19-")


def test_category_breakdown_covers_the_inclusive_date_range(make_client, replies, kapso, db_session, monkeypatch):
    user = crud.get_or_create_user(db_session, SENDER)
    for amount, category, spent_at in [
        (25, "food_dining", "2024-10-01T09:00:00"),
        (50, "transportation", "2024-10-15T22:00:00"),
        (99, "travel", "2024-09-30T23:00:00"),
    ]:
        params = LogExpenseParams(description=category, amount=amount, category=category, spentAt=spent_at)
        crud.create_expense(db_session, user.id, params, raw_message=category, tz_offset_hours=-5)

    rendered = []
    render = whatsapp_bot.render_expenses_summary

    def capture(summary, **kwargs):
        rendered.append(summary)
        return render(summary, **kwargs)

    monkeypatch.setattr(whatsapp_bot, "render_expenses_summary", capture)
    client, _ = make_client(
        [
            replies.tool("getExpensesByCategory", {"startDate": "2024-10-01", "endDate": "2024-10-15"}),
            replies.text(""),
        ]
    )

    client.post("/api/kapso/webhook", json=inbound(body="Where did my money go this month?"))

    [summary] = rendered
    assert summary.period_label == "Custom Range"
    assert summary.total_amount == Decimal("75.00")
    assert summary.entry_count == 2
    assert {item.category for item in summary.by_category} == {"food_dining", "transportation"}
    [sent] = kapso.sent
    assert sent["type"] == "image"
    assert "caption" not in sent["image"]
    assert sent["image"]["link"].startswith(
        f"http://testserver/media/category-breakdown-{user.id}-2024-10-01-2024-10-15-"
    )
