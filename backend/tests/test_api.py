from fastapi.testclient import TestClient
import pytest

from kebo import crud
from kebo.db import get_db
from kebo.main import app
from kebo.schemas import LogExpenseParams

OFFSET = -5


@pytest.fixture
def client(db_session):
    app.dependency_overrides[get_db] = lambda: db_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user(db_session):
    user = crud.get_or_create_user(db_session, "573001234567")
    for amount, category, spent_at in [
        (25, "food_dining", "2024-10-19T12:00:00"),
        (50, "transportation", "2024-10-19T18:30:00"),
        (10, "food_dining", "2024-10-16T09:00:00"),
        (300, "travel", "2024-09-30T10:00:00"),
    ]:
        params = LogExpenseParams(description=category, amount=amount, category=category, spentAt=spent_at)
        crud.create_expense(db_session, user.id, params, raw_message=category, tz_offset_hours=OFFSET)
    return user


def test_health_check(client):
    assert client.get("/").json() == {"status": "ok"}


def test_day_summary(client, user):
    response = client.get(f"/api/users/{user.id}/summary", params={"period": "day", "date": "2024-10-19"})
    assert response.status_code == 200
    body = response.json()
    assert body["period_label"] == "Today"
    assert float(body["total_amount"]) == 75.0
    assert body["entry_count"] == 2


def test_month_summary_breakdown(client, user):
    response = client.get(f"/api/users/{user.id}/summary", params={"period": "month", "date": "2024-10-19"})
    body = response.json()
    assert body["period_label"] == "This Month"
    assert float(body["total_amount"]) == 85.0
    breakdown = {item["category"]: (float(item["total"]), item["count"]) for item in body["by_category"]}
    assert breakdown == {"food_dining": (35.0, 2), "transportation": (50.0, 1)}


def test_summary_category_filter(client, user):
    response = client.get(
        f"/api/users/{user.id}/summary",
        params={"period": "week", "date": "2024-10-19", "category": "food_dining"},
    )
    body = response.json()
    assert float(body["total_amount"]) == 35.0
    assert [item["category"] for item in body["by_category"]] == ["food_dining"]


def test_summary_for_unknown_user_is_404(client):
    response = client.get("/api/users/999/summary", params={"period": "day"})
    assert response.status_code == 404


def test_summary_rejects_unknown_period(client, user):
    response = client.get(f"/api/users/{user.id}/summary", params={"period": "decade"})
    assert response.status_code == 422


def test_range_summary_includes_end_date(client, user):
    response = client.get(
        f"/api/users/{user.id}/summary/range",
        params={"start_date": "2024-09-30", "end_date": "2024-10-16"},
    )
    body = response.json()
    assert body["period_label"] == "Custom Range"
    assert float(body["total_amount"]) == 310.0
    assert body["entry_count"] == 2


def test_range_summary_rejects_reversed_dates(client, user):
    response = client.get(
        f"/api/users/{user.id}/summary/range",
        params={"start_date": "2024-10-19", "end_date": "2024-10-01"},
    )
    assert response.status_code == 422


def test_summary_image_is_png(client, user):
    response = client.get(
        f"/api/users/{user.id}/summary/image",
        params={"period": "month", "date": "2024-10-19", "locale": "en"},
    )
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


def test_list_expenses(client, user):
    response = client.get(
        f"/api/users/{user.id}/expenses",
        params={"start_date": "2024-10-01", "end_date": "2024-10-31"},
    )
    assert response.status_code == 200
    body = response.json()
    assert [item["category"] for item in body] == ["transportation", "food_dining", "food_dining"]
    assert float(body[0]["amount"]) == 50.0


def test_list_expenses_for_unknown_user_is_404(client):
    assert client.get("/api/users/42/expenses").status_code == 404
