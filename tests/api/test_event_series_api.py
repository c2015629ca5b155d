from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.utils.auth import get_user_authentication_headers

CLUB_ID = "club_series_test"


def series_payload(**overrides) -> dict:
    start = (datetime.now(timezone.utc) + timedelta(days=2)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    data = {
        "club_id": CLUB_ID,
        "name": "Wednesday Doubles",
        "location": {"name": "Court 1", "timezone": "UTC"},
        "days_of_week": [0, 2, 4],
        "interval": 1,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=56)).isoformat(),
        "start_time": "18:00",
        "end_time": "20:00",
        "timeslots": [{"type": "duration", "duration": 60, "max_participants": 8, "max_waitlist": 2}],
        "is_active": True,
    }
    data.update(overrides)
    return data


def create_series(client: TestClient, payload: dict = None, **overrides) -> dict:
    response = client.post(
        "/api/v1/event-series",
        headers=get_user_authentication_headers([CLUB_ID]),
        json=payload or series_payload(**overrides),
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_active_series_generates_first_batch(client: TestClient, db_session: Session) -> None:
    headers = get_user_authentication_headers([CLUB_ID])

    content = create_series(client)

    assert content["is_active"] is True
    assert content["created_by"] == "user_test"
    assert content["on_next_batch_task_id"] is not None
    assert content["on_series_end_task_id"] is not None

    response = client.get(f"/api/v1/event-series/{content['id']}/events", headers=headers)
    assert response.status_code == 200
    events = response.json()
    # 14-day batch of Mon/Wed/Fri
    assert len(events) == 6
    assert all(e["status"] == "not_started" for e in events)
    assert all(len(e["timeslots"]) == 1 for e in events)


def test_create_inactive_series_generates_nothing(client: TestClient, db_session: Session) -> None:
    headers = get_user_authentication_headers([CLUB_ID])

    content = create_series(client, is_active=False)

    assert content["is_active"] is False
    assert content["on_next_batch_task_id"] is None
    response = client.get(f"/api/v1/event-series/{content['id']}/events", headers=headers)
    assert response.json() == []


def test_create_series_requires_club_membership(client: TestClient, db_session: Session) -> None:
    response = client.post(
        "/api/v1/event-series",
        headers=get_user_authentication_headers(["another_club"]),
        json=series_payload(),
    )

    assert response.status_code == 403


def test_create_series_requires_token(client: TestClient, db_session: Session) -> None:
    response = client.post("/api/v1/event-series", json=series_payload())

    assert response.status_code == 401


def test_create_series_with_past_start_date(client: TestClient, db_session: Session) -> None:
    past = datetime.now(timezone.utc) - timedelta(days=1)

    response = client.post(
        "/api/v1/event-series",
        headers=get_user_authentication_headers([CLUB_ID]),
        json=series_payload(start_date=past.isoformat()),
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["category"] == "invalid_schedule_error"
    assert error["field"] == "start_date"
    assert error["message"] == "Start date must be in the future."
    assert error["path"] == "/api/v1/event-series"


def test_create_series_with_bad_time_format(client: TestClient, db_session: Session) -> None:
    response = client.post(
        "/api/v1/event-series",
        headers=get_user_authentication_headers([CLUB_ID]),
        json=series_payload(start_time="18:05"),
    )

    assert response.status_code == 422


def test_list_club_series(client: TestClient, db_session: Session) -> None:
    create_series(client, name="First")
    create_series(client, name="Second", is_active=False)

    response = client.get(
        f"/api/v1/clubs/{CLUB_ID}/event-series",
        headers=get_user_authentication_headers([CLUB_ID]),
    )

    assert response.status_code == 200
    assert {s["name"] for s in response.json()} == {"First", "Second"}


def test_get_series_not_found(client: TestClient, db_session: Session) -> None:
    response = client.get(
        "/api/v1/event-series/evs_missing",
        headers=get_user_authentication_headers([CLUB_ID]),
    )

    assert response.status_code == 404


def test_deactivate_series_cancels_next_batch(client: TestClient, db_session: Session) -> None:
    headers = get_user_authentication_headers([CLUB_ID])
    series = create_series(client)

    response = client.patch(
        f"/api/v1/event-series/{series['id']}", headers=headers, json={"is_active": False}
    )

    assert response.status_code == 200
    assert response.json()["is_active"] is False

    schedule = client.get(f"/api/v1/event-series/{series['id']}/schedule", headers=headers).json()
    assert schedule["is_active"] is False
    assert schedule["next_batch"] == {"task_id": None, "state": None}


def test_update_series_name(client: TestClient, db_session: Session) -> None:
    headers = get_user_authentication_headers([CLUB_ID])
    series = create_series(client)

    response = client.patch(
        f"/api/v1/event-series/{series['id']}",
        headers=headers,
        json={"name": "Renamed", "description": "Bring water"},
    )

    assert response.status_code == 200
    content = response.json()
    assert content["name"] == "Renamed"
    assert content["description"] == "Bring water"
    assert content["is_active"] is True


def test_delete_series(client: TestClient, db_session: Session) -> None:
    headers = get_user_authentication_headers([CLUB_ID])
    series = create_series(client)

    response = client.delete(f"/api/v1/event-series/{series['id']}", headers=headers)

    assert response.status_code == 204
    assert client.get(f"/api/v1/event-series/{series['id']}", headers=headers).status_code == 404


def test_generate_events_for_inactive_series(client: TestClient, db_session: Session) -> None:
    headers = get_user_authentication_headers([CLUB_ID])
    series = create_series(client, is_active=False)

    response = client.post(
        f"/api/v1/event-series/{series['id']}/generate",
        headers=headers,
        json={"start_date": series["start_date"], "end_date": series["end_date"]},
    )

    assert response.status_code == 409
    assert response.json()["error"]["category"] == "invalid_state_error"
    assert response.json()["error"]["message"] == "Unable to generate events due to inactive status."


def test_generate_events_is_idempotent(client: TestClient, db_session: Session) -> None:
    headers = get_user_authentication_headers([CLUB_ID])
    payload = series_payload()
    series = create_series(client, payload)
    start = datetime.fromisoformat(payload["start_date"])
    body = {
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=14)).isoformat(),
    }

    first = client.post(f"/api/v1/event-series/{series['id']}/generate", headers=headers, json=body)
    second = client.post(f"/api/v1/event-series/{series['id']}/generate", headers=headers, json=body)

    assert first.status_code == 200
    assert first.json()["event_ids"] == second.json()["event_ids"]
    events = client.get(f"/api/v1/event-series/{series['id']}/events", headers=headers).json()
    assert len(events) == 6


def test_generate_events_range_too_long(client: TestClient, db_session: Session) -> None:
    headers = get_user_authentication_headers([CLUB_ID])
    payload = series_payload()
    series = create_series(client, payload)
    start = datetime.fromisoformat(payload["start_date"])

    response = client.post(
        f"/api/v1/event-series/{series['id']}/generate",
        headers=headers,
        json={"start_date": start.isoformat(), "end_date": (start + timedelta(days=31)).isoformat()},
    )

    assert response.status_code == 400
    assert response.json()["error"]["category"] == "invalid_schedule_error"
