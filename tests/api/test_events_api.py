from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.utils.auth import get_user_authentication_headers

CLUB_ID = "club_events_test"


def event_payload(**overrides) -> dict:
    day = (datetime.now(timezone.utc) + timedelta(days=3)).date()
    data = {
        "club_id": CLUB_ID,
        "name": "Beginners Session",
        "location": {"name": "Court 2", "timezone": "Europe/London"},
        # Naive: the local calendar day of the event
        "date": f"{day.isoformat()}T00:00:00",
        "start_time": "10:00",
        "end_time": "12:00",
        "timeslots": [
            {"type": "start_end", "start_time": "10:00", "end_time": "11:00", "max_participants": 1, "max_waitlist": 1}
        ],
    }
    data.update(overrides)
    return data


def create_event(client: TestClient, **overrides) -> dict:
    response = client.post(
        "/api/v1/events",
        headers=get_user_authentication_headers([CLUB_ID], user_id="user_owner"),
        json=event_payload(**overrides),
    )
    assert response.status_code == 201, response.text
    return response.json()


def join(client: TestClient, event: dict, user_id: str):
    timeslot_id = event["timeslots"][0]["id"]
    return client.post(
        f"/api/v1/events/{event['id']}/timeslots/{timeslot_id}/join",
        headers=get_user_authentication_headers([CLUB_ID], user_id=user_id),
    )


def test_create_event(client: TestClient, db_session: Session) -> None:
    content = create_event(client)

    assert content["event_series_id"] is None
    assert content["status"] == "not_started"
    assert content["timezone"] == "Europe/London"
    assert content["on_event_start_task_id"] is not None
    assert content["on_event_end_task_id"] is not None
    assert content["timeslots"][0]["num_participants"] == 0


def test_create_event_in_the_past(client: TestClient, db_session: Session) -> None:
    yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).date()

    response = client.post(
        "/api/v1/events",
        headers=get_user_authentication_headers([CLUB_ID]),
        json=event_payload(date=f"{yesterday.isoformat()}T00:00:00"),
    )

    assert response.status_code == 400
    assert response.json()["error"]["field"] == "date"


def test_create_event_requires_club_membership(client: TestClient, db_session: Session) -> None:
    response = client.post(
        "/api/v1/events",
        headers=get_user_authentication_headers(["another_club"]),
        json=event_payload(),
    )

    assert response.status_code == 403


def test_join_waitlist_and_promotion(client: TestClient, db_session: Session) -> None:
    event = create_event(client)
    headers = get_user_authentication_headers([CLUB_ID], user_id="user_a")
    timeslot_id = event["timeslots"][0]["id"]

    joined_a = join(client, event, "user_a")
    joined_b = join(client, event, "user_b")

    assert joined_a.status_code == 200
    assert joined_a.json()["is_waitlisted"] is False
    assert joined_b.json()["is_waitlisted"] is True

    response = client.post(
        f"/api/v1/events/{event['id']}/timeslots/{timeslot_id}/leave", headers=headers
    )
    assert response.status_code == 204

    details = client.get(f"/api/v1/events/{event['id']}", headers=headers).json()
    assert [(p["user_id"], p["is_waitlisted"]) for p in details["participants"]] == [("user_b", False)]
    assert details["timeslots"][0]["num_participants"] == 1
    assert details["timeslots"][0]["num_waitlisted"] == 0


def test_join_full_timeslot(client: TestClient, db_session: Session) -> None:
    event = create_event(client)
    join(client, event, "user_a")
    join(client, event, "user_b")

    response = join(client, event, "user_c")

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["category"] == "capacity_exceeded_error"
    assert error["message"] == "This event timeslot is full and waitlist is also full."


def test_join_unknown_timeslot(client: TestClient, db_session: Session) -> None:
    event = create_event(client)

    response = client.post(
        f"/api/v1/events/{event['id']}/timeslots/ts_missing/join",
        headers=get_user_authentication_headers([CLUB_ID]),
    )

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Invalid timeslot ID provided."


def test_cancel_event_blocks_joining(client: TestClient, db_session: Session) -> None:
    event = create_event(client)
    headers = get_user_authentication_headers([CLUB_ID], user_id="user_owner")

    response = client.post(f"/api/v1/events/{event['id']}/cancel", headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["on_event_start_task_id"] is None

    joined = join(client, event, "user_a")
    assert joined.status_code == 409
    assert joined.json()["error"]["category"] == "invalid_state_error"


def test_event_schedule(client: TestClient, db_session: Session) -> None:
    event = create_event(client)
    headers = get_user_authentication_headers([CLUB_ID])

    response = client.get(f"/api/v1/events/{event['id']}/schedule", headers=headers)

    assert response.status_code == 200
    content = response.json()
    assert content["start"] == {"task_id": event["on_event_start_task_id"], "state": "pending"}
    assert content["end"]["state"] == "pending"


def test_delete_event(client: TestClient, db_session: Session) -> None:
    event = create_event(client)
    headers = get_user_authentication_headers([CLUB_ID])
    join(client, event, "user_a")

    response = client.delete(f"/api/v1/events/{event['id']}", headers=headers)

    assert response.status_code == 204
    assert client.get(f"/api/v1/events/{event['id']}", headers=headers).status_code == 404


def test_get_event_of_another_club(client: TestClient, db_session: Session) -> None:
    event = create_event(client)

    response = client.get(
        f"/api/v1/events/{event['id']}",
        headers=get_user_authentication_headers(["another_club"]),
    )

    assert response.status_code == 403


def test_list_my_events(client: TestClient, db_session: Session) -> None:
    event = create_event(client)
    other = create_event(client, name="Advanced Session")
    join(client, event, "user_a")
    join(client, other, "user_b")
    headers = get_user_authentication_headers([CLUB_ID], user_id="user_a")

    response = client.get("/api/v1/events/me", headers=headers)

    assert response.status_code == 200
    content = response.json()
    assert [e["id"] for e in content] == [event["id"]]
    assert content[0]["participation"]["user_id"] == "user_a"
    assert content[0]["participation"]["is_waitlisted"] is False

    later = (datetime.now(timezone.utc) + timedelta(days=10)).isoformat()
    response = client.get("/api/v1/events/me", headers=headers, params={"from_date": later})
    assert response.json() == []
