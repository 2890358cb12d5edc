from datetime import date, timedelta

from fastapi.testclient import TestClient

from api.models.exam_session import ExamType
from api.settings import settings
from tests.fakes import FakeHubSpot, FakeRedis


def test__list_sessions(client: TestClient, hubspot: FakeHubSpot) -> None:
    later = hubspot.add_session(exam_date=date.today() + timedelta(days=30), capacity=10, booked=8)
    sooner = hubspot.add_session(exam_date=date.today() + timedelta(days=3), capacity=10, booked=0)
    hubspot.add_session(capacity=4, booked=4)
    hubspot.add_session(exam_date=date.today() - timedelta(days=2))
    hubspot.add_session(active=False)

    response = client.get("/sessions")

    assert response.status_code == 200
    assert response.json()["success"] is True
    sessions = response.json()["data"]
    assert [s["mock_exam_id"] for s in sessions] == [sooner, later]
    assert sessions[0]["status"] == "available"
    assert sessions[1]["status"] == "limited"
    assert sessions[1]["available_slots"] == 2


def test__list_sessions__filter(client: TestClient, hubspot: FakeHubSpot) -> None:
    hubspot.add_session(ExamType.CLINICAL_SKILLS)
    sj = hubspot.add_session(ExamType.SITUATIONAL_JUDGMENT)
    full = hubspot.add_session(ExamType.SITUATIONAL_JUDGMENT, exam_date=date.today() + timedelta(days=20), booked=10)

    response = client.get("/sessions", params={"mock_type": "Situational Judgment", "include_full": True})

    assert [s["mock_exam_id"] for s in response.json()["data"]] == [sj, full]
    assert response.json()["data"][1]["status"] == "full"


def test__list_sessions__cached(client: TestClient, hubspot: FakeHubSpot, cache: FakeRedis) -> None:
    hubspot.add_session()
    client.get("/sessions")
    hubspot.add_session()

    assert len(client.get("/sessions").json()["data"]) == 1
    assert list(cache.data) == ["cache:sessions:None:False"]
    assert len(client.get("/sessions", params={"realtime": True}).json()["data"]) == 2


def test__list_sessions__realtime_recount(client: TestClient, hubspot: FakeHubSpot) -> None:
    contact = hubspot.add_contact()
    session = hubspot.add_session(capacity=2, booked=2)
    hubspot.add_booking(contact, session)
    hubspot.add_booking(contact, session, status="Cancelled")

    response = client.get("/sessions", params={"realtime": True})

    [data] = response.json()["data"]
    assert data["total_bookings"] == 1
    assert data["available_slots"] == 1
    assert hubspot.props(settings.exam_sessions_object, session)["total_bookings"] == "1"


def test__list_sessions__invalid_type(client: TestClient) -> None:
    response = client.get("/sessions", params={"mock_type": "Oral Exam"})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test__list_sessions__skips_malformed_sessions(client: TestClient, hubspot: FakeHubSpot) -> None:
    session = hubspot.add_session()
    hubspot.add(
        settings.exam_sessions_object,
        {"mock_type": "", "exam_date": date.today().isoformat(), "capacity": 10, "is_active": "true"},
    )

    response = client.get("/sessions")

    assert response.status_code == 200
    assert [s["mock_exam_id"] for s in response.json()["data"]] == [session]
