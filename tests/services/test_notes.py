from api.models.exam_session import ExamType
from api.schemas.bookings import BookingRequest
from api.services.bookings import BookingOrchestrator
from api.services.hubspot import HubSpotConnectionError, HubSpotError
from api.services.notes import NoteService
from api.settings import settings
from tests.fakes import FakeHubSpot


async def book(hubspot: FakeHubSpot, orchestrator: BookingOrchestrator, name: str = "Jane Doe") -> tuple[str, str]:
    contact = hubspot.add_contact(cs=1)
    session = hubspot.add_session(ExamType.CLINICAL_SKILLS)
    reservation = await orchestrator.reserve(
        BookingRequest(
            student_id="STU123",
            email="student@example.com",
            name=name,
            mock_exam_id=session,
            mock_type=ExamType.CLINICAL_SKILLS,
            dominant_hand=False,
        )
    )
    note = await NoteService(hubspot).booking_confirmed(reservation)  # type: ignore[arg-type]
    assert note is not None
    return contact, note


async def test__booking_confirmed(hubspot: FakeHubSpot, orchestrator: BookingOrchestrator) -> None:
    contact, note = await book(hubspot, orchestrator)

    body = hubspot.props(settings.notes_object, note)["hs_note_body"]
    assert "Mock Exam Booking Confirmed" in body
    assert "<strong>Dominant Hand:</strong> Left" in body
    assert "<strong>Credit Used:</strong> specific" in body
    assert hubspot.props(settings.notes_object, note)["hs_timestamp"].isdigit()
    assert hubspot.linked(settings.notes_object, note, settings.contacts_object) == [contact]


async def test__booking_confirmed__escapes_html(hubspot: FakeHubSpot, orchestrator: BookingOrchestrator) -> None:
    _, note = await book(hubspot, orchestrator, name="<b>Jane</b>")

    body = hubspot.props(settings.notes_object, note)["hs_note_body"]
    assert "<b>Jane</b>" not in body
    assert "&lt;b&gt;Jane&lt;/b&gt;" in body


async def test__booking_cancelled(hubspot: FakeHubSpot, orchestrator: BookingOrchestrator) -> None:
    contact = hubspot.add_contact(cs=0)
    booking = hubspot.add_booking(contact, hubspot.add_session(booked=1))
    cancellation = await orchestrator.cancel(booking, "STU123", "student@example.com", "Feeling unwell")

    note = await NoteService(hubspot).booking_cancelled(cancellation)  # type: ignore[arg-type]

    assert note is not None
    body = hubspot.props(settings.notes_object, note)["hs_note_body"]
    assert "Booking Cancelled" in body
    assert "<strong>Reason:</strong> Feeling unwell" in body
    assert "<strong>Credits Restored:</strong> 1 specific" in body


async def test__note_failure_is_logged(hubspot: FakeHubSpot, orchestrator: BookingOrchestrator) -> None:
    contact = hubspot.add_contact(cs=0)
    booking = hubspot.add_booking(contact, hubspot.add_session(booked=1))
    cancellation = await orchestrator.cancel(booking, "STU123", "student@example.com")
    hubspot.fail("create_object", HubSpotError("Bad request", 400))

    assert await NoteService(hubspot).booking_cancelled(cancellation) is None  # type: ignore[arg-type]
    assert not hubspot.objects[settings.notes_object]


async def test__note_on_connection_error(hubspot: FakeHubSpot, orchestrator: BookingOrchestrator) -> None:
    contact = hubspot.add_contact(cs=0)
    booking = hubspot.add_booking(contact, hubspot.add_session(booked=1))
    cancellation = await orchestrator.cancel(booking, "STU123", "student@example.com")
    hubspot.fail("create_object", HubSpotConnectionError("Request to /crm/v3/objects/notes timed out"))

    assert await NoteService(hubspot).booking_cancelled(cancellation) is None  # type: ignore[arg-type]
