"""Timeline notes on the student's contact for confirmed and cancelled bookings."""

from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING, Any

from api.logger import get_logger
from api.services.hubspot import HubSpotClient, HubSpotError
from api.settings import settings
from api.utils.utc import utcnow


if TYPE_CHECKING:
    from api.services.bookings import Cancellation, Reservation


logger = get_logger(__name__)


class NoteService:
    """
    Write notes to the timeline of a contact.

    Notes are informational only, so a failing note is logged and never fails the booking it belongs to.
    """

    def __init__(self, client: HubSpotClient) -> None:
        self.client = client

    async def booking_confirmed(self, reservation: Reservation) -> str | None:
        booking, session = reservation.booking, reservation.session
        details = {
            "Booking ID": booking.booking_id,
            "Exam Type": session.exam_type.value,
            "Exam Date": session.exam_date.strftime("%A, %B %d, %Y") if session.exam_date else "TBD",
            "Location": session.location or "TBD",
            "Credit Used": reservation.consumption.credit_type.value,
            "Booked On": utcnow().isoformat(),
        }
        if booking.dominant_hand is not None:
            details["Dominant Hand"] = "Right" if booking.dominant_hand else "Left"
        if booking.attending_location:
            details["Attending Location"] = booking.attending_location.value

        body = _render(
            "Mock Exam Booking Confirmed",
            details,
            {"Name": booking.name, "Email": booking.email},
            "This booking was automatically confirmed through the mock exam booking system.",
        )
        return await self._create(reservation.contact.id, body)

    async def booking_cancelled(self, cancellation: Cancellation) -> str | None:
        booking, session = cancellation.booking, cancellation.session
        details = {
            "Booking ID": booking.booking_id,
            "Exam Type": session.exam_type.value,
            "Exam Date": session.exam_date.isoformat() if session.exam_date else "TBD",
            "Cancelled At": (booking.cancelled_at or utcnow()).isoformat(),
            "Credits Restored": f"1 {cancellation.credit_type.value}",
        }
        if booking.cancellation_reason:
            details["Reason"] = booking.cancellation_reason

        body = _render(
            "Booking Cancelled", details, {}, "Automated cancellation via the mock exam booking system."
        )
        return await self._create(cancellation.contact.id, body)

    async def _create(self, contact_id: str, body: str) -> str | None:
        try:
            note = await self.client.create_object(
                settings.notes_object,
                {"hs_note_body": body, "hs_timestamp": str(int(utcnow().timestamp() * 1000))},
                associations=[
                    {
                        "to": {"id": contact_id},
                        "types": [
                            {
                                "associationCategory": "HUBSPOT_DEFINED",
                                "associationTypeId": settings.note_contact_association,
                            }
                        ],
                    }
                ],
            )
        except HubSpotError as e:
            logger.error(f"Could not create note for contact {contact_id}: {e}")
            return None

        logger.debug(f"Created note {note.get('id')} for contact {contact_id}")
        return str(note["id"]) if note.get("id") else None


def _render(title: str, details: dict[str, Any], student: dict[str, str], footer: str) -> str:
    def items(values: dict[str, Any]) -> str:
        return "".join(f"<li><strong>{escape(k)}:</strong> {escape(str(v))}</li>" for k, v in values.items())

    body = f"<h3>{escape(title)}</h3><p><strong>Booking Details:</strong></p><ul>{items(details)}</ul>"
    if student:
        body += f"<p><strong>Student Information:</strong></p><ul>{items(student)}</ul>"
    return body + f"<hr><p><em>{escape(footer)}</em></p>"
