"""
Booking and cancellation of exam sessions.

A reservation touches four HubSpot objects (booking, contact, exam session and the associations between
them) without any transaction. The orchestrator therefore runs every check it can before the first write,
executes the writes strictly in order, re-checks credits and capacity right before they are mutated and
hands every completed write to the `CompensationManager` so it can be undone if a later step fails.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from functools import partial
from typing import Any

from api.exceptions.bookings import (
    AlreadyCancelledError,
    BookingNotFoundError,
    ContactMismatchError,
    DuplicateBookingError,
    ForbiddenError,
)
from api.exceptions.credits import InsufficientCreditsError
from api.exceptions.exams import (
    ExamInPastError,
    ExamSessionNotActiveError,
    ExamSessionNotFoundError,
    ExamTypeMismatchError,
    SessionFullError,
)
from api.logger import get_logger
from api.models.booking import Booking, BookingStatus
from api.models.contact import Contact
from api.models.credits import CreditBalance, CreditType, token_label
from api.models.exam_session import ExamSession, ExamType
from api.schemas.bookings import BookingRequest
from api.services.associations import AssociationResolver
from api.services.batch import ChunkedBatchClient
from api.services.compensation import CompensationManager
from api.services.contacts import ContactService
from api.services.credits import CreditConsumption, CreditLedgerService, Eligibility
from api.services.hubspot import HubSpotClient, HubSpotError
from api.services.sessions import SessionService
from api.settings import settings
from api.utils.ids import canonical_id, same_id
from api.utils.utc import utcnow
from api.utils.validation import validate_booking_details, validate_booking_id, validate_reason


logger = get_logger(__name__)


class BookingState(str, enum.Enum):
    VERIFYING = "verifying"
    REJECTED = "rejected"
    RESERVING = "reserving"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


TRANSITIONS = {
    BookingState.VERIFYING: {BookingState.REJECTED, BookingState.RESERVING},
    BookingState.RESERVING: {BookingState.CONFIRMED, BookingState.ROLLED_BACK},
}


class BookingAttempt:
    def __init__(self, subject: str) -> None:
        self.subject = subject
        self.state = BookingState.VERIFYING

    def transition(self, state: BookingState) -> None:
        if state not in TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"Invalid booking state transition {self.state.value} -> {state.value}")

        logger.info(f"Booking attempt {self.subject}: {self.state.value} -> {state.value}")
        self.state = state


@dataclass
class Reservation:
    booking: Booking
    session: ExamSession
    contact: Contact
    consumption: CreditConsumption
    state: BookingState


@dataclass
class Cancellation:
    booking: Booking
    session: ExamSession
    contact: Contact
    credit_type: CreditType
    balance: CreditBalance


class BookingOrchestrator:
    def __init__(
        self,
        client: HubSpotClient,
        batch: ChunkedBatchClient,
        associations: AssociationResolver,
        ledger: CreditLedgerService,
        sessions: SessionService,
        contacts: ContactService,
        compensation: CompensationManager,
    ) -> None:
        self.client = client
        self.batch = batch
        self.associations = associations
        self.ledger = ledger
        self.sessions = sessions
        self.contacts = contacts
        self.compensation = compensation

    async def verify(self, student_id: str, email: str, exam_type: ExamType) -> Eligibility:
        attempt = BookingAttempt(f"{student_id}/{exam_type.value}")
        try:
            contact = await self.contacts.require(student_id, email)
            eligibility = await self.ledger.check_eligibility(contact.id, exam_type)
        except Exception:
            attempt.transition(BookingState.REJECTED)
            raise

        if not eligibility.eligible:
            attempt.transition(BookingState.REJECTED)
        return eligibility

    async def reserve(self, request: BookingRequest) -> Reservation:
        attempt = BookingAttempt(f"{request.student_id}/{request.mock_exam_id}")
        try:
            contact, session, eligibility = await self._check_reservation(request)
        except Exception:
            attempt.transition(BookingState.REJECTED)
            raise

        attempt.transition(BookingState.RESERVING)
        try:
            booking, session, consumption = await self._reserve(request, contact, session, eligibility)
        except Exception:
            attempt.transition(BookingState.ROLLED_BACK)
            raise

        attempt.transition(BookingState.CONFIRMED)
        return Reservation(
            booking=booking, session=session, contact=contact, consumption=consumption, state=attempt.state
        )

    async def cancel(self, booking_id: Any, student_id: str, email: str, reason: str | None = None) -> Cancellation:
        booking_id = validate_booking_id(booking_id)
        validate_reason(reason)
        contact = await self.contacts.require(student_id, email)

        if not await self.associations.verify_ownership(booking_id, contact.id):
            if not await self._load_booking(booking_id):
                raise BookingNotFoundError
            logger.warning(f"Contact {contact.id} tried to cancel booking {booking_id} of another student")
            raise ForbiddenError

        booking = await self._load_booking(booking_id)
        if not booking:
            raise BookingNotFoundError
        if not booking.active:
            raise AlreadyCancelledError

        session = await self._booked_session(booking)
        if session.is_past():
            raise ExamInPastError

        exam_type = booking.exam_type or session.exam_type
        credit_type = booking.credit_type
        if credit_type is None:
            logger.warning(f"Booking {booking.id} does not record its credit type, refunding a specific credit")
            credit_type = CreditType.SPECIFIC

        previous = {
            "status": booking.status.value,
            "is_active": "Active",
            "cancelled_at": "",
            "cancellation_reason": "",
        }
        cancelled_at = utcnow()

        async with self.compensation.sequence(f"Cancellation of booking {booking.id}") as steps:
            await self.client.update_object(
                settings.bookings_object,
                booking.id,
                {
                    "status": BookingStatus.CANCELLED.value,
                    "is_active": "Cancelled",
                    "cancelled_at": cancelled_at.isoformat(),
                    "cancellation_reason": reason or "",
                },
            )
            steps.record(
                "mark cancelled", partial(self.client.update_object, settings.bookings_object, booking.id, previous)
            )

            balance = await self.ledger.restore(contact.id, credit_type, exam_type)
            steps.record("restore credit", partial(self.ledger.deduct, contact.id, credit_type, exam_type))

            session = await self.sessions.decrement_booked_count(session.id)

        logger.info(f"Cancelled booking {booking.id} of contact {contact.id}")
        return Cancellation(
            booking=booking.model_copy(
                update={
                    "status": BookingStatus.CANCELLED,
                    "cancelled_at": cancelled_at,
                    "cancellation_reason": reason or None,
                }
            ),
            session=session,
            contact=contact,
            credit_type=credit_type,
            balance=balance,
        )

    async def _load_booking(self, booking_id: Any) -> Booking | None:
        obj = await self.client.get_object(settings.bookings_object, canonical_id(booking_id), Booking.PROPERTIES)
        return Booking.from_hubspot(obj) if obj else None

    async def _check_reservation(self, request: BookingRequest) -> tuple[Contact, ExamSession, Eligibility]:
        validate_booking_details(request.mock_type, request.dominant_hand, request.attending_location)

        contact = await self.contacts.require(request.student_id, request.email)
        if request.contact_id not in (None, "") and not same_id(request.contact_id, contact.id):
            raise ContactMismatchError

        session = await self.sessions.get_session(request.mock_exam_id)
        if not session:
            raise ExamSessionNotFoundError
        if not session.active:
            raise ExamSessionNotActiveError
        if session.exam_type != request.mock_type:
            raise ExamTypeMismatchError
        if session.is_past():
            raise ExamInPastError
        if session.full:
            raise SessionFullError

        if await self._has_active_booking(contact.id, session, booking_reference(request, session)):
            raise DuplicateBookingError

        eligibility = await self.ledger.check_eligibility(contact.id, request.mock_type)
        if not eligibility.eligible:
            raise InsufficientCreditsError(eligibility.available_credits)

        return contact, session, eligibility

    async def _reserve(
        self, request: BookingRequest, contact: Contact, session: ExamSession, eligibility: Eligibility
    ) -> tuple[Booking, ExamSession, CreditConsumption]:
        exam_type = request.mock_type
        planned = CreditType.SPECIFIC if eligibility.breakdown.specific_credits > 0 else CreditType.SHARED
        booking = Booking(
            id="",
            booking_id=booking_reference(request, session),
            student_id=request.student_id,
            email=request.email,
            name=request.name.strip(),
            exam_session_id=session.id,
            exam_type=exam_type,
            credit_type=planned,
            dominant_hand=request.dominant_hand,
            attending_location=request.attending_location,
        )

        async with self.compensation.sequence(f"Booking {booking.booking_id}") as steps:
            obj = await self.client.create_object(settings.bookings_object, booking.to_properties())
            booking = booking.model_copy(update={"id": canonical_id(obj["id"]), "created_at": utcnow()})
            steps.record("create booking", partial(self.client.archive_object, settings.bookings_object, booking.id))

            await self._associate(booking, settings.contacts_object, contact.id, settings.booking_contact_association)
            steps.record("associate contact", partial(self._dissociate, booking, settings.contacts_object, contact.id))
            await self._associate(
                booking, settings.exam_sessions_object, session.id, settings.booking_session_association
            )
            steps.record(
                "associate exam session", partial(self._dissociate, booking, settings.exam_sessions_object, session.id)
            )

            consumption = await self.ledger.consume(contact.id, exam_type)
            steps.record(
                "consume credit", partial(self.ledger.restore, contact.id, consumption.credit_type, exam_type)
            )
            if consumption.credit_type != planned:
                booking = booking.model_copy(update={"credit_type": consumption.credit_type})
                await self.client.update_object(
                    settings.bookings_object,
                    booking.id,
                    {
                        "credit_type": consumption.credit_type.value,
                        "token_used": token_label(consumption.credit_type, exam_type),
                    },
                )

            session = await self.sessions.increment_booked_count(session.id)

        logger.info(f"Booked session {session.id} for contact {contact.id} as booking {booking.id}")
        return booking, session, consumption

    async def _has_active_booking(self, contact_id: str, session: ExamSession, reference: str) -> bool:
        booking_ids = await self.associations.bookings_for_contact(contact_id)
        if not booking_ids:
            return False

        result = await self.batch.batch_read(settings.bookings_object, booking_ids, Booking.PROPERTIES)
        if result.partial:
            logger.warning(f"Duplicate check for contact {contact_id} could only read {len(result.items)} booking(s)")

        for obj in result.items:
            booking = Booking.from_hubspot(obj)
            if booking.active and (booking.exam_session_id == session.id or booking.booking_id == reference):
                return True
        return False

    async def _booked_session(self, booking: Booking) -> ExamSession:
        session = await self.associations.resolve_session(booking.id)
        if not session and booking.exam_session_id:
            session = await self.sessions.get_session(booking.exam_session_id)
        if not session:
            raise ExamSessionNotFoundError
        return session

    async def _associate(self, booking: Booking, to_type: str, to_id: str, type_id: int) -> None:
        result = await self.batch.batch_create_associations(
            settings.bookings_object,
            to_type,
            [
                {
                    "from": {"id": booking.id},
                    "to": {"id": to_id},
                    "types": [{"associationCategory": "USER_DEFINED", "associationTypeId": type_id}],
                }
            ],
        )
        if not result.items:
            raise HubSpotError(f"Booking {booking.id} could not be associated with {to_type} {to_id}")

    async def _dissociate(self, booking: Booking, to_type: str, to_id: str) -> None:
        await self.client.batch_archive_associations(
            settings.bookings_object, to_type, [{"from": {"id": booking.id}, "to": [{"id": to_id}]}]
        )


def booking_reference(request: BookingRequest, session: ExamSession) -> str:
    """Build the human readable booking id, e.g. `Clinical Skills-Jane Doe - 2025-03-01`."""

    exam_date = session.exam_date.isoformat() if session.exam_date else session.id
    return f"{request.mock_type.value}-{request.name.strip()} - {exam_date}"
