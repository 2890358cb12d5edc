"""Endpoints related to bookings"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status

from api.dependencies import get_booking_queries, get_notes, get_orchestrator
from api.exceptions.api_exception import responses
from api.exceptions.auth import AuthenticationFailedError, InvalidInputError
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
from api.exceptions.upstream import PartialFailureError, UpstreamUnavailableError
from api.schemas import bookings as schemas
from api.schemas.envelope import Envelope, ok
from api.services.booking_queries import BookingFilter, BookingQueryService
from api.services.bookings import BookingOrchestrator
from api.services.credits import Eligibility
from api.services.notes import NoteService
from api.utils.cache import clear_cache


router = APIRouter()


@router.post(
    "/bookings/verify",
    responses=responses(Envelope[Eligibility], InvalidInputError, AuthenticationFailedError, UpstreamUnavailableError),
)
async def verify_eligibility(
    data: schemas.VerifyRequest, orchestrator: BookingOrchestrator = Depends(get_orchestrator)
) -> Any:
    """
    Check whether a student has credits left for an exam type.

    An ineligible student is not an error: the response contains `eligible: false` and a message.
    """

    eligibility = await orchestrator.verify(data.student_id, data.email, data.mock_type)
    return ok(eligibility.model_dump(mode="json"))


@router.post(
    "/bookings",
    status_code=status.HTTP_201_CREATED,
    responses=responses(
        Envelope[schemas.Reservation],
        InvalidInputError,
        AuthenticationFailedError,
        ContactMismatchError,
        ExamSessionNotFoundError,
        ExamSessionNotActiveError,
        ExamTypeMismatchError,
        ExamInPastError,
        SessionFullError,
        DuplicateBookingError,
        InsufficientCreditsError,
        PartialFailureError,
        UpstreamUnavailableError,
        success_status=status.HTTP_201_CREATED,
    ),
)
async def create_booking(
    data: schemas.BookingRequest,
    background_tasks: BackgroundTasks,
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
    notes: NoteService = Depends(get_notes),
) -> Any:
    """
    Book a slot of a mock exam session.

    One credit of the student is consumed, preferring credits for the exam type over shared credits.
    """

    reservation = await orchestrator.reserve(data)
    await clear_cache("sessions")
    background_tasks.add_task(notes.booking_confirmed, reservation)

    session = reservation.session
    exam_date = session.exam_date.isoformat() if session.exam_date else "TBD"
    return ok(
        {
            "booking": reservation.booking.serialize(session),
            "credit_type": reservation.consumption.credit_type.value,
            "remaining_credits": reservation.consumption.balance.available_for(session.exam_type),
            "confirmation_message": f"Your booking for {session.exam_type.value} on {exam_date} has been confirmed",
        }
    )


@router.get(
    "/bookings",
    responses=responses(
        Envelope[schemas.BookingList], InvalidInputError, AuthenticationFailedError, UpstreamUnavailableError
    ),
)
async def list_bookings(
    student_id: str = Query(description="The student's ID"),
    email: str = Query(description="The student's email address"),
    booking_filter: BookingFilter = Query(BookingFilter.ALL, alias="filter", description="Which bookings to return"),
    page: int = Query(1, ge=1, description="The page to return"),
    limit: int = Query(20, ge=1, le=100, description="The number of bookings per page"),
    queries: BookingQueryService = Depends(get_booking_queries),
) -> Any:
    """Return the bookings of a student."""

    result = await queries.list_bookings(student_id, email, booking_filter, page, limit)
    return ok(result.serialize)


@router.get(
    "/bookings/{booking_id}",
    responses=responses(
        Envelope[schemas.Booking],
        InvalidInputError,
        AuthenticationFailedError,
        BookingNotFoundError,
        ForbiddenError,
        UpstreamUnavailableError,
    ),
)
async def get_booking(
    booking_id: str,
    student_id: str = Query(description="The student's ID"),
    email: str = Query(description="The student's email address"),
    queries: BookingQueryService = Depends(get_booking_queries),
) -> Any:
    """Return a booking of a student together with its exam session."""

    booking, session = await queries.get_booking(booking_id, student_id, email)
    return ok(booking.serialize(session))


@router.delete(
    "/bookings/{booking_id}",
    responses=responses(
        Envelope[schemas.Cancellation],
        InvalidInputError,
        AuthenticationFailedError,
        BookingNotFoundError,
        ForbiddenError,
        AlreadyCancelledError,
        ExamSessionNotFoundError,
        ExamInPastError,
        PartialFailureError,
        UpstreamUnavailableError,
    ),
)
async def cancel_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    data: schemas.CancelRequest = Body(),
    orchestrator: BookingOrchestrator = Depends(get_orchestrator),
    notes: NoteService = Depends(get_notes),
) -> Any:
    """
    Cancel a booking.

    The credit used for the booking is refunded to the same bucket it was taken from.
    Bookings of exams that have already taken place cannot be cancelled.
    """

    cancellation = await orchestrator.cancel(booking_id, data.student_id, data.email, data.reason)
    await clear_cache("sessions")
    background_tasks.add_task(notes.booking_cancelled, cancellation)

    exam_type = cancellation.booking.exam_type or cancellation.session.exam_type
    return ok(
        {
            "booking_id": cancellation.booking.booking_id,
            "status": cancellation.booking.status.value,
            "credits_restored": {
                "credit_type": cancellation.credit_type.value,
                "amount": 1,
                "remaining_credits": cancellation.balance.available_for(exam_type),
            },
            "message": "Your booking has been cancelled and your credit has been restored",
        }
    )
