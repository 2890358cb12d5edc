from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from api.exceptions.bookings import BookingNotFoundError, ForbiddenError
from api.exceptions.upstream import UpstreamUnavailableError
from api.logger import get_logger
from api.models.booking import Booking
from api.models.exam_session import ExamSession, parse_session, parse_sessions
from api.services.associations import AssociationResolver
from api.services.batch import BatchResult, ChunkedBatchClient
from api.services.contacts import ContactService
from api.services.hubspot import HubSpotClient
from api.settings import settings
from api.utils.validation import validate_booking_id


logger = get_logger(__name__)


class BookingFilter(str, enum.Enum):
    ALL = "all"
    UPCOMING = "upcoming"
    PAST = "past"


@dataclass
class BookingPage:
    bookings: list[tuple[Booking, ExamSession]] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0
    partial: bool = False

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def serialize(self) -> dict[str, Any]:
        return {
            "bookings": [booking.serialize(session) for booking, session in self.bookings],
            "pagination": {
                "current_page": self.page,
                "total_pages": self.total_pages,
                "total_bookings": self.total,
                "has_next": self.page < self.total_pages,
                "has_previous": self.page > 1,
            },
            "partial": self.partial,
        }


class BookingQueryService:
    def __init__(
        self,
        client: HubSpotClient,
        batch: ChunkedBatchClient,
        associations: AssociationResolver,
        contacts: ContactService,
    ) -> None:
        self.client = client
        self.batch = batch
        self.associations = associations
        self.contacts = contacts

    async def list_bookings(
        self,
        student_id: str,
        email: str,
        booking_filter: BookingFilter = BookingFilter.ALL,
        page: int = 1,
        limit: int = 20,
    ) -> BookingPage:
        """
        Return one page of the bookings of a student together with their exam sessions.

        Upcoming bookings are sorted by date ascending, past bookings newest first. Bookings that could not be
        loaded because a batch read failed partially are left out and the page is marked as `partial`.
        """

        contact = await self.contacts.require(student_id, email)
        booking_ids = await self.associations.bookings_for_contact(contact.id)

        bookings = await self.batch.batch_read(settings.bookings_object, booking_ids, Booking.PROPERTIES)
        loaded = [Booking.from_hubspot(obj) for obj in bookings.items]

        try:
            edges = await self.batch.batch_read_associations(
                settings.bookings_object, [booking.id for booking in loaded], settings.exam_sessions_object
            )
            associations_failed = False
        except UpstreamUnavailableError:
            logger.warning(f"Could not read the exam sessions of {len(loaded)} booking(s), using booking properties")
            edges, associations_failed = BatchResult(), True
        session_of = {edge.from_id: edge.to_id for edge in edges.items}
        for booking in loaded:
            if booking.id not in session_of and booking.exam_session_id:
                session_of[booking.id] = booking.exam_session_id

        sessions = await self.batch.batch_read(
            settings.exam_sessions_object, list(dict.fromkeys(session_of.values())), ExamSession.PROPERTIES
        )
        session_by_id = {s.id: s for s in parse_sessions(sessions.items)}

        entries = []
        for booking in loaded:
            if not (session := session_by_id.get(session_of.get(booking.id, ""))):
                logger.warning(f"No exam session found for booking {booking.id}")
                continue
            if _matches(booking, session, booking_filter):
                entries.append((booking, session))

        entries.sort(key=lambda entry: _sort_key(entry[1]), reverse=booking_filter == BookingFilter.PAST)

        start = (page - 1) * limit
        return BookingPage(
            bookings=entries[start : start + limit],
            page=page,
            limit=limit,
            total=len(entries),
            partial=bookings.partial or associations_failed or edges.partial or sessions.partial,
        )

    async def get_booking(self, booking_id: Any, student_id: str, email: str) -> tuple[Booking, ExamSession | None]:
        booking_id = validate_booking_id(booking_id)
        contact = await self.contacts.require(student_id, email)

        obj = await self.client.get_object(settings.bookings_object, booking_id, Booking.PROPERTIES)
        if not obj:
            raise BookingNotFoundError
        if not await self.associations.verify_ownership(booking_id, contact.id):
            raise ForbiddenError

        booking = Booking.from_hubspot(obj)
        session = await self.associations.resolve_session(booking.id)
        if not session and booking.exam_session_id:
            obj = await self.client.get_object(
                settings.exam_sessions_object, booking.exam_session_id, ExamSession.PROPERTIES
            )
            session = parse_session(obj) if obj else None
        return booking, session


def _matches(booking: Booking, session: ExamSession, booking_filter: BookingFilter) -> bool:
    if booking_filter == BookingFilter.UPCOMING:
        return booking.active and not session.is_past()
    if booking_filter == BookingFilter.PAST:
        return session.is_past()
    return True


def _sort_key(session: ExamSession) -> datetime:
    if session.start_time:
        return session.start_time
    return datetime.combine(session.exam_date or date.min, datetime.min.time(), timezone.utc)
