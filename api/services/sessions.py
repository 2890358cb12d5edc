from __future__ import annotations

from typing import Any

from api.exceptions.exams import ExamSessionNotFoundError, SessionFullError
from api.exceptions.upstream import UpstreamUnavailableError
from api.logger import get_logger
from api.models.booking import BookingStatus
from api.models.exam_session import ExamSession, ExamType, parse_session, parse_sessions
from api.services.batch import ChunkedBatchClient
from api.services.hubspot import HubSpotClient
from api.settings import settings
from api.utils.cache import redis_cached
from api.utils.ids import canonical_id


logger = get_logger(__name__)


class SessionService:
    """Exam session lookup and maintenance of the `total_bookings` counter."""

    def __init__(self, client: HubSpotClient, batch: ChunkedBatchClient) -> None:
        self.client = client
        self.batch = batch

    async def get_session(self, session_id: Any) -> ExamSession | None:
        obj = await self.client.get_object(
            settings.exam_sessions_object, canonical_id(session_id), ExamSession.PROPERTIES
        )
        return parse_session(obj) if obj else None

    async def search(self, exam_type: ExamType | None = None) -> list[ExamSession]:
        filters = [{"propertyName": "is_active", "operator": "EQ", "value": "true"}]
        if exam_type:
            filters.append({"propertyName": "mock_type", "operator": "EQ", "value": exam_type.value})

        results = await self.client.search_objects(
            settings.exam_sessions_object,
            filters,
            ExamSession.PROPERTIES,
            sorts=[{"propertyName": "exam_date", "direction": "ASCENDING"}],
        )
        return parse_sessions(results)

    async def list_available(
        self, exam_type: ExamType | None = None, include_full: bool = False, realtime: bool = False
    ) -> list[ExamSession]:
        """
        Return all bookable exam sessions that have not taken place yet, ordered by date.

        The result is cached unless `realtime` is set, in which case the booking counters are recomputed from
        the actual bookings first.
        """

        if realtime:
            return _upcoming(await self.reconcile(await self.search(exam_type)), include_full)
        return await self._cached_list(exam_type, include_full)

    @redis_cached("sessions", "exam_type", "include_full")
    async def _cached_list(self, exam_type: ExamType | None, include_full: bool) -> list[ExamSession]:
        return _upcoming(await self.search(exam_type), include_full)

    async def count_active(self, session_ids: list[Any]) -> dict[str, int]:
        """
        Count the active bookings of each session.

        Sessions whose associations or bookings could not be read completely are left out of the result.
        """

        session_ids = [canonical_id(i) for i in session_ids]
        edges = await self.batch.batch_read_associations(
            settings.exam_sessions_object, session_ids, settings.bookings_object
        )
        booking_ids = list(dict.fromkeys(edge.to_id for edge in edges.items))
        bookings = await self.batch.batch_read(settings.bookings_object, booking_ids, ["status", "is_active"])

        active = set()
        for obj in bookings.items:
            props = obj.get("properties") or {}
            if BookingStatus.parse(props.get("status"), props.get("is_active")) != BookingStatus.CANCELLED:
                active.add(canonical_id(obj["id"]))

        unreadable = set(edges.failed_items)
        missing = set(bookings.failed_items)
        unreadable.update(edge.from_id for edge in edges.items if edge.to_id in missing)

        counts = {session_id: 0 for session_id in session_ids if session_id not in unreadable}
        for edge in edges.items:
            if edge.from_id in counts and edge.to_id in active:
                counts[edge.from_id] += 1

        if unreadable:
            logger.warning(f"Could not count the bookings of session(s) {', '.join(sorted(unreadable))}")
        return counts

    async def reconcile(self, sessions: list[ExamSession]) -> list[ExamSession]:
        """Correct the booking counters of the given sessions that drifted from their actual bookings."""

        if not sessions:
            return sessions

        try:
            counts = await self.count_active([session.id for session in sessions])
        except UpstreamUnavailableError:
            logger.warning("Could not reconcile booking counters, using stored values")
            return sessions

        drifted = [s for s in sessions if s.id in counts and counts[s.id] != s.booked_count]
        for session in drifted:
            logger.info(f"Session {session.id}: stored {session.booked_count} bookings, actual {counts[session.id]}")

        if drifted:
            try:
                await self._write_counts({session.id: counts[session.id] for session in drifted})
            except UpstreamUnavailableError:
                logger.warning("Could not store reconciled booking counters")

        return [s.model_copy(update={"booked_count": counts.get(s.id, s.booked_count)}) for s in sessions]

    async def recalculate(self, session_ids: list[Any]) -> dict[str, int]:
        """Recompute and store the booking counters of the given sessions."""

        counts = await self.count_active(session_ids)
        if counts:
            await self._write_counts(counts)
        return counts

    async def increment_booked_count(self, session_id: Any) -> ExamSession:
        """Take one slot of a session, re-reading the counter right before it is written."""

        session = await self.get_session(session_id)
        if not session:
            raise ExamSessionNotFoundError
        if session.full:
            raise SessionFullError

        return await self._set_count(session, session.booked_count + 1)

    async def decrement_booked_count(self, session_id: Any) -> ExamSession:
        session = await self.get_session(session_id)
        if not session:
            raise ExamSessionNotFoundError

        return await self._set_count(session, max(0, session.booked_count - 1))

    async def _set_count(self, session: ExamSession, count: int) -> ExamSession:
        await self.client.update_object(settings.exam_sessions_object, session.id, {"total_bookings": str(count)})
        return session.model_copy(update={"booked_count": count})

    async def _write_counts(self, counts: dict[str, int]) -> None:
        result = await self.batch.batch_write(
            settings.exam_sessions_object,
            [{"id": session_id, "properties": {"total_bookings": str(count)}} for session_id, count in counts.items()],
        )
        if result.partial:
            logger.warning(f"Could not store the booking counters of {len(result.failed_items)} session(s)")


def _upcoming(sessions: list[ExamSession], include_full: bool) -> list[ExamSession]:
    out = [s for s in sessions if s.active and not s.is_past() and (include_full or not s.full)]
    return sorted(out, key=lambda s: (s.exam_date is None, s.exam_date, s.start_time is None, s.start_time))
