from typing import Any

from api.exceptions.upstream import UpstreamUnavailableError
from api.logger import get_logger
from api.models.association import Association
from api.models.exam_session import ExamSession, parse_session
from api.services.batch import ChunkedBatchClient
from api.services.hubspot import HubSpotClient, HubSpotError
from api.settings import settings
from api.utils.ids import canonical_id


logger = get_logger(__name__)


class AssociationResolver:
    """Resolve the contact and exam session a booking belongs to."""

    def __init__(self, client: HubSpotClient, batch: ChunkedBatchClient) -> None:
        self.client = client
        self.batch = batch

    async def associated_ids(self, from_type: str, from_id: Any, to_type: str) -> list[str]:
        """
        Return the canonical ids of all `to_type` objects associated with the given object.

        The v4 batch endpoint is tried first. If it is unavailable or knows no associations, the v3 object
        endpoint (which embeds associations as string ids) is used instead.
        """

        from_id = canonical_id(from_id)
        batch_failed = False
        try:
            edges = (await self.batch.batch_read_associations(from_type, [from_id], to_type)).items
        except UpstreamUnavailableError:
            logger.warning(f"Batch association read {from_type}/{from_id} -> {to_type} failed, falling back")
            batch_failed = True
            edges = []

        if not edges:
            try:
                edges = await self._associations_from_object(from_type, from_id, to_type)
            except HubSpotError as e:
                if batch_failed:
                    raise UpstreamUnavailableError from e
                logger.warning(f"Could not read associations of {from_type}/{from_id}: {e}")
                edges = []

        return list(dict.fromkeys(edge.to_id for edge in edges if edge.from_id == from_id))

    async def resolve_owner(self, booking_id: Any) -> str | None:
        owners = await self.associated_ids(settings.bookings_object, booking_id, settings.contacts_object)
        return owners[0] if owners else None

    async def verify_ownership(self, booking_id: Any, claimed_contact_id: Any) -> bool:
        claimed = canonical_id(claimed_contact_id)
        owners = await self.associated_ids(settings.bookings_object, booking_id, settings.contacts_object)
        if not owners:
            logger.info(f"No contact associated with booking {booking_id}, denying access")
            return False
        return claimed in owners

    async def resolve_session(self, booking_id: Any) -> ExamSession | None:
        sessions = await self.associated_ids(settings.bookings_object, booking_id, settings.exam_sessions_object)
        if not sessions:
            return None

        obj = await self.client.get_object(settings.exam_sessions_object, sessions[0], ExamSession.PROPERTIES)
        return parse_session(obj) if obj else None

    async def bookings_for_contact(self, contact_id: Any) -> list[str]:
        return await self.associated_ids(settings.contacts_object, contact_id, settings.bookings_object)

    async def _associations_from_object(self, from_type: str, from_id: str, to_type: str) -> list[Association]:
        obj = await self.client.get_object(from_type, from_id, [], associations=[to_type])
        if not obj:
            return []

        associations = obj.get("associations") or {}
        # the v3 endpoint keys associations by object name for standard objects and by type id for custom ones
        key = next((k for k in associations if k in (to_type, _object_name(to_type))), to_type)
        return Association.from_object(obj, key)


def _object_name(object_type: str) -> str:
    return {settings.contacts_object: "contacts", settings.notes_object: "notes"}.get(object_type, object_type)
