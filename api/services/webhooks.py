"""Handling of HubSpot webhook events that keep the booking counters of exam sessions in sync."""

import base64
import hashlib
import hmac
from typing import Any

from api.exceptions.auth import InvalidSignatureError
from api.logger import get_logger
from api.services.batch import ChunkedBatchClient
from api.services.sessions import SessionService
from api.settings import settings
from api.utils.ids import canonical_id
from api.utils.utc import utcnow


logger = get_logger(__name__)

SUBSCRIPTION_TYPES = {
    "object.creation",
    "object.deletion",
    "object.propertyChange",
    "object.associationChange",
    "contact.associationChange",
    "contact.deletion",
    "contact.propertyChange",
}


def verify_signature(
    secret: str, method: str, uri: str, body: bytes, signature: str | None, timestamp: str | None
) -> None:
    """
    Check a v3 HubSpot request signature.

    The signature is the base64 encoded HMAC-SHA256 of method, uri, body and timestamp. Requests older than
    `settings.hubspot_webhook_max_age` seconds are rejected.
    """

    if not signature or not timestamp or not timestamp.isdigit():
        logger.warning("Webhook request without signature or timestamp")
        raise InvalidSignatureError

    age = abs(utcnow().timestamp() * 1000 - int(timestamp)) / 1000
    if age > settings.hubspot_webhook_max_age:
        logger.warning(f"Webhook timestamp is {age:.0f}s old")
        raise InvalidSignatureError

    source = method.encode() + uri.encode() + body + timestamp.encode()
    expected = base64.b64encode(hmac.new(secret.encode(), source, hashlib.sha256).digest()).decode()
    if not hmac.compare_digest(signature.removeprefix("v3="), expected):
        logger.warning("Invalid webhook signature")
        raise InvalidSignatureError


class WebhookService:
    def __init__(self, batch: ChunkedBatchClient, sessions: SessionService) -> None:
        self.batch = batch
        self.sessions = sessions

    async def affected_sessions(self, events: list[dict[str, Any]]) -> list[str]:
        booking_ids, session_ids = [], []
        for event in events:
            if event.get("subscriptionType") not in SUBSCRIPTION_TYPES or event.get("objectId") is None:
                continue

            object_type = str(event.get("objectTypeId") or settings.bookings_object)
            if object_type == settings.bookings_object:
                booking_ids.append(canonical_id(event["objectId"]))
            elif object_type == settings.exam_sessions_object:
                session_ids.append(canonical_id(event["objectId"]))

        if booking_ids:
            edges = await self.batch.batch_read_associations(
                settings.bookings_object, list(dict.fromkeys(booking_ids)), settings.exam_sessions_object
            )
            session_ids.extend(edge.to_id for edge in edges.items)

        return list(dict.fromkeys(session_ids))

    async def sync(self, events: list[dict[str, Any]]) -> dict[str, int]:
        """Recalculate the booking counters of all exam sessions affected by the given events."""

        if not (session_ids := await self.affected_sessions(events)):
            logger.debug(f"No exam sessions affected by {len(events)} webhook event(s)")
            return {}

        counts = await self.sessions.recalculate(session_ids)
        logger.info(f"Recalculated booking counters of {len(counts)}/{len(session_ids)} exam session(s)")
        return counts
