"""Endpoints for HubSpot webhooks"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Header, Request

from api.dependencies import get_webhooks
from api.exceptions.api_exception import responses
from api.exceptions.auth import InvalidInputError, InvalidSignatureError
from api.exceptions.upstream import UpstreamUnavailableError
from api.schemas.envelope import Envelope, ok
from api.schemas.webhooks import SyncResult
from api.services.webhooks import WebhookService, verify_signature
from api.settings import settings


router = APIRouter()


@router.post(
    "/webhooks/booking-sync",
    responses=responses(Envelope[SyncResult], InvalidInputError, InvalidSignatureError, UpstreamUnavailableError),
)
async def booking_sync(
    request: Request,
    signature: str | None = Header(None, alias="X-HubSpot-Signature-v3"),
    timestamp: str | None = Header(None, alias="X-HubSpot-Request-Timestamp"),
    webhooks: WebhookService = Depends(get_webhooks),
) -> Any:
    """
    Recalculate the booking counters of the exam sessions affected by booking changes.

    If a webhook secret is configured, the v3 signature of the request is verified.
    """

    body = await request.body()
    if settings.hubspot_webhook_secret:
        verify_signature(
            settings.hubspot_webhook_secret, request.method, str(request.url), body, signature, timestamp
        )

    try:
        events = json.loads(body or b"[]")
    except ValueError:
        raise InvalidInputError("Request body is not valid JSON") from None
    if not isinstance(events, list):
        raise InvalidInputError("Expected a list of events")

    counts = await webhooks.sync([event for event in events if isinstance(event, dict)])
    return ok({"events": len(events), "sessions": counts})
