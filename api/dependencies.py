"""Per request construction of the services, overridable in tests via `app.dependency_overrides`."""

from fastapi import Depends

from api.services.associations import AssociationResolver
from api.services.batch import ChunkedBatchClient
from api.services.booking_queries import BookingQueryService
from api.services.bookings import BookingOrchestrator
from api.services.compensation import CompensationManager
from api.services.contacts import ContactService
from api.services.credits import CreditLedgerService
from api.services.hubspot import HubSpotClient, hubspot
from api.services.notes import NoteService
from api.services.sessions import SessionService
from api.services.webhooks import WebhookService


def get_hubspot() -> HubSpotClient:
    return hubspot


def get_batch(client: HubSpotClient = Depends(get_hubspot)) -> ChunkedBatchClient:
    return ChunkedBatchClient(client)


def get_associations(
    client: HubSpotClient = Depends(get_hubspot), batch: ChunkedBatchClient = Depends(get_batch)
) -> AssociationResolver:
    return AssociationResolver(client, batch)


def get_contacts(client: HubSpotClient = Depends(get_hubspot)) -> ContactService:
    return ContactService(client)


def get_sessions(
    client: HubSpotClient = Depends(get_hubspot), batch: ChunkedBatchClient = Depends(get_batch)
) -> SessionService:
    return SessionService(client, batch)


def get_notes(client: HubSpotClient = Depends(get_hubspot)) -> NoteService:
    return NoteService(client)


def get_orchestrator(
    client: HubSpotClient = Depends(get_hubspot),
    batch: ChunkedBatchClient = Depends(get_batch),
    associations: AssociationResolver = Depends(get_associations),
    sessions: SessionService = Depends(get_sessions),
    contacts: ContactService = Depends(get_contacts),
) -> BookingOrchestrator:
    return BookingOrchestrator(
        client, batch, associations, CreditLedgerService(client), sessions, contacts, CompensationManager()
    )


def get_booking_queries(
    client: HubSpotClient = Depends(get_hubspot),
    batch: ChunkedBatchClient = Depends(get_batch),
    associations: AssociationResolver = Depends(get_associations),
    contacts: ContactService = Depends(get_contacts),
) -> BookingQueryService:
    return BookingQueryService(client, batch, associations, contacts)


def get_webhooks(
    batch: ChunkedBatchClient = Depends(get_batch), sessions: SessionService = Depends(get_sessions)
) -> WebhookService:
    return WebhookService(batch, sessions)
