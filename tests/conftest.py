from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from api.app import app
from api.dependencies import get_hubspot
from api.services.associations import AssociationResolver
from api.services.batch import ChunkedBatchClient
from api.services.bookings import BookingOrchestrator
from api.services.compensation import CompensationManager
from api.services.contacts import ContactService
from api.services.credits import CreditLedgerService
from api.services.sessions import SessionService
from tests.fakes import FakeHubSpot, FakeRedis


@pytest.fixture
def hubspot() -> FakeHubSpot:
    return FakeHubSpot()


@pytest.fixture
def batch(hubspot: FakeHubSpot) -> ChunkedBatchClient:
    return ChunkedBatchClient(hubspot)  # type: ignore[arg-type]


@pytest.fixture
def associations(hubspot: FakeHubSpot, batch: ChunkedBatchClient) -> AssociationResolver:
    return AssociationResolver(hubspot, batch)  # type: ignore[arg-type]


@pytest.fixture
def ledger(hubspot: FakeHubSpot) -> CreditLedgerService:
    return CreditLedgerService(hubspot)  # type: ignore[arg-type]


@pytest.fixture
def sessions(hubspot: FakeHubSpot, batch: ChunkedBatchClient) -> SessionService:
    return SessionService(hubspot, batch)  # type: ignore[arg-type]


@pytest.fixture
def orchestrator(
    hubspot: FakeHubSpot,
    batch: ChunkedBatchClient,
    associations: AssociationResolver,
    ledger: CreditLedgerService,
    sessions: SessionService,
) -> BookingOrchestrator:
    return BookingOrchestrator(
        hubspot,  # type: ignore[arg-type]
        batch,
        associations,
        ledger,
        sessions,
        ContactService(hubspot),  # type: ignore[arg-type]
        CompensationManager(),
    )


@pytest.fixture
def cache(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    redis = FakeRedis()
    monkeypatch.setattr("api.utils.cache.redis", redis)
    return redis


@pytest.fixture
def client(hubspot: FakeHubSpot, cache: FakeRedis) -> Iterator[TestClient]:
    app.dependency_overrides[get_hubspot] = lambda: hubspot
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
