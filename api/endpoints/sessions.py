"""Endpoints related to exam sessions"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_sessions
from api.exceptions.api_exception import responses
from api.exceptions.upstream import UpstreamUnavailableError
from api.models.exam_session import ExamType
from api.schemas.envelope import Envelope, ok
from api.schemas.sessions import Session
from api.services.sessions import SessionService


router = APIRouter()


@router.get("/sessions", responses=responses(Envelope[list[Session]], UpstreamUnavailableError))
async def list_sessions(
    mock_type: ExamType | None = Query(None, description="Only return sessions of this exam type"),
    include_full: bool = Query(False, description="Also return sessions without available slots"),
    realtime: bool = Query(False, description="Recount the bookings of each session instead of using the cache"),
    sessions: SessionService = Depends(get_sessions),
) -> Any:
    """Return all upcoming exam sessions that can be booked."""

    return ok([session.serialize for session in await sessions.list_available(mock_type, include_full, realtime)])
