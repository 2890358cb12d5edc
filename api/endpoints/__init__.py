from fastapi import APIRouter

from . import bookings, sessions, webhooks


ROUTER = APIRouter()
ROUTER.include_router(bookings.router, tags=["bookings"])
ROUTER.include_router(sessions.router, tags=["sessions"])
ROUTER.include_router(webhooks.router, tags=["webhooks"])
