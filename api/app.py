from contextlib import asynccontextmanager
from typing import AsyncIterator

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.endpoints import ROUTER
from api.exceptions.upstream import UpstreamUnavailableError
from api.logger import get_logger
from api.redis import redis
from api.schemas.envelope import error
from api.services.hubspot import HubSpotError, hubspot
from api.settings import settings


logger = get_logger(__name__)

if settings.sentry_dsn:
    logger.debug("initializing sentry")
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        integrations=[StarletteIntegration(transaction_style="endpoint")],
        attach_stacktrace=True,
        traces_sample_rate=0.1,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting mock exam booking service")
    yield
    await hubspot.aclose()
    await redis.aclose()


app = FastAPI(
    title="Mock Exam Booking",
    description="Booking of mock exam sessions against the HubSpot CRM",
    root_path=settings.root_path,
    debug=settings.debug,
    lifespan=lifespan,
)
app.include_router(ROUTER)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        error(str(exc.detail), getattr(exc, "code", "HTTP_ERROR")), exc.status_code, headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = [f"{'.'.join(str(loc) for loc in err['loc'][1:])}: {err['msg']}" for err in exc.errors()]
    return JSONResponse(error(f"Invalid input: {', '.join(messages)}", "VALIDATION_ERROR"), 400)


@app.exception_handler(HubSpotError)
async def hubspot_exception_handler(request: Request, exc: HubSpotError) -> JSONResponse:
    logger.error(f"Unhandled HubSpot error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        error(UpstreamUnavailableError.detail, UpstreamUnavailableError.code), UpstreamUnavailableError.status_code
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(error("Internal server error", "INTERNAL_ERROR"), 500)
