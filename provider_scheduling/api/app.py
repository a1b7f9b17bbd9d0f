"""
FastAPI application factory.

The app owns one set of in-memory stores, the booking service built on
them, and the notification dispatcher. Tests pass their own service and
dispatcher to ``create_app``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from provider_scheduling.api.routes.availability import router as availability_router
from provider_scheduling.api.routes.bookings import router as bookings_router
from provider_scheduling.booking_service import BookingService
from provider_scheduling.config import settings
from provider_scheduling.errors import SchedulingError
from provider_scheduling.logging_context import get_request_logger, request_scope
from provider_scheduling.notifications import LoggingNotifier, NotificationDispatcher
from provider_scheduling.stores.bookings import BookingStore
from provider_scheduling.stores.catalog import ServiceCatalog
from provider_scheduling.stores.customers import CustomerStore
from provider_scheduling.stores.demo_data import seed_demo_data
from provider_scheduling.stores.providers import ProviderStore

logger = get_request_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def build_service() -> BookingService:
    """Service over fresh in-memory stores, seeded when SEED_DEMO_DATA is set."""
    service = BookingService(
        providers=ProviderStore(),
        catalog=ServiceCatalog(),
        bookings=BookingStore(),
        customers=CustomerStore(),
    )
    if settings.server.seed_demo_data:
        seed_demo_data(service.providers, service.catalog, service.customers, service.bookings)
    return service


def create_app(
    service: Optional[BookingService] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    service = service or build_service()
    dispatcher = dispatcher or NotificationDispatcher(
        service.customers, service.bookings, LoggingNotifier()
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s starting up", settings.app_name)
        yield
        logger.info("%s shutting down", settings.app_name)

    app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)
    app.state.service = service
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        with request_scope(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error("%s %s - Error: %s", request.method, request.url.path, e)
                raise
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError):
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(
            level, "%s %s -> %d %s: %s",
            request.method, request.url.path, exc.status_code, exc.error_type, exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        logger.warning("Validation error for %s: %s", request.url.path, errors)
        body = {"success": False, "error": "validation_error", "message": first.get("msg", "Invalid request.")}
        if field:
            body["field"] = field
        return JSONResponse(status_code=400, content=body)

    app.include_router(availability_router)
    app.include_router(bookings_router)

    @app.get("/health")
    def health():
        return {"status": "ok", "service": settings.app_name}

    return app
