"""
Booking Routes

Every route requires an authenticated caller. Role checks happen here;
ownership checks happen in the booking service.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends

from provider_scheduling.api.dependencies import get_caller, get_dispatcher, get_service, require_role
from provider_scheduling.booking_service import BookingService, Caller, CallerRole, parse_payload
from provider_scheduling.notifications import NotificationDispatcher
from provider_scheduling.schemas.booking_schema import Booking, BookingStatusUpdate, ExtendBookingRequest

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _dump(booking: Booking) -> dict[str, Any]:
    return booking.model_dump(mode="json", by_alias=True)


@router.get("")
def list_bookings(
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_service),
):
    bookings = service.list_bookings(caller)
    return {"success": True, "count": len(bookings), "data": [_dump(b) for b in bookings]}


@router.post("", status_code=201)
def create_booking(
    payload: Any = Body(...),
    caller: Caller = Depends(require_role(CallerRole.CUSTOMER)),
    service: BookingService = Depends(get_service),
):
    booking = service.create_booking(caller.user_id, payload)
    return {
        "success": True,
        "message": "Booking request created. Pending payment and confirmation.",
        "data": _dump(booking),
    }


@router.get("/{booking_id}")
def get_booking(
    booking_id: str,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_service),
):
    return {"success": True, "data": _dump(service.get_booking(booking_id, caller))}


@router.put("/{booking_id}/extend")
def extend_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    payload: Any = Body(None),
    caller: Caller = Depends(require_role(CallerRole.PROVIDER)),
    service: BookingService = Depends(get_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    request = parse_payload(ExtendBookingRequest, payload or {})
    result = service.extend_booking(booking_id, caller, request.minutes)
    if result.notices:
        background_tasks.add_task(dispatcher.dispatch, result.notices)
    return {
        "success": True,
        "message": f"Booking extended. {result.rescheduled_count} subsequent booking(s) rescheduled.",
        "data": _dump(result.booking),
        "rescheduledCount": result.rescheduled_count,
    }


@router.put("/{booking_id}/complete")
def complete_booking(
    booking_id: str,
    caller: Caller = Depends(require_role(CallerRole.CUSTOMER, CallerRole.ADMIN)),
    service: BookingService = Depends(get_service),
):
    booking = service.complete_booking(booking_id, caller)
    return {
        "success": True,
        "message": "Service completed. Please submit a rating and review.",
        "data": _dump(booking),
        "requiresReview": True,
    }


@router.put("/{booking_id}")
def update_booking_status(
    booking_id: str,
    payload: Any = Body(...),
    caller: Caller = Depends(require_role(CallerRole.PROVIDER, CallerRole.ADMIN)),
    service: BookingService = Depends(get_service),
):
    update = parse_payload(BookingStatusUpdate, payload)
    booking = service.update_status(booking_id, caller, update.status, update.payment_status)
    return {"success": True, "data": _dump(booking)}


@router.delete("/{booking_id}")
def cancel_booking(
    booking_id: str,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_service),
):
    service.cancel_booking(booking_id, caller)
    return {"success": True, "message": "Booking successfully cancelled"}
