"""
Availability Routes

Public slot and schedule lookups, and the provider's own schedule
management.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query

from provider_scheduling.api.dependencies import get_service, require_role
from provider_scheduling.booking_service import BookingService, Caller, CallerRole

router = APIRouter(tags=["availability"])


@router.get("/providers/{provider_id}/availability")
def get_available_slots(
    provider_id: str,
    date: Optional[str] = Query(None),
    service_id: Optional[str] = Query(None, alias="serviceId"),
    # Kept as text: an unparseable override falls back to the service duration.
    duration_minutes: Optional[str] = Query(None, alias="durationMinutes"),
    service: BookingService = Depends(get_service),
):
    slots = service.get_available_slots(provider_id, date, service_id, duration_minutes)
    return {"success": True, "data": [slot.to_dict() for slot in slots]}


@router.get("/availability/me")
def get_my_availability(
    caller: Caller = Depends(require_role(CallerRole.PROVIDER)),
    service: BookingService = Depends(get_service),
):
    return {"success": True, "data": service.get_my_availability(caller.user_id)}


@router.put("/availability")
def upsert_my_availability(
    payload: Any = Body(...),
    caller: Caller = Depends(require_role(CallerRole.PROVIDER)),
    service: BookingService = Depends(get_service),
):
    data = service.upsert_availability(caller.user_id, payload)
    return {"success": True, "message": "Availability updated successfully.", "data": data}


@router.get("/availability/{provider_id}")
def get_provider_availability(
    provider_id: str,
    service: BookingService = Depends(get_service),
):
    return {"success": True, "data": service.get_provider_availability(provider_id)}
