"""Service catalog: durations and hourly rates of bookable services."""

import logging
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ServiceRecord(BaseModel):
    """A service offered by one provider. ``hourly_rate`` prices the booked minutes."""

    id: str
    provider_id: str
    name: str
    duration_minutes: int = Field(..., ge=10)
    hourly_rate: float = Field(0.0, ge=0)
    is_active: bool = True

    def price_for(self, minutes: int) -> float:
        """Hourly rate times the booked duration."""
        return round(self.hourly_rate * minutes / 60, 2)


class ServiceCatalog:
    def __init__(self) -> None:
        self._services: dict[str, ServiceRecord] = {}

    def add(self, service: ServiceRecord) -> ServiceRecord:
        self._services[service.id] = service.model_copy()
        return service

    def get(self, service_id: str) -> Optional[ServiceRecord]:
        """Get a service by id, active or not. Returns None if unknown."""
        service = self._services.get(service_id)
        return service.model_copy() if service else None

    def for_provider(self, provider_id: str) -> list[ServiceRecord]:
        return [s.model_copy() for s in self._services.values() if s.provider_id == provider_id]

    def reset(self) -> None:
        self._services.clear()
