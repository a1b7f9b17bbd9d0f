"""
In-memory provider profiles and their stored weekly availability.

In production this is the providers collection of the document database.
Availability is kept in whatever document shape it was written in (older
profiles still hold the legacy numeric-day list) and normalized on read.
"""

import logging
from typing import Any, Optional, Union

from pydantic import BaseModel

from provider_scheduling.scheduling.availability import WeeklyAvailability

logger = logging.getLogger(__name__)


class ProviderRecord(BaseModel):
    """Provider profile, linked 1:1 with a user account."""

    id: str
    user_id: str
    business_name: str
    availability: Optional[Union[dict[str, Any], list[Any]]] = None


class ProviderStore:
    def __init__(self) -> None:
        self._providers: dict[str, ProviderRecord] = {}

    def add(self, provider: ProviderRecord) -> ProviderRecord:
        self._providers[provider.id] = provider.model_copy(deep=True)
        logger.debug("Provider stored: %s (%s)", provider.id, provider.business_name)
        return provider

    def get(self, provider_id: str) -> Optional[ProviderRecord]:
        provider = self._providers.get(provider_id)
        return provider.model_copy(deep=True) if provider else None

    def get_by_user(self, user_id: str) -> Optional[ProviderRecord]:
        """Look up the provider profile owned by a user. Returns None if absent."""
        for provider in self._providers.values():
            if provider.user_id == user_id:
                return provider.model_copy(deep=True)
        return None

    def get_availability(self, provider_id: str) -> Optional[WeeklyAvailability]:
        """Normalized weekly availability, or None when unset or provider unknown."""
        provider = self._providers.get(provider_id)
        if provider is None or provider.availability is None:
            return None
        return WeeklyAvailability.from_document(provider.availability)

    def save_availability(self, provider_id: str, weekly: WeeklyAvailability) -> WeeklyAvailability:
        """Persist in canonical form.

        Raises:
            KeyError: If the provider does not exist.
        """
        provider = self._providers[provider_id]
        provider.availability = weekly.to_document()
        logger.info("Availability saved for provider %s", provider_id)
        return weekly

    def reset(self) -> None:
        self._providers.clear()
