"""
In-memory customer directory.

In production this would query the users collection; here it only needs to
resolve the recipient of a reschedule notice.
"""

import logging
from typing import Optional

from provider_scheduling.schemas.customer_schema import CustomerRecord

logger = logging.getLogger(__name__)


class CustomerStore:
    def __init__(self) -> None:
        self._customers: dict[str, CustomerRecord] = {}

    def add(self, customer: CustomerRecord) -> CustomerRecord:
        self._customers[customer.id] = customer.model_copy()
        logger.info("Customer stored: %s (%s)", customer.name, customer.id)
        return customer

    def get(self, customer_id: str) -> Optional[CustomerRecord]:
        """Look up a customer by id. Returns None if not found."""
        customer = self._customers.get(customer_id)
        return customer.model_copy() if customer else None

    def reset(self) -> None:
        self._customers.clear()
