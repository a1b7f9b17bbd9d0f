"""Customer data model."""

from typing import Optional

from pydantic import BaseModel


class CustomerRecord(BaseModel):
    """Customer record from the user directory."""
    id: str
    name: str
    email: str
    phone: Optional[str] = None
