"""
Trip sitter (emergency contact) schemas
"""
from typing import Optional

from pydantic import Field

from tripjournal.schemas.base import JournalModel
from tripjournal.schemas.trip import TripSitterContact


class TripSitterCreate(JournalModel):
    """Schema for registering a new trip sitter"""
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=3, max_length=32)
    relationship: str = Field(default="", max_length=100)
    is_urgent: bool = False


class TripSitterUpdate(JournalModel):
    """Schema for updating a trip sitter"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=3, max_length=32)
    relationship: Optional[str] = Field(None, max_length=100)
    is_urgent: Optional[bool] = None


class TripSitter(JournalModel):
    """Stored trip sitter record"""
    id: str
    name: str
    phone: str
    relationship: str = ""
    is_urgent: bool = False

    def as_contact(self) -> TripSitterContact:
        """Snapshot for attaching to a trip draft"""
        return TripSitterContact(name=self.name, phone_number=self.phone, relationship=self.relationship)
