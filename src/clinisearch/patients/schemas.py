"""
Patient entity and write schemas.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator


class Patient(BaseModel):
    """
    A searchable patient record.

    `unique_id` is formatted as `{family_id}_{owner_id}` so the identity alone
    names the principal that owns it.
    """

    unique_id: str
    owner_id: str
    family_id: str
    name: str
    name_lower: str = ""
    phone: str
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    present_illness: Optional[str] = None
    allergies: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _fill_name_lower(self) -> "Patient":
        if not self.name_lower:
            self.name_lower = self.name.strip().lower()
        return self


class PatientCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    present_illness: Optional[str] = None
    allergies: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)


class PatientUpdate(BaseModel):
    """Mutable patient fields. Identity, family, owner and creation time are never updated."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    present_illness: Optional[str] = None
    allergies: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None
