"""
Serialization adapter between the Patient entity and store representations.

Every field is mapped explicitly in both directions; unknown document keys are
dropped rather than passed through.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from clinisearch.patients.schemas import Patient
from .models import PatientModel

# Fields a store may range over or scan.
INDEXED_FIELDS = ("phone", "family_id", "name_lower")


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise ValueError(f"Expected datetime, got {type(value).__name__}")


def _to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise ValueError(f"Expected date, got {type(value).__name__}")


def patient_to_document(patient: Patient) -> Dict[str, Any]:
    return {
        "unique_id": patient.unique_id,
        "owner_id": patient.owner_id,
        "family_id": patient.family_id,
        "name": patient.name,
        "name_lower": patient.name_lower,
        "phone": patient.phone,
        "email": patient.email,
        "date_of_birth": patient.date_of_birth.isoformat() if patient.date_of_birth else None,
        "gender": patient.gender,
        "present_illness": patient.present_illness,
        "allergies": patient.allergies,
        "attributes": dict(patient.attributes),
        "created_at": patient.created_at.isoformat(),
        "updated_at": patient.updated_at.isoformat(),
    }


def patient_from_document(doc: Dict[str, Any]) -> Patient:
    return Patient(
        unique_id=doc["unique_id"],
        owner_id=doc["owner_id"],
        family_id=doc["family_id"],
        name=doc["name"],
        name_lower=doc.get("name_lower") or "",
        phone=doc["phone"],
        email=doc.get("email"),
        date_of_birth=_to_date(doc.get("date_of_birth")),
        gender=doc.get("gender"),
        present_illness=doc.get("present_illness"),
        allergies=doc.get("allergies"),
        attributes=dict(doc.get("attributes") or {}),
        created_at=_to_datetime(doc["created_at"]),
        updated_at=_to_datetime(doc["updated_at"]),
    )


def patient_to_model(patient: Patient) -> PatientModel:
    return PatientModel(
        unique_id=patient.unique_id,
        owner_id=patient.owner_id,
        family_id=patient.family_id,
        name=patient.name,
        name_lower=patient.name_lower,
        phone=patient.phone,
        email=patient.email,
        date_of_birth=patient.date_of_birth,
        gender=patient.gender,
        present_illness=patient.present_illness,
        allergies=patient.allergies,
        attributes=dict(patient.attributes),
        created_at=patient.created_at,
        updated_at=patient.updated_at,
    )


def patient_from_model(model: PatientModel) -> Patient:
    return Patient(
        unique_id=model.unique_id,
        owner_id=model.owner_id,
        family_id=model.family_id,
        name=model.name,
        name_lower=model.name_lower,
        phone=model.phone,
        email=model.email,
        date_of_birth=model.date_of_birth,
        gender=model.gender,
        present_illness=model.present_illness,
        allergies=model.allergies,
        attributes=dict(model.attributes or {}),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def apply_updates_to_model(model: PatientModel, updates: Dict[str, Any]) -> None:
    """Copy mutable fields from an update dict onto a row."""
    if "name" in updates:
        model.name = updates["name"]
    if "name_lower" in updates:
        model.name_lower = updates["name_lower"]
    if "phone" in updates:
        model.phone = updates["phone"]
    if "email" in updates:
        model.email = updates["email"]
    if "date_of_birth" in updates:
        model.date_of_birth = _to_date(updates["date_of_birth"])
    if "gender" in updates:
        model.gender = updates["gender"]
    if "present_illness" in updates:
        model.present_illness = updates["present_illness"]
    if "allergies" in updates:
        model.allergies = updates["allergies"]
    if "attributes" in updates:
        model.attributes = dict(updates["attributes"] or {})
    if "updated_at" in updates:
        model.updated_at = _to_datetime(updates["updated_at"])
