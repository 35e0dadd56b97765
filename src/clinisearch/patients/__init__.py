"""Patient entity schemas and record service."""

from .schemas import Patient, PatientCreate, PatientUpdate

__all__ = ["Patient", "PatientCreate", "PatientUpdate"]
