from typing import List
from pydantic import BaseModel, ConfigDict, Field

from clinisearch.patients.schemas import Patient, PatientCreate, PatientUpdate

# --- Search ---

class SearchRequest(BaseModel):
    term: str = Field("", description="Phone fragment, family identifier or name")

class SearchResultsResponse(BaseModel):
    term: str
    mode: str = Field(..., description="'numeric', 'text' or 'idle'")
    results: List[Patient]
    has_more: bool
    is_loading_more: bool
    search_failed: bool = Field(False, description="Every strategy failed; results are empty")

# --- Patients ---

class PatientResponse(Patient):
    model_config = ConfigDict(from_attributes=True)

__all__ = [
    "SearchRequest",
    "SearchResultsResponse",
    "PatientResponse",
    "PatientCreate",
    "PatientUpdate",
]
