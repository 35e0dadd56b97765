"""
Router for patient record endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from clinisearch.api import schemas
from clinisearch.api.dependencies import get_patient_service, require_principal
from clinisearch.patients.service import PatientRecordService
from clinisearch.platform.logging import get_logger
from clinisearch.storage.base import StoreError

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=schemas.PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    patient_create: schemas.PatientCreate,
    service: Annotated[PatientRecordService, Depends(get_patient_service)],
    principal: Annotated[str, Depends(require_principal)],
):
    """
    Create a patient, or update the existing record with the same name and phone.
    """
    try:
        return await service.create_patient(patient_create, principal)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        logger.error("Failed to create patient", error=str(e))
        raise HTTPException(status_code=503, detail="Document store unavailable")


@router.get("/{unique_id}", response_model=schemas.PatientResponse)
async def get_patient(
    unique_id: str,
    service: Annotated[PatientRecordService, Depends(get_patient_service)],
    principal: Annotated[str, Depends(require_principal)],
):
    try:
        patient = await service.get_patient(unique_id, principal)
    except StoreError as e:
        logger.error("Failed to fetch patient", error=str(e))
        raise HTTPException(status_code=503, detail="Document store unavailable")
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.patch("/{unique_id}", response_model=schemas.PatientResponse)
async def update_patient(
    unique_id: str,
    updates: schemas.PatientUpdate,
    service: Annotated[PatientRecordService, Depends(get_patient_service)],
    principal: Annotated[str, Depends(require_principal)],
):
    """
    Update mutable patient fields.
    """
    if not updates.model_dump(exclude_unset=True):
        raise HTTPException(status_code=400, detail="No fields to update")

    try:
        return await service.update_patient(unique_id, updates, principal)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        logger.error("Failed to update patient", error=str(e))
        raise HTTPException(status_code=503, detail="Document store unavailable")


@router.delete("/{unique_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    unique_id: str,
    service: Annotated[PatientRecordService, Depends(get_patient_service)],
    principal: Annotated[str, Depends(require_principal)],
):
    try:
        await service.delete_patient(unique_id, principal)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        logger.error("Failed to delete patient", error=str(e))
        raise HTTPException(status_code=503, detail="Document store unavailable")
