"""
Patient Record Service - reads and writes patient records for one principal.

Reads go through the entity cache. Every write invalidates the affected cache
entry before returning, which is what keeps searches and direct lookups from
serving a record the store has already changed.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from clinisearch.platform.logging import get_logger
from clinisearch.search.cache import EntityCache
from clinisearch.search.strategies import exact_bounds
from clinisearch.storage.base import DocumentStore

from .schemas import Patient, PatientCreate, PatientUpdate

logger = get_logger(__name__)

# Never copied from an update payload
PROTECTED_FIELDS = {"unique_id", "owner_id", "family_id", "created_at"}


def generate_family_id(name: str, phone: str) -> str:
    """
    Build the family identifier `lastname_firstname_phone`.

    A single-word name yields `name_phone`.
    """
    name_parts = name.strip().split()
    clean_phone = phone.strip()

    if len(name_parts) <= 1:
        single = name_parts[0].lower() if name_parts else ""
        return f"{single}_{clean_phone}"

    first_name = name_parts[0].lower()
    last_name = name_parts[-1].lower()
    return f"{last_name}_{first_name}_{clean_phone}"


def generate_unique_id(family_id: str, owner_id: str) -> str:
    return f"{family_id}_{owner_id}"


class PatientRecordService:
    """Cache-aware patient lookups and writes."""

    def __init__(self, store: DocumentStore, cache: EntityCache):
        self.store = store
        self.cache = cache

    async def get_patient(self, unique_id: str, principal: str) -> Optional[Patient]:
        """
        Fetch a patient owned by `principal`.

        Returns None when the record does not exist or belongs to someone else.
        """
        cached = self.cache.get(unique_id, principal)
        if cached is not None:
            logger.debug("patient_cache_hit", unique_id=unique_id)
            return cached

        patient = await self.store.get_by_id(unique_id)
        if patient is None:
            return None

        if patient.owner_id != principal:
            logger.warning("unauthorized_patient_access", unique_id=unique_id, principal=principal)
            return None

        self.cache.put(patient)
        return patient

    async def find_existing_patient(
        self, name: str, phone: str, principal: str
    ) -> Optional[Patient]:
        """Newest record with exactly this phone and (case-insensitive) name."""
        normalized_name = name.strip().lower()
        normalized_phone = phone.strip()
        if not normalized_name or not normalized_phone:
            return None

        lower, upper = exact_bounds(normalized_phone)
        page = await self.store.range_query(
            field="phone",
            lower_bound=lower,
            upper_bound=upper,
            order_by="phone",
            page_limit=100,
            owner_id=principal,
        )
        matches: List[Patient] = [
            p for p in page.items if p.name.strip().lower() == normalized_name
        ]
        if not matches:
            return None

        return max(matches, key=lambda p: p.created_at.timestamp())

    async def check_family_id_exists(self, family_id: str, principal: str) -> bool:
        normalized = family_id.strip().lower()
        if not normalized:
            return False

        lower, upper = exact_bounds(normalized)
        page = await self.store.range_query(
            field="family_id",
            lower_bound=lower,
            upper_bound=upper,
            order_by="family_id",
            page_limit=1,
            owner_id=principal,
        )
        return bool(page.items)

    async def create_patient(self, data: PatientCreate, principal: str) -> Patient:
        """
        Create a patient, or merge into the existing record with the same
        name and phone for this principal.
        """
        existing = await self.find_existing_patient(data.name, data.phone, principal)
        if existing:
            logger.info("patient_exists_merging", unique_id=existing.unique_id)
            merged = PatientUpdate(
                name=data.name,
                phone=data.phone,
                email=data.email or existing.email,
                date_of_birth=data.date_of_birth or existing.date_of_birth,
                gender=data.gender or existing.gender,
                present_illness=data.present_illness or existing.present_illness,
                allergies=data.allergies or existing.allergies,
                attributes={**existing.attributes, **data.attributes},
            )
            return await self.update_patient(existing.unique_id, merged, principal)

        family_id = generate_family_id(data.name, data.phone)
        now = datetime.now(timezone.utc)
        patient = Patient(
            unique_id=generate_unique_id(family_id, principal),
            owner_id=principal,
            family_id=family_id,
            name=data.name.strip(),
            phone=data.phone.strip(),
            email=data.email,
            date_of_birth=data.date_of_birth,
            gender=data.gender,
            present_illness=data.present_illness,
            allergies=data.allergies,
            attributes=dict(data.attributes),
            created_at=now,
            updated_at=now,
        )

        created = await self.store.create(patient)
        self.cache.put(created)
        logger.info("patient_created", unique_id=created.unique_id)
        return created

    async def update_patient(
        self, unique_id: str, updates: PatientUpdate, principal: str
    ) -> Patient:
        existing = await self.get_patient(unique_id, principal)
        if not existing:
            raise ValueError("Patient not found or unauthorized")

        changes: Dict[str, Any] = {
            key: value
            for key, value in updates.model_dump(exclude_unset=True).items()
            if key not in PROTECTED_FIELDS
        }
        for required in ("name", "phone"):
            if required in changes and not (changes[required] or "").strip():
                del changes[required]
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            changes["name_lower"] = changes["name"].lower()
        if "phone" in changes:
            changes["phone"] = changes["phone"].strip()
        changes["updated_at"] = datetime.now(timezone.utc)

        try:
            updated = await self.store.update(unique_id, changes)
        finally:
            # A failed write may still have reached the store
            self.cache.invalidate(unique_id)

        if updated is None:
            raise ValueError("Patient not found or unauthorized")

        logger.info("patient_updated", unique_id=unique_id, fields=sorted(changes))
        return updated

    async def delete_patient(self, unique_id: str, principal: str) -> None:
        existing = await self.get_patient(unique_id, principal)
        if not existing:
            raise ValueError("Patient not found or unauthorized")

        try:
            await self.store.delete(unique_id)
        finally:
            self.cache.invalidate(unique_id)

        logger.info("patient_deleted", unique_id=unique_id)
