"""
Unit tests for PatientRecordService over the in-memory store.
"""

import pytest
from unittest.mock import AsyncMock

from clinisearch.patients.schemas import PatientCreate, PatientUpdate
from clinisearch.patients.service import (
    PatientRecordService,
    generate_family_id,
    generate_unique_id,
)
from clinisearch.search.cache import EntityCache
from clinisearch.storage.memory_store import InMemoryDocumentStore


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def cache(clock):
    return EntityCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def service(store, cache):
    return PatientRecordService(store, cache)


def test_generate_family_id():
    assert generate_family_id("John Smith", "5551234567") == "smith_john_5551234567"
    assert generate_family_id("  Mary Ann Lee ", " 555 ") == "lee_mary_555"
    assert generate_family_id("Cher", "555") == "cher_555"
    assert generate_unique_id("smith_john_555", "u1") == "smith_john_555_u1"


@pytest.mark.asyncio
async def test_get_patient_serves_from_cache(service, store, cache, make_patient):
    patient = make_patient("John Smith", "5551234567")
    cache.put(patient)
    store.get_by_id = AsyncMock()

    assert await service.get_patient(patient.unique_id, "u1") == patient
    store.get_by_id.assert_not_awaited()


@pytest.mark.asyncio
async def test_expired_entry_is_refetched_and_recached(service, store, cache, clock, make_patient):
    patient = make_patient("John Smith", "5551234567")
    await store.create(patient)
    cache.put(patient)
    cached_at = clock()

    clock.advance(360)
    fetched = await service.get_patient(patient.unique_id, "u1")

    assert fetched == patient
    assert cache._entries[patient.unique_id].inserted_at > cached_at


@pytest.mark.asyncio
async def test_cached_entry_of_other_principal_is_not_returned(service, store, cache, make_patient):
    patient = make_patient("John Smith", "5551234567", owner_id="u2")
    await store.create(patient)
    cache.put(patient)

    assert await service.get_patient(patient.unique_id, "u1") is None


@pytest.mark.asyncio
async def test_store_record_of_other_principal_is_not_returned(service, store, cache, make_patient):
    patient = make_patient("John Smith", "5551234567", owner_id="u2")
    await store.create(patient)

    assert await service.get_patient(patient.unique_id, "u1") is None
    assert patient.unique_id not in cache


@pytest.mark.asyncio
async def test_create_patient(service, cache):
    created = await service.create_patient(
        PatientCreate(name=" John Smith ", phone="5551234567", allergies="latex"),
        "u1",
    )

    assert created.unique_id == "smith_john_5551234567_u1"
    assert created.family_id == "smith_john_5551234567"
    assert created.name == "John Smith"
    assert created.name_lower == "john smith"
    assert created.owner_id == "u1"
    assert cache.get(created.unique_id, "u1") == created


@pytest.mark.asyncio
async def test_create_merges_into_existing_record(service):
    first = await service.create_patient(
        PatientCreate(name="John Smith", phone="5551234567", allergies="latex", attributes={"a": 1}),
        "u1",
    )
    second = await service.create_patient(
        PatientCreate(name="john smith", phone="5551234567", gender="M", attributes={"b": 2}),
        "u1",
    )

    assert second.unique_id == first.unique_id
    assert second.allergies == "latex"
    assert second.gender == "M"
    assert second.attributes == {"a": 1, "b": 2}
    assert second.created_at == first.created_at


@pytest.mark.asyncio
async def test_same_patient_for_other_principal_is_separate(service):
    mine = await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u1")
    theirs = await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u2")

    assert mine.unique_id != theirs.unique_id


@pytest.mark.asyncio
async def test_check_family_id_exists(service):
    await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u1")

    assert await service.check_family_id_exists("SMITH_JOHN_555", "u1") is True
    assert await service.check_family_id_exists("smith_john_555", "u2") is False
    assert await service.check_family_id_exists("smith_john_55", "u1") is False
    assert await service.check_family_id_exists(" ", "u1") is False


@pytest.mark.asyncio
async def test_update_invalidates_cache_within_ttl(service, store, cache):
    created = await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u1")
    assert created.unique_id in cache

    updated = await service.update_patient(
        created.unique_id, PatientUpdate(allergies="peanuts"), "u1"
    )

    assert created.unique_id not in cache
    assert updated.allergies == "peanuts"
    assert (await service.get_patient(created.unique_id, "u1")).allergies == "peanuts"


@pytest.mark.asyncio
async def test_update_ignores_empty_name_and_keeps_identity(service):
    created = await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u1")

    updated = await service.update_patient(
        created.unique_id, PatientUpdate(name="  ", phone="556", email="j@example.com"), "u1"
    )

    assert updated.name == "John Smith"
    assert updated.phone == "556"
    assert updated.unique_id == created.unique_id
    assert updated.family_id == created.family_id
    assert updated.updated_at >= created.updated_at


@pytest.mark.asyncio
async def test_update_rename_refreshes_name_lower(service):
    created = await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u1")

    updated = await service.update_patient(created.unique_id, PatientUpdate(name="Jon Smyth"), "u1")

    assert updated.name_lower == "jon smyth"


@pytest.mark.asyncio
async def test_update_of_unowned_patient_fails(service):
    created = await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u2")

    with pytest.raises(ValueError):
        await service.update_patient(created.unique_id, PatientUpdate(allergies="x"), "u1")


@pytest.mark.asyncio
async def test_failed_write_still_invalidates(service, store, cache):
    created = await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u1")
    store.update = AsyncMock(side_effect=RuntimeError("write rejected"))

    with pytest.raises(RuntimeError):
        await service.update_patient(created.unique_id, PatientUpdate(allergies="x"), "u1")

    assert created.unique_id not in cache


@pytest.mark.asyncio
async def test_delete_patient(service, store, cache):
    created = await service.create_patient(PatientCreate(name="John Smith", phone="555"), "u1")

    await service.delete_patient(created.unique_id, "u1")

    assert created.unique_id not in cache
    assert await store.get_by_id(created.unique_id) is None
    with pytest.raises(ValueError):
        await service.delete_patient(created.unique_id, "u1")
