from datetime import date

import pytest

from clinisearch.storage.cursor import Cursor
from clinisearch.storage.mapping import (
    apply_updates_to_model,
    patient_from_document,
    patient_to_document,
    patient_to_model,
)


def test_document_mapping_is_explicit(make_patient):
    patient = make_patient("John Smith", "5551234567", date_of_birth=date(1980, 5, 17))
    doc = patient_to_document(patient)
    doc["legacy_field"] = "ignored"

    restored = patient_from_document(doc)

    assert doc["date_of_birth"] == "1980-05-17"
    assert doc["created_at"].startswith("2024-01-01T00:00:00")
    assert restored == patient
    assert not hasattr(restored, "legacy_field")


def test_document_without_name_lower_is_filled(make_patient):
    doc = patient_to_document(make_patient("John Smith", "5551234567"))
    del doc["name_lower"]

    assert patient_from_document(doc).name_lower == "john smith"


def test_apply_updates_to_model(make_patient):
    model = patient_to_model(make_patient("John Smith", "5551234567"))

    apply_updates_to_model(model, {
        "phone": "5550000000",
        "date_of_birth": "1990-02-03",
        "attributes": None,
        "unique_id": "hijacked",
    })

    assert model.phone == "5550000000"
    assert model.date_of_birth == date(1990, 2, 3)
    assert model.attributes == {}
    assert model.unique_id != "hijacked"


def test_cursor_round_trip():
    cursor = Cursor.encode(["john smith", "2024-01-01T00:00:00+00:00", "smith_john_555_u1"])

    assert cursor.decode() == ["john smith", "2024-01-01T00:00:00+00:00", "smith_john_555_u1"]
    assert str(cursor) == cursor.token


@pytest.mark.parametrize("token", ["%%%", "bm90IGpzb24=", "eyJhIjoxfQ=="])
def test_malformed_cursor(token):
    with pytest.raises(ValueError):
        Cursor(token).decode()
