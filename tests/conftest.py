"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

sys.path.append(os.path.join(os.getcwd(), "src"))

from clinisearch.patients.schemas import Patient  # noqa: E402
from clinisearch.patients.service import generate_family_id, generate_unique_id  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("DEBUG", "true")
    os.environ.setdefault("DOCUMENT_STORE_BACKEND", "memory")


def build_patient(
    name: str,
    phone: str,
    owner_id: str = "u1",
    days: int = 0,
    **fields,
) -> Patient:
    """Patient created `days` after 2024-01-01, with ids derived the way the service does."""
    family_id = generate_family_id(name, phone)
    created = BASE_TIME + timedelta(days=days)
    return Patient(
        unique_id=generate_unique_id(family_id, owner_id),
        owner_id=owner_id,
        family_id=family_id,
        name=name,
        phone=phone,
        created_at=created,
        updated_at=created,
        **fields,
    )


@pytest.fixture
def make_patient() -> Callable[..., Patient]:
    return build_patient


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
