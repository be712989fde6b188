"""Shared test fixtures for the onboarding intake test suite."""

from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from intake.normalization.models import RecognitionOutput
from intake.services.backend import AccessCodeResult, BackendResult


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def license_output() -> RecognitionOutput:
    """Recognition output for a driver's license with confident fields."""
    return RecognitionOutput(
        fields={
            "first_name": "john",
            "Last-Name": "doe",
            "DOB": "01-15-1990",
            "address": "123 Main St",
            "city": "Springfield",
            "state": "California",
            "zip": "902101234",
            "license_number": "D1234567",
        },
        confidences={
            "first_name": 0.97,
            "Last-Name": 0.96,
            "DOB": 0.93,
            "address": 0.91,
            "city": 0.95,
            "state": 0.94,
            "zip": 0.92,
            "license_number": 0.9,
        },
        raw_text="DRIVER LICENSE JOHN DOE",
    )


@pytest.fixture
def ssn_output() -> RecognitionOutput:
    return RecognitionOutput(
        fields={"name": "john micheal doe", "ssn": "123456789"},
        confidences={"name": 0.9, "ssn": 0.95},
    )


@pytest.fixture
def recognizer(license_output: RecognitionOutput) -> AsyncMock:
    mock = AsyncMock()
    mock.recognize.return_value = license_output
    return mock


@pytest.fixture
def backend() -> AsyncMock:
    mock = AsyncMock()
    mock.validate_access_code.return_value = AccessCodeResult(
        valid=True,
        employee={"id": "emp-1", "firstName": "John", "email": "john@example.com"},
    )
    mock.submit.return_value = BackendResult(success=True, message="stored")
    mock.complete_session.return_value = BackendResult(success=True)
    return mock


@pytest.fixture
def i9_values() -> dict[str, str]:
    return {
        "firstName": "John",
        "lastName": "Doe",
        "address": "123 Main St",
        "city": "Springfield",
        "state": "CA",
        "zipCode": "90210",
        "dateOfBirth": "01/15/1990",
        "ssnNumber": "123-45-6789",
        "citizenshipStatus": "us_citizen",
    }


@pytest.fixture
def w4_values() -> dict[str, str]:
    return {
        "firstName": "John",
        "lastName": "Doe",
        "address": "123 Main St",
        "city": "Springfield",
        "state": "CA",
        "zipCode": "90210",
        "ssnNumber": "123-45-6789",
        "filingStatus": "single",
    }


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
