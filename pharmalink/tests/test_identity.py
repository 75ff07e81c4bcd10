"""
South African ID number decoding.
"""

from datetime import date

import pytest

from pharmalink.app.services.adapters.identity import IdentityVerifier, decode_birth_date


@pytest.fixture
def verifier():
    return IdentityVerifier()


@pytest.mark.asyncio
async def test_valid_id_decoded(verifier):
    result = await verifier.verify_sa_id("8001015009087")
    assert result.valid
    assert result.error is None
    assert result.date_of_birth == date(1980, 1, 1)
    assert result.gender == "Male"
    assert result.citizenship == "SA Citizen"


@pytest.mark.asyncio
async def test_female_and_permanent_resident(verifier):
    female = await verifier.verify_sa_id("9202204720082")
    assert female.gender == "Female"

    resident = await verifier.verify_sa_id("0105145600184")
    assert resident.citizenship == "Permanent Resident"
    assert resident.date_of_birth == date(2001, 5, 14)


@pytest.mark.asyncio
@pytest.mark.parametrize("id_number, error", [
    ("800101500908", "Invalid ID length"),
    ("", "Invalid ID length"),
    ("80010150090A7", "ID number must contain digits only"),
    ("8013325009087", "Invalid birth date encoded in ID"),
])
async def test_invalid_ids_rejected(verifier, id_number, error):
    result = await verifier.verify_sa_id(id_number)
    assert result.valid is False
    assert result.error == error
    assert result.date_of_birth is None


def test_century_pivot():
    today = date(2026, 6, 1)
    assert decode_birth_date("260101", today=today) == date(2026, 1, 1)
    assert decode_birth_date("270101", today=today) == date(1927, 1, 1)
    assert decode_birth_date("990230", today=today) is None


@pytest.mark.asyncio
async def test_verify_endpoint(client, cast):
    response = await client.post(
        "/v1/identity/verify",
        json={"idNumber": "8001015009087"},
        headers=cast["patient"]["headers"],
    )
    assert response.status_code == 200
    assert response.json() == {
        "valid": True,
        "error": None,
        "date_of_birth": "1980-01-01",
        "gender": "Male",
        "citizenship": "SA Citizen",
    }


@pytest.mark.asyncio
async def test_verify_endpoint_requires_auth(client):
    response = await client.post("/v1/identity/verify", json={"idNumber": "8001015009087"})
    assert response.status_code in (401, 403)
