"""
Medical-aid adjudication and claim submission.
"""

from decimal import Decimal

import pytest

from pharmalink.app.core.config import DEFAULT_SCHEMES, SchemeConfig
from pharmalink.app.services.adapters.adjudication import (
    STATUS_PENDED, STATUS_SUCCESS, ClaimAdjudicator, LineItem
)
from pharmalink.tests.helpers import dispatched_order, issue_script


@pytest.fixture
def adjudicator():
    return ClaimAdjudicator(schemes=DEFAULT_SCHEMES)


@pytest.mark.asyncio
async def test_gems_fully_covered_under_limit(adjudicator):
    result = await adjudicator.adjudicate("GEMS", [
        LineItem("Metformin", Decimal("1200.00")),
        LineItem("Atorvastatin", Decimal("800.00")),
    ])
    assert result.status == STATUS_SUCCESS
    assert result.total_value == Decimal("2000.00")
    assert result.benefit_paid == Decimal("2000.00")
    assert result.patient_co_payment == Decimal("0.00")
    assert not result.pended
    assert result.transaction_id.startswith("EDI-")


@pytest.mark.asyncio
async def test_bonitas_over_limit_is_pended_but_computed(adjudicator):
    result = await adjudicator.adjudicate("Bonitas", [LineItem("Biologic", Decimal("5000"))])
    assert result.status == STATUS_PENDED
    assert result.pended
    assert result.benefit_paid == Decimal("4250.00")
    assert result.patient_co_payment == Decimal("750.00")


@pytest.mark.asyncio
async def test_unknown_scheme_fails_closed(adjudicator):
    result = await adjudicator.adjudicate("Acme Health", [LineItem("Antibiotic", Decimal("300"))])
    assert result.coverage_rate == 0.0
    assert result.benefit_paid == Decimal("0.00")
    assert result.patient_co_payment == Decimal("300.00")
    assert result.known_scheme is False


@pytest.mark.asyncio
async def test_pre_auth_items_flagged(adjudicator):
    result = await adjudicator.adjudicate("Discovery Health", [
        LineItem("Oxycodone", Decimal("400"), category="Opioids"),
        LineItem("Ibuprofen", Decimal("60")),
    ])
    assert result.pre_auth_items == ["Oxycodone"]
    assert result.items[1]["status"] == "Approved"
    assert result.benefit_paid == Decimal("423.20")


@pytest.mark.asyncio
async def test_injected_scheme_table():
    adjudicator = ClaimAdjudicator(schemes={
        "Test Scheme": SchemeConfig(coverage_rate=0.5, limit_per_order=100, requires_pre_auth=[]),
    })
    result = await adjudicator.adjudicate("Test Scheme", [LineItem("Item", Decimal("80.01"))])
    assert result.benefit_paid == Decimal("40.01")
    assert result.patient_co_payment == Decimal("40.00")


@pytest.mark.asyncio
async def test_adjudicate_preview_endpoint(client, cast):
    response = await client.post(
        "/v1/billing/adjudicate",
        json={"scheme": "GEMS", "items": [{"name": "Insulin", "price": "2000.00"}]},
        headers=cast["pharmacist"]["headers"],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Success"
    assert data["summary"] == {"totalValue": "2000.00", "benefitPaid": "2000.00", "patientCoPayment": "0.00"}


@pytest.mark.asyncio
async def test_claim_recorded_once_per_delivery(client, cast, adapters, hub):
    assigned = await dispatched_order(client, cast, adapters)
    order_id = assigned["order"]["id"]
    claim_request = {
        "order_id": order_id,
        "scheme": "Bonitas",
        "items": [{"name": "Insulin Glargine", "price": "450.00"}],
    }

    response = await client.post("/v1/billing/claims", json=claim_request, headers=cast["pharmacist"]["headers"])
    assert response.status_code == 200
    data = response.json()
    assert data["claim"]["status"] == "approved"
    assert data["claim"]["medical_aid_paid"] == "382.50"
    assert data["claim"]["patient_co_payment"] == "67.50"
    assert data["claim"]["auth_number"].startswith("AUTH-")
    assert data["actions"] == "CO_PAYMENT_REQUIRED"

    again = await client.post("/v1/billing/claims", json=claim_request, headers=cast["pharmacist"]["headers"])
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_claim_status_mapping(client, cast, adapters):
    pended_order = await dispatched_order(client, cast, adapters)
    pended = await client.post(
        "/v1/billing/claims",
        json={"order_id": pended_order["order"]["id"], "scheme": "GEMS",
              "items": [{"name": "Chemo", "price": "3500.00"}]},
        headers=cast["pharmacist"]["headers"],
    )
    assert pended.json()["claim"]["status"] == "pended"

    rejected_order = await dispatched_order(client, cast, adapters)
    rejected = await client.post(
        "/v1/billing/claims",
        json={"order_id": rejected_order["order"]["id"], "scheme": "Nowhere Medical",
              "items": [{"name": "Antibiotic", "price": "100.00"}]},
        headers=cast["pharmacist"]["headers"],
    )
    assert rejected.json()["claim"]["status"] == "rejected"


@pytest.mark.asyncio
async def test_claim_requires_dispatch(client, cast):
    order = await issue_script(client, cast)
    response = await client.post(
        "/v1/billing/claims",
        json={"order_id": order["id"], "scheme": "GEMS", "items": [{"name": "Insulin", "price": "100"}]},
        headers=cast["pharmacist"]["headers"],
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_claim_for_foreign_order_not_found(client, cast, adapters):
    assigned = await dispatched_order(client, cast, adapters)
    response = await client.post(
        "/v1/billing/claims",
        json={"order_id": assigned["order"]["id"], "scheme": "GEMS", "items": [{"name": "Insulin", "price": "100"}]},
        headers=cast["rival_pharmacist"]["headers"],
    )
    assert response.status_code == 404
