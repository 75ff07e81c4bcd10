"""
Shared test helpers: fake subscribers and API shortcuts for driving an
order through its lifecycle.
"""

import asyncio
import itertools
import json
from typing import Any, Dict, Optional

from httpx import AsyncClient

from pharmalink.app.models.enums import UserRole
from pharmalink.app.services.adapters.registry import AdapterSet


class FakeSubscriber:
    """Stands in for a WebSocket connection in the notification hub."""

    def __init__(self, name: str = "subscriber"):
        self.name = name
        self.messages = []

    async def send_json(self, data: Any) -> None:
        self.messages.append(data)

    def events(self, channel: Optional[str] = None):
        return [
            message["data"]["event"]
            for message in self.messages
            if channel is None or message["channel"] == channel
        ]


class BrokenSubscriber(FakeSubscriber):
    async def send_json(self, data: Any) -> None:
        raise ConnectionError("socket closed")


class StalledSubscriber(FakeSubscriber):
    """A client that stopped reading: every send waits forever."""

    def __init__(self, name: str = "stalled"):
        super().__init__(name)
        self.released = asyncio.Event()

    async def send_json(self, data: Any) -> None:
        await self.released.wait()
        self.messages.append(data)


_user_counter = itertools.count(1)


async def register_user(
    client: AsyncClient, role: UserRole, pharmacy_id: Optional[int] = None, username: Optional[str] = None
) -> Dict[str, Any]:
    """Register a user through the API and return its token response plus auth headers."""
    username = username or f"{role.value.lower()}_{next(_user_counter)}"
    payload = {
        "email": f"{username}@pharmalink.co.za",
        "username": username,
        "password": "password123",
        "role": role.value,
    }
    if pharmacy_id is not None:
        payload["pharmacy_id"] = pharmacy_id
    response = await client.post("/v1/auth/register", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()
    data["headers"] = {"Authorization": f"Bearer {data['access_token']}"}
    return data


def signed_webhook(adapters: AdapterSet, order_id: int, amount_cents: int = 45000, event: str = "charge.success"):
    """Build a provider webhook body and its valid signature."""
    body = json.dumps({
        "event": event,
        "data": {
            "reference": f"PL-{order_id}",
            "amount": amount_cents,
            "metadata": {"order_id": order_id},
        },
    }).encode("utf-8")
    return body, adapters.payment.sign(body)


async def issue_script(client: AsyncClient, cast: Dict[str, Any], refrigerated: bool = True) -> Dict[str, Any]:
    response = await client.post(
        "/v1/prescriptions/",
        json={
            "pharmacy_id": 1,
            "patient_id": cast["patient"]["user_id"],
            "medications": [{"name": "Insulin Glargine", "dosage": "100U/ml", "price": "450.00"}],
            "is_refrigerated": refrigerated,
        },
        headers=cast["doctor"]["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()


async def pay(client: AsyncClient, adapters: AdapterSet, order_id: int, event: str = "charge.success"):
    body, signature = signed_webhook(adapters, order_id, event=event)
    return await client.post(
        "/v1/payments/webhook",
        content=body,
        headers={"x-paystack-signature": signature, "Content-Type": "application/json"},
    )


async def accepted_order(client: AsyncClient, cast: Dict[str, Any], adapters: AdapterSet) -> Dict[str, Any]:
    """Drive a fresh order to processing."""
    order = await issue_script(client, cast)
    paid = await pay(client, adapters, order["id"])
    assert paid.status_code == 200, paid.text
    accepted = await client.patch(f"/v1/orders/{order['id']}/accept", headers=cast["pharmacist"]["headers"])
    assert accepted.status_code == 200, accepted.text
    return accepted.json()


async def dispatched_order(client: AsyncClient, cast: Dict[str, Any], adapters: AdapterSet) -> Dict[str, Any]:
    """Drive a fresh order to out_for_delivery and return the assign response."""
    order = await accepted_order(client, cast, adapters)
    assigned = await client.post(
        f"/v1/orders/{order['id']}/assign-driver",
        json={"driver_id": cast["driver"]["user_id"]},
        headers=cast["pharmacist"]["headers"],
    )
    assert assigned.status_code == 200, assigned.text
    return assigned.json()
