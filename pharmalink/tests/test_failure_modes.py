"""
Failure injection.

Adapter deadlines and circuit breaking, side-effect failures after commit,
and storage outages.
"""

import json

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from pharmalink.app.core.exceptions import (
    AdapterTimeoutError, AdapterUnavailableError, InvalidSignatureError, storage_exception_handler
)
from pharmalink.app.core.reliability import CircuitBreaker, CircuitOpenError
from pharmalink.app.models.audit_log import AuditLog
from pharmalink.app.services.adapters.biometric import BiometricVerifier
from pharmalink.app.services.adapters.payment import PaymentVerifier
from pharmalink.app.services.audit import AuditAction
from pharmalink.app.services.events import LedgerEvent
from pharmalink.app.services.notification_hub import GLOBAL_CHANNEL
from pharmalink.app.services.post_commit import PostCommitHooks
from pharmalink.tests.helpers import FakeSubscriber, dispatched_order, issue_script, pay


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=60)

    async def failing_func():
        raise ValueError("Boom")

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)


@pytest.mark.asyncio
async def test_circuit_breaker_half_open_recovers():
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=0)

    async def failing_func():
        raise ValueError("Boom")

    async def healthy_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    assert await cb.call(healthy_func) == "ok"
    assert cb.state == "CLOSED"


@pytest.mark.asyncio
async def test_classifications_do_not_trip_breaker():
    verifier = PaymentVerifier(secret="s3cret")
    verifier.breaker.failure_threshold = 1

    for _ in range(3):
        with pytest.raises(InvalidSignatureError):
            await verifier.verify("bad-signature", b'{"event": "charge.success"}')
    assert verifier.breaker.state == "CLOSED"


@pytest.mark.asyncio
async def test_signed_malformed_payload_is_classified():
    verifier = PaymentVerifier(secret="s3cret")
    verifier.breaker.failure_threshold = 1

    for body in (
        {"event": "charge.success", "data": ["oops"]},
        {"event": "charge.success", "data": {"metadata": "order-1"}},
        {"event": ["charge.success"], "data": {}},
    ):
        raw = json.dumps(body).encode("utf-8")
        with pytest.raises(InvalidSignatureError):
            await verifier.verify(verifier.sign(raw), raw)
    assert verifier.breaker.state == "CLOSED"


@pytest.mark.asyncio
async def test_malformed_signed_webhooks_leave_payments_working(client, cast, adapters):
    order = await issue_script(client, cast)
    raw = json.dumps({"event": "charge.success", "data": ["oops"]}).encode("utf-8")
    headers = {"x-paystack-signature": adapters.payment.sign(raw), "Content-Type": "application/json"}

    for _ in range(3):
        response = await client.post("/v1/payments/webhook", content=raw, headers=headers)
        assert response.status_code == 401
        assert response.json()["error_code"] == "ERR_PAYMENT_UNVERIFIED"

    assert adapters.payment.breaker.state == "CLOSED"
    paid = await pay(client, adapters, order["id"])
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"


@pytest.mark.asyncio
async def test_adapter_failure_opens_circuit(mocker):
    verifier = PaymentVerifier(secret="s3cret")
    mocker.patch.object(verifier, "_verify", side_effect=RuntimeError("provider down"))

    for _ in range(verifier.breaker.failure_threshold):
        with pytest.raises(AdapterUnavailableError):
            await verifier.verify("sig", b"{}")

    with pytest.raises(AdapterUnavailableError) as exc_info:
        await verifier.verify("sig", b"{}")
    assert exc_info.value.message.endswith("circuit open")


@pytest.mark.asyncio
async def test_adapter_timeout_is_its_own_class():
    slow = BiometricVerifier(min_hash_length=20, timeout_seconds=0.05, latency_seconds=1.0)

    class Assigned:
        id = 1
        driver_id = 7

    with pytest.raises(AdapterTimeoutError) as exc_info:
        await slow.confirm(Assigned(), 7, "x" * 40)
    assert exc_info.value.status_code == 504


@pytest.mark.asyncio
async def test_biometric_timeout_leaves_order_in_transit(client, cast, adapters):
    assigned = await dispatched_order(client, cast, adapters)
    delivery_id = assigned["delivery"]["id"]
    headers = cast["driver"]["headers"]
    await client.patch(f"/v1/deliveries/{delivery_id}/status", json={"status": "in_transit"}, headers=headers)

    adapters.biometric = BiometricVerifier(min_hash_length=20, timeout_seconds=0.05, latency_seconds=1.0)
    response = await client.post(
        f"/v1/deliveries/{delivery_id}/verify-biometric", json={"biometricHash": "x" * 40}, headers=headers
    )
    assert response.status_code == 504
    assert response.json()["error_code"] == "ERR_ADAPTER_TIMEOUT"

    order = await client.get(f"/v1/orders/{assigned['order']['id']}", headers=cast["pharmacist"]["headers"])
    assert order.json()["status"] == "in_transit"


@pytest.mark.asyncio
async def test_open_payment_circuit_returns_503(client, cast, adapters, mocker):
    order = await issue_script(client, cast)
    mocker.patch.object(adapters.payment, "_verify", side_effect=RuntimeError("provider down"))

    statuses = [(await pay(client, adapters, order["id"])).status_code for _ in range(4)]
    assert statuses == [503, 503, 503, 503]

    current = await client.get(f"/v1/orders/{order['id']}", headers=cast["pharmacist"]["headers"])
    assert current.json()["status"] == "pending_verification"


@pytest.mark.asyncio
async def test_audit_failure_does_not_fail_request(client, cast, adapters, hub, mocker):
    dashboard = FakeSubscriber()
    hub.join(GLOBAL_CHANNEL, dashboard)
    order = await issue_script(client, cast)

    mocker.patch("pharmalink.app.services.post_commit.log_event", side_effect=RuntimeError("audit store down"))
    response = await pay(client, adapters, order["id"])

    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    # The fan-out hook still ran
    assert dashboard.events()[-1] == "PAYMENT_CONFIRMED"


@pytest.mark.asyncio
async def test_hooks_run_in_order_and_fail_independently():
    calls = []

    async def forward(event, actor):
        calls.append("notify")
        raise RuntimeError("transport down")

    async def record(event, actor):
        calls.append("audit")

    hooks = PostCommitHooks([("notify", forward), ("audit", record)])
    event = LedgerEvent(action="ORDER_ACCEPTED", order_id=1, status="processing")

    assert await hooks.run(event) == {"notify": False, "audit": True}
    assert calls == ["notify", "audit"]


@pytest.mark.asyncio
async def test_notification_failure_does_not_block_audit(client, cast, hub, db_session, mocker):
    mocker.patch.object(hub, "publish_event", side_effect=RuntimeError("transport down"))
    order = await issue_script(client, cast)
    assert order["status"] == "pending_verification"

    actions = (await db_session.execute(
        select(AuditLog.action).where(AuditLog.resource_type == "order", AuditLog.resource_id == str(order["id"]))
    )).scalars().all()
    assert actions == [AuditAction.PRESCRIPTION_ISSUED]


@pytest.mark.asyncio
async def test_storage_outage_maps_to_503():
    exc = OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))
    response = await storage_exception_handler(None, exc)

    assert response.status_code == 503
    assert json.loads(response.body)["error_code"] == "ERR_STORAGE_UNAVAILABLE"
