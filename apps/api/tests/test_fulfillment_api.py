from __future__ import annotations

import json

import pytest

from vauntico_api.api.dependencies.security import compute_webhook_signature
from vauntico_api.domain.fulfillment.models import ErrorInfo

SERVICE_KEY = "test-service-key"
WEBHOOK_SECRET = "test-webhook-secret"
AUTH = {"X-API-Key": SERVICE_KEY}


@pytest.mark.asyncio
async def test_health_check_is_public(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["message"] == "Vauntico Fulfillment Engine is live"


@pytest.mark.asyncio
async def test_metrics_require_service_key(api_client):
    missing = await api_client.get("/api/v1/metrics")
    wrong = await api_client.get("/api/v1/metrics", headers={"X-API-Key": "nope"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert missing.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_metrics_without_data(api_client):
    response = await api_client.get("/api/v1/metrics", headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {"accuracyRate": 0.0, "total": 0, "successful": 0, "status": "NO_DATA"}


@pytest.mark.asyncio
async def test_metrics_summary_and_history_follow_recorded_outcomes(api_client, store):
    for _ in range(9):
        await store.record(True)
    await store.record(False, ErrorInfo(code="NotFound"))

    summary = await api_client.get("/api/v1/metrics", headers=AUTH)
    history = await api_client.get("/api/v1/metrics/history", params={"limit": 3}, headers=AUTH)

    assert summary.json() == {"accuracyRate": 90.0, "total": 10, "successful": 9, "status": "AMBER"}
    events = history.json()["events"]
    assert len(events) == 3
    assert events[0]["status"] == "FAILED"
    assert events[0]["errorCode"] == "NotFound"
    assert events[0]["tag"] == "TrustScore_Update"


@pytest.mark.asyncio
async def test_history_limit_is_bounded(api_client):
    response = await api_client.get("/api/v1/metrics/history", params={"limit": 500}, headers=AUTH)

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request body"


@pytest.mark.asyncio
async def test_run_delivers_and_records(api_client, mailer, store):
    response = await api_client.post(
        "/api/v1/fulfillment/run",
        json={"productRef": "rec123", "recipientEmail": "fan@example.com", "requestId": "req-42"},
        headers=AUTH,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["messageId"]
    assert response.headers["X-Request-ID"] == "req-42"
    assert mailer.sent_messages[0]["To"] == "fan@example.com"
    assert (await store.snapshot()).successful == 1


@pytest.mark.asyncio
async def test_run_accepts_record_id_alias(api_client, mailer):
    response = await api_client.post("/api/v1/fulfillment/run", json={"recordId": "rec123"}, headers=AUTH)

    assert response.status_code == 200
    assert mailer.sent_messages[0]["To"] == "buyer@example.com"


@pytest.mark.asyncio
async def test_run_unknown_record_is_404(api_client, mailer, store):
    response = await api_client.post("/api/v1/fulfillment/run", json={"productRef": "recNope"}, headers=AUTH)

    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["error"] == "Record not found"
    assert mailer.sent_messages == []
    assert (await store.snapshot()).total == 1


@pytest.mark.asyncio
async def test_run_without_product_ref_is_rejected_unrecorded(api_client, store):
    response = await api_client.post(
        "/api/v1/fulfillment/run", json={"recipientEmail": "fan@example.com"}, headers=AUTH
    )

    assert response.status_code == 400
    assert "error" in response.json()
    assert (await store.snapshot()).total == 0


@pytest.mark.asyncio
async def test_run_requires_service_key(api_client, store):
    response = await api_client.post("/api/v1/fulfillment/run", json={"productRef": "rec123"})

    assert response.status_code == 401
    assert (await store.snapshot()).total == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("prefix", ["", "sha256="])
async def test_signed_webhook_triggers_delivery(api_client, mailer, prefix):
    body = json.dumps({"recordId": "rec123"}).encode()
    signature = prefix + compute_webhook_signature(WEBHOOK_SECRET, body)

    response = await api_client.post(
        "/api/v1/fulfillment/webhook",
        content=body,
        headers={"X-Webhook-Signature": signature, "Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert len(mailer.sent_messages) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("signature", [None, "deadbeef"])
async def test_webhook_with_bad_signature_is_rejected(api_client, mailer, store, signature):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["X-Webhook-Signature"] = signature

    response = await api_client.post(
        "/api/v1/fulfillment/webhook", content=json.dumps({"recordId": "rec123"}), headers=headers
    )

    assert response.status_code == 401
    assert mailer.sent_messages == []
    assert (await store.snapshot()).total == 0


@pytest.mark.asyncio
async def test_webhook_with_invalid_payload_is_400(api_client, store):
    body = b'{"recipientEmail": "fan@example.com"}'
    signature = compute_webhook_signature(WEBHOOK_SECRET, body)

    response = await api_client.post(
        "/api/v1/fulfillment/webhook",
        content=body,
        headers={"X-Webhook-Signature": signature, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload body"}
    assert (await store.snapshot()).total == 0


@pytest.mark.asyncio
async def test_non_ascii_service_key_is_unauthorized(api_client):
    response = await api_client.get("/api/v1/metrics", headers={"X-API-Key": b"caf\xe9"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_non_ascii_webhook_signature_is_unauthorized(api_client, mailer, store):
    response = await api_client.post(
        "/api/v1/fulfillment/webhook",
        content=json.dumps({"recordId": "rec123"}),
        headers={"X-Webhook-Signature": b"\xe9\xe9", "Content-Type": "application/json"},
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    assert mailer.sent_messages == []
    assert (await store.snapshot()).total == 0
