"""Every response carries an X-Request-ID header."""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "checkout-req-42"})
    assert resp.headers.get("x-request-id") == "checkout-req-42"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.post("/v1/payments/capture", json={"coursesId": ["C1"]})
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None
