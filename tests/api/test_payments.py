"""Tests for the capture and verify payment endpoints."""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from app.api.dependencies import course_repo, progress_repo, user_repo
from app.services.payment_gateway import InMemoryPaymentGateway
from app.services.task_queue import ENROLLMENT_EMAIL_QUEUE, task_queue
from tests.conftest import add_course, add_user, auth


def _queued_emails() -> int:
    return asyncio.run(task_queue.queue_length(ENROLLMENT_EMAIL_QUEUE))


# ---- 401: unauthenticated ----


def test_capture_rejects_missing_token(client: TestClient) -> None:
    resp = client.post("/v1/payments/capture", json={"coursesId": ["C1"]})
    assert resp.status_code == 401


def test_verify_rejects_missing_token(client: TestClient) -> None:
    resp = client.post(
        "/v1/payments/verify",
        json={"paymentIntentId": "pi_1", "coursesId": ["C1"]},
    )
    assert resp.status_code == 401


# ---- capture ----


def test_capture_sums_prices_in_cents(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("C1", "20.00")
    add_course("C2", "15.00")

    resp = client.post(
        "/v1/payments/capture", json={"coursesId": ["C1", "C2"]}, headers=auth("U1")
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert len(gateway.created) == 1
    intent = gateway.created[0]
    assert intent.amount == 3500
    assert intent.currency == "usd"
    assert body["clientSecret"] == intent.client_secret


def test_capture_empty_basket_is_rejected_without_gateway_call(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    resp = client.post("/v1/payments/capture", json={"coursesId": []}, headers=auth())
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Please provide Course Id"}
    assert gateway.created == []


def test_capture_missing_field_is_treated_as_empty(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    resp = client.post("/v1/payments/capture", json={}, headers=auth())
    assert resp.status_code == 400
    assert gateway.created == []


def test_capture_unknown_course_returns_404_without_gateway_call(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("C1", "20.00")

    resp = client.post(
        "/v1/payments/capture",
        json={"coursesId": ["C1", "Cmissing"]},
        headers=auth(),
    )

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Could not find the course"}
    assert gateway.created == []


def test_capture_store_failure_returns_500(
    client: TestClient, gateway: InMemoryPaymentGateway, monkeypatch
) -> None:
    async def broken(course_id: str):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(course_repo, "get_by_id", broken)

    resp = client.post("/v1/payments/capture", json={"coursesId": ["C1"]}, headers=auth())

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "connection reset"}
    assert gateway.created == []


def test_capture_gateway_failure_returns_generic_500(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("C1", "20.00")
    gateway.fail_with = "card_declined: secret detail"

    resp = client.post("/v1/payments/capture", json={"coursesId": ["C1"]}, headers=auth())

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Could not initiate payment"}


# ---- verify: input validation ----


def test_verify_missing_intent_id_is_rejected(client: TestClient) -> None:
    resp = client.post("/v1/payments/verify", json={"coursesId": ["C1"]}, headers=auth())
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Payment data not found"}


def test_verify_missing_courses_is_rejected(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    resp = client.post(
        "/v1/payments/verify", json={"paymentIntentId": "pi_1"}, headers=auth()
    )
    assert resp.status_code == 400
    assert gateway.confirmed == []


# ---- verify: succeeded ----


def test_verify_succeeded_enrolls_user(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("C1", "20.00", name="Python Basics")
    add_user("U1", email="u1@example.com", first_name="Uma")
    gateway.register_intent("pi_ok", metadata={"user_id": "U1", "course_ids": "C1"})

    resp = client.post(
        "/v1/payments/verify",
        json={"paymentIntentId": "pi_ok", "coursesId": ["C1"]},
        headers=auth("U1"),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["verified"] is True
    assert body["message"] == "Payment Verified"
    assert body["alreadyProcessed"] is False
    assert body["enrollments"] == [
        {"courseId": "C1", "enrolled": True, "reason": None, "emailQueued": True}
    ]

    course = asyncio.run(course_repo.get_by_id("C1"))
    assert "U1" in course.students_enrolled
    user = asyncio.run(user_repo.get_by_id("U1"))
    assert "C1" in user.courses
    progress = asyncio.run(progress_repo.list_for(course_id="C1", user_id="U1"))
    assert len(progress) == 1
    assert progress[0].completed_videos == ()

    task = asyncio.run(task_queue.dequeue(ENROLLMENT_EMAIL_QUEUE))
    assert task is not None
    assert task.payload["to"] == "u1@example.com"
    assert task.payload["subject"] == "Successfully Enrolled into Python Basics"
    assert "Uma" in task.payload["html"]


def test_verify_reports_partial_enrollment(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("C1", "20.00")
    add_user("U1")
    gateway.register_intent(
        "pi_partial", metadata={"user_id": "U1", "course_ids": "Cgone,C1"}
    )

    resp = client.post(
        "/v1/payments/verify",
        json={"paymentIntentId": "pi_partial", "coursesId": ["Cgone", "C1"]},
        headers=auth("U1"),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["verified"] is True
    assert body["enrollments"][0] == {
        "courseId": "Cgone",
        "enrolled": False,
        "reason": "course not found",
        "emailQueued": False,
    }
    assert body["enrollments"][1]["enrolled"] is True
    assert _queued_emails() == 1


def test_verify_same_intent_twice_enrolls_once(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("C1", "20.00")
    add_user("U1")
    gateway.register_intent("pi_dupe", metadata={"user_id": "U1", "course_ids": "C1"})
    payload = {"paymentIntentId": "pi_dupe", "coursesId": ["C1"]}

    first = client.post("/v1/payments/verify", json=payload, headers=auth("U1"))
    second = client.post("/v1/payments/verify", json=payload, headers=auth("U1"))

    assert first.json()["alreadyProcessed"] is False
    assert second.status_code == 200
    assert second.json()["verified"] is True
    assert second.json()["alreadyProcessed"] is True
    assert second.json()["message"] == "Payment already processed"
    assert len(asyncio.run(progress_repo.list_for(course_id="C1", user_id="U1"))) == 1
    assert _queued_emails() == 1
    assert gateway.confirmed == ["pi_dupe"]


# ---- verify: not succeeded / errors ----


def test_verify_failed_payment_is_business_failure(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("C1", "20.00")
    add_user("U1")
    gateway.set_status("pi_declined", "requires_payment_method")

    resp = client.post(
        "/v1/payments/verify",
        json={"paymentIntentId": "pi_declined", "coursesId": ["C1"]},
        headers=auth("U1"),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["verified"] is False
    assert body["message"] == "Payment Failed"
    assert asyncio.run(course_repo.get_by_id("C1")).students_enrolled == frozenset()
    assert asyncio.run(user_repo.get_by_id("U1")).courses == frozenset()
    assert asyncio.run(progress_repo.list_for(course_id="C1", user_id="U1")) == []
    assert _queued_emails() == 0


def test_verify_gateway_error_returns_500(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    gateway.fail_with = "api_connection_error"

    resp = client.post(
        "/v1/payments/verify",
        json={"paymentIntentId": "pi_1", "coursesId": ["C1"]},
        headers=auth(),
    )

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Error verifying payment"}


def test_capture_then_verify_round_trip(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("C1", "49.99")
    add_user("U1")

    capture = client.post(
        "/v1/payments/capture", json={"coursesId": ["C1"]}, headers=auth("U1")
    )
    intent_id = gateway.created[0].id
    assert capture.json()["clientSecret"].startswith(intent_id)
    assert gateway.created[0].amount == 4999

    verify = client.post(
        "/v1/payments/verify",
        json={"paymentIntentId": intent_id, "coursesId": ["C1"]},
        headers=auth("U1"),
    )
    assert verify.json()["verified"] is True
    assert gateway.confirmed == [intent_id]


def test_verify_rejects_courses_the_intent_did_not_pay_for(
    client: TestClient, gateway: InMemoryPaymentGateway
) -> None:
    add_course("Ccheap", "1.00")
    add_course("Cpricey", "500.00")
    add_user("U1")

    client.post("/v1/payments/capture", json={"coursesId": ["Ccheap"]}, headers=auth("U1"))
    intent_id = gateway.created[0].id

    resp = client.post(
        "/v1/payments/verify",
        json={"paymentIntentId": intent_id, "coursesId": ["Cpricey"]},
        headers=auth("U1"),
    )

    assert resp.status_code == 400
    assert resp.json() == {
        "success": False,
        "message": "Payment does not match the requested courses",
    }
    assert asyncio.run(course_repo.get_by_id("Cpricey")).students_enrolled == frozenset()
    assert _queued_emails() == 0
