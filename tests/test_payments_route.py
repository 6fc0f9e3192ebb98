from __future__ import annotations

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.v1 import enrollments_route, payments_route
from core.errors import payment_initiation_failed
from core.payments import PaymentManager
from core.payments.types import MpesaConfig
from schemas.enrollment_schema import EnrollmentOut
from schemas.payment_schema import InitiationOut
from schemas.student_schema import StudentOut
from services import callback_service


class _StubGateway:
    def __init__(self, callback_token: str | None = None) -> None:
        self.config = MpesaConfig(
            api_url="https://sandbox.safaricom.co.ke",
            consumer_key="consumer-key",
            consumer_secret="consumer-secret",
            passkey="passkey",
            shortcode="174379",
            transaction_type="CustomerPayBillOnline",
            callback_url="https://learnly.example.com/v1/payments/mpesa/callback",
            callback_token=callback_token,
        )


@pytest.fixture(autouse=True)
def _reset_payment_manager():
    PaymentManager.configure(_StubGateway())
    yield
    PaymentManager.reset()


def _build_app() -> FastAPI:
    app = FastAPI()
    app.include_router(payments_route.router, prefix="/v1")
    app.include_router(enrollments_route.router, prefix="/v1")
    return app


def _callback_json(*, result_code: int = 0, merchant_request_id: str = "c1~u1") -> dict:
    return {
        "Body": {
            "stkCallback": {
                "MerchantRequestID": merchant_request_id,
                "CheckoutRequestID": "ws_CO_191220191020363925",
                "ResultCode": result_code,
                "ResultDesc": "Request cancelled by user" if result_code else "Success",
                "CallbackMetadata": {
                    "Item": [
                        {"Name": "Amount", "Value": 1500},
                        {"Name": "TransactionID", "Value": "XYZ123"},
                        {"Name": "PhoneNumber", "Value": 254712345678},
                    ]
                },
            }
        }
    }


def _stub_callback_dependencies(monkeypatch, calls: list, *, student_found: bool = True) -> None:
    async def _stub_retrieve_student(purchaser_id: str):
        if not student_found:
            return None
        return StudentOut(id="student-1", clerkId=purchaser_id, email="jane@example.com", firstName="Jane")

    async def _stub_enroll_student(*, student_id, course_id, payment_id, amount):
        calls.append((student_id, course_id, payment_id, amount))
        return EnrollmentOut(
            id="enrollment-1",
            studentId=student_id,
            courseId=course_id,
            paymentId=payment_id,
            amount=amount,
        )

    monkeypatch.setattr(callback_service, "retrieve_student_by_purchaser_id", _stub_retrieve_student)
    monkeypatch.setattr(callback_service, "enroll_student", _stub_enroll_student)


def test_initiate_payment_normalizes_phone_and_wraps_response(monkeypatch):
    captured = {}

    async def _stub_initiate(*, course_id: str, purchaser_id: str, phone_number: str):
        captured.update(course_id=course_id, purchaser_id=purchaser_id, phone_number=phone_number)
        return InitiationOut(success=True, message="Payment request sent successfully")

    monkeypatch.setattr(payments_route, "initiate_mpesa_payment", _stub_initiate)
    client = TestClient(_build_app())

    response = client.post(
        "/v1/payments/mpesa",
        json={"courseId": "c1", "purchaserId": "u1", "phoneNumber": "0712 345 678"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["data"]["message"] == "Payment request sent successfully"
    assert payload["data"]["enrolled"] is False
    assert captured == {"course_id": "c1", "purchaser_id": "u1", "phone_number": "254712345678"}


def test_initiate_payment_rejects_invalid_phone(monkeypatch):
    async def _stub_initiate(**kwargs):
        raise AssertionError("initiation must not run")

    monkeypatch.setattr(payments_route, "initiate_mpesa_payment", _stub_initiate)
    client = TestClient(_build_app())

    response = client.post(
        "/v1/payments/mpesa",
        json={"courseId": "c1", "purchaserId": "u1", "phoneNumber": "12345"},
    )

    assert response.status_code == 422


def test_initiate_payment_failure_is_opaque(monkeypatch):
    async def _stub_initiate(**kwargs):
        raise payment_initiation_failed()

    monkeypatch.setattr(payments_route, "initiate_mpesa_payment", _stub_initiate)
    client = TestClient(_build_app())

    response = client.post(
        "/v1/payments/mpesa",
        json={"courseId": "c1", "purchaserId": "u1", "phoneNumber": "254712345678"},
    )

    assert response.status_code == 502
    payload = response.json()
    assert payload["detail"]["code"] == "PAYMENT_INITIATION_FAILED"
    assert payload["detail"]["message"] == "Failed to initiate Mpesa payment"


def test_callback_success_returns_empty_ok(monkeypatch):
    calls: list = []
    _stub_callback_dependencies(monkeypatch, calls)
    client = TestClient(_build_app())

    response = client.post("/v1/payments/mpesa/callback", json=_callback_json())

    assert response.status_code == 200
    assert response.content == b""
    assert calls == [("student-1", "c1", "XYZ123", 1500.0)]


def test_callback_uses_reference_query_parameter(monkeypatch):
    calls: list = []
    _stub_callback_dependencies(monkeypatch, calls)
    client = TestClient(_build_app())

    response = client.post(
        "/v1/payments/mpesa/callback?ref=c7~u7",
        json=_callback_json(merchant_request_id="29115-34620561-1"),
    )

    assert response.status_code == 200
    assert calls == [("student-1", "c7", "XYZ123", 1500.0)]


def test_callback_failed_payment_returns_plain_text_400(monkeypatch):
    calls: list = []
    _stub_callback_dependencies(monkeypatch, calls)
    client = TestClient(_build_app())

    response = client.post("/v1/payments/mpesa/callback", json=_callback_json(result_code=1032))

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "Payment failed: Request cancelled by user"
    assert calls == []


def test_callback_malformed_body_returns_400(monkeypatch):
    calls: list = []
    _stub_callback_dependencies(monkeypatch, calls)
    client = TestClient(_build_app())

    response = client.post(
        "/v1/payments/mpesa/callback",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.text == "Invalid payload"


def test_callback_unknown_student_returns_400(monkeypatch):
    calls: list = []
    _stub_callback_dependencies(monkeypatch, calls, student_found=False)
    client = TestClient(_build_app())

    response = client.post("/v1/payments/mpesa/callback", json=_callback_json())

    assert response.status_code == 400
    assert response.text == "Student not found"


def test_callback_token_is_enforced_when_configured(monkeypatch):
    calls: list = []
    _stub_callback_dependencies(monkeypatch, calls)
    PaymentManager.configure(_StubGateway(callback_token="s3cret"))
    client = TestClient(_build_app())
    body = json.dumps(_callback_json())

    missing = client.post("/v1/payments/mpesa/callback", content=body)
    wrong = client.post("/v1/payments/mpesa/callback?token=nope", content=body)
    accepted = client.post("/v1/payments/mpesa/callback?ref=c1~u1&token=s3cret", content=body)

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert wrong.json()["detail"]["code"] == "PAYMENT_WEBHOOK_INVALID"
    assert accepted.status_code == 200
    assert calls == [("student-1", "c1", "XYZ123", 1500.0)]


def test_enrollment_status_reports_membership(monkeypatch):
    async def _stub_is_enrolled(*, purchaser_id: str, course_id: str) -> bool:
        return (purchaser_id, course_id) == ("u1", "c1")

    monkeypatch.setattr(enrollments_route, "is_enrolled_in_course", _stub_is_enrolled)
    client = TestClient(_build_app())

    enrolled = client.get("/v1/enrollments/status", params={"courseId": "c1", "purchaserId": "u1"})
    not_enrolled = client.get("/v1/enrollments/status", params={"courseId": "c2", "purchaserId": "u1"})

    assert enrolled.status_code == 200
    assert enrolled.json()["data"] == {"courseId": "c1", "purchaserId": "u1", "isEnrolled": True}
    assert not_enrolled.json()["data"]["isEnrolled"] is False


def test_enrollment_status_requires_both_identifiers():
    client = TestClient(_build_app())

    response = client.get("/v1/enrollments/status", params={"courseId": "c1"})

    assert response.status_code == 422
