"""Inbound M-Pesa STK callback handling.

One delivery moves through RECEIVED -> PARSED -> VALIDATED -> ENRICHED and ends
in COMMITTED, or stops at the first failed gate as REJECTED(reason). The HTTP
status sent back to the gateway follows the terminal state, and a 200 is only
ever sent once the enrollment is durable.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from core.errors import AppException, ErrorCode
from core.payments import CorrelationError, decode
from schemas.enrollment_schema import EnrollmentOut
from schemas.imports import CallbackState, RejectionReason
from schemas.payment_schema import CallbackItem, StkCallbackEnvelope
from services.enrollment_service import enroll_student
from services.student_service import retrieve_student_by_purchaser_id

logger = structlog.get_logger().bind(component="mpesa_callback")

AMOUNT_FIELD = "Amount"
PHONE_FIELD = "PhoneNumber"
TRANSACTION_ID_FIELDS = ("TransactionID", "MpesaReceiptNumber")

_REJECTION_STATUS = {
    RejectionReason.LOOKUP_FAILED: 500,
    RejectionReason.PERSISTENCE_FAILED: 500,
}


@dataclass(frozen=True)
class CallbackOutcome:
    state: CallbackState
    reason: RejectionReason | None = None
    message: str | None = None
    enrollment: EnrollmentOut | None = None

    @property
    def status_code(self) -> int:
        if self.state == CallbackState.COMMITTED:
            return 200
        return _REJECTION_STATUS.get(self.reason, 400)  # type: ignore[arg-type]


@dataclass(frozen=True)
class PaymentFacts:
    amount: float
    phone_number: str
    transaction_id: str


def _rejected(reason: RejectionReason, message: str) -> CallbackOutcome:
    return CallbackOutcome(state=CallbackState.REJECTED, reason=reason, message=message)


def find_item_value(items: list[CallbackItem], name: str) -> Any:
    for item in items:
        if item.Name == name:
            return item.Value
    return None


def extract_payment_facts(items: list[CallbackItem]) -> PaymentFacts | None:
    amount = find_item_value(items, AMOUNT_FIELD)
    phone_number = find_item_value(items, PHONE_FIELD)
    transaction_id = None
    for field_name in TRANSACTION_ID_FIELDS:
        transaction_id = find_item_value(items, field_name)
        if transaction_id:
            break

    if not amount or not phone_number or not transaction_id:
        return None
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount) or amount <= 0:
        return None
    return PaymentFacts(amount=amount, phone_number=str(phone_number), transaction_id=str(transaction_id))


def parse_callback(body: bytes) -> StkCallbackEnvelope | None:
    try:
        return StkCallbackEnvelope.model_validate(json.loads(body.decode("utf-8")))
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError):
        return None


async def handle_mpesa_callback(body: bytes, *, correlation_id: str | None = None) -> CallbackOutcome:
    """Validate one callback delivery and commit the enrollment it pays for.

    `correlation_id` is the purchase reference echoed back on the callback URL;
    without it the MerchantRequestID is decoded instead.
    """
    envelope = parse_callback(body)
    if envelope is None:
        logger.error("mpesa_callback_malformed", body=body[:1000].decode("utf-8", errors="replace"))
        return _rejected(RejectionReason.MALFORMED, "Invalid payload")

    callback = envelope.Body.stkCallback
    log = logger.bind(
        merchant_request_id=callback.MerchantRequestID,
        checkout_request_id=callback.CheckoutRequestID,
    )
    log.info("mpesa_callback_received", state=CallbackState.PARSED.value, result_code=callback.ResultCode)

    if callback.ResultCode != 0:
        log.warning("mpesa_payment_failed", result_code=callback.ResultCode, result_desc=callback.ResultDesc)
        return _rejected(RejectionReason.PAYMENT_FAILED, f"Payment failed: {callback.ResultDesc}")

    metadata = callback.CallbackMetadata
    if metadata is None or metadata.Item is None:
        log.error("mpesa_callback_missing_metadata")
        return _rejected(RejectionReason.MISSING_METADATA, "Missing metadata")

    facts = extract_payment_facts(metadata.Item)
    if facts is None:
        log.error("mpesa_callback_incomplete_metadata", items=[item.model_dump() for item in metadata.Item])
        return _rejected(RejectionReason.INCOMPLETE_METADATA, "Incomplete metadata")

    try:
        course_id, purchaser_id = decode(correlation_id or callback.MerchantRequestID)
    except CorrelationError as err:
        log.error("mpesa_callback_invalid_correlation", error=str(err), correlation_id=correlation_id)
        return _rejected(RejectionReason.INVALID_CORRELATION, "Invalid MerchantRequestID")

    log = log.bind(course_id=course_id, purchaser_id=purchaser_id, transaction_id=facts.transaction_id)
    log.debug("mpesa_callback_validated", state=CallbackState.VALIDATED.value, amount=facts.amount)

    try:
        student = await retrieve_student_by_purchaser_id(purchaser_id)
    except PyMongoError as err:
        log.error("mpesa_callback_student_lookup_failed", error=str(err))
        return _rejected(RejectionReason.LOOKUP_FAILED, "Failed to look up student")
    if student is None or student.id is None:
        log.error("mpesa_callback_student_not_found")
        return _rejected(RejectionReason.STUDENT_NOT_FOUND, "Student not found")
    log.debug("mpesa_callback_enriched", state=CallbackState.ENRICHED.value, student_id=student.id)

    try:
        enrollment = await enroll_student(
            student_id=student.id,
            course_id=course_id,
            payment_id=facts.transaction_id,
            amount=facts.amount,
        )
    except AppException as err:
        if err.code != ErrorCode.ENROLLMENT_PERSISTENCE_FAILED.value:
            raise
        # money has moved but the student has no access
        log.error(
            "mpesa_paid_enrollment_not_persisted",
            amount=facts.amount,
            phone_number=facts.phone_number,
            details=err.detail["details"],  # type: ignore[index]
        )
        return _rejected(RejectionReason.PERSISTENCE_FAILED, "Failed to create enrollment")

    log.info("mpesa_callback_committed", student_email=student.email, enrollment_id=enrollment.id)
    return CallbackOutcome(state=CallbackState.COMMITTED, enrollment=enrollment)
