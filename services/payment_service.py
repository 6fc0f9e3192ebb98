from __future__ import annotations

import asyncio
import math

import structlog

from core.errors import (
    AppException,
    gateway_not_configured,
    gateway_rejected,
    payment_initiation_failed,
    price_not_configured,
)
from core.payments import PaymentManager, PaymentRequest, encode
from core.payments.mpesa_provider import build_callback_url, build_password, build_timestamp
from core.payments.provider import PushPaymentGateway
from core.payments.types import GatewayAck
from schemas.course_schema import CourseOut
from schemas.imports import FREE_PAYMENT_ID
from schemas.payment_schema import InitiationOut
from services.course_service import retrieve_course
from services.enrollment_service import enroll_student
from services.student_service import ensure_student, fetch_purchaser_profile

logger = structlog.get_logger().bind(component="payment_initiator")


def _get_gateway() -> PushPaymentGateway:
    try:
        return PaymentManager.get_instance().gateway
    except RuntimeError as err:
        raise gateway_not_configured(str(err)) from err


def _authoritative_amount(course: CourseOut, course_id: str) -> int:
    price = course.price
    if price is None or not math.isfinite(price) or price < 0:
        raise price_not_configured(course_id, price)
    if price != int(price):
        # the gateway only moves whole currency units
        raise price_not_configured(course_id, price)
    return int(price)


def _log_detached_submission(submission: asyncio.Future[GatewayAck]) -> None:
    if submission.cancelled():
        logger.warning("mpesa_stk_push_detached_cancelled")
        return
    err = submission.exception()
    if err is not None:
        logger.error("mpesa_stk_push_detached_failed", error=str(err), error_type=type(err).__name__)
        return
    ack = submission.result()
    logger.info(
        "mpesa_stk_push_detached_completed",
        accepted=ack.accepted,
        checkout_request_id=ack.checkout_request_id,
    )


async def _initiate(*, course_id: str, purchaser_id: str, phone_number: str) -> InitiationOut:
    log = logger.bind(course_id=course_id, purchaser_id=purchaser_id)

    course = await retrieve_course(course_id)
    resolved_course_id = course.id or course_id
    profile = await fetch_purchaser_profile(purchaser_id)
    student = await ensure_student(profile)
    amount = _authoritative_amount(course, resolved_course_id)

    if amount == 0:
        await enroll_student(
            student_id=student.id,  # type: ignore[arg-type]
            course_id=resolved_course_id,
            payment_id=FREE_PAYMENT_ID,
            amount=0,
        )
        log.info("free_course_enrolled")
        return InitiationOut(success=True, message="Enrolled successfully", enrolled=True)

    gateway = _get_gateway()
    config = gateway.config
    token = await gateway.fetch_access_token()

    timestamp = build_timestamp()
    correlation_id = encode(resolved_course_id, purchaser_id)
    request = PaymentRequest(
        business_short_code=config.shortcode,
        password=build_password(config.shortcode, config.passkey, timestamp),
        timestamp=timestamp,
        transaction_type=config.transaction_type,
        amount=amount,
        party_a=phone_number,
        party_b=config.shortcode,
        phone_number=phone_number,
        callback_url=build_callback_url(config, correlation_id),
        account_reference=f"COURSE-{resolved_course_id}",
        transaction_desc=f"Payment for {course.title}",
    )
    log.info("mpesa_stk_push_submitting", amount=amount, account_reference=request.account_reference)

    # a client disconnect must not cancel a request the gateway may already be processing
    submission = asyncio.ensure_future(gateway.submit_push_payment(request, token))
    try:
        ack = await asyncio.shield(submission)
    except asyncio.CancelledError:
        log.warning("mpesa_stk_push_detached")
        submission.add_done_callback(_log_detached_submission)
        raise
    if not ack.accepted:
        raise gateway_rejected(ack.response_code, ack.error_message)

    log.info("mpesa_stk_push_accepted", checkout_request_id=ack.checkout_request_id)
    return InitiationOut(
        success=True,
        message="Payment request sent successfully",
        merchantRequestId=ack.merchant_request_id,
        checkoutRequestId=ack.checkout_request_id,
    )


async def initiate_mpesa_payment(*, course_id: str, purchaser_id: str, phone_number: str) -> InitiationOut:
    """Start a course purchase.

    Free courses are enrolled on the spot. Paid courses get an STK push for the
    catalog price; the enrollment itself is created later by the payment callback.

    Every failure is reported as PAYMENT_INITIATION_FAILED. The underlying
    error code is logged before it is collapsed.
    """
    try:
        return await _initiate(course_id=course_id, purchaser_id=purchaser_id, phone_number=phone_number)
    except AppException as err:
        logger.warning(
            "mpesa_initiation_failed",
            course_id=course_id,
            purchaser_id=purchaser_id,
            code=err.code,
            status_code=err.status_code,
            reason=err.detail["message"],  # type: ignore[index]
        )
        raise payment_initiation_failed() from err
    except Exception as err:
        logger.exception("mpesa_initiation_crashed", course_id=course_id, purchaser_id=purchaser_id)
        raise payment_initiation_failed() from err
