import hmac

from fastapi import APIRouter, Request, Response

from core.errors import callback_unauthorized
from core.payments import PaymentManager
from core.response_envelope import document_response
from schemas.payment_schema import MpesaPaymentIn
from services.callback_service import handle_mpesa_callback
from services.payment_service import initiate_mpesa_payment

router = APIRouter(prefix="/payments", tags=["Payments"])


def _expected_callback_token() -> str | None:
    return PaymentManager.get_instance().gateway.config.callback_token


@router.post("/mpesa")
@document_response(
    message="Mpesa payment initiated",
    success_example={"success": True, "message": "Payment request sent successfully", "enrolled": False},
    response_codes={422: "Invalid phone number", 502: "Failed to initiate Mpesa payment"},
)
async def initiate_payment(payload: MpesaPaymentIn):
    """
    Start a course purchase.

    The amount charged is always the catalog price of `courseId`. Free courses
    are enrolled immediately (`enrolled: true`); paid courses trigger an STK
    prompt on `phoneNumber` and are enrolled when the payment callback arrives.
    """
    return await initiate_mpesa_payment(
        course_id=payload.courseId,
        purchaser_id=payload.purchaserId,
        phone_number=payload.phoneNumber,
    )


@router.post("/mpesa/callback", include_in_schema=False)
async def mpesa_callback(request: Request):
    expected_token = _expected_callback_token()
    if expected_token:
        provided = request.query_params.get("token") or ""
        if not hmac.compare_digest(provided.encode("utf-8"), expected_token.encode("utf-8")):
            raise callback_unauthorized()

    body = await request.body()
    outcome = await handle_mpesa_callback(body, correlation_id=request.query_params.get("ref"))
    if outcome.status_code == 200:
        return Response(status_code=200)
    return Response(content=outcome.message, status_code=outcome.status_code, media_type="text/plain")
