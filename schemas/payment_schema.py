from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, field_validator

_KENYAN_MSISDN = re.compile(r"^254[17]\d{8}$")


def normalize_phone_number(value: str) -> str:
    """Coerce local and international forms to 2547XXXXXXXX / 2541XXXXXXXX."""
    digits = re.sub(r"[\s\-()]", "", value or "")
    if digits.startswith("+"):
        digits = digits[1:]
    if digits.startswith("0") and len(digits) == 10:
        digits = f"254{digits[1:]}"
    elif len(digits) == 9 and digits[0] in "17":
        digits = f"254{digits}"

    if not _KENYAN_MSISDN.match(digits):
        raise ValueError("Please enter a valid phone number (e.g., 254712345678)")
    return digits


class MpesaPaymentIn(BaseModel):
    courseId: str = Field(min_length=1)
    purchaserId: str = Field(min_length=1)
    phoneNumber: str

    @field_validator("phoneNumber")
    @classmethod
    def validate_phone_number(cls, value: str) -> str:
        return normalize_phone_number(value)


class InitiationOut(BaseModel):
    success: bool
    message: str
    enrolled: bool = False
    merchantRequestId: str | None = None
    checkoutRequestId: str | None = None


class CallbackItem(BaseModel):
    Name: str
    Value: Any = None


class CallbackMetadataBlock(BaseModel):
    Item: list[CallbackItem] | None = None


class StkCallback(BaseModel):
    MerchantRequestID: str
    CheckoutRequestID: str | None = None
    ResultCode: int
    ResultDesc: str | None = None
    CallbackMetadata: CallbackMetadataBlock | None = None


class StkCallbackBody(BaseModel):
    stkCallback: StkCallback


class StkCallbackEnvelope(BaseModel):
    Body: StkCallbackBody
