from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    GATEWAY_NOT_CONFIGURED = "GATEWAY_NOT_CONFIGURED"
    GATEWAY_AUTH_ERROR = "GATEWAY_AUTH_ERROR"
    GATEWAY_SUBMIT_ERROR = "GATEWAY_SUBMIT_ERROR"
    GATEWAY_REJECTED = "GATEWAY_REJECTED"
    IDENTITY_PROVIDER_ERROR = "IDENTITY_PROVIDER_ERROR"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    PURCHASER_PROFILE_INCOMPLETE = "PURCHASER_PROFILE_INCOMPLETE"
    PRICE_NOT_CONFIGURED = "PRICE_NOT_CONFIGURED"
    PAYMENT_INITIATION_FAILED = "PAYMENT_INITIATION_FAILED"
    PAYMENT_WEBHOOK_INVALID = "PAYMENT_WEBHOOK_INVALID"
    ENROLLMENT_PERSISTENCE_FAILED = "ENROLLMENT_PERSISTENCE_FAILED"


class AppException(HTTPException):
    def __init__(
        self,
        *,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        detail = {
            "message": message,
            "code": code.value,
            "details": details,
        }
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @property
    def code(self) -> str:
        return self.detail["code"]  # type: ignore[index]


def resource_not_found(resource: str, resource_id: str | None = None) -> AppException:
    details = {"resource": resource}
    if resource_id:
        details["resource_id"] = resource_id
    return AppException(
        status_code=status.HTTP_404_NOT_FOUND,
        code=ErrorCode.RESOURCE_NOT_FOUND,
        message=f"{resource} not found",
        details=details,
    )


def course_not_found(course_id: str) -> AppException:
    return AppException(
        status_code=status.HTTP_404_NOT_FOUND,
        code=ErrorCode.COURSE_NOT_FOUND,
        message="Course not found",
        details={"course_id": course_id},
    )


def purchaser_profile_incomplete(purchaser_id: str) -> AppException:
    return AppException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code=ErrorCode.PURCHASER_PROFILE_INCOMPLETE,
        message="User details not found",
        details={"purchaser_id": purchaser_id},
    )


def price_not_configured(course_id: str, price: Any) -> AppException:
    return AppException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code=ErrorCode.PRICE_NOT_CONFIGURED,
        message="Course price is not set",
        details={"course_id": course_id, "price": price},
    )


def gateway_not_configured(details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code=ErrorCode.GATEWAY_NOT_CONFIGURED,
        message="Mpesa gateway is not configured",
        details=details,
    )


def gateway_auth_error(details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code=ErrorCode.GATEWAY_AUTH_ERROR,
        message="Failed to fetch Mpesa access token",
        details=details,
    )


def gateway_submit_error(details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code=ErrorCode.GATEWAY_SUBMIT_ERROR,
        message="Mpesa push request failed",
        details=details,
    )


def gateway_rejected(response_code: str | None, error_message: str | None) -> AppException:
    return AppException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code=ErrorCode.GATEWAY_REJECTED,
        message=error_message or "Failed to initiate Mpesa payment",
        details={"response_code": response_code},
    )


def identity_provider_error(details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code=ErrorCode.IDENTITY_PROVIDER_ERROR,
        message="Identity provider request failed",
        details=details,
    )


def payment_initiation_failed() -> AppException:
    return AppException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code=ErrorCode.PAYMENT_INITIATION_FAILED,
        message="Failed to initiate Mpesa payment",
    )


def enrollment_persistence_failed(details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.ENROLLMENT_PERSISTENCE_FAILED,
        message="Failed to create enrollment",
        details=details,
    )


def callback_unauthorized() -> AppException:
    return AppException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        code=ErrorCode.PAYMENT_WEBHOOK_INVALID,
        message="Invalid Mpesa callback token",
    )
