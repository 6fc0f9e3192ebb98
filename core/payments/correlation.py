"""Map a (course, purchaser) pair to the merchant request id and back.

The id is derived, never stored: the callback handler reverses it to find the
purchase it settles.
"""
from __future__ import annotations

DELIMITER = "~"


class CorrelationError(ValueError):
    pass


def _check_identifier(name: str, value: str) -> None:
    if not value:
        raise CorrelationError(f"{name} must not be empty")
    if DELIMITER in value:
        raise CorrelationError(f"{name} must not contain '{DELIMITER}'")


def encode(course_id: str, purchaser_id: str) -> str:
    _check_identifier("course_id", course_id)
    _check_identifier("purchaser_id", purchaser_id)
    return f"{course_id}{DELIMITER}{purchaser_id}"


def decode(merchant_request_id: str | None) -> tuple[str, str]:
    if not merchant_request_id or DELIMITER not in merchant_request_id:
        raise CorrelationError(f"Invalid MerchantRequestID format: {merchant_request_id!r}")

    parts = merchant_request_id.split(DELIMITER)
    if len(parts) != 2 or not all(parts):
        raise CorrelationError(f"Invalid MerchantRequestID format: {merchant_request_id!r}")

    course_id, purchaser_id = parts
    return course_id, purchaser_id
