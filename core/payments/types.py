from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ACCEPTED_RESPONSE_CODE = "0"


@dataclass(frozen=True)
class MpesaConfig:
    api_url: str
    consumer_key: str
    consumer_secret: str
    passkey: str
    shortcode: str
    transaction_type: str
    callback_url: str
    callback_token: str | None = None
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class AccessToken:
    value: str

    def __repr__(self) -> str:
        return "AccessToken(value='***')"


@dataclass(frozen=True)
class PaymentRequest:
    business_short_code: str
    password: str
    timestamp: str
    transaction_type: str
    amount: int
    party_a: str
    party_b: str
    phone_number: str
    callback_url: str
    account_reference: str
    transaction_desc: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "BusinessShortCode": self.business_short_code,
            "Password": self.password,
            "Timestamp": self.timestamp,
            "TransactionType": self.transaction_type,
            "Amount": self.amount,
            "PartyA": self.party_a,
            "PartyB": self.party_b,
            "PhoneNumber": self.phone_number,
            "CallBackURL": self.callback_url,
            "AccountReference": self.account_reference,
            "TransactionDesc": self.transaction_desc,
        }


@dataclass(frozen=True)
class GatewayAck:
    response_code: str | None
    error_message: str | None = None
    merchant_request_id: str | None = None
    checkout_request_id: str | None = None
    customer_message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def accepted(self) -> bool:
        return self.response_code == ACCEPTED_RESPONSE_CODE
