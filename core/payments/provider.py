from __future__ import annotations

from typing import Protocol

from core.payments.types import AccessToken, GatewayAck, MpesaConfig, PaymentRequest


class PushPaymentGateway(Protocol):
    config: MpesaConfig

    async def fetch_access_token(self) -> AccessToken:
        ...

    async def submit_push_payment(self, request: PaymentRequest, token: AccessToken) -> GatewayAck:
        ...
