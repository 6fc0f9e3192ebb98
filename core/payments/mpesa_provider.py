from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from core.errors import gateway_auth_error, gateway_submit_error
from core.payments.provider import PushPaymentGateway
from core.payments.types import AccessToken, GatewayAck, MpesaConfig, PaymentRequest

logger = structlog.get_logger().bind(component="mpesa_gateway")

TOKEN_PATH = "/oauth/v1/generate"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"


def build_timestamp(now: datetime | None = None) -> str:
    """YYYYMMDDHHmmss in UTC."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y%m%d%H%M%S")


def build_password(shortcode: str, passkey: str, timestamp: str) -> str:
    return base64.b64encode(f"{shortcode}{passkey}{timestamp}".encode("utf-8")).decode("ascii")


def build_callback_url(config: MpesaConfig, correlation_id: str) -> str:
    """Callback URL carrying the purchase correlation id and, when configured, the shared token."""
    params = {"ref": correlation_id}
    if config.callback_token:
        params["token"] = config.callback_token
    separator = "&" if "?" in config.callback_url else "?"
    return f"{config.callback_url}{separator}{urlencode(params)}"


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


class MpesaGatewayClient(PushPaymentGateway):
    def __init__(self, config: MpesaConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.api_url,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )

    def _basic_auth_header(self) -> str:
        raw = f"{self.config.consumer_key}:{self.config.consumer_secret}".encode("utf-8")
        return f"Basic {base64.b64encode(raw).decode('ascii')}"

    async def fetch_access_token(self) -> AccessToken:
        try:
            async with self._client() as client:
                response = await client.get(
                    TOKEN_PATH,
                    params={"grant_type": "client_credentials"},
                    headers={"Authorization": self._basic_auth_header()},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as err:
            logger.error(
                "mpesa_token_http_error",
                status_code=err.response.status_code,
                body=err.response.text[:500],
            )
            raise gateway_auth_error({"status_code": err.response.status_code}) from err
        except httpx.HTTPError as err:
            logger.error("mpesa_token_request_failed", error=str(err))
            raise gateway_auth_error(str(err)) from err

        try:
            data = response.json()
        except ValueError as err:
            raise gateway_auth_error("Token endpoint returned invalid JSON") from err

        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token.strip():
            logger.error("mpesa_token_missing", keys=sorted(data) if isinstance(data, dict) else None)
            raise gateway_auth_error("Token endpoint response has no access_token")

        return AccessToken(value=token.strip())

    async def submit_push_payment(self, request: PaymentRequest, token: AccessToken) -> GatewayAck:
        try:
            async with self._client() as client:
                response = await client.post(
                    STK_PUSH_PATH,
                    json=request.to_payload(),
                    headers={
                        "Authorization": f"Bearer {token.value}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.HTTPError as err:
            logger.error("mpesa_stk_push_request_failed", error=str(err))
            raise gateway_submit_error(str(err)) from err

        try:
            data = response.json()
        except ValueError as err:
            logger.error("mpesa_stk_push_invalid_json", status_code=response.status_code)
            raise gateway_submit_error({"status_code": response.status_code}) from err

        if not isinstance(data, dict):
            raise gateway_submit_error({"status_code": response.status_code})

        ack = GatewayAck(
            response_code=_as_optional_str(data.get("ResponseCode")),
            error_message=_as_optional_str(data.get("errorMessage")),
            merchant_request_id=_as_optional_str(data.get("MerchantRequestID")),
            checkout_request_id=_as_optional_str(data.get("CheckoutRequestID")),
            customer_message=_as_optional_str(data.get("CustomerMessage")),
            raw=data,
        )
        logger.info(
            "mpesa_stk_push_acknowledged",
            status_code=response.status_code,
            response_code=ack.response_code,
            checkout_request_id=ack.checkout_request_id,
        )
        return ack
