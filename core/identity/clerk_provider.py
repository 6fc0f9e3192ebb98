from __future__ import annotations

from typing import Any

import httpx
import structlog

from core.errors import identity_provider_error, resource_not_found
from core.identity.types import PurchaserProfile

logger = structlog.get_logger().bind(component="clerk_identity")


def _primary_email(data: dict[str, Any]) -> str | None:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    ordered = sorted(addresses, key=lambda item: item.get("id") != primary_id) if primary_id else addresses
    for item in ordered:
        email = (item or {}).get("email_address")
        if isinstance(email, str) and email.strip():
            return email.strip()
    return None


class ClerkIdentityProvider:
    def __init__(
        self,
        *,
        api_url: str,
        secret_key: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._secret_key = secret_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def fetch_profile(self, user_id: str) -> PurchaserProfile:
        try:
            async with httpx.AsyncClient(
                base_url=self._api_url,
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    f"/v1/users/{user_id}",
                    headers={"Authorization": f"Bearer {self._secret_key}"},
                )
        except httpx.HTTPError as err:
            logger.error("clerk_request_failed", user_id=user_id, error=str(err))
            raise identity_provider_error(str(err)) from err

        if response.status_code == 404:
            raise resource_not_found("Purchaser", user_id)
        if response.status_code >= 400:
            logger.error("clerk_http_error", user_id=user_id, status_code=response.status_code)
            raise identity_provider_error({"status_code": response.status_code})

        try:
            data = response.json()
        except ValueError as err:
            raise identity_provider_error("Identity provider returned invalid JSON") from err

        return PurchaserProfile(
            id=str(data.get("id") or user_id),
            email=_primary_email(data),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            avatar_url=data.get("image_url"),
        )
