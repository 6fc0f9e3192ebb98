from functools import lru_cache

from core.identity.clerk_provider import ClerkIdentityProvider
from core.identity.types import PurchaserProfile
from core.settings import get_settings


@lru_cache(maxsize=1)
def get_identity_provider() -> ClerkIdentityProvider:
    settings = get_settings()
    return ClerkIdentityProvider(
        api_url=settings.clerk_api_url,
        secret_key=settings.clerk_secret_key,
        timeout_seconds=settings.http_timeout_seconds,
    )


__all__ = ["ClerkIdentityProvider", "PurchaserProfile", "get_identity_provider"]
