from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PurchaserProfile:
    id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    avatar_url: str | None
