from __future__ import annotations

from threading import Lock

from core.payments.mpesa_provider import MpesaGatewayClient
from core.payments.provider import PushPaymentGateway
from core.payments.types import MpesaConfig
from core.settings import Settings, get_settings


class PaymentManager:
    _instance: "PaymentManager | None" = None
    _lock = Lock()

    def __init__(self, gateway: PushPaymentGateway) -> None:
        self._gateway = gateway

    @classmethod
    def configure(cls, gateway: PushPaymentGateway) -> "PaymentManager":
        with cls._lock:
            cls._instance = cls(gateway=gateway)
            return cls._instance

    @classmethod
    def configure_from_settings(cls, settings: Settings | None = None) -> "PaymentManager":
        settings = settings or get_settings()
        config = MpesaConfig(
            api_url=settings.mpesa_api_url,
            consumer_key=settings.mpesa_consumer_key,
            consumer_secret=settings.mpesa_consumer_secret,
            passkey=settings.mpesa_passkey,
            shortcode=settings.mpesa_shortcode,
            transaction_type=settings.mpesa_transaction_type,
            callback_url=settings.mpesa_callback_url,
            callback_token=settings.mpesa_callback_token,
            timeout_seconds=settings.http_timeout_seconds,
        )
        return cls.configure(MpesaGatewayClient(config))

    @classmethod
    def get_instance(cls) -> "PaymentManager":
        if cls._instance is None:
            return cls.configure_from_settings()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None

    @property
    def gateway(self) -> PushPaymentGateway:
        return self._gateway
