from core.payments.correlation import CorrelationError, decode, encode
from core.payments.manager import PaymentManager
from core.payments.types import AccessToken, GatewayAck, MpesaConfig, PaymentRequest

__all__ = [
    "AccessToken",
    "CorrelationError",
    "GatewayAck",
    "MpesaConfig",
    "PaymentManager",
    "PaymentRequest",
    "decode",
    "encode",
]
