# quickpos/schemas_pkg/__init__.py

from .payments import (
    CallbackEnvelope,
    CreatePaymentResponse,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
    generate_order_id,
)

__all__ = [
    "CallbackEnvelope",
    "CreatePaymentResponse",
    "PaymentRequest",
    "PaymentResult",
    "PaymentStatus",
    "generate_order_id",
]
