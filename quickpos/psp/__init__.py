# quickpos/psp/__init__.py

from .adapter import BasePaymentAdapter, PSPProvider, decode_payload
from .dispatcher import ADAPTER_CLASSES, ProviderRegistry, adapter_class, build_registry, create_adapter
from .errors import (
    ConfigurationError,
    PaymentError,
    ProviderNotFoundError,
    SignatureVerificationError,
    UnrecognizedCallbackError,
    UpstreamRequestError,
)
from .normalization import MAJOR_UNITS, MINOR_UNITS, WHOLE_UNITS, AmountUnit, StatusTable

__all__ = [
    "ADAPTER_CLASSES",
    "AmountUnit",
    "BasePaymentAdapter",
    "ConfigurationError",
    "MAJOR_UNITS",
    "MINOR_UNITS",
    "PSPProvider",
    "PaymentError",
    "ProviderNotFoundError",
    "ProviderRegistry",
    "SignatureVerificationError",
    "StatusTable",
    "UnrecognizedCallbackError",
    "UpstreamRequestError",
    "WHOLE_UNITS",
    "adapter_class",
    "build_registry",
    "create_adapter",
    "decode_payload",
]
