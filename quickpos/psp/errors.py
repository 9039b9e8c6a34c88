"""PSP error taxonomy."""
from typing import Optional


class PaymentError(Exception):
    """Base class for every error raised by the PSP layer."""


class ConfigurationError(PaymentError):
    """An adapter was constructed without a required credential field."""

    def __init__(self, field: str, provider: Optional[str] = None):
        self.field = field
        self.provider = provider
        prefix = f"{provider}: " if provider else ""
        super().__init__(f"{prefix}Missing required field: {field}")


class UpstreamRequestError(PaymentError):
    """Network failure or non-success answer from the provider."""

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider} API error: {message}" if provider else message)


class SignatureVerificationError(PaymentError):
    """Callback signature is missing or does not match."""

    def __init__(self, message: str = "Invalid signature", provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class UnrecognizedCallbackError(PaymentError):
    """Callback lacks the field needed to correlate it with a payment."""

    def __init__(self, field: str, provider: Optional[str] = None):
        self.field = field
        self.provider = provider
        super().__init__(f"Callback is missing required field: {field}")


class ProviderNotFoundError(PaymentError, KeyError):
    """No adapter registered under the requested provider name."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported PSP provider: {provider}")

    def __str__(self):
        return f"Unsupported PSP provider: {self.provider}"
