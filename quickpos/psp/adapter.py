"""
PSP Adapter Base Class and Interface.
Provides one uniform contract over every supported payment gateway.

A provider is mostly data: its required credentials, a status table, an
amount unit and a signature strategy. The base class owns the control flow:

    create_payment(request)   build + send one outbound request
    handle_callback(payload)  verify -> correlate -> derive state -> normalize

Optional per-provider extensions: verify_payment, refund, get_status.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

import anyio
import httpx

from quickpos.config import settings
from quickpos.logging_config import get_logger
from quickpos.psp.errors import (
    ConfigurationError,
    SignatureVerificationError,
    UnrecognizedCallbackError,
    UpstreamRequestError,
)
from quickpos.psp.normalization import MAJOR_UNITS, AmountUnit, StatusTable
from quickpos.psp.signing import SignatureStrategy
from quickpos.schemas_pkg.payments import (
    CallbackEnvelope,
    CreatePaymentResponse,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
)


class PSPProvider(str, Enum):
    """Supported PSP providers."""
    RAZORPAY = "razorpay"
    MIDTRANS = "midtrans"
    EPOINT = "epoint"
    HELEKET = "heleket"
    PAYRIFF = "payriff"
    SENANGPAY = "senangpay"
    FREEKASSA = "freekassa"
    PERFECTMONEY = "perfectmoney"
    XENDIT = "xendit"
    ZARINPAL = "zarinpal"
    PICPAY = "picpay"


OPTIONAL_CAPABILITIES = ("verify_payment", "refund", "get_status")


def decode_payload(raw: Any) -> Dict[str, Any]:
    """
    Turn a raw callback body into a dict: mappings are copied, JSON objects
    and form/query strings are parsed.
    """
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise UnrecognizedCallbackError("payload")
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("{"):
            try:
                obj = json.loads(text)
            except ValueError:
                raise UnrecognizedCallbackError("payload")
            if isinstance(obj, dict):
                return obj
        elif text:
            return dict(parse_qsl(text, keep_blank_values=True))
    raise UnrecognizedCallbackError("payload")


def build_url(base: str, params: Mapping[str, Any]) -> str:
    """Append query parameters to `base`, keeping any it already has."""
    query = urlencode({k: v for k, v in params.items() if v is not None})
    if not query:
        return base
    return f"{base}{'&' if '?' in base else '?'}{query}"


def lookup(data: Any, path: Optional[str]) -> Any:
    """Read ``a.b.c`` from nested dicts; None when any hop is missing."""
    if not path:
        return None
    for key in path.split("."):
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def as_text(value: Any) -> Optional[str]:
    return None if value is None or value == "" else str(value)


class BasePaymentAdapter(ABC):
    """
    Base adapter for Payment Service Providers.
    All PSP implementations must inherit from this class.
    """

    provider: ClassVar[PSPProvider]
    required_fields: ClassVar[Tuple[str, ...]] = ()
    status_table: ClassVar[StatusTable]
    amount_unit: ClassVar[AmountUnit] = MAJOR_UNITS
    default_currency: ClassVar[Optional[str]] = None

    production_url: ClassVar[str] = ""
    sandbox_url: ClassVar[Optional[str]] = None

    # where the correlation / state fields live in a verified callback
    callback_order_field: ClassVar[str] = "order_id"
    callback_transaction_field: ClassVar[Optional[str]] = None
    callback_status_field: ClassVar[Optional[str]] = "status"
    callback_amount_field: ClassVar[Optional[str]] = "amount"
    callback_currency_field: ClassVar[Optional[str]] = "currency"

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        """
        Initialize PSP adapter with credentials.

        Args:
            config: provider credentials plus the shared options
                ``sandbox`` (bool, or the inverse ``is_production``),
                ``timeout`` (seconds) and ``transport`` (an httpx transport,
                mostly for tests)

        Raises:
            ConfigurationError: naming the first missing required field
        """
        config = dict(config or {})
        for field in self.required_fields:
            if config.get(field) in (None, ""):
                raise ConfigurationError(field, provider=self.provider.value)

        self._transport = config.pop("transport", None)
        self.config = MappingProxyType(config)
        if "sandbox" in config:
            self.sandbox = bool(config["sandbox"])
        else:
            self.sandbox = not config.get("is_production", True)
        self.timeout = float(config.get("timeout") or settings.HTTP_TIMEOUT_SECONDS)
        self.signature: Optional[SignatureStrategy] = self.build_signature()
        self.logger = get_logger(__name__).bind(provider=self.provider.value)

    # ------------------------------------------------------------------
    # provider data hooks
    # ------------------------------------------------------------------
    def build_signature(self) -> Optional[SignatureStrategy]:
        """Signature strategy for callbacks; None when the provider signs nothing."""
        return None

    @property
    def base_url(self) -> str:
        if self.sandbox and self.sandbox_url:
            return self.sandbox_url
        return self.production_url

    def auth(self) -> Optional[Union[httpx.Auth, Tuple[str, str]]]:
        return None

    def default_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    def error_message(self, body: Any) -> Optional[str]:
        """Pull the provider's error text out of a response body."""
        if isinstance(body, str):
            return body.strip() or None
        if not isinstance(body, Mapping):
            return None
        for key in ("message", "error_description", "description", "status_message", "errors", "error"):
            value = body.get(key)
            if isinstance(value, Mapping):
                value = value.get("description") or value.get("message")
            if value:
                return value if isinstance(value, str) else json.dumps(value)
        return None

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        content: Optional[Union[str, bytes]] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """One round trip to the provider. Non-2xx and network errors raise UpstreamRequestError."""
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        merged = {**self.default_headers(), **(headers or {})}
        if data is not None:
            merged["Content-Type"] = "application/x-www-form-urlencoded"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport, auth=self.auth()) as client:
                r = await client.request(
                    method, url, json=json, data=data, content=content, params=params, headers=merged
                )
        except httpx.HTTPError as e:
            raise UpstreamRequestError(str(e) or e.__class__.__name__, provider=self.provider.value) from e

        try:
            body = r.json()
        except ValueError:
            body = r.text
        if r.is_error:
            message = self.error_message(body) or f"HTTP {r.status_code}"
            raise UpstreamRequestError(message, provider=self.provider.value, status_code=r.status_code)
        return body

    def _fail(self, body: Any, fallback: str) -> UpstreamRequestError:
        """Error for a 2xx response whose body reports a failure."""
        return UpstreamRequestError(self.error_message(body) or fallback, provider=self.provider.value)

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------
    @abstractmethod
    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        """
        Build and send the provider's create call.

        Returns:
            provider specific ids / redirect URL for CreatePaymentResponse.data
        """

    async def create_payment(self, request: PaymentRequest) -> CreatePaymentResponse:
        """
        Create a payment.

        Returns:
            CreatePaymentResponse with ``data.order_id`` equal to the request's
            order id plus provider specific fields (``url``, payment ids, ...)

        Raises:
            UpstreamRequestError: network failure or rejected by the provider
        """
        try:
            data = await self._create(request)
        except UpstreamRequestError as e:
            self.logger.warning(
                "payment_creation_failed",
                order_id=request.order_id,
                error=e.message,
                status_code=e.status_code,
            )
            raise
        data.setdefault("order_id", request.order_id)
        self.logger.info("payment_created", order_id=request.order_id)
        return CreatePaymentResponse(data=data)

    def currency_for(self, request: PaymentRequest) -> Optional[str]:
        return request.currency or self.default_currency

    def wire_amount(self, amount: Any) -> Union[int, float]:
        """Wire amount in a JSON-serializable form."""
        value = self.amount_unit.to_wire(amount)
        return value if isinstance(value, int) else float(value)

    # ------------------------------------------------------------------
    # callbacks
    # ------------------------------------------------------------------
    def verify_callback(self, payload: Mapping[str, Any]) -> CallbackEnvelope:
        """Authenticate a callback. Providers without signatures pass the payload through."""
        if self.signature is None:
            return CallbackEnvelope(payload=dict(payload), signature="")
        return self.signature.verify(payload)

    async def handle_callback(self, raw_payload: Any) -> PaymentResult:
        """
        Verify and normalize a provider callback.

        Raises:
            SignatureVerificationError: signature missing or wrong
            UnrecognizedCallbackError: correlation field missing
        """
        payload = decode_payload(raw_payload)
        try:
            envelope = self.verify_callback(payload)
        except SignatureVerificationError as e:
            e.provider = self.provider.value
            self.logger.warning("callback_signature_invalid", reason=str(e))
            raise

        result = await self.resolve_callback(envelope.payload)
        self.logger.info(
            "callback_normalized",
            order_id=result.order_id,
            transaction_id=result.transaction_id,
            status=result.status.value,
            raw_status=result.raw_status,
        )
        return result

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        """Derive canonical state from a verified payload. Override to fetch it instead."""
        order_id = self.require(payload, self.callback_order_field)
        return self.build_result(payload, order_id=order_id)

    def require(self, payload: Mapping[str, Any], path: str) -> str:
        value = lookup(payload, path)
        if value is None or value == "":
            raise UnrecognizedCallbackError(path, provider=self.provider.value)
        return str(value)

    def build_result(
        self,
        data: Mapping[str, Any],
        *,
        order_id: Optional[str],
        raw_status: Any = None,
        status: Optional[PaymentStatus] = None,
        transaction_id: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PaymentResult:
        """Normalize a provider record using the declared callback fields."""
        if raw_status is None:
            raw_status = lookup(data, self.callback_status_field)
        if transaction_id is None:
            transaction_id = lookup(data, self.callback_transaction_field)
        currency = lookup(data, self.callback_currency_field)
        return PaymentResult(
            status=status or self.status_table.normalize(raw_status),
            order_id=as_text(order_id),
            transaction_id=as_text(transaction_id),
            amount=self.amount_unit.from_wire(lookup(data, self.callback_amount_field)),
            currency=currency if isinstance(currency, str) and currency else self.default_currency,
            raw_status=None if raw_status is None else str(raw_status),
            metadata=metadata or {},
        )

    # ------------------------------------------------------------------
    # capabilities & sync helpers
    # ------------------------------------------------------------------
    def supports(self, capability: str) -> bool:
        """Whether this adapter implements an optional extension."""
        return capability in OPTIONAL_CAPABILITIES and callable(getattr(self, capability, None))

    def create_payment_sync(self, request: PaymentRequest) -> CreatePaymentResponse:
        # Synchronous wrapper for callers without an event loop
        return anyio.run(self.create_payment, request)

    def handle_callback_sync(self, raw_payload: Any) -> PaymentResult:
        return anyio.run(self.handle_callback, raw_payload)

    def __repr__(self):
        return f"<{self.__class__.__name__}(provider={self.provider.value}, sandbox={self.sandbox})>"
