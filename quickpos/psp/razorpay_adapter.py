"""Razorpay PSP Adapter Implementation."""
from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Dict, Optional

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider
from quickpos.psp.errors import ConfigurationError, SignatureVerificationError
from quickpos.psp.normalization import MINOR_UNITS, StatusTable
from quickpos.psp.signing import ConcatHashSignature
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus


class RazorpayAdapter(BasePaymentAdapter):
    """
    Razorpay orders + Checkout.js.

    The checkout handler posts back razorpay_order_id, razorpay_payment_id and
    razorpay_signature = HMAC-SHA256(key_secret, "order_id|payment_id"). After
    verification the payment itself is fetched for its canonical state.
    """

    provider = PSPProvider.RAZORPAY
    required_fields = ("key_id", "key_secret")
    production_url = "https://api.razorpay.com/v1"
    amount_unit = MINOR_UNITS  # paise
    default_currency = "INR"

    status_table = StatusTable({
        "created": PaymentStatus.PENDING,
        "authorized": PaymentStatus.SUCCESS,
        "captured": PaymentStatus.SUCCESS,
        "refunded": PaymentStatus.REFUNDED,
        "failed": PaymentStatus.FAILED,
    })

    callback_order_field = "razorpay_order_id"
    callback_transaction_field = "id"

    def build_signature(self):
        return ConcatHashSignature(
            self.config["key_secret"],
            ["razorpay_order_id", "razorpay_payment_id"],
            algorithm="sha256",
            separator="|",
            use_hmac=True,
            signature_field="razorpay_signature",
        )

    def auth(self):
        return (self.config["key_id"], self.config["key_secret"])

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        payload = {
            "amount": self.wire_amount(request.amount),
            "currency": (self.currency_for(request) or "").upper(),
            "receipt": request.order_id,
            "payment_capture": 1,
            "notes": {
                "order_id": request.order_id,
                "description": request.label,
                "customer_name": request.name or "",
                "customer_email": request.email or "",
                "customer_phone": request.phone or "",
            },
        }
        data = await self._request("POST", "/orders", json=payload)
        if not isinstance(data, dict) or not data.get("id"):
            raise self._fail(data, "Invalid order response")
        return {
            "order_id": request.order_id,
            "razorpay_order_id": data["id"],
            "amount": self.amount_unit.from_wire(data.get("amount")),
            "currency": data.get("currency"),
            "status": data.get("status"),
            # needed by Checkout.js on the frontend
            "key_id": self.config["key_id"],
            "callback_url": request.callback_url,
            "prefill": {
                "name": request.name or "",
                "email": request.email or "",
                "contact": request.phone or "",
            },
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        payment_id = self.require(payload, "razorpay_payment_id")
        razorpay_order_id = self.require(payload, "razorpay_order_id")
        payment = await self._request("GET", f"/payments/{payment_id}")
        return self._payment_result(payment, fallback_order_id=razorpay_order_id)

    def _payment_result(self, payment: Any, fallback_order_id: Optional[str] = None) -> PaymentResult:
        if not isinstance(payment, dict):
            return PaymentResult(status=PaymentStatus.UNKNOWN, order_id=fallback_order_id)
        notes = payment.get("notes") if isinstance(payment.get("notes"), dict) else {}
        return self.build_result(
            payment,
            order_id=notes.get("order_id") or payment.get("order_id") or fallback_order_id,
            metadata={
                "razorpay_order_id": payment.get("order_id"),
                "method": payment.get("method"),
                "email": payment.get("email"),
                "contact": payment.get("contact"),
                "fee": self.amount_unit.from_wire(payment.get("fee")),
                "tax": self.amount_unit.from_wire(payment.get("tax")),
            },
        )

    async def get_status(self, payment_id: str) -> PaymentResult:
        """Fetch a payment and normalize it."""
        payment = await self._request("GET", f"/payments/{payment_id}")
        return self._payment_result(payment)

    async def refund(self, payment_id: str, amount=None, speed: str = "normal", notes: Optional[dict] = None) -> Dict[str, Any]:
        """Refund a captured payment, fully when ``amount`` is None."""
        body: Dict[str, Any] = {"speed": speed, "notes": notes or {}}
        if amount is not None:
            body["amount"] = self.wire_amount(amount)
        refund = await self._request("POST", f"/payments/{payment_id}/refund", json=body)
        if not isinstance(refund, dict):
            raise self._fail(refund, "Invalid refund response")
        return {
            "refund_id": refund.get("id"),
            "status": refund.get("status"),
            "amount": self.amount_unit.from_wire(refund.get("amount")),
            "raw": refund,
        }

    def verify_webhook(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Validate a server-to-server webhook (X-Razorpay-Signature header) and
        return the parsed event. Needs ``webhook_secret`` in the config.
        """
        secret = self.config.get("webhook_secret")
        if not secret:
            raise ConfigurationError("webhook_secret", provider=self.provider.value)
        if not signature:
            raise SignatureVerificationError("Missing signature", provider=self.provider.value)
        digest = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(digest, signature):
            raise SignatureVerificationError("Invalid signature", provider=self.provider.value)
        return json.loads(payload.decode())
