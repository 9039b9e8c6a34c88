"""Payriff PSP Adapter Implementation."""
from __future__ import annotations

from typing import Any, Dict

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider
from quickpos.psp.normalization import MAJOR_UNITS, StatusTable
from quickpos.psp.signing import ConcatHashSignature
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus


class PayriffAdapter(BasePaymentAdapter):
    """signature = upper(SHA256(merchant + order + amount + currency + secret_key))"""

    provider = PSPProvider.PAYRIFF
    required_fields = ("merchant_id", "secret_key")
    production_url = "https://api.payriff.com"
    amount_unit = MAJOR_UNITS
    default_currency = "AZN"

    status_table = StatusTable({
        "APPROVED": PaymentStatus.SUCCESS,
        "PENDING": PaymentStatus.PENDING,
        "CREATED": PaymentStatus.PENDING,
        "DECLINED": PaymentStatus.FAILED,
        "CANCELLED": PaymentStatus.CANCELLED,
        "REFUNDED": PaymentStatus.REFUNDED,
        "REVERSED": PaymentStatus.REFUNDED,
    }, case_sensitive=False)

    callback_order_field = "order"

    def build_signature(self):
        return ConcatHashSignature(
            self.config["secret_key"],
            ["merchant", "order", "amount", "currency"],
            algorithm="sha256",
            uppercase=True,
        )

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        callback = request.callback_url
        payload = {
            "merchant": self.config["merchant_id"],
            "order": request.order_id,
            "amount": self.amount_unit.format_wire(request.amount),
            "currency": self.currency_for(request),
            "description": request.label,
            "approveURL": request.success_url or callback,
            "cancelURL": request.fail_url or callback,
            "declineURL": request.fail_url or callback,
            "callbackURL": callback,
            "language": request.metadata.get("language", "AZ"),
        }
        payload["signature"] = self.signature.sign(payload)

        data = await self._request("POST", "/api/v2/createOrder", json=payload)
        if not isinstance(data, dict) or data.get("code") not in (1, "1"):
            raise self._fail(data, "Payment creation failed")
        result = data.get("payload") or {}
        return {
            "order_id": request.order_id,
            "url": result.get("redirect"),
            "session_id": result.get("sessionId"),
            "amount": request.amount,
            "currency": payload["currency"],
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        # the callback signature does not cover status, read it back from the API
        order_id = self.require(payload, "order")
        return await self.get_status(order_id)

    async def get_status(self, order_id: str) -> PaymentResult:
        data = await self._request(
            "POST", "/api/v2/getOrderStatus", json={"merchant": self.config["merchant_id"], "order": order_id}
        )
        record = data.get("payload") if isinstance(data, dict) else None
        if not isinstance(record, dict):
            return PaymentResult(status=PaymentStatus.UNKNOWN, order_id=order_id)
        return self.build_result(
            record,
            order_id=order_id,
            raw_status=record.get("orderStatus") or record.get("status"),
            transaction_id=record.get("rrn") or record.get("sessionId"),
            metadata={"card_number": record.get("cardNumber") or record.get("pan")},
        )
