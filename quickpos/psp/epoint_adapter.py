"""Epoint (Azerbaijan) PSP Adapter Implementation."""
from __future__ import annotations

from typing import Any, Dict

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider
from quickpos.psp.normalization import MINOR_UNITS, StatusTable
from quickpos.psp.signing import HmacQuerySignature
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus


class EpointAdapter(BasePaymentAdapter):
    """Requests and callbacks are both signed with an upper-case sorted-query HMAC-SHA256."""

    provider = PSPProvider.EPOINT
    required_fields = ("merchant_id", "private_key")
    production_url = "https://epoint.az/api"
    amount_unit = MINOR_UNITS
    default_currency = "AZN"

    status_table = StatusTable({
        "success": PaymentStatus.SUCCESS,
        "completed": PaymentStatus.SUCCESS,
        "pending": PaymentStatus.PENDING,
        "failed": PaymentStatus.FAILED,
        "cancelled": PaymentStatus.CANCELLED,
        "refunded": PaymentStatus.REFUNDED,
    }, case_sensitive=False)

    callback_transaction_field = "payment_id"

    def build_signature(self):
        return HmacQuerySignature(
            self.config["private_key"],
            uppercase=True,
            required=("order_id", "status", "amount"),
        )

    def _signed(self, data: Dict[str, Any]) -> Dict[str, Any]:
        # outbound bodies carry no status, so sign without the callback field checks
        signer = HmacQuerySignature(self.config["private_key"], uppercase=True)
        data["signature"] = signer.sign(data)
        return data

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        callback = request.callback_url
        payload = self._signed({
            "merchant_id": self.config["merchant_id"],
            "order_id": request.order_id,
            "amount": self.wire_amount(request.amount),
            "currency": self.currency_for(request),
            "description": request.label,
            "success_url": request.success_url or callback,
            "fail_url": request.fail_url or callback,
            "callback_url": callback,
            "language": request.metadata.get("language", "az"),
            "email": request.email or "",
            "phone": request.phone or "",
        })
        data = await self._request("POST", "/payment/create", json=payload)
        if not isinstance(data, dict) or not data.get("success"):
            raise self._fail(data, "Payment creation failed")
        result = data.get("data") or {}
        return {
            "order_id": request.order_id,
            "url": result.get("payment_url"),
            "payment_id": result.get("payment_id"),
            "amount": request.amount,
            "currency": payload["currency"],
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        order_id = self.require(payload, "order_id")
        return self.build_result(
            payload, order_id=order_id, metadata={"payment_method": payload.get("payment_method")}
        )

    async def get_status(self, payment_id: str) -> PaymentResult:
        body = self._signed({"merchant_id": self.config["merchant_id"], "payment_id": payment_id})
        data = await self._request("POST", "/payment/status", json=body)
        record = data.get("data") if isinstance(data, dict) and isinstance(data.get("data"), dict) else data
        if not isinstance(record, dict):
            return PaymentResult(status=PaymentStatus.UNKNOWN, transaction_id=payment_id)
        return self.build_result(record, order_id=record.get("order_id"), transaction_id=payment_id)
