"""Midtrans (Snap + Core API) PSP Adapter Implementation."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider
from quickpos.psp.normalization import WHOLE_UNITS, StatusTable
from quickpos.psp.signing import ConcatHashSignature
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus

# transaction_status is not covered by signature_key; the signed status_code must agree
SIGNED_STATUS_CODES = {
    PaymentStatus.SUCCESS: "200",
    PaymentStatus.PENDING: "201",
}


class MidtransAdapter(BasePaymentAdapter):
    """
    Notifications carry signature_key =
    SHA512(order_id + status_code + gross_amount + server_key).
    """

    provider = PSPProvider.MIDTRANS
    required_fields = ("server_key", "client_key")
    production_url = "https://app.midtrans.com/snap/v1"
    sandbox_url = "https://app.sandbox.midtrans.com/snap/v1"
    amount_unit = WHOLE_UNITS  # IDR has no minor unit on the wire
    default_currency = "IDR"

    status_table = StatusTable({
        "capture": PaymentStatus.SUCCESS,
        "settlement": PaymentStatus.SUCCESS,
        "pending": PaymentStatus.PENDING,
        "authorize": PaymentStatus.PENDING,
        "deny": PaymentStatus.FAILED,
        "failure": PaymentStatus.FAILED,
        "expire": PaymentStatus.FAILED,
        "cancel": PaymentStatus.CANCELLED,
        "refund": PaymentStatus.REFUNDED,
        "partial_refund": PaymentStatus.REFUNDED,
        "chargeback": PaymentStatus.DISPUTED,
        "partial_chargeback": PaymentStatus.DISPUTED,
    })

    callback_transaction_field = "transaction_id"
    callback_status_field = "transaction_status"
    callback_amount_field = "gross_amount"

    @property
    def core_url(self) -> str:
        return "https://api.sandbox.midtrans.com/v2" if self.sandbox else "https://api.midtrans.com/v2"

    def build_signature(self):
        return ConcatHashSignature(
            self.config["server_key"],
            ["order_id", "status_code", "gross_amount"],
            algorithm="sha512",
            signature_field="signature_key",
        )

    def auth(self):
        # server key as username, empty password
        return (self.config["server_key"], "")

    def error_message(self, body: Any) -> Optional[str]:
        if isinstance(body, dict) and isinstance(body.get("error_messages"), list):
            return "; ".join(str(m) for m in body["error_messages"])
        return super().error_message(body)

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        gross_amount = self.wire_amount(request.amount)
        payload = {
            "transaction_details": {
                "order_id": request.order_id,
                "gross_amount": gross_amount,
            },
            "customer_details": {
                "first_name": request.name or "Customer",
                "email": request.email,
                "phone": request.phone,
            },
            "item_details": request.metadata.get("items") or [{
                "id": f"ITEM-{request.order_id}",
                "price": gross_amount,
                "quantity": 1,
                "name": request.label,
            }],
        }
        if request.callback_url:
            payload["callbacks"] = {"finish": request.callback_url}

        data = await self._request("POST", "/transactions", json=payload)
        if not isinstance(data, dict) or not data.get("token"):
            raise self._fail(data, "Payment creation failed")
        return {
            "order_id": request.order_id,
            "token": data["token"],
            "url": data.get("redirect_url"),
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        order_id = self.require(payload, "order_id")
        result = self._transaction_result(payload, order_id)
        expected = SIGNED_STATUS_CODES.get(result.status)
        if expected is not None and str(payload.get("status_code")) != expected:
            self.logger.warning(
                "callback_status_mismatch",
                order_id=order_id,
                raw_status=result.raw_status,
                status_code=payload.get("status_code"),
            )
            return result.model_copy(update={"status": PaymentStatus.UNKNOWN})
        return result

    def _transaction_result(self, data: Dict[str, Any], order_id: Optional[str]) -> PaymentResult:
        raw_status = data.get("transaction_status")
        fraud_status = data.get("fraud_status")
        status = None
        # card captures flagged by the fraud detection system are not paid yet
        if raw_status == "capture" and fraud_status == "challenge":
            status = PaymentStatus.PENDING
        elif raw_status == "capture" and fraud_status == "deny":
            status = PaymentStatus.FAILED
        return self.build_result(
            data,
            order_id=order_id,
            status=status,
            metadata={
                "payment_type": data.get("payment_type"),
                "fraud_status": fraud_status,
                "transaction_time": data.get("transaction_time"),
            },
        )

    async def get_status(self, order_id: str) -> PaymentResult:
        data = await self._request("GET", f"{self.core_url}/{order_id}/status")
        if not isinstance(data, dict):
            return PaymentResult(status=PaymentStatus.UNKNOWN, order_id=order_id)
        return self._transaction_result(data, data.get("order_id") or order_id)

    async def refund(self, order_id: str, amount=None, reason: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "refund_key": f"refund-{order_id}-{int(time.time() * 1000)}",
            "reason": reason or "Customer request",
        }
        if amount is not None:
            body["amount"] = self.wire_amount(amount)
        data = await self._request("POST", f"{self.core_url}/{order_id}/refund", json=body)
        if not isinstance(data, dict):
            raise self._fail(data, "Invalid refund response")
        return {
            "refund_key": body["refund_key"],
            "status": data.get("transaction_status") or data.get("status_message"),
            "amount": self.amount_unit.from_wire(data.get("refund_amount")),
            "raw": data,
        }
