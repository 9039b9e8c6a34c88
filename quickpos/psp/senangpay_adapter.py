"""SenangPay (Malaysia) PSP Adapter Implementation."""
from __future__ import annotations

from typing import Any, Dict

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider, build_url
from quickpos.psp.normalization import MAJOR_UNITS, StatusTable
from quickpos.psp.signing import SECRET, ConcatHashSignature
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus


class SenangPayAdapter(BasePaymentAdapter):
    """
    Hosted payment page. The redirect URL is signed with
    MD5(secret + detail + amount + order_id); the return/callback with
    MD5(secret + status_id + order_id + transaction_id + msg).
    """

    provider = PSPProvider.SENANGPAY
    required_fields = ("merchant_id", "secret_key")
    production_url = "https://app.senangpay.my/payment"
    sandbox_url = "https://sandbox.senangpay.my/payment"
    amount_unit = MAJOR_UNITS
    default_currency = "MYR"

    status_table = StatusTable({
        "1": PaymentStatus.SUCCESS,
        "0": PaymentStatus.FAILED,
        "2": PaymentStatus.PENDING,
    })

    callback_transaction_field = "transaction_id"
    callback_status_field = "status_id"
    callback_currency_field = None

    def build_signature(self):
        return ConcatHashSignature(
            self.config["secret_key"],
            [SECRET, "status_id", "order_id", "transaction_id", "msg"],
            algorithm="md5",
            signature_field="hash",
        )

    def _payment_hash(self, fields: Dict[str, Any]) -> str:
        signer = ConcatHashSignature(self.config["secret_key"], [SECRET, "detail", "amount", "order_id"])
        return signer.sign(fields)

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        params = {
            "detail": request.label,
            "amount": self.amount_unit.format_wire(request.amount),
            "order_id": request.order_id,
            "name": request.name or "",
            "email": request.email or "",
            "phone": request.phone or "",
        }
        params["hash"] = self._payment_hash(params)
        return {
            "order_id": request.order_id,
            "url": build_url(f"{self.base_url}/{self.config['merchant_id']}", params),
            "amount": params["amount"],
            "currency": self.default_currency,
            "hash": params["hash"],
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        order_id = self.require(payload, "order_id")
        return self.build_result(payload, order_id=order_id, metadata={"message": payload.get("msg")})
