"""FreeKassa PSP Adapter Implementation."""
from __future__ import annotations

from typing import Any, Dict

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider, build_url
from quickpos.psp.errors import SignatureVerificationError
from quickpos.psp.normalization import MAJOR_UNITS, StatusTable
from quickpos.psp.signing import SECRET, ConcatHashSignature
from quickpos.schemas_pkg.payments import CallbackEnvelope, PaymentRequest, PaymentResult, PaymentStatus

# FreeKassa only notifies about completed payments
NOTIFIED = "paid"


class FreeKassaAdapter(BasePaymentAdapter):
    """
    Payment form signed with secret_key1, notifications with secret_key2:
    MD5("shop_id:amount:secret:order_id").
    """

    provider = PSPProvider.FREEKASSA
    required_fields = ("shop_id", "secret_key1", "secret_key2")
    production_url = "https://pay.freekassa.ru"
    amount_unit = MAJOR_UNITS
    default_currency = "RUB"

    status_table = StatusTable({NOTIFIED: PaymentStatus.SUCCESS})

    callback_order_field = "MERCHANT_ORDER_ID"
    callback_transaction_field = "intid"
    callback_amount_field = "AMOUNT"
    callback_currency_field = "MERCHANT_CURRENCY"

    def build_signature(self):
        return ConcatHashSignature(
            self.config["secret_key2"],
            ["MERCHANT_ID", "AMOUNT", SECRET, "MERCHANT_ORDER_ID"],
            separator=":",
            signature_field="SIGN",
        )

    def verify_callback(self, payload: Dict[str, Any]) -> CallbackEnvelope:
        envelope = super().verify_callback(payload)
        if str(envelope.payload.get("MERCHANT_ID")) != str(self.config["shop_id"]):
            raise SignatureVerificationError("Notification addressed to another shop")
        return envelope

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        params = {
            "m": self.config["shop_id"],
            "oa": self.amount_unit.format_wire(request.amount),
            "currency": self.currency_for(request),
            "o": request.order_id,
        }
        signer = ConcatHashSignature(self.config["secret_key1"], ["m", "oa", SECRET, "o"], separator=":")
        params["s"] = signer.sign(params)
        params.update({
            "email": request.email or "",
            "phone": request.phone or "",
            "i": request.metadata.get("payment_method", ""),
            "us_customer_name": request.name or "",
        })
        return {
            "order_id": request.order_id,
            "url": build_url(f"{self.base_url}/", params),
            "amount": params["oa"],
            "currency": params["currency"],
            "signature": params["s"],
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        order_id = self.require(payload, self.callback_order_field)
        return self.build_result(
            payload,
            order_id=order_id,
            raw_status=NOTIFIED,
            metadata={"payment_method": payload.get("CUR_ID") or payload.get("PAYMENT_ID")},
        )
