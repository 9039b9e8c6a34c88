"""Heleket (crypto invoices) PSP Adapter Implementation."""
from __future__ import annotations

from typing import Any, Dict

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider
from quickpos.psp.normalization import MAJOR_UNITS, StatusTable
from quickpos.psp.signing import EncodedPayloadSignature
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus


class HeleketAdapter(BasePaymentAdapter):
    """
    Every request body is signed as MD5(base64(json) + api_key) and sent in
    the ``sign`` header together with the ``merchant`` id. Webhooks carry the
    same digest in their ``sign`` field, computed over the body without it.
    """

    provider = PSPProvider.HELEKET
    required_fields = ("merchant_id", "api_key")
    production_url = "https://api.heleket.com"
    amount_unit = MAJOR_UNITS
    default_currency = "USD"

    status_table = StatusTable({
        "paid": PaymentStatus.SUCCESS,
        "paid_over": PaymentStatus.SUCCESS,
        "process": PaymentStatus.PENDING,
        "check": PaymentStatus.PENDING,
        "confirm_check": PaymentStatus.PENDING,
        "wrong_amount_waiting": PaymentStatus.PENDING,
        "wrong_amount": PaymentStatus.FAILED,
        "fail": PaymentStatus.FAILED,
        "system_fail": PaymentStatus.FAILED,
        "cancel": PaymentStatus.CANCELLED,
        "refund_paid": PaymentStatus.REFUNDED,
        "locked": PaymentStatus.DISPUTED,
    })

    callback_transaction_field = "uuid"

    @property
    def base_url(self) -> str:
        return self.config.get("base_url") or self.production_url

    def build_signature(self):
        return EncodedPayloadSignature(self.config["api_key"], algorithm="md5", signature_field="sign")

    async def _signed_post(self, path: str, body: Dict[str, Any]) -> Any:
        content = self.signature.serialize(body)
        headers = {"merchant": self.config["merchant_id"], "sign": self.signature.sign_body(content)}
        data = await self._request("POST", path, content=content, headers=headers)
        if not isinstance(data, dict) or data.get("state") not in (0, "0") or not isinstance(data.get("result"), dict):
            raise self._fail(data, "Request rejected")
        return data["result"]

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        body = {
            "amount": self.amount_unit.format_wire(request.amount),
            "currency": self.currency_for(request),
            "order_id": request.order_id,
            "url_callback": request.callback_url,
            "url_return": request.fail_url or request.success_url,
            "url_success": request.success_url,
            "network": request.metadata.get("network"),
            "to_currency": request.metadata.get("to_currency"),
        }
        result = await self._signed_post("/v1/payment", {k: v for k, v in body.items() if v is not None})
        return {
            "order_id": request.order_id,
            "uuid": result.get("uuid"),
            "url": result.get("url"),
            "amount": result.get("amount"),
            "currency": result.get("currency"),
            "status": result.get("payment_status") or result.get("status"),
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        order_id = self.require(payload, "order_id")
        return self.build_result(
            payload,
            order_id=order_id,
            metadata={"network": payload.get("network"), "payer_currency": payload.get("payer_currency")},
        )

    async def get_status(self, uuid: str) -> PaymentResult:
        result = await self._signed_post("/v1/payment/info", {"uuid": uuid})
        return self.build_result(
            result,
            order_id=result.get("order_id"),
            raw_status=result.get("payment_status") or result.get("status"),
        )
