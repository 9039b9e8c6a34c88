"""Xendit PSP Adapter Implementation."""
from __future__ import annotations

from typing import Any, Dict

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider, as_text, lookup
from quickpos.psp.errors import UnrecognizedCallbackError
from quickpos.psp.normalization import MAJOR_UNITS, StatusTable
from quickpos.psp.signing import CallbackTokenSignature
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus


class XenditAdapter(BasePaymentAdapter):
    """
    Invoices API. Xendit authenticates callbacks with a static verification
    token (X-CALLBACK-TOKEN header); the routing layer passes it through as
    the ``callback_token`` field of the payload.
    """

    provider = PSPProvider.XENDIT
    required_fields = ("api_key", "webhook_token")
    production_url = "https://api.xendit.co"
    amount_unit = MAJOR_UNITS
    default_currency = "IDR"

    status_table = StatusTable({
        "PAID": PaymentStatus.SUCCESS,
        "SETTLED": PaymentStatus.SUCCESS,
        "SUCCEEDED": PaymentStatus.SUCCESS,
        "PENDING": PaymentStatus.PENDING,
        "ACTIVE": PaymentStatus.PENDING,
        "EXPIRED": PaymentStatus.FAILED,
        "FAILED": PaymentStatus.FAILED,
        "VOIDED": PaymentStatus.CANCELLED,
        "REFUNDED": PaymentStatus.REFUNDED,
    }, case_sensitive=False)

    callback_order_field = "external_id"
    callback_transaction_field = "id"

    def build_signature(self):
        return CallbackTokenSignature(self.config["webhook_token"], signature_field="callback_token")

    def auth(self):
        # secret key as username, empty password
        return (self.config["api_key"], "")

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        amount = self.wire_amount(request.amount)
        payload = {
            "external_id": request.order_id,
            "amount": amount,
            "payer_email": request.email or "",
            "description": request.label,
            "currency": self.currency_for(request),
            "success_redirect_url": request.success_url or request.callback_url,
            "failure_redirect_url": request.fail_url or request.callback_url,
            "customer": {
                "given_names": request.name or "",
                "email": request.email or "",
                "mobile_number": request.phone or "",
            },
            "items": request.metadata.get("items") or [
                {"name": request.label, "quantity": 1, "price": amount}
            ],
        }
        data = await self._request("POST", "/v2/invoices", json=payload)
        if not isinstance(data, dict) or not data.get("id"):
            raise self._fail(data, "Invalid invoice response")
        return {
            "order_id": request.order_id,
            "id": data["id"],
            "url": data.get("invoice_url"),
            "amount": data.get("amount"),
            "currency": data.get("currency"),
            "status": data.get("status"),
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        if payload.get("external_id"):
            # invoice / virtual account callback
            return self.build_result(
                payload,
                order_id=str(payload["external_id"]),
                metadata={"paid_amount": payload.get("paid_amount"), "payment_method": payload.get("payment_method")},
            )

        # e-wallet charge callbacks nest the charge under "data"
        charge = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        order_id = lookup(charge, "reference_id")
        if not order_id:
            raise UnrecognizedCallbackError("external_id", provider=self.provider.value)
        return PaymentResult(
            status=self.status_table.normalize(charge.get("status")),
            order_id=str(order_id),
            transaction_id=as_text(charge.get("id")),
            amount=self.amount_unit.from_wire(charge.get("charge_amount")),
            currency=charge.get("currency") or self.default_currency,
            raw_status=as_text(charge.get("status")),
            metadata={"channel_code": charge.get("channel_code")},
        )

    async def get_status(self, invoice_id: str) -> PaymentResult:
        data = await self._request("GET", f"/v2/invoices/{invoice_id}")
        if not isinstance(data, dict):
            return PaymentResult(status=PaymentStatus.UNKNOWN, transaction_id=invoice_id)
        return self.build_result(data, order_id=data.get("external_id"))
