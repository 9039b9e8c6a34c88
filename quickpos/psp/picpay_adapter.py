"""PicPay (Brazil) PSP Adapter Implementation."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider
from quickpos.psp.normalization import MAJOR_UNITS, StatusTable
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus


class PicPayAdapter(BasePaymentAdapter):
    """
    E-commerce API. Callbacks only name the referenceId; the status is always
    read back through the authenticated status endpoint, never from the body.
    """

    provider = PSPProvider.PICPAY
    required_fields = ("token", "seller_token")
    production_url = "https://appws.picpay.com/ecommerce/public"
    amount_unit = MAJOR_UNITS
    default_currency = "BRL"

    status_table = StatusTable({
        "paid": PaymentStatus.SUCCESS,
        "completed": PaymentStatus.SUCCESS,
        "created": PaymentStatus.PENDING,
        "analysis": PaymentStatus.PENDING,
        "expired": PaymentStatus.FAILED,
        "refunded": PaymentStatus.REFUNDED,
        "chargeback": PaymentStatus.DISPUTED,
    })

    callback_order_field = "referenceId"
    callback_transaction_field = "authorizationId"
    callback_amount_field = "value"
    callback_currency_field = None

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["x-picpay-token"] = self.config["token"]
        headers["x-seller-token"] = self.config["seller_token"]
        return headers

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        first, _, last = (request.name or "").partition(" ")
        expires_at = request.metadata.get("expires_at") or (
            datetime.now(timezone.utc) + timedelta(days=1)
        ).isoformat()
        payload = {
            "referenceId": request.order_id,
            "callbackUrl": request.callback_url,
            "returnUrl": request.success_url or request.callback_url,
            "value": self.wire_amount(request.amount),
            "expiresAt": expires_at,
            "buyer": {
                "firstName": first,
                "lastName": last,
                "document": request.metadata.get("document", ""),
                "email": request.email or "",
                "phone": request.phone or "",
            },
        }
        data = await self._request("POST", "/payments", json=payload)
        if not isinstance(data, dict) or not data.get("paymentUrl"):
            raise self._fail(data, "Payment creation failed")
        return {
            "order_id": request.order_id,
            "url": data["paymentUrl"],
            "qrcode": data.get("qrcode"),
            "expires_at": data.get("expiresAt"),
            "amount": request.amount,
            "currency": self.default_currency,
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        reference_id = self.require(payload, "referenceId")
        return await self.get_status(reference_id)

    async def get_status(self, reference_id: str) -> PaymentResult:
        data = await self._request("GET", f"/payments/{reference_id}/status")
        if not isinstance(data, dict):
            return PaymentResult(status=PaymentStatus.UNKNOWN, order_id=reference_id, currency=self.default_currency)
        return self.build_result(data, order_id=data.get("referenceId") or reference_id)

    async def refund(self, reference_id: str, authorization_id: Optional[str] = None) -> Dict[str, Any]:
        """Cancel the payment; PicPay refunds it when already paid."""
        body = {"authorizationId": authorization_id} if authorization_id else {}
        data = await self._request("POST", f"/payments/{reference_id}/cancellations", json=body)
        if not isinstance(data, dict):
            raise self._fail(data, "Invalid cancellation response")
        return {
            "cancellation_id": data.get("cancellationId"),
            "reference_id": data.get("referenceId") or reference_id,
            "raw": data,
        }
