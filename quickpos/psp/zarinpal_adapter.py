"""Zarinpal (Iran) PSP Adapter Implementation."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider, build_url, lookup
from quickpos.psp.normalization import AmountUnit, StatusTable
from quickpos.schemas_pkg.payments import PaymentRequest, PaymentResult, PaymentStatus

# code 100: verified now, 101: verified earlier
VERIFIED_CODES = (100, 101)


class ZarinpalAdapter(BasePaymentAdapter):
    """
    Amounts are taken in Toman and sent in Rial (x10).

    The return redirect carries only Authority and Status and is not signed,
    so a callback never yields more than ``pending``; call verify_payment()
    with the expected amount to settle the payment server-side.
    """

    provider = PSPProvider.ZARINPAL
    required_fields = ("merchant_id",)
    production_url = "https://api.zarinpal.com/pg/v4/payment"
    sandbox_url = "https://sandbox.zarinpal.com/pg/v4/payment"
    amount_unit = AmountUnit(multiplier=10, places=0)
    default_currency = "IRT"

    status_table = StatusTable({
        "OK": PaymentStatus.PENDING,
        "NOK": PaymentStatus.FAILED,
    }, case_sensitive=False)

    callback_transaction_field = "Authority"
    callback_status_field = "Status"
    callback_amount_field = None
    callback_currency_field = None

    @property
    def start_pay_url(self) -> str:
        return "https://sandbox.zarinpal.com/pg/StartPay" if self.sandbox else "https://www.zarinpal.com/pg/StartPay"

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        payload = {
            "merchant_id": self.config["merchant_id"],
            "amount": self.wire_amount(request.amount),
            "currency": "IRR",
            "description": request.label,
            # order_id rides along so the return redirect can be correlated
            "callback_url": build_url(request.callback_url or "", {"order_id": request.order_id}),
            "metadata": {
                "email": request.email or "",
                "mobile": request.phone or "",
                "order_id": request.order_id,
            },
        }
        data = await self._request("POST", "/request.json", json=payload)
        if lookup(data, "data.code") != 100 or not lookup(data, "data.authority"):
            raise self._fail(data, "Payment creation failed")
        authority = data["data"]["authority"]
        return {
            "order_id": request.order_id,
            "authority": authority,
            "url": f"{self.start_pay_url}/{authority}",
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        authority = self.require(payload, "Authority")
        return self.build_result(
            payload,
            order_id=payload.get("order_id") or None,
            transaction_id=authority,
            metadata={"needs_verification": True},
        )

    async def verify_payment(self, authority: str, amount) -> PaymentResult:
        """Settle a payment; ``amount`` is the expected amount in Toman."""
        data = await self._request("POST", "/verify.json", json={
            "merchant_id": self.config["merchant_id"],
            "authority": authority,
            "amount": self.wire_amount(amount),
        })
        code = lookup(data, "data.code")
        if code in VERIFIED_CODES:
            status = PaymentStatus.SUCCESS
        elif code is None:
            status = PaymentStatus.UNKNOWN
        else:
            status = PaymentStatus.FAILED
        return PaymentResult(
            status=status,
            transaction_id=authority,
            amount=Decimal(str(amount)),
            currency=self.default_currency,
            raw_status=None if code is None else str(code),
            metadata={
                "ref_id": lookup(data, "data.ref_id"),
                "card_pan": lookup(data, "data.card_pan"),
                "card_hash": lookup(data, "data.card_hash"),
                "fee_type": lookup(data, "data.fee_type"),
                "fee": self.amount_unit.from_wire(lookup(data, "data.fee")),
                "already_verified": code == 101,
            },
        )
