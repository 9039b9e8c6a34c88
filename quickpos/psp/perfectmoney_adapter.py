"""Perfect Money PSP Adapter Implementation."""
from __future__ import annotations

import hashlib
from typing import Any, Dict

from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider, build_url
from quickpos.psp.errors import SignatureVerificationError
from quickpos.psp.normalization import MAJOR_UNITS, StatusTable
from quickpos.psp.signing import SECRET, ConcatHashSignature
from quickpos.schemas_pkg.payments import CallbackEnvelope, PaymentRequest, PaymentResult, PaymentStatus

# the status URL is only called for completed payments
NOTIFIED = "completed"

V2_HASH_FIELDS = [
    "PAYMENT_ID",
    "PAYEE_ACCOUNT",
    "PAYMENT_AMOUNT",
    "PAYMENT_UNITS",
    "PAYMENT_BATCH_NUM",
    "PAYER_ACCOUNT",
    SECRET,
    "TIMESTAMPGMT",
]


class PerfectMoneyAdapter(BasePaymentAdapter):
    """
    SCI payment form. Status notifications carry V2_HASH, an upper-case MD5
    over ``:``-joined fields where the secret slot holds
    upper(MD5(alternate passphrase)).
    """

    provider = PSPProvider.PERFECTMONEY
    required_fields = ("account_id", "pass_phrase")
    production_url = "https://perfectmoney.com/api"
    amount_unit = MAJOR_UNITS
    default_currency = "USD"

    status_table = StatusTable({NOTIFIED: PaymentStatus.SUCCESS})

    callback_order_field = "PAYMENT_ID"
    callback_transaction_field = "PAYMENT_BATCH_NUM"
    callback_amount_field = "PAYMENT_AMOUNT"
    callback_currency_field = "PAYMENT_UNITS"

    @property
    def payee_account(self) -> str:
        return self.config.get("payee_account") or self.config["account_id"]

    def build_signature(self):
        phrase = self.config.get("alternate_pass_phrase") or self.config["pass_phrase"]
        secret = hashlib.md5(phrase.encode("utf-8")).hexdigest().upper()
        return ConcatHashSignature(
            secret, V2_HASH_FIELDS, separator=":", uppercase=True, signature_field="V2_HASH"
        )

    def verify_callback(self, payload: Dict[str, Any]) -> CallbackEnvelope:
        envelope = super().verify_callback(payload)
        if envelope.payload.get("PAYEE_ACCOUNT") != self.payee_account:
            raise SignatureVerificationError("Payment credited to another account")
        return envelope

    async def _create(self, request: PaymentRequest) -> Dict[str, Any]:
        callback = request.callback_url
        params = {
            "PAYEE_ACCOUNT": self.payee_account,
            "PAYEE_NAME": request.metadata.get("payee_name", "Merchant"),
            "PAYMENT_ID": request.order_id,
            "PAYMENT_AMOUNT": self.amount_unit.format_wire(request.amount),
            "PAYMENT_UNITS": self.currency_for(request),
            "STATUS_URL": callback,
            "PAYMENT_URL": request.success_url or callback,
            "PAYMENT_URL_METHOD": "GET",
            "NOPAYMENT_URL": request.fail_url or callback,
            "NOPAYMENT_URL_METHOD": "GET",
            "SUGGESTED_MEMO": request.label,
            "BAGGAGE_FIELDS": f"email={request.email or ''}&name={request.name or ''}",
        }
        return {
            "order_id": request.order_id,
            "url": build_url(f"{self.base_url}/step1.asp", params),
            "amount": params["PAYMENT_AMOUNT"],
            "currency": params["PAYMENT_UNITS"],
            "payee_account": self.payee_account,
        }

    async def resolve_callback(self, payload: Dict[str, Any]) -> PaymentResult:
        order_id = self.require(payload, self.callback_order_field)
        return self.build_result(
            payload,
            order_id=order_id,
            raw_status=NOTIFIED,
            metadata={
                "payer_account": payload.get("PAYER_ACCOUNT"),
                "timestamp_gmt": payload.get("TIMESTAMPGMT"),
            },
        )
