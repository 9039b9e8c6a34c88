import unittest

import anyio

from quickpos.db import create_session_factory
from quickpos.models import ProcessedCallback
from quickpos.psp.dispatcher import ProviderRegistry
from quickpos.psp.errors import ProviderNotFoundError, SignatureVerificationError
from quickpos.schemas_pkg.payments import PaymentResult, PaymentStatus
from quickpos.services.callback_service import CallbackProcessor, event_key

XENDIT = {"api_key": "xnd", "webhook_token": "tok"}


def invoice(status="PAID", invoice_id="inv1", token="tok"):
    return {"external_id": "X-1", "id": invoice_id, "status": status, "amount": 50000, "callback_token": token}


class TestCallbackProcessor(unittest.TestCase):
    def setUp(self):
        self.session_factory = create_session_factory("sqlite://")
        self.registry = ProviderRegistry.from_config({"xendit": XENDIT})
        self.fulfilled = []
        self.processor = CallbackProcessor(self.registry, self.session_factory, on_success=self.on_success)

    def on_success(self, provider, result):
        self.fulfilled.append((provider, result.order_id))

    def rows(self):
        db = self.session_factory()
        try:
            return db.query(ProcessedCallback).all()
        finally:
            db.close()

    def test_success_fires_hook_once(self):
        first = self.processor.process_sync("xendit", invoice())
        self.assertFalse(first.duplicate)
        self.assertTrue(first.fulfilled)
        self.assertEqual(first.event_key, "xendit:success:inv1")

        second = self.processor.process_sync("xendit", invoice())
        self.assertTrue(second.duplicate)
        self.assertFalse(second.fulfilled)
        self.assertEqual(second.result.status, PaymentStatus.SUCCESS)
        self.assertEqual(second.result, first.result)

        self.assertEqual(self.fulfilled, [("xendit", "X-1")])
        rows = self.rows()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].order_id, "X-1")
        self.assertEqual(rows[0].payload["amount"], "50000")

    def test_pending_then_success(self):
        pending = self.processor.process_sync("xendit", invoice(status="PENDING"))
        self.assertFalse(pending.fulfilled)
        self.assertEqual(self.fulfilled, [])

        paid = self.processor.process_sync("xendit", invoice())
        self.assertTrue(paid.fulfilled)
        self.assertEqual(len(self.rows()), 2)

    def test_invalid_signature_not_recorded(self):
        with self.assertRaises(SignatureVerificationError):
            self.processor.process_sync("xendit", invoice(token="forged"))
        self.assertEqual(self.rows(), [])
        self.assertEqual(self.fulfilled, [])

    def test_unknown_provider(self):
        with self.assertRaises(ProviderNotFoundError):
            self.processor.process_sync("razorpay", invoice())

    def test_failing_hook_rolls_back(self):
        def explode(provider, result):
            raise RuntimeError("fulfilment down")

        processor = CallbackProcessor(self.registry, self.session_factory, on_success=explode)
        with self.assertRaises(RuntimeError):
            processor.process_sync("xendit", invoice())
        self.assertEqual(self.rows(), [])

        # the retry is processed normally once fulfilment recovers
        retry = self.processor.process_sync("xendit", invoice())
        self.assertFalse(retry.duplicate)
        self.assertTrue(retry.fulfilled)

    def test_async_hook(self):
        seen = []

        async def hook(provider, result):
            seen.append(result.transaction_id)

        processor = CallbackProcessor(self.registry, self.session_factory, on_success=hook)
        outcome = anyio.run(processor.process, "xendit", invoice(invoice_id="inv7"))
        self.assertTrue(outcome.fulfilled)
        self.assertEqual(seen, ["inv7"])

    def test_without_hook(self):
        processor = CallbackProcessor(self.registry, self.session_factory)
        outcome = processor.process_sync("xendit", invoice())
        self.assertFalse(outcome.fulfilled)
        self.assertEqual(len(self.rows()), 1)


class TestEventKey(unittest.TestCase):
    def test_falls_back_to_order_id(self):
        result = PaymentResult(status=PaymentStatus.PENDING, order_id="O-1")
        self.assertEqual(event_key("zarinpal", result), "zarinpal:pending:O-1")


if __name__ == "__main__":
    unittest.main()
