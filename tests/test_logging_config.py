import unittest

from quickpos.config import settings
from quickpos.logging_config import add_app_context, get_logger


class TestLoggingConfig(unittest.TestCase):
    def test_app_context_added(self):
        event = add_app_context(None, "info", {"event": "payment_created"})
        self.assertEqual(event["app"], settings.APP_NAME)
        self.assertEqual(event["environment"], settings.ENVIRONMENT)

    def test_app_context_keeps_bound_values(self):
        event = add_app_context(None, "info", {"event": "x", "environment": "replay"})
        self.assertEqual(event["environment"], "replay")

    def test_bound_logger(self):
        logger = get_logger("quickpos.tests").bind(provider="midtrans")
        logger.info("callback_normalized", order_id="ORD-1")


if __name__ == "__main__":
    unittest.main()
