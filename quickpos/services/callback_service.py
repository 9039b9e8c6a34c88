"""
Callback processing with an idempotence ledger.

Providers retry notifications, so the same payment event can arrive several
times. Each normalized callback is recorded under
``provider:status:transaction_id|order_id``; repeats are reported as
duplicates and the success hook fires once per payment.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import anyio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quickpos.logging_config import get_logger
from quickpos.models import ProcessedCallback
from quickpos.psp.dispatcher import ProviderRegistry
from quickpos.schemas_pkg.payments import PaymentResult

logger = get_logger(__name__)

SuccessHook = Callable[[str, PaymentResult], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class CallbackOutcome:
    provider: str
    result: PaymentResult
    event_key: str
    duplicate: bool = False
    fulfilled: bool = False


def event_key(provider: str, result: PaymentResult) -> str:
    ref = result.transaction_id or result.order_id or "unknown"
    return f"{provider}:{result.status.value}:{ref}"


class CallbackProcessor:
    """
    Verify, normalize and record provider callbacks.

    Args:
        registry: configured adapters
        session_factory: zero-arg callable returning a SQLAlchemy Session
        on_success: called as ``on_success(provider, result)`` for the first
            successful callback of a payment; may be a coroutine function
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        session_factory: Callable[[], Session],
        on_success: Optional[SuccessHook] = None,
    ):
        self.registry = registry
        self.session_factory = session_factory
        self.on_success = on_success

    async def process(self, provider: str, raw_payload: Any) -> CallbackOutcome:
        """
        Raises:
            ProviderNotFoundError: provider not in the registry
            SignatureVerificationError / UnrecognizedCallbackError: from the adapter
        """
        adapter = self.registry.get(provider)
        name = adapter.provider.value
        result = await adapter.handle_callback(raw_payload)
        key = event_key(name, result)

        db = self.session_factory()
        try:
            existing = db.query(ProcessedCallback).filter(ProcessedCallback.event_key == key).first()
            if existing:
                logger.info("callback_duplicate", provider=name, event_key=key)
                return CallbackOutcome(name, result, key, duplicate=True)

            db.add(ProcessedCallback(
                provider=name,
                event_key=key,
                order_id=result.order_id,
                transaction_id=result.transaction_id,
                status=result.status.value,
                payload=result.model_dump(mode="json"),
            ))
            try:
                db.flush()
            except IntegrityError:
                # recorded concurrently by another worker
                db.rollback()
                logger.info("callback_duplicate", provider=name, event_key=key)
                return CallbackOutcome(name, result, key, duplicate=True)

            fulfilled = False
            if result.is_success and self.on_success is not None:
                outcome = self.on_success(name, result)
                if inspect.isawaitable(outcome):
                    await outcome
                fulfilled = True

            db.commit()
            logger.info(
                "callback_recorded",
                provider=name,
                event_key=key,
                status=result.status.value,
                fulfilled=fulfilled,
            )
            return CallbackOutcome(name, result, key, fulfilled=fulfilled)
        except Exception:
            db.rollback()
            logger.exception("callback_processing_failed", provider=name, event_key=key)
            raise
        finally:
            db.close()

    def process_sync(self, provider: str, raw_payload: Any) -> CallbackOutcome:
        return anyio.run(self.process, provider, raw_payload)
