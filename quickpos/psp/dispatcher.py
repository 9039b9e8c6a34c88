"""PSP Adapter Registry - holds configured adapters keyed by provider name."""
from typing import Any, Dict, Iterator, Mapping, Optional, Type

from quickpos.config import Settings, settings
from quickpos.logging_config import get_logger
from quickpos.psp.adapter import BasePaymentAdapter, PSPProvider
from quickpos.psp.epoint_adapter import EpointAdapter
from quickpos.psp.errors import ProviderNotFoundError
from quickpos.psp.freekassa_adapter import FreeKassaAdapter
from quickpos.psp.heleket_adapter import HeleketAdapter
from quickpos.psp.midtrans_adapter import MidtransAdapter
from quickpos.psp.payriff_adapter import PayriffAdapter
from quickpos.psp.perfectmoney_adapter import PerfectMoneyAdapter
from quickpos.psp.picpay_adapter import PicPayAdapter
from quickpos.psp.razorpay_adapter import RazorpayAdapter
from quickpos.psp.senangpay_adapter import SenangPayAdapter
from quickpos.psp.xendit_adapter import XenditAdapter
from quickpos.psp.zarinpal_adapter import ZarinpalAdapter

logger = get_logger(__name__)

ADAPTER_CLASSES: Dict[str, Type[BasePaymentAdapter]] = {
    cls.provider.value: cls
    for cls in (
        RazorpayAdapter,
        MidtransAdapter,
        EpointAdapter,
        HeleketAdapter,
        PayriffAdapter,
        SenangPayAdapter,
        FreeKassaAdapter,
        PerfectMoneyAdapter,
        XenditAdapter,
        ZarinpalAdapter,
        PicPayAdapter,
    )
}


def adapter_class(provider: str) -> Type[BasePaymentAdapter]:
    """Adapter class for a provider name (case-insensitive)."""
    name = provider.value if isinstance(provider, PSPProvider) else str(provider).lower()
    try:
        return ADAPTER_CLASSES[name]
    except KeyError:
        raise ProviderNotFoundError(name)


def create_adapter(provider: str, config: Mapping[str, Any]) -> BasePaymentAdapter:
    """Construct one adapter; raises ConfigurationError on missing credentials."""
    return adapter_class(provider)(config)


class ProviderRegistry:
    """
    Adapters keyed by provider name.

    Built once at startup and handed to whatever routes inbound HTTP to
    handle_callback(); there is no module-level instance.
    """

    def __init__(self, adapters: Optional[Mapping[str, BasePaymentAdapter]] = None):
        self._adapters: Dict[str, BasePaymentAdapter] = {}
        for name, adapter in (adapters or {}).items():
            self.register(adapter, name=name)

    @classmethod
    def from_config(cls, providers: Mapping[str, Mapping[str, Any]]) -> "ProviderRegistry":
        """
        Build a registry from ``{provider_name: config}``.

        Raises:
            ProviderNotFoundError: unknown provider name
            ConfigurationError: missing credential field
        """
        registry = cls()
        for name, config in providers.items():
            registry.register(create_adapter(name, config), name=name)
        return registry

    def register(self, adapter: BasePaymentAdapter, name: Optional[str] = None) -> BasePaymentAdapter:
        key = (name or adapter.provider.value).lower()
        self._adapters[key] = adapter
        logger.info("psp_adapter_registered", name=key, provider=adapter.provider.value, sandbox=adapter.sandbox)
        return adapter

    def get(self, provider: str) -> BasePaymentAdapter:
        key = provider.value if isinstance(provider, PSPProvider) else str(provider).lower()
        try:
            return self._adapters[key]
        except KeyError:
            raise ProviderNotFoundError(key)

    def names(self):
        return sorted(self._adapters)

    def __contains__(self, provider: object) -> bool:
        return isinstance(provider, str) and provider.lower() in self._adapters

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._adapters)

    def __repr__(self):
        return f"<ProviderRegistry({', '.join(self.names())})>"


def build_registry(s: Settings = settings) -> ProviderRegistry:
    """Registry for every provider configured in ``QUICKPOS_PROVIDERS``."""
    return ProviderRegistry.from_config({name: s.provider_config(name) for name in s.PROVIDERS})
