import logging
from typing import Dict, Hashable, List, Optional

from .circuit_breaker import CircuitBreaker
from .errors import ProviderNotFound
from .providers.base import PaymentProvider
from .providers.borderless import BorderlessProvider
from .providers.mesta import MestaProvider
from .settings import Settings

logger = logging.getLogger(__name__)


class Registry:
    """Adapters keyed by provider id, in registration order. Read-only once the app is up."""

    def __init__(self, default_provider: Hashable) -> None:
        self.default_provider = default_provider
        self._providers: Dict[Hashable, PaymentProvider] = {}

    def register(self, provider: PaymentProvider) -> None:
        pid = provider.provider_id
        if pid in self._providers:
            raise ValueError(f"Provider {pid} is already registered")
        self._providers[pid] = provider
        logger.info(f"Registered payment provider {pid}")

    def get(self, pid: Hashable) -> PaymentProvider:
        provider = self._providers.get(pid)
        if provider is None:
            raise ProviderNotFound(pid)
        return provider

    def get_default(self) -> PaymentProvider:
        return self.get(self.default_provider)

    def get_all(self) -> List[PaymentProvider]:
        return list(self._providers.values())

    def ids(self) -> List[Hashable]:
        return list(self._providers.keys())

    def __contains__(self, pid: Hashable) -> bool:
        return pid in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()


def build_registry(settings: Settings, registry: Optional[Registry] = None) -> Registry:
    if registry is None:
        registry = Registry(settings.default_provider)

    def breaker(name: str) -> CircuitBreaker:
        return CircuitBreaker(
            name,
            failure_threshold=settings.circuit_breaker_failures,
            recovery_timeout=settings.circuit_breaker_seconds,
        )

    if settings.mesta.enabled:
        registry.register(MestaProvider(
            settings.mesta,
            quote_validity_minutes=settings.quote_validity_minutes,
            breaker=breaker("mesta"),
        ))
    if settings.borderless.enabled:
        registry.register(BorderlessProvider(
            settings.borderless,
            quote_validity_minutes=settings.quote_validity_minutes,
            breaker=breaker("borderless"),
        ))
    if settings.default_provider not in registry:
        logger.warning(f"Default provider {settings.default_provider} is not enabled")
    return registry
