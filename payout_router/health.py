import asyncio
import logging
import time
from datetime import timedelta
from typing import Dict, Hashable, Optional

from .models import HealthCheckResult
from .providers.base import PaymentProvider
from .registry import Registry

logger = logging.getLogger(__name__)


class HealthProber:
    def __init__(self, registry: Registry, timeout: Optional[float] = None) -> None:
        self.registry = registry
        self.timeout = timeout

    async def check(self, provider: PaymentProvider, timeout: Optional[float] = None) -> HealthCheckResult:
        """Probe one adapter. Never raises, except on cancellation."""
        timeout = timeout if timeout is not None else self.timeout
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(provider.check_health(), timeout)
        except asyncio.TimeoutError:
            latency = timedelta(seconds=time.perf_counter() - started)
            logger.warning(f"Health check for {provider.provider_id} timed out after {timeout}s")
            return HealthCheckResult.unhealthy(f"Health check timed out after {timeout}s", latency)
        except Exception as e:
            latency = timedelta(seconds=time.perf_counter() - started)
            logger.warning(f"Health check for {provider.provider_id} raised {e!r}")
            return HealthCheckResult.unhealthy(str(e) or type(e).__name__, latency)
        if not result.is_healthy:
            logger.warning(f"Provider {provider.provider_id} unhealthy: {result.message}")
        return result

    async def check_all(self, timeout: Optional[float] = None) -> Dict[Hashable, HealthCheckResult]:
        providers = self.registry.get_all()
        results = await asyncio.gather(*(self.check(p, timeout) for p in providers))
        return {p.provider_id: r for p, r in zip(providers, results)}
