import logging
from typing import Hashable, List, Optional, Tuple

from .errors import AllProvidersUnavailable, ProviderUnavailable
from .health import HealthProber
from .models import HealthCheckResult
from .providers.base import PaymentProvider
from .registry import Registry

logger = logging.getLogger(__name__)


def failover_candidates(providers: List[PaymentProvider], target: PaymentProvider) -> List[PaymentProvider]:
    # registration order, target excluded
    return [p for p in providers if p is not target]


def rank_healthy(
    checked: List[Tuple[PaymentProvider, HealthCheckResult]], default: Hashable
) -> Optional[PaymentProvider]:
    healthy = [(p, r) for p, r in checked if r.is_healthy]
    if not healthy:
        return None
    for p, _ in healthy:
        if p.provider_id == default:
            return p
    # lowest latency wins; unknown latency sorts last, ties keep registration order
    healthy.sort(key=lambda pr: pr[1].latency_ms if pr[1].latency_ms is not None else float("inf"))
    return healthy[0][0]


class FailoverSelector:
    def __init__(self, registry: Registry, prober: HealthProber, enable_failover: bool = True) -> None:
        self.registry = registry
        self.prober = prober
        self.enable_failover = enable_failover

    async def select(self, preferred: Optional[Hashable] = None) -> PaymentProvider:
        target_id = preferred if preferred is not None else self.registry.default_provider
        # ProviderNotFound propagates here, unknown ids never fail over
        target = self.registry.get(target_id)

        health = await self.prober.check(target)
        if health.is_healthy:
            return target

        if not self.enable_failover:
            logger.warning(f"Provider {target_id} unhealthy ({health.message}) and failover disabled")
            raise ProviderUnavailable(target_id)

        logger.warning(f"Provider {target_id} unhealthy ({health.message}), trying failover")
        for candidate in failover_candidates(self.registry.get_all(), target):
            result = await self.prober.check(candidate)
            if result.is_healthy:
                logger.info(f"Failing over from {target_id} to {candidate.provider_id}")
                return candidate
            logger.warning(f"Failover candidate {candidate.provider_id} unhealthy: {result.message}")

        logger.error("No healthy payment provider available")
        raise AllProvidersUnavailable()

    async def best_available(self) -> PaymentProvider:
        results = await self.prober.check_all()
        checked = [(p, results[p.provider_id]) for p in self.registry.get_all()]
        best = rank_healthy(checked, self.registry.default_provider)
        if best is None:
            logger.error("No healthy payment provider available")
            raise AllProvidersUnavailable()
        return best
