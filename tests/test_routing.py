import pytest

from conftest import healthy, make_provider, unhealthy
from payout_router.errors import AllProvidersUnavailable, ProviderNotFound, ProviderUnavailable
from payout_router.health import HealthProber
from payout_router.registry import Registry
from payout_router.routing import FailoverSelector, failover_candidates, rank_healthy


def selector_for(*providers, default="p1", enable_failover=True) -> FailoverSelector:
    reg = Registry(default_provider=default)
    for p in providers:
        reg.register(p)
    return FailoverSelector(reg, HealthProber(reg), enable_failover=enable_failover)


@pytest.mark.asyncio
async def test_healthy_default_probes_nothing_else():
    p1, p2, p3 = make_provider("p1"), make_provider("p2"), make_provider("p3")
    selector = selector_for(p1, p2, p3)

    assert await selector.select() is p1
    assert p1.check_health.await_count == 1
    p2.check_health.assert_not_awaited()
    p3.check_health.assert_not_awaited()


@pytest.mark.asyncio
async def test_preferred_provider_is_used_when_healthy():
    p1, p2 = make_provider("p1"), make_provider("p2")
    selector = selector_for(p1, p2)

    assert await selector.select("p2") is p2
    p1.check_health.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_preferred_provider_never_fails_over():
    p1 = make_provider("p1")
    selector = selector_for(p1)

    with pytest.raises(ProviderNotFound):
        await selector.select("p9")
    p1.check_health.assert_not_awaited()


@pytest.mark.asyncio
async def test_failover_disabled_raises_provider_unavailable():
    p1, p2 = make_provider("p1", unhealthy("Status code: 500")), make_provider("p2")
    selector = selector_for(p1, p2, enable_failover=False)

    with pytest.raises(ProviderUnavailable) as exc:
        await selector.select()
    assert exc.value.provider == "p1"
    assert exc.value.status_code == 503
    p2.check_health.assert_not_awaited()


@pytest.mark.asyncio
async def test_provider_unavailable_message_omits_health_detail():
    p1 = make_provider("p1", unhealthy('OAuth failed: {"client_secret_hint": "sk_live_abc"}'))
    selector = selector_for(p1, enable_failover=False)

    with pytest.raises(ProviderUnavailable) as exc:
        await selector.select()
    assert str(exc.value) == "Provider p1 is unavailable"


@pytest.mark.asyncio
async def test_failover_returns_first_healthy_candidate_and_stops():
    p1 = make_provider("p1", unhealthy())
    p2 = make_provider("p2", unhealthy())
    p3 = make_provider("p3", healthy())
    p4 = make_provider("p4", healthy())
    selector = selector_for(p1, p2, p3, p4)

    assert await selector.select() is p3
    assert p1.check_health.await_count == 1
    assert p2.check_health.await_count == 1
    assert p3.check_health.await_count == 1
    p4.check_health.assert_not_awaited()


@pytest.mark.asyncio
async def test_all_unhealthy_probes_each_once():
    providers = [make_provider(f"p{i}", unhealthy()) for i in (1, 2, 3)]
    selector = selector_for(*providers)

    with pytest.raises(AllProvidersUnavailable) as exc:
        await selector.select()
    assert exc.value.error_code == "ALL_PROVIDERS_UNAVAILABLE"
    for p in providers:
        assert p.check_health.await_count == 1


@pytest.mark.asyncio
async def test_failover_from_preferred_skips_only_preferred():
    p1 = make_provider("p1", healthy())
    p2 = make_provider("p2", unhealthy())
    selector = selector_for(p1, p2)

    assert await selector.select("p2") is p1


@pytest.mark.asyncio
async def test_probe_exception_counts_as_unhealthy():
    p1 = make_provider("p1")
    p1.check_health.side_effect = ConnectionError("refused")
    p2 = make_provider("p2")
    selector = selector_for(p1, p2)

    assert await selector.select() is p2


@pytest.mark.asyncio
async def test_best_available_prefers_healthy_default():
    p1 = make_provider("p1", healthy(200))
    p2 = make_provider("p2", healthy(5))
    selector = selector_for(p1, p2)

    assert await selector.best_available() is p1


@pytest.mark.asyncio
async def test_best_available_picks_lowest_latency_without_default():
    p1 = make_provider("p1", unhealthy())
    p2 = make_provider("p2", healthy(80))
    p3 = make_provider("p3", healthy(20))
    selector = selector_for(p1, p2, p3)

    assert await selector.best_available() is p3


@pytest.mark.asyncio
async def test_best_available_raises_when_nothing_healthy():
    selector = selector_for(make_provider("p1", unhealthy()), make_provider("p2", unhealthy()))

    with pytest.raises(AllProvidersUnavailable):
        await selector.best_available()


def test_failover_candidates_keep_registration_order():
    p1, p2, p3 = make_provider("p1"), make_provider("p2"), make_provider("p3")
    assert failover_candidates([p1, p2, p3], p2) == [p1, p3]


def test_rank_healthy_sorts_unknown_latency_last():
    p1, p2 = make_provider("p1"), make_provider("p2")
    no_latency = healthy()
    no_latency.latency = None

    assert rank_healthy([(p1, no_latency), (p2, healthy(50))], default="p9") is p2
    assert rank_healthy([(p1, unhealthy())], default="p1") is None
