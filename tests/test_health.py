import asyncio

import pytest

from conftest import hang, healthy, make_provider, unhealthy
from payout_router.health import HealthProber
from payout_router.registry import Registry


def registry_of(*providers) -> Registry:
    reg = Registry(default_provider=providers[0].provider_id)
    for p in providers:
        reg.register(p)
    return reg


@pytest.mark.asyncio
async def test_check_returns_provider_result():
    p1 = make_provider("p1", unhealthy("maintenance"))
    prober = HealthProber(registry_of(p1))

    result = await prober.check(p1)

    assert not result.is_healthy
    assert result.message == "maintenance"
    p1.check_health.assert_awaited_once()


@pytest.mark.asyncio
async def test_check_turns_exception_into_unhealthy():
    p1 = make_provider("p1")
    p1.check_health.side_effect = RuntimeError("connection refused")
    prober = HealthProber(registry_of(p1))

    result = await prober.check(p1)

    assert not result.is_healthy
    assert result.status == "Unhealthy"
    assert "connection refused" in result.message
    assert result.latency is not None


@pytest.mark.asyncio
async def test_check_times_out_slow_provider():
    p1 = make_provider("p1")

    async def hang():
        await asyncio.sleep(5)
        return healthy()

    p1.check_health.side_effect = hang
    prober = HealthProber(registry_of(p1), timeout=0.05)

    result = await prober.check(p1)

    assert not result.is_healthy
    assert "timed out" in result.message


@pytest.mark.asyncio
async def test_check_all_runs_concurrently():
    in_flight = 0
    peak = 0

    async def probe():
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return healthy()

    providers = [make_provider(f"p{i}") for i in range(3)]
    for p in providers:
        p.check_health.side_effect = probe
    prober = HealthProber(registry_of(*providers))

    results = await prober.check_all()

    assert peak == 3
    assert set(results) == {"p0", "p1", "p2"}
    assert all(r.is_healthy for r in results.values())


@pytest.mark.asyncio
async def test_check_all_captures_failures_per_provider():
    p1 = make_provider("p1", healthy(5))
    p2 = make_provider("p2")
    p2.check_health.side_effect = ValueError("bad")
    p3 = make_provider("p3", unhealthy("Status code: 503"))
    prober = HealthProber(registry_of(p1, p2, p3))

    results = await prober.check_all()

    assert list(results) == ["p1", "p2", "p3"]
    assert results["p1"].is_healthy
    assert not results["p2"].is_healthy and results["p2"].message == "bad"
    assert results["p3"].message == "Status code: 503"


@pytest.mark.asyncio
async def test_cancelling_check_all_cancels_every_health_check():
    cancelled = []
    p1, p2 = make_provider("p1"), make_provider("p2")
    for p in (p1, p2):
        p.check_health.side_effect = hang(cancelled, p.provider_id)
    prober = HealthProber(registry_of(p1, p2))

    task = asyncio.create_task(prober.check_all())
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert sorted(cancelled) == ["p1", "p2"]
