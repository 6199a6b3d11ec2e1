import asyncio
import json
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from payout_router.enums import BlockchainNetwork, FiatCurrency, Stablecoin
from payout_router.models import CreateQuoteRequest, HealthCheckResult
from payout_router.providers.base import PaymentProvider
from payout_router.providers.http_client import HttpResponse


def healthy(ms: float = 10) -> HealthCheckResult:
    return HealthCheckResult.healthy(timedelta(milliseconds=ms))


def unhealthy(message: str = "down", ms: float = 10) -> HealthCheckResult:
    return HealthCheckResult.unhealthy(message, timedelta(milliseconds=ms))


def make_provider(pid: Any, health: Optional[HealthCheckResult] = None) -> MagicMock:
    provider = MagicMock(spec=PaymentProvider)
    provider.provider_id = pid
    provider.name = str(pid)
    provider.check_health = AsyncMock(return_value=health or healthy())
    provider.close = AsyncMock()
    return provider


def response(status: int = 200, body: Any = None) -> HttpResponse:
    text = "" if body is None else body if isinstance(body, str) else json.dumps(body)
    return HttpResponse(status=status, text=text)


class FakeHttp:
    """Stands in for ProviderHttpClient: records calls, replays queued responses."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def request(self, method: str, path: str, **kwargs: Any) -> HttpResponse:
        self.calls.append({"method": method, "path": path, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {path}")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> Dict[str, Any]:
        return self.calls[-1]


def hang(cancelled: List[Any], key: Any) -> Callable[..., Awaitable[Any]]:
    """Async side effect that blocks until cancelled, then records ``key``."""

    async def side_effect(*args: Any, **kwargs: Any) -> Any:
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            cancelled.append(key)
            raise

    return side_effect


@pytest.fixture
def quote_request() -> CreateQuoteRequest:
    return CreateQuoteRequest(
        source_currency=Stablecoin.USDT,
        target_currency=FiatCurrency.NGN,
        source_amount="100",
        network=BlockchainNetwork.POLYGON,
        destination_country="NG",
    )
