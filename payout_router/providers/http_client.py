"""HTTP client shared by the provider adapters: retries, timeouts and circuit breaking."""

import asyncio
import json as jsonlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ..circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        if not self.text:
            return {}
        return jsonlib.loads(self.text)


def is_transient_status(status: int) -> bool:
    return status >= 500 or status == 408


class ProviderHttpClient:
    def __init__(
        self,
        name: str,
        base_url: str,
        timeout_seconds: float = 30,
        retry_attempts: int = 3,
        headers: Optional[Dict[str, str]] = None,
        breaker: Optional[CircuitBreaker] = None,
        backoff_base: float = 2.0,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.backoff_base = backoff_base
        self.breaker = breaker or CircuitBreaker(name)
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )
        return self._session

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        retry: bool = True,
    ) -> HttpResponse:
        """
        Send one request, retrying transient failures with exponential backoff.

        Transport errors on the last attempt propagate to the caller; a
        transient status on the last attempt is returned as is.
        """
        attempts = self.retry_attempts if retry else 0
        query = {k: str(v) for k, v in params.items() if v is not None} if params else None
        url = self.url(path)

        for attempt in range(attempts + 1):
            self.breaker.before_call()
            try:
                async with self._get_session().request(
                    method, url, json=json, params=query, data=data, headers=headers
                ) as resp:
                    response = HttpResponse(status=resp.status, text=await resp.text())
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.breaker.record_failure()
                if attempt >= attempts:
                    raise
                logger.warning(
                    f"{self.name} {method} {path} failed ({type(e).__name__}: {e}), "
                    f"retry {attempt + 1}/{attempts}"
                )
            else:
                if not is_transient_status(response.status):
                    self.breaker.record_success()
                    return response
                self.breaker.record_failure()
                if attempt >= attempts:
                    return response
                logger.warning(
                    f"{self.name} {method} {path} returned HTTP {response.status}, "
                    f"retry {attempt + 1}/{attempts}"
                )

            await asyncio.sleep(self.backoff_base ** (attempt + 1))

        raise AssertionError("unreachable")

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
