"""
Common contract for payout provider adapters.

Adapters translate internal requests to the provider wire format and provider
responses back to the internal result types. Expected provider failures are
reported as results with ``success=False``; adapters never raise for them.
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

from ..enums import ProviderId
from ..models import (
    CreateCustomerRequest,
    CreatePayoutRequest,
    CreateQuoteRequest,
    HealthCheckResult,
    InitiateKybRequest,
    InitiateKycRequest,
    ListCustomersRequest,
    ListPayoutsRequest,
    UpdateCustomerRequest,
    UploadDocumentRequest,
)
from ..results import (
    CustomerListResult,
    CustomerResult,
    DocumentListResult,
    DocumentResult,
    OperationResult,
    PayoutListResult,
    PayoutResult,
    PayoutStatusResult,
    QuoteResult,
    VerificationResult,
    WebhookResult,
)
from .http_client import HttpResponse

logger = logging.getLogger(__name__)

E = TypeVar("E")
R = TypeVar("R", bound=OperationResult)

PROVIDER_ERROR = "PROVIDER_ERROR"


def lookup(table: Dict[str, E], value: Optional[str], default: E) -> E:
    """Case-insensitive table lookup; unknown or missing values map to ``default``."""
    if not value:
        return default
    return table.get(str(value).strip().lower(), default)


def enum_table(enum_cls: Type[E]) -> Dict[str, E]:
    """Lookup table keyed by the lowercased member values of ``enum_cls``."""
    return {member.value.lower(): member for member in enum_cls}


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return default


def iso_date(value: Optional[date]) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None


def compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None."""
    return {k: v for k, v in payload.items() if v is not None}


class PaymentProvider(ABC):
    @property
    @abstractmethod
    def provider_id(self) -> ProviderId: ...

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def check_health(self) -> HealthCheckResult: ...

    # Customers
    @abstractmethod
    async def create_customer(self, request: CreateCustomerRequest) -> CustomerResult: ...

    @abstractmethod
    async def get_customer(self, customer_id: str) -> CustomerResult: ...

    @abstractmethod
    async def update_customer(self, customer_id: str, request: UpdateCustomerRequest) -> CustomerResult: ...

    @abstractmethod
    async def list_customers(self, request: ListCustomersRequest) -> CustomerListResult: ...

    # Verification
    @abstractmethod
    async def initiate_kyc(self, request: InitiateKycRequest) -> VerificationResult: ...

    @abstractmethod
    async def get_kyc_status(self, customer_id: str) -> VerificationResult: ...

    @abstractmethod
    async def initiate_kyb(self, request: InitiateKybRequest) -> VerificationResult: ...

    @abstractmethod
    async def get_kyb_status(self, customer_id: str) -> VerificationResult: ...

    @abstractmethod
    async def upload_document(self, request: UploadDocumentRequest) -> DocumentResult: ...

    @abstractmethod
    async def get_documents(self, customer_id: str) -> DocumentListResult: ...

    @abstractmethod
    async def submit_verification(self, customer_id: str) -> VerificationResult: ...

    # Quotes
    @abstractmethod
    async def create_quote(self, request: CreateQuoteRequest) -> QuoteResult: ...

    @abstractmethod
    async def get_quote(self, quote_id: str) -> QuoteResult: ...

    # Payouts
    @abstractmethod
    async def create_payout(self, request: CreatePayoutRequest) -> PayoutResult: ...

    @abstractmethod
    async def get_payout(self, payout_id: str) -> PayoutResult: ...

    @abstractmethod
    async def get_payout_status(self, payout_id: str) -> PayoutStatusResult: ...

    @abstractmethod
    async def cancel_payout(self, payout_id: str) -> PayoutResult: ...

    @abstractmethod
    async def list_payouts(self, request: ListPayoutsRequest) -> PayoutListResult: ...

    # Webhooks
    @abstractmethod
    def validate_webhook_signature(self, payload: bytes, signature: str) -> bool: ...

    @abstractmethod
    async def process_webhook(self, payload: bytes, signature: str) -> WebhookResult: ...

    async def close(self) -> None:
        pass

    async def _probe(self, send: Callable[[], Awaitable[HttpResponse]]) -> HealthCheckResult:
        started = time.perf_counter()
        try:
            response = await send()
        except Exception as e:
            latency = timedelta(seconds=time.perf_counter() - started)
            logger.warning(f"{self.name} health check failed: {e!r}")
            return HealthCheckResult.unhealthy(str(e) or type(e).__name__, latency)
        latency = timedelta(seconds=time.perf_counter() - started)
        if response.ok:
            return HealthCheckResult.healthy(latency)
        return HealthCheckResult.unhealthy(f"Status code: {response.status}", latency)

    async def _call(
        self,
        result_type: Type[R],
        failure_code: str,
        send: Callable[[], Awaitable[HttpResponse]],
        build: Callable[[Any], R],
        not_found_code: Optional[str] = None,
    ) -> R:
        """
        Run one provider call and normalize the outcome.

        Non-2xx responses become ``failure_code`` (``not_found_code`` on 404
        when given) with the raw body as message. Anything raised while
        sending or parsing becomes PROVIDER_ERROR.
        """
        try:
            response = await send()
            if not response.ok:
                code = not_found_code if not_found_code and response.status == 404 else failure_code
                logger.error(f"{self.name} {failure_code}: HTTP {response.status}")
                return result_type.failure(self.provider_id, code, response.text)
            return build(response.json())
        except Exception as e:
            logger.exception(f"{self.name} request failed ({failure_code})")
            return result_type.failure(self.provider_id, PROVIDER_ERROR, str(e))
