import asyncio
import logging
from typing import Dict, Hashable, List, Optional

from .health import HealthProber
from .models import (
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
from .providers.base import PaymentProvider
from .registry import Registry
from .results import (
    CustomerListResult,
    CustomerResult,
    DocumentListResult,
    DocumentResult,
    PayoutListResult,
    PayoutResult,
    PayoutStatusResult,
    QuoteResult,
    VerificationResult,
    WebhookResult,
)
from .routing import FailoverSelector

logger = logging.getLogger(__name__)

ProviderKey = Optional[Hashable]


class UnifiedPaymentService:
    """
    Single entry point for the HTTP layer.

    Every operation resolves an adapter through the failover selector and
    delegates to it unchanged. Selection failures surface as PaymentError
    subclasses; provider failures come back as results.
    """

    def __init__(self, registry: Registry, selector: FailoverSelector, prober: HealthProber) -> None:
        self.registry = registry
        self.selector = selector
        self.prober = prober

    async def _provider(self, provider: ProviderKey) -> PaymentProvider:
        return await self.selector.select(provider)

    # Providers

    def available_providers(self) -> List[Hashable]:
        return self.registry.ids()

    async def check_all_providers_health(self) -> Dict[Hashable, HealthCheckResult]:
        return await self.prober.check_all()

    async def best_available_provider(self) -> PaymentProvider:
        return await self.selector.best_available()

    # Customers

    async def create_customer(self, request: CreateCustomerRequest, provider: ProviderKey = None) -> CustomerResult:
        p = await self._provider(provider)
        logger.info(f"Creating customer with provider {p.provider_id}")
        return await p.create_customer(request)

    async def get_customer(self, customer_id: str, provider: ProviderKey = None) -> CustomerResult:
        p = await self._provider(provider)
        return await p.get_customer(customer_id)

    async def update_customer(
        self, customer_id: str, request: UpdateCustomerRequest, provider: ProviderKey = None
    ) -> CustomerResult:
        p = await self._provider(provider)
        logger.info(f"Updating customer {customer_id} with provider {p.provider_id}")
        return await p.update_customer(customer_id, request)

    async def list_customers(self, request: ListCustomersRequest, provider: ProviderKey = None) -> CustomerListResult:
        p = await self._provider(provider)
        return await p.list_customers(request)

    # Verification

    async def initiate_kyc(self, request: InitiateKycRequest, provider: ProviderKey = None) -> VerificationResult:
        p = await self._provider(provider)
        logger.info(f"Initiating KYC for customer {request.customer_id} with provider {p.provider_id}")
        return await p.initiate_kyc(request)

    async def get_kyc_status(self, customer_id: str, provider: ProviderKey = None) -> VerificationResult:
        p = await self._provider(provider)
        return await p.get_kyc_status(customer_id)

    async def initiate_kyb(self, request: InitiateKybRequest, provider: ProviderKey = None) -> VerificationResult:
        p = await self._provider(provider)
        logger.info(f"Initiating KYB for customer {request.customer_id} with provider {p.provider_id}")
        return await p.initiate_kyb(request)

    async def get_kyb_status(self, customer_id: str, provider: ProviderKey = None) -> VerificationResult:
        p = await self._provider(provider)
        return await p.get_kyb_status(customer_id)

    async def upload_document(self, request: UploadDocumentRequest, provider: ProviderKey = None) -> DocumentResult:
        p = await self._provider(provider)
        logger.info(f"Uploading {request.document_type.value} for customer {request.customer_id} with provider {p.provider_id}")
        return await p.upload_document(request)

    async def get_documents(self, customer_id: str, provider: ProviderKey = None) -> DocumentListResult:
        p = await self._provider(provider)
        return await p.get_documents(customer_id)

    async def submit_verification(self, customer_id: str, provider: ProviderKey = None) -> VerificationResult:
        p = await self._provider(provider)
        logger.info(f"Submitting verification for customer {customer_id} with provider {p.provider_id}")
        return await p.submit_verification(customer_id)

    # Quotes

    async def create_quote(self, request: CreateQuoteRequest, provider: ProviderKey = None) -> QuoteResult:
        p = await self._provider(provider)
        logger.info(f"Creating quote with provider {p.provider_id}")
        return await p.create_quote(request)

    async def create_quotes_from_all_providers(self, request: CreateQuoteRequest) -> List[QuoteResult]:
        """Ask every registered provider concurrently; keep the successful quotes in registration order."""
        providers = self.registry.get_all()
        results = await asyncio.gather(
            *(p.create_quote(request) for p in providers), return_exceptions=True
        )
        quotes = []
        for p, result in zip(providers, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"Quote from {p.provider_id} raised {result!r}")
            elif not result.success:
                logger.error(f"Quote from {p.provider_id} failed: {result.error_code} {result.error_message}")
            else:
                quotes.append(result)
        return quotes

    async def get_quote(self, quote_id: str, provider: ProviderKey = None) -> QuoteResult:
        p = await self._provider(provider)
        return await p.get_quote(quote_id)

    # Payouts

    async def create_payout(self, request: CreatePayoutRequest, provider: ProviderKey = None) -> PayoutResult:
        p = await self._provider(provider)
        logger.info(f"Creating payout with provider {p.provider_id}")
        return await p.create_payout(request)

    async def get_payout(self, payout_id: str, provider: ProviderKey = None) -> PayoutResult:
        p = await self._provider(provider)
        return await p.get_payout(payout_id)

    async def get_payout_status(self, payout_id: str, provider: ProviderKey = None) -> PayoutStatusResult:
        p = await self._provider(provider)
        return await p.get_payout_status(payout_id)

    async def cancel_payout(self, payout_id: str, provider: ProviderKey = None) -> PayoutResult:
        p = await self._provider(provider)
        logger.info(f"Cancelling payout {payout_id} with provider {p.provider_id}")
        return await p.cancel_payout(payout_id)

    async def list_payouts(self, request: ListPayoutsRequest, provider: ProviderKey = None) -> PayoutListResult:
        p = await self._provider(provider)
        return await p.list_payouts(request)

    # Webhooks

    async def process_webhook(self, provider: Hashable, payload: bytes, signature: str) -> WebhookResult:
        # webhooks belong to the provider that sent them, no failover
        p = self.registry.get(provider)
        result = await p.process_webhook(payload, signature)
        if result.success:
            logger.info(f"Webhook {result.event_type} from {provider} for {result.resource_type} {result.resource_id}")
        return result
