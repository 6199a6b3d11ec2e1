"""Mesta adapter: snake_case JSON, API key plus merchant id headers."""

import json
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from ..circuit_breaker import CircuitBreaker
from ..enums import (
    BlockchainNetwork,
    CustomerStatus,
    CustomerType,
    DocumentType,
    FiatCurrency,
    PayoutStatus,
    ProviderId,
    Stablecoin,
    VerificationLevel,
    VerificationStatus,
)
from ..models import (
    Address,
    BusinessInfo,
    ContactInfo,
    CreateCustomerRequest,
    CreatePayoutRequest,
    CreateQuoteRequest,
    Customer,
    DepositWallet,
    Document,
    FeeBreakdown,
    HealthCheckResult,
    IndividualInfo,
    InitiateKybRequest,
    InitiateKycRequest,
    ListCustomersRequest,
    ListPayoutsRequest,
    Payout,
    Quote,
    UpdateCustomerRequest,
    UploadDocumentRequest,
    VerificationInfo,
    utcnow,
)
from ..results import (
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
from ..settings import MestaSettings
from ..webhooks import validate_webhook_signature
from .base import PaymentProvider, compact, enum_table, iso_date, lookup, to_decimal
from .http_client import ProviderHttpClient

logger = logging.getLogger(__name__)

PAYOUT_STATUS_MAP: Dict[str, PayoutStatus] = {
    "created": PayoutStatus.CREATED,
    "awaiting_funds": PayoutStatus.AWAITING_FUNDS,
    "awaiting_funds_timeout": PayoutStatus.EXPIRED,
    "funds_received": PayoutStatus.FUNDS_RECEIVED,
    "in_progress": PayoutStatus.PROCESSING,
    "processing": PayoutStatus.PROCESSING,
    "sent_to_beneficiary": PayoutStatus.SENT_TO_BENEFICIARY,
    "completed": PayoutStatus.COMPLETED,
    "success": PayoutStatus.COMPLETED,
    "failed": PayoutStatus.FAILED,
    "error": PayoutStatus.FAILED,
    "cancelled": PayoutStatus.CANCELLED,
    "canceled": PayoutStatus.CANCELLED,
    "need_review": PayoutStatus.PENDING_REVIEW,
    "pending_review": PayoutStatus.PENDING_REVIEW,
    "refunded": PayoutStatus.REFUNDED,
}

VERIFICATION_STATUS_MAP: Dict[str, VerificationStatus] = {
    "not_started": VerificationStatus.NOT_STARTED,
    "pending": VerificationStatus.PENDING,
    "in_review": VerificationStatus.IN_REVIEW,
    "under_review": VerificationStatus.IN_REVIEW,
    "additional_info_required": VerificationStatus.ADDITIONAL_INFO_REQUIRED,
    "approved": VerificationStatus.APPROVED,
    "verified": VerificationStatus.APPROVED,
    "rejected": VerificationStatus.REJECTED,
    "failed": VerificationStatus.REJECTED,
    "expired": VerificationStatus.EXPIRED,
}

VERIFICATION_LEVEL_MAP: Dict[str, VerificationLevel] = {
    "basic": VerificationLevel.BASIC,
    "standard": VerificationLevel.STANDARD,
    "enhanced": VerificationLevel.ENHANCED,
    "full": VerificationLevel.FULL,
}

DOCUMENT_STATUS_MAP: Dict[str, VerificationStatus] = {
    "uploaded": VerificationStatus.PENDING,
    "pending": VerificationStatus.PENDING,
    "in_review": VerificationStatus.IN_REVIEW,
    "approved": VerificationStatus.APPROVED,
    "verified": VerificationStatus.APPROVED,
    "rejected": VerificationStatus.REJECTED,
}

CUSTOMER_STATUS_MAP: Dict[str, CustomerStatus] = {
    "active": CustomerStatus.ACTIVE,
    "under_review": CustomerStatus.UNDER_REVIEW,
    "suspended": CustomerStatus.SUSPENDED,
    "blocked": CustomerStatus.BLOCKED,
    "closed": CustomerStatus.CLOSED,
}

CUSTOMER_TYPES = enum_table(CustomerType)
DOCUMENT_TYPES = enum_table(DocumentType)
NETWORKS: Dict[str, BlockchainNetwork] = {
    **enum_table(BlockchainNetwork),
    "eth": BlockchainNetwork.ETHEREUM,
    "matic": BlockchainNetwork.POLYGON,
    "pol": BlockchainNetwork.POLYGON,
    "trx": BlockchainNetwork.TRON,
    "sol": BlockchainNetwork.SOLANA,
    "bnb": BlockchainNetwork.BINANCE_SMART_CHAIN,
    "avax": BlockchainNetwork.AVALANCHE,
    "arb": BlockchainNetwork.ARBITRUM,
    "op": BlockchainNetwork.OPTIMISM,
}
STABLECOINS = enum_table(Stablecoin)
FIAT_CURRENCIES = enum_table(FiatCurrency)


def parse_fees(fees: Optional[Dict[str, Any]]) -> Optional[FeeBreakdown]:
    if not fees:
        return None
    return FeeBreakdown(
        network_fee=to_decimal(fees.get("network_fee")),
        processing_fee=to_decimal(fees.get("processing_fee")),
        fx_spread_fee=to_decimal(fees.get("fx_spread_fee")),
        bank_fee=to_decimal(fees.get("bank_fee")),
        developer_fee=to_decimal(fees.get("developer_fee")),
    )


def map_payout_status(value: Optional[str]) -> PayoutStatus:
    return lookup(PAYOUT_STATUS_MAP, value, PayoutStatus.PROCESSING)


def map_verification_status(value: Optional[str]) -> VerificationStatus:
    return lookup(VERIFICATION_STATUS_MAP, value, VerificationStatus.NOT_STARTED)


def map_verification_level(value: Optional[str]) -> VerificationLevel:
    return lookup(VERIFICATION_LEVEL_MAP, value, VerificationLevel.NONE)


def map_document_status(value: Optional[str]) -> VerificationStatus:
    return lookup(DOCUMENT_STATUS_MAP, value, VerificationStatus.PENDING)


def map_customer_status(value: Optional[str]) -> CustomerStatus:
    return lookup(CUSTOMER_STATUS_MAP, value, CustomerStatus.PENDING)


def map_document_type(value: Optional[str]) -> DocumentType:
    return lookup(DOCUMENT_TYPES, value, DocumentType.OTHER)


def network_name(network: BlockchainNetwork) -> str:
    return network.value


def _address(address: Optional[Address]) -> Optional[Dict[str, Any]]:
    if address is None:
        return None
    return {
        "street1": address.street1,
        "street2": address.street2,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "country_code": address.country_code,
    }


def _parse_address(data: Optional[Dict[str, Any]]) -> Optional[Address]:
    if not data:
        return None
    return Address(
        street1=data.get("street1") or "",
        street2=data.get("street2"),
        city=data.get("city") or "",
        state=data.get("state"),
        postal_code=data.get("postal_code") or "",
        country_code=data.get("country_code") or data.get("country") or "",
    )


def parse_customer(data: Dict[str, Any]) -> Customer:
    individual = None
    if data.get("first_name"):
        individual = IndividualInfo(
            first_name=data["first_name"],
            last_name=data.get("last_name") or "",
            middle_name=data.get("middle_name"),
            date_of_birth=data.get("date_of_birth"),
            nationality=data.get("nationality"),
        )
    business = None
    if data.get("business_name"):
        business = BusinessInfo(
            legal_name=data["business_name"],
            trading_name=data.get("trading_name"),
            registration_number=data.get("registration_number"),
            tax_id=data.get("tax_id"),
            country_of_incorporation=data.get("country_of_incorporation"),
        )
    return Customer(**compact({
        "id": data.get("id") or "",
        "external_id": data.get("external_id"),
        "type": lookup(CUSTOMER_TYPES, data.get("type"), CustomerType.INDIVIDUAL),
        "status": map_customer_status(data.get("status")),
        "individual": individual,
        "business": business,
        "contact": ContactInfo(email=data.get("email") or "", phone=data.get("phone")),
        "address": _parse_address(data.get("address")),
        "verification_status": map_verification_status(data.get("verification_status")),
        "verification_level": map_verification_level(data.get("verification_level")),
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
    }))


def parse_document(data: Dict[str, Any]) -> Document:
    return Document(**compact({
        "id": data.get("id") or "",
        "type": map_document_type(data.get("document_type")),
        "status": map_document_status(data.get("status")),
        "rejection_reason": data.get("rejection_reason"),
        "uploaded_at": data.get("created_at"),
        "reviewed_at": data.get("reviewed_at"),
    }))


def _requested_amount(request: Optional[CreatePayoutRequest], field: str) -> Decimal:
    value = getattr(request, field, None) if request else None
    return value if value is not None else Decimal("0")


def parse_payout(data: Dict[str, Any], request: Optional[CreatePayoutRequest] = None) -> Payout:
    wallet = data.get("deposit_wallet")
    deposit_wallet = None
    if wallet:
        deposit_wallet = DepositWallet(
            address=wallet.get("address") or "",
            network=lookup(NETWORKS, wallet.get("network"), BlockchainNetwork.POLYGON),
            currency=lookup(STABLECOINS, wallet.get("currency"), Stablecoin.USDT),
            expected_amount=to_decimal(wallet.get("expected_amount")),
            expires_at=wallet.get("expires_at"),
            memo=wallet.get("memo"),
        )
    return Payout(**compact({
        "id": data.get("id") or "",
        "external_id": data.get("external_id") or (request.external_id if request else None),
        "provider": ProviderId.MESTA,
        "provider_order_id": data.get("id"),
        "status": map_payout_status(data.get("status")),
        "source_currency": lookup(
            STABLECOINS, data.get("source_currency"),
            request.source_currency if request else Stablecoin.USDT,
        ),
        "source_amount": to_decimal(data.get("source_amount"), _requested_amount(request, "source_amount")),
        "target_currency": lookup(
            FIAT_CURRENCIES, data.get("target_currency"),
            request.target_currency if request else FiatCurrency.USD,
        ),
        "target_amount": to_decimal(data.get("target_amount"), _requested_amount(request, "target_amount")),
        "exchange_rate": to_decimal(data.get("exchange_rate")),
        "fee_amount": to_decimal(data.get("fee")),
        "network": lookup(
            NETWORKS, data.get("network"),
            request.network if request else BlockchainNetwork.POLYGON,
        ),
        "sender": request.sender if request else None,
        "beneficiary": request.beneficiary if request else None,
        "deposit_wallet": deposit_wallet,
        "payment_method": request.payment_method if request else None,
        "blockchain_tx_hash": data.get("blockchain_tx_hash"),
        "bank_reference": data.get("bank_reference"),
        "failure_reason": data.get("failure_reason"),
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
        "completed_at": data.get("completed_at"),
    }))


class MestaProvider(PaymentProvider):
    def __init__(
        self,
        config: MestaSettings,
        quote_validity_minutes: int = 5,
        http: Optional[ProviderHttpClient] = None,
        breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        self._config = config
        self._quote_validity = timedelta(minutes=quote_validity_minutes)
        self._http = http or ProviderHttpClient(
            "mesta",
            config.base_url,
            timeout_seconds=config.timeout_seconds,
            retry_attempts=config.retry_attempts,
            headers={"X-API-Key": config.api_key, "X-Merchant-Id": config.merchant_id},
            breaker=breaker,
        )

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.MESTA

    @property
    def name(self) -> str:
        return "Mesta"

    async def close(self) -> None:
        await self._http.close()

    async def check_health(self) -> HealthCheckResult:
        return await self._probe(lambda: self._http.request("GET", "/health", retry=False))

    # Customers

    def _customer_result(self, data: Dict[str, Any]) -> CustomerResult:
        return CustomerResult(
            success=True,
            provider=self.provider_id,
            provider_customer_id=data.get("id"),
            customer=parse_customer(data),
        )

    async def create_customer(self, request: CreateCustomerRequest) -> CustomerResult:
        individual, business = request.individual, request.business
        payload = compact({
            "external_id": request.external_id,
            "type": request.type.value,
            "first_name": individual.first_name if individual else None,
            "last_name": individual.last_name if individual else None,
            "middle_name": individual.middle_name if individual else None,
            "date_of_birth": iso_date(individual.date_of_birth) if individual else None,
            "nationality": individual.nationality if individual else None,
            "business_name": business.legal_name if business else None,
            "trading_name": business.trading_name if business else None,
            "registration_number": business.registration_number if business else None,
            "tax_id": business.tax_id if business else None,
            "country_of_incorporation": business.country_of_incorporation if business else None,
            "email": request.contact.email,
            "phone": request.contact.phone,
            "address": _address(request.address),
            "metadata": request.metadata,
        })
        return await self._call(
            CustomerResult, "CREATE_FAILED",
            lambda: self._http.request("POST", "/customers", json=payload),
            self._customer_result,
        )

    async def get_customer(self, customer_id: str) -> CustomerResult:
        return await self._call(
            CustomerResult, "GET_FAILED",
            lambda: self._http.request("GET", f"/customers/{customer_id}"),
            self._customer_result,
            not_found_code="NOT_FOUND",
        )

    async def update_customer(self, customer_id: str, request: UpdateCustomerRequest) -> CustomerResult:
        individual, business, contact = request.individual, request.business, request.contact
        payload = compact({
            "first_name": individual.first_name if individual else None,
            "last_name": individual.last_name if individual else None,
            "middle_name": individual.middle_name if individual else None,
            "date_of_birth": iso_date(individual.date_of_birth) if individual else None,
            "nationality": individual.nationality if individual else None,
            "business_name": business.legal_name if business else None,
            "trading_name": business.trading_name if business else None,
            "email": contact.email if contact else None,
            "phone": contact.phone if contact else None,
            "address": _address(request.address),
            "metadata": request.metadata,
        })
        return await self._call(
            CustomerResult, "UPDATE_FAILED",
            lambda: self._http.request("PATCH", f"/customers/{customer_id}", json=payload),
            self._customer_result,
        )

    async def list_customers(self, request: ListCustomersRequest) -> CustomerListResult:
        params = {
            "page": request.page,
            "page_size": request.page_size,
            "type": request.type.value if request.type else None,
            "status": request.status.value if request.status else None,
            "search": request.search or None,
        }

        def build(data: Dict[str, Any]) -> CustomerListResult:
            return CustomerListResult(
                success=True,
                provider=self.provider_id,
                customers=[parse_customer(c) for c in data.get("data") or []],
                total_count=data.get("total") or 0,
                page=data.get("page") or 1,
                page_size=data.get("page_size") or 20,
            )

        return await self._call(
            CustomerListResult, "LIST_FAILED",
            lambda: self._http.request("GET", "/customers", params=params),
            build,
        )

    # Verification

    async def _initiate(self, path: str, failure_code: str, request: InitiateKycRequest) -> VerificationResult:
        payload = compact({
            "customer_id": request.customer_id,
            "level": request.target_level.value,
            "redirect_url": request.redirect_url,
            "webhook_url": request.webhook_url,
        })

        def build(data: Dict[str, Any]) -> VerificationResult:
            return VerificationResult(
                success=True,
                provider=self.provider_id,
                customer_id=request.customer_id,
                session_id=data.get("session_id"),
                verification_url=data.get("verification_url"),
                status=map_verification_status(data.get("status")),
                level=request.target_level,
                expires_at=data.get("expires_at"),
            )

        return await self._call(
            VerificationResult, failure_code,
            lambda: self._http.request("POST", path, json=payload),
            build,
        )

    async def _status(self, path: str, failure_code: str, customer_id: str, kyb: bool) -> VerificationResult:
        def build(data: Dict[str, Any]) -> VerificationResult:
            status = map_verification_status(data.get("status"))
            level = map_verification_level(data.get("level"))
            approved = status == VerificationStatus.APPROVED
            return VerificationResult(
                success=True,
                provider=self.provider_id,
                customer_id=customer_id,
                status=status,
                level=level,
                expires_at=data.get("expires_at"),
                required_documents=data.get("required_documents"),
                rejection_reason=data.get("rejection_reason"),
                verification=VerificationInfo(**compact({
                    "status": status,
                    "level": level,
                    "kyc_completed": approved and not kyb,
                    "kyb_completed": approved and kyb,
                    "rejection_reason": data.get("rejection_reason"),
                    "required_info": data.get("required_documents"),
                    "risk_score": data.get("risk_score"),
                    "risk_level": data.get("risk_level"),
                    "submitted_at": data.get("submitted_at"),
                    "completed_at": data.get("completed_at"),
                    "expires_at": data.get("expires_at"),
                })),
            )

        return await self._call(
            VerificationResult, failure_code,
            lambda: self._http.request("GET", path),
            build,
        )

    async def initiate_kyc(self, request: InitiateKycRequest) -> VerificationResult:
        return await self._initiate("/kyc/initiate", "KYC_INITIATE_FAILED", request)

    async def get_kyc_status(self, customer_id: str) -> VerificationResult:
        return await self._status(f"/kyc/{customer_id}/status", "KYC_STATUS_FAILED", customer_id, kyb=False)

    async def initiate_kyb(self, request: InitiateKybRequest) -> VerificationResult:
        return await self._initiate("/kyb/initiate", "KYB_INITIATE_FAILED", request)

    async def get_kyb_status(self, customer_id: str) -> VerificationResult:
        return await self._status(f"/kyb/{customer_id}/status", "KYB_STATUS_FAILED", customer_id, kyb=True)

    async def upload_document(self, request: UploadDocumentRequest) -> DocumentResult:
        payload = compact({
            "customer_id": request.customer_id,
            "document_type": request.document_type.value,
            "document_number": request.document_number,
            "issuing_country": request.issuing_country,
            "issue_date": iso_date(request.issue_date),
            "expiry_date": iso_date(request.expiry_date),
            "front_image": request.front_image_base64,
            "back_image": request.back_image_base64,
            "mime_type": request.mime_type,
        })

        def build(data: Dict[str, Any]) -> DocumentResult:
            document = parse_document({"document_type": request.document_type.value, **data})
            return DocumentResult(success=True, provider=self.provider_id, document=document)

        return await self._call(
            DocumentResult, "UPLOAD_FAILED",
            lambda: self._http.request("POST", "/documents", json=payload),
            build,
        )

    async def get_documents(self, customer_id: str) -> DocumentListResult:
        def build(data: Dict[str, Any]) -> DocumentListResult:
            return DocumentListResult(
                success=True,
                provider=self.provider_id,
                documents=[parse_document(d) for d in data.get("data") or []],
            )

        return await self._call(
            DocumentListResult, "LIST_FAILED",
            lambda: self._http.request("GET", f"/customers/{customer_id}/documents"),
            build,
        )

    async def submit_verification(self, customer_id: str) -> VerificationResult:
        def build(data: Dict[str, Any]) -> VerificationResult:
            return VerificationResult(
                success=True,
                provider=self.provider_id,
                customer_id=customer_id,
                status=map_verification_status(data.get("status")),
            )

        return await self._call(
            VerificationResult, "SUBMIT_FAILED",
            lambda: self._http.request("POST", f"/customers/{customer_id}/verification/submit"),
            build,
        )

    # Quotes

    def _parse_quote(self, data: Dict[str, Any], request: Optional[CreateQuoteRequest] = None) -> Quote:
        return Quote(**compact({
            "id": data.get("id") or "",
            "provider_quote_id": data.get("id"),
            "source_currency": request.source_currency if request else lookup(
                STABLECOINS, data.get("source_currency"), Stablecoin.USDT),
            "target_currency": request.target_currency if request else lookup(
                FIAT_CURRENCIES, data.get("target_currency"), FiatCurrency.USD),
            "source_amount": to_decimal(data.get("source_amount")),
            "target_amount": to_decimal(data.get("target_amount")),
            "exchange_rate": to_decimal(data.get("exchange_rate")),
            "fee_amount": to_decimal(data.get("fee")),
            "fee_breakdown": parse_fees(data.get("fees")),
            "total_amount": to_decimal(data.get("total_amount")),
            "network": request.network if request else lookup(
                NETWORKS, data.get("network"), BlockchainNetwork.POLYGON),
            "provider": self.provider_id,
            "created_at": data.get("created_at"),
            "expires_at": data.get("expires_at") or utcnow() + self._quote_validity,
        }))

    async def create_quote(self, request: CreateQuoteRequest) -> QuoteResult:
        payload = compact({
            "source_currency": request.source_currency.value,
            "target_currency": request.target_currency.value,
            "source_amount": str(request.source_amount) if request.source_amount is not None else None,
            "target_amount": str(request.target_amount) if request.target_amount is not None else None,
            "network": network_name(request.network),
            "destination_country": request.destination_country,
            "payment_method": request.payment_method.value,
        })
        return await self._call(
            QuoteResult, "QUOTE_FAILED",
            lambda: self._http.request("POST", "/quotes", json=payload),
            lambda data: QuoteResult(success=True, provider=self.provider_id, quote=self._parse_quote(data, request)),
        )

    async def get_quote(self, quote_id: str) -> QuoteResult:
        return await self._call(
            QuoteResult, "GET_FAILED",
            lambda: self._http.request("GET", f"/quotes/{quote_id}"),
            lambda data: QuoteResult(success=True, provider=self.provider_id, quote=self._parse_quote(data)),
            not_found_code="NOT_FOUND",
        )

    # Payouts

    async def create_payout(self, request: CreatePayoutRequest) -> PayoutResult:
        sender, beneficiary = request.sender, request.beneficiary
        bank = beneficiary.bank_account
        payload = compact({
            "external_id": request.external_id,
            "quote_id": request.quote_id,
            "source_currency": request.source_currency.value,
            "target_currency": request.target_currency.value,
            "source_amount": str(request.source_amount) if request.source_amount is not None else None,
            "target_amount": str(request.target_amount) if request.target_amount is not None else None,
            "network": network_name(request.network),
            "payment_method": request.payment_method.value,
            "sender": compact({
                "id": sender.id,
                "external_id": sender.external_id,
                "type": sender.type.value,
                "first_name": sender.first_name,
                "last_name": sender.last_name,
                "business_name": sender.business_name,
                "email": sender.email,
                "phone": sender.phone,
            }),
            "beneficiary": compact({
                "id": beneficiary.id,
                "external_id": beneficiary.external_id,
                "type": beneficiary.type.value,
                "first_name": beneficiary.first_name,
                "last_name": beneficiary.last_name,
                "business_name": beneficiary.business_name,
                "email": beneficiary.email,
                "phone": beneficiary.phone,
                "bank_account": compact({
                    "bank_name": bank.bank_name,
                    "account_number": bank.account_number,
                    "account_holder_name": bank.account_holder_name,
                    "routing_number": bank.routing_number,
                    "swift_code": bank.swift_code,
                    "sort_code": bank.sort_code,
                    "iban": bank.iban,
                    "currency": bank.currency.value,
                    "country_code": bank.country_code,
                }),
            }),
            "purpose": request.purpose,
            "reference": request.reference,
            "metadata": request.metadata,
        })
        return await self._call(
            PayoutResult, "PAYOUT_FAILED",
            lambda: self._http.request("POST", "/payouts", json=payload),
            lambda data: PayoutResult(success=True, provider=self.provider_id, payout=parse_payout(data, request)),
        )

    async def get_payout(self, payout_id: str) -> PayoutResult:
        return await self._call(
            PayoutResult, "GET_FAILED",
            lambda: self._http.request("GET", f"/payouts/{payout_id}"),
            lambda data: PayoutResult(success=True, provider=self.provider_id, payout=parse_payout(data)),
            not_found_code="NOT_FOUND",
        )

    async def get_payout_status(self, payout_id: str) -> PayoutStatusResult:
        def build(data: Dict[str, Any]) -> PayoutStatusResult:
            return PayoutStatusResult(
                success=True,
                provider=self.provider_id,
                payout_id=payout_id,
                provider_payout_id=data.get("id"),
                status=map_payout_status(data.get("status")),
                provider_status=data.get("status"),
                blockchain_tx_hash=data.get("blockchain_tx_hash"),
                bank_reference=data.get("bank_reference"),
                failure_reason=data.get("failure_reason"),
                timestamp=data.get("updated_at") or utcnow(),
            )

        return await self._call(
            PayoutStatusResult, "STATUS_FAILED",
            lambda: self._http.request("GET", f"/payouts/{payout_id}/status"),
            build,
        )

    async def cancel_payout(self, payout_id: str) -> PayoutResult:
        return await self._call(
            PayoutResult, "CANCEL_FAILED",
            lambda: self._http.request("POST", f"/payouts/{payout_id}/cancel"),
            lambda data: PayoutResult(success=True, provider=self.provider_id, payout=parse_payout(data)),
        )

    async def list_payouts(self, request: ListPayoutsRequest) -> PayoutListResult:
        params = {
            "page": request.page,
            "page_size": request.page_size,
            "status": request.status.value if request.status else None,
            "customer_id": request.customer_id or None,
            "from_date": iso_date(request.from_date),
            "to_date": iso_date(request.to_date),
        }

        def build(data: Dict[str, Any]) -> PayoutListResult:
            return PayoutListResult(
                success=True,
                provider=self.provider_id,
                payouts=[parse_payout(p) for p in data.get("data") or []],
                total_count=data.get("total") or 0,
                page=data.get("page") or 1,
                page_size=data.get("page_size") or 20,
            )

        return await self._call(
            PayoutListResult, "LIST_FAILED",
            lambda: self._http.request("GET", "/payouts", params=params),
            build,
        )

    # Webhooks

    def validate_webhook_signature(self, payload: bytes, signature: str) -> bool:
        return validate_webhook_signature(payload, signature, self._config.webhook_secret)

    async def process_webhook(self, payload: bytes, signature: str) -> WebhookResult:
        if not self.validate_webhook_signature(payload, signature):
            logger.warning("Mesta webhook rejected: invalid signature")
            return WebhookResult(
                success=False,
                provider=self.provider_id,
                error_code="INVALID_SIGNATURE",
                error_message="Webhook signature validation failed",
                event_type="unknown",
            )
        try:
            body = json.loads(payload.decode("utf-8"))
            data = body.get("data") or {}
            return WebhookResult(
                success=True,
                provider=self.provider_id,
                event_type=body.get("event") or "unknown",
                resource_type=body.get("resource_type"),
                resource_id=data.get("id"),
                data=data,
            )
        except (ValueError, AttributeError) as e:
            logger.error(f"Error processing webhook from Mesta: {e}")
            return WebhookResult(
                success=False,
                provider=self.provider_id,
                error_code="PROCESSING_ERROR",
                error_message=str(e),
                event_type="unknown",
            )
