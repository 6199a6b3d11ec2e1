"""Borderless adapter: camelCase JSON behind an OAuth2 client-credentials token."""

import asyncio
import json
import logging
from datetime import datetime, timedelta
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
    Sender,
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
from ..settings import BorderlessSettings
from ..webhooks import validate_webhook_signature
from .base import PaymentProvider, compact, enum_table, iso_date, lookup, to_decimal
from .http_client import HttpResponse, ProviderHttpClient

logger = logging.getLogger(__name__)

TOKEN_REFRESH_MARGIN = timedelta(minutes=1)
DEFAULT_TOKEN_LIFETIME = 3600

PAYOUT_STATUS_MAP: Dict[str, PayoutStatus] = {
    "pending": PayoutStatus.CREATED,
    "created": PayoutStatus.CREATED,
    "awaiting_deposit": PayoutStatus.AWAITING_FUNDS,
    "awaiting_funds": PayoutStatus.AWAITING_FUNDS,
    "deposit_received": PayoutStatus.FUNDS_RECEIVED,
    "funds_received": PayoutStatus.FUNDS_RECEIVED,
    "processing": PayoutStatus.PROCESSING,
    "in_progress": PayoutStatus.PROCESSING,
    "settlement_initiated": PayoutStatus.SENT_TO_BENEFICIARY,
    "sent_to_beneficiary": PayoutStatus.SENT_TO_BENEFICIARY,
    "completed": PayoutStatus.COMPLETED,
    "settled": PayoutStatus.COMPLETED,
    "success": PayoutStatus.COMPLETED,
    "failed": PayoutStatus.FAILED,
    "error": PayoutStatus.FAILED,
    "cancelled": PayoutStatus.CANCELLED,
    "canceled": PayoutStatus.CANCELLED,
    "expired": PayoutStatus.EXPIRED,
    "under_review": PayoutStatus.PENDING_REVIEW,
    "pending_review": PayoutStatus.PENDING_REVIEW,
    "refunded": PayoutStatus.REFUNDED,
    "returned": PayoutStatus.REFUNDED,
}

VERIFICATION_STATUS_MAP: Dict[str, VerificationStatus] = {
    "not_started": VerificationStatus.NOT_STARTED,
    "pending": VerificationStatus.PENDING,
    "in_review": VerificationStatus.IN_REVIEW,
    "under_review": VerificationStatus.IN_REVIEW,
    "reviewing": VerificationStatus.IN_REVIEW,
    "processing": VerificationStatus.IN_REVIEW,
    "additional_info_required": VerificationStatus.ADDITIONAL_INFO_REQUIRED,
    "needs_info": VerificationStatus.ADDITIONAL_INFO_REQUIRED,
    "awaiting_documents": VerificationStatus.ADDITIONAL_INFO_REQUIRED,
    "approved": VerificationStatus.APPROVED,
    "verified": VerificationStatus.APPROVED,
    "completed": VerificationStatus.APPROVED,
    "complete": VerificationStatus.APPROVED,
    "rejected": VerificationStatus.REJECTED,
    "failed": VerificationStatus.REJECTED,
    "denied": VerificationStatus.REJECTED,
    "declined": VerificationStatus.REJECTED,
    "expired": VerificationStatus.EXPIRED,
}

VERIFICATION_LEVEL_MAP: Dict[str, VerificationLevel] = {
    "tier1": VerificationLevel.BASIC,
    "basic": VerificationLevel.BASIC,
    "tier2": VerificationLevel.STANDARD,
    "standard": VerificationLevel.STANDARD,
    "tier3": VerificationLevel.ENHANCED,
    "enhanced": VerificationLevel.ENHANCED,
    "tier4": VerificationLevel.FULL,
    "full": VerificationLevel.FULL,
}

LEVEL_TIERS: Dict[VerificationLevel, str] = {
    VerificationLevel.BASIC: "tier1",
    VerificationLevel.STANDARD: "tier2",
    VerificationLevel.ENHANCED: "tier3",
    VerificationLevel.FULL: "tier4",
}

DOCUMENT_STATUS_MAP: Dict[str, VerificationStatus] = {
    "uploaded": VerificationStatus.PENDING,
    "pending": VerificationStatus.PENDING,
    "in_review": VerificationStatus.IN_REVIEW,
    "reviewing": VerificationStatus.IN_REVIEW,
    "approved": VerificationStatus.APPROVED,
    "verified": VerificationStatus.APPROVED,
    "accepted": VerificationStatus.APPROVED,
    "rejected": VerificationStatus.REJECTED,
    "declined": VerificationStatus.REJECTED,
}

CUSTOMER_STATUS_MAP: Dict[str, CustomerStatus] = {
    "active": CustomerStatus.ACTIVE,
    "under_review": CustomerStatus.UNDER_REVIEW,
    "suspended": CustomerStatus.SUSPENDED,
    "blocked": CustomerStatus.BLOCKED,
    "closed": CustomerStatus.CLOSED,
}

NETWORK_NAMES: Dict[BlockchainNetwork, str] = {
    BlockchainNetwork.ETHEREUM: "ETH",
    BlockchainNetwork.POLYGON: "MATIC",
    BlockchainNetwork.TRON: "TRX",
    BlockchainNetwork.SOLANA: "SOL",
    BlockchainNetwork.BINANCE_SMART_CHAIN: "BSC",
    BlockchainNetwork.AVALANCHE: "AVAX",
    BlockchainNetwork.ARBITRUM: "ARB",
    BlockchainNetwork.OPTIMISM: "OP",
    BlockchainNetwork.BASE: "BASE",
}

# wire names that differ from the internal values
DOCUMENT_TYPE_NAMES: Dict[DocumentType, str] = {
    DocumentType.DRIVERS_LICENSE: "driving_license",
    DocumentType.CERTIFICATE_OF_INCORPORATION: "incorporation_certificate",
    DocumentType.SHAREHOLDER_REGISTER: "shareholder_registry",
}

DOCUMENT_TYPES: Dict[str, DocumentType] = {
    **enum_table(DocumentType),
    **{name: doc_type for doc_type, name in DOCUMENT_TYPE_NAMES.items()},
}
NETWORKS: Dict[str, BlockchainNetwork] = {
    **enum_table(BlockchainNetwork),
    **{name.lower(): network for network, name in NETWORK_NAMES.items()},
}
CUSTOMER_TYPES = enum_table(CustomerType)
STABLECOINS = enum_table(Stablecoin)
FIAT_CURRENCIES = enum_table(FiatCurrency)


def parse_fees(fees: Optional[Dict[str, Any]]) -> Optional[FeeBreakdown]:
    if not fees:
        return None
    return FeeBreakdown(
        network_fee=to_decimal(fees.get("networkFee")),
        processing_fee=to_decimal(fees.get("processingFee")),
        fx_spread_fee=to_decimal(fees.get("fxFee")),
        bank_fee=to_decimal(fees.get("settlementFee")),
        developer_fee=to_decimal(fees.get("partnerFee")),
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


def document_type_name(doc_type: DocumentType) -> str:
    return DOCUMENT_TYPE_NAMES.get(doc_type, doc_type.value)


def network_name(network: BlockchainNetwork) -> str:
    return NETWORK_NAMES[network]


def level_tier(level: VerificationLevel) -> str:
    return LEVEL_TIERS.get(level, "tier2")


def _amount(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def _address(address: Optional[Address]) -> Optional[Dict[str, Any]]:
    if address is None:
        return None
    return compact({
        "line1": address.street1,
        "line2": address.street2,
        "city": address.city,
        "state": address.state,
        "postalCode": address.postal_code,
        "country": address.country_code,
    })


def _parse_address(data: Optional[Dict[str, Any]]) -> Optional[Address]:
    if not data:
        return None
    return Address(
        street1=data.get("line1") or "",
        street2=data.get("line2"),
        city=data.get("city") or "",
        state=data.get("state"),
        postal_code=data.get("postalCode") or "",
        country_code=data.get("country") or "",
    )


def _party(party: Sender) -> Dict[str, Any]:
    return compact({
        "id": party.id,
        "externalId": party.external_id,
        "type": party.type.value,
        "firstName": party.first_name,
        "lastName": party.last_name,
        "businessName": party.business_name,
        "email": party.email,
        "phone": party.phone,
        "address": _address(party.address),
    })


def parse_customer(data: Dict[str, Any]) -> Customer:
    ind = data.get("individual")
    biz = data.get("business")
    contact = data.get("contact")
    return Customer(**compact({
        "id": data.get("id") or "",
        "external_id": data.get("externalId"),
        "type": lookup(CUSTOMER_TYPES, data.get("type"), CustomerType.INDIVIDUAL),
        "status": map_customer_status(data.get("status")),
        "individual": IndividualInfo(
            first_name=ind.get("firstName") or "",
            last_name=ind.get("lastName") or "",
            middle_name=ind.get("middleName"),
            date_of_birth=ind.get("dateOfBirth"),
            nationality=ind.get("nationality"),
        ) if ind else None,
        "business": BusinessInfo(
            legal_name=biz.get("legalName") or "",
            trading_name=biz.get("tradingName"),
            registration_number=biz.get("registrationNumber"),
            tax_id=biz.get("taxId"),
            country_of_incorporation=biz.get("countryOfIncorporation"),
            website=biz.get("website"),
        ) if biz else None,
        "contact": ContactInfo(
            email=contact.get("email") or "",
            phone=contact.get("phone"),
        ) if contact else None,
        "address": _parse_address(data.get("address")),
        "verification_status": map_verification_status(data.get("verificationStatus")),
        "verification_level": map_verification_level(data.get("verificationLevel")),
        "created_at": data.get("createdAt"),
        "updated_at": data.get("updatedAt"),
    }))


def parse_document(data: Dict[str, Any]) -> Document:
    return Document(**compact({
        "id": data.get("id") or "",
        "type": map_document_type(data.get("type")),
        "status": map_document_status(data.get("status")),
        "rejection_reason": data.get("rejectionReason"),
        "uploaded_at": data.get("createdAt"),
        "reviewed_at": data.get("reviewedAt"),
    }))


def parse_transfer(data: Dict[str, Any], request: Optional[CreatePayoutRequest] = None) -> Payout:
    deposit = data.get("depositAddress")
    wallet = None
    if deposit:
        wallet = DepositWallet(
            address=deposit.get("address") or "",
            network=lookup(NETWORKS, deposit.get("network"), BlockchainNetwork.POLYGON),
            currency=lookup(STABLECOINS, deposit.get("currency"), Stablecoin.USDT),
            expected_amount=to_decimal(deposit.get("expectedAmount")),
            expires_at=deposit.get("expiresAt"),
            memo=deposit.get("memo"),
        )
    source_fallback = request.source_amount if request and request.source_amount is not None else Decimal("0")
    target_fallback = request.target_amount if request and request.target_amount is not None else Decimal("0")
    return Payout(**compact({
        "id": data.get("id") or "",
        "external_id": data.get("externalId") or (request.external_id if request else None),
        "provider": ProviderId.BORDERLESS,
        "provider_order_id": data.get("id"),
        "status": map_payout_status(data.get("status")),
        "source_currency": lookup(
            STABLECOINS, data.get("sourceCurrency"),
            request.source_currency if request else Stablecoin.USDT,
        ),
        "source_amount": to_decimal(data.get("sourceAmount"), source_fallback),
        "target_currency": lookup(
            FIAT_CURRENCIES, data.get("destinationCurrency"),
            request.target_currency if request else FiatCurrency.USD,
        ),
        "target_amount": to_decimal(data.get("destinationAmount"), target_fallback),
        "exchange_rate": to_decimal(data.get("rate")),
        "fee_amount": to_decimal(data.get("fee")),
        "network": lookup(
            NETWORKS, data.get("network"),
            request.network if request else BlockchainNetwork.POLYGON,
        ),
        "sender": request.sender if request else None,
        "beneficiary": request.beneficiary if request else None,
        "deposit_wallet": wallet,
        "payment_method": request.payment_method if request else None,
        "blockchain_tx_hash": data.get("blockchainTxHash"),
        "bank_reference": data.get("bankReference"),
        "failure_reason": data.get("failureReason"),
        "created_at": data.get("createdAt"),
        "updated_at": data.get("updatedAt"),
        "completed_at": data.get("completedAt"),
    }))


class BorderlessAuthError(Exception):
    pass


class BorderlessProvider(PaymentProvider):
    def __init__(
        self,
        config: BorderlessSettings,
        quote_validity_minutes: int = 5,
        http: Optional[ProviderHttpClient] = None,
        breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        self._config = config
        self._quote_validity = timedelta(minutes=quote_validity_minutes)
        self._http = http or ProviderHttpClient(
            "borderless",
            config.base_url,
            timeout_seconds=config.timeout_seconds,
            retry_attempts=config.retry_attempts,
            breaker=breaker,
        )
        self._token_lock = asyncio.Lock()
        self._access_token: Optional[str] = None
        self._token_expiry: Optional[datetime] = None

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.BORDERLESS

    @property
    def name(self) -> str:
        return "Borderless"

    async def close(self) -> None:
        await self._http.close()

    # OAuth

    def _token_valid(self) -> bool:
        return (
            self._access_token is not None
            and self._token_expiry is not None
            and utcnow() < self._token_expiry - TOKEN_REFRESH_MARGIN
        )

    async def _ensure_token(self, retry: bool = True) -> str:
        if self._token_valid():
            return self._access_token
        async with self._token_lock:
            if self._token_valid():
                return self._access_token
            response = await self._http.request(
                "POST",
                "/oauth/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._config.client_id,
                    "client_secret": self._config.api_secret,
                },
                retry=retry,
            )
            if not response.ok:
                logger.error(f"Borderless OAuth failed: HTTP {response.status} {response.text}")
                raise BorderlessAuthError(f"OAuth failed: HTTP {response.status}")
            body = response.json()
            token = body.get("access_token")
            if not token:
                raise BorderlessAuthError("OAuth response did not include an access token")
            self._access_token = token
            self._token_expiry = utcnow() + timedelta(seconds=int(body.get("expires_in") or DEFAULT_TOKEN_LIFETIME))
            logger.info("Borderless access token refreshed")
            return token

    async def _request(self, method: str, path: str, retry: bool = True, **kwargs: Any) -> HttpResponse:
        token = await self._ensure_token(retry=retry)
        return await self._http.request(
            method, path, headers={"Authorization": f"Bearer {token}"}, retry=retry, **kwargs
        )

    async def check_health(self) -> HealthCheckResult:
        return await self._probe(lambda: self._request("GET", "/health", retry=False))

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
            "externalId": request.external_id,
            "type": request.type.value,
            "individual": compact({
                "firstName": individual.first_name,
                "lastName": individual.last_name,
                "middleName": individual.middle_name,
                "dateOfBirth": iso_date(individual.date_of_birth),
                "nationality": individual.nationality,
            }) if individual else None,
            "business": compact({
                "legalName": business.legal_name,
                "tradingName": business.trading_name,
                "registrationNumber": business.registration_number,
                "taxId": business.tax_id,
                "countryOfIncorporation": business.country_of_incorporation,
                "website": business.website,
            }) if business else None,
            "contact": compact({"email": request.contact.email, "phone": request.contact.phone}),
            "address": _address(request.address),
            "metadata": request.metadata,
        })
        return await self._call(
            CustomerResult, "CREATE_FAILED",
            lambda: self._request("POST", "/customers", json=payload),
            self._customer_result,
        )

    async def get_customer(self, customer_id: str) -> CustomerResult:
        return await self._call(
            CustomerResult, "GET_FAILED",
            lambda: self._request("GET", f"/customers/{customer_id}"),
            self._customer_result,
            not_found_code="NOT_FOUND",
        )

    async def update_customer(self, customer_id: str, request: UpdateCustomerRequest) -> CustomerResult:
        individual, business, contact = request.individual, request.business, request.contact
        payload = compact({
            "individual": compact({
                "firstName": individual.first_name,
                "lastName": individual.last_name,
                "middleName": individual.middle_name,
                "dateOfBirth": iso_date(individual.date_of_birth),
                "nationality": individual.nationality,
            }) if individual else None,
            "business": compact({
                "legalName": business.legal_name,
                "tradingName": business.trading_name,
                "registrationNumber": business.registration_number,
                "taxId": business.tax_id,
            }) if business else None,
            "contact": compact({"email": contact.email, "phone": contact.phone}) if contact else None,
            "address": _address(request.address),
            "metadata": request.metadata,
        })
        return await self._call(
            CustomerResult, "UPDATE_FAILED",
            lambda: self._request("PATCH", f"/customers/{customer_id}", json=payload),
            self._customer_result,
        )

    async def list_customers(self, request: ListCustomersRequest) -> CustomerListResult:
        params = {
            "page": request.page,
            "limit": request.page_size,
            "type": request.type.value if request.type else None,
            "status": request.status.value if request.status else None,
            "q": request.search or None,
        }

        def build(data: Dict[str, Any]) -> CustomerListResult:
            return CustomerListResult(
                success=True,
                provider=self.provider_id,
                customers=[parse_customer(c) for c in data.get("data") or []],
                total_count=data.get("total") or 0,
                page=data.get("page") or 1,
                page_size=data.get("limit") or 20,
            )

        return await self._call(
            CustomerListResult, "LIST_FAILED",
            lambda: self._request("GET", "/customers", params=params),
            build,
        )

    # Verification

    async def _initiate(self, path: str, failure_code: str, request: InitiateKycRequest) -> VerificationResult:
        payload = compact({
            "customerId": request.customer_id,
            "level": level_tier(request.target_level),
            "redirectUrl": request.redirect_url,
            "webhookUrl": request.webhook_url,
        })

        def build(data: Dict[str, Any]) -> VerificationResult:
            return VerificationResult(
                success=True,
                provider=self.provider_id,
                customer_id=request.customer_id,
                session_id=data.get("sessionId"),
                verification_url=data.get("url"),
                status=map_verification_status(data.get("status")),
                level=request.target_level,
                expires_at=data.get("expiresAt"),
            )

        return await self._call(
            VerificationResult, failure_code,
            lambda: self._request("POST", path, json=payload),
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
                expires_at=data.get("expiresAt"),
                required_documents=data.get("requiredDocuments"),
                rejection_reason=data.get("failureReason"),
                verification=VerificationInfo(**compact({
                    "status": status,
                    "level": level,
                    "kyc_completed": approved and not kyb,
                    "kyb_completed": approved and kyb,
                    "rejection_reason": data.get("failureReason"),
                    "required_info": data.get("requiredDocuments"),
                    "risk_score": data.get("riskScore"),
                    "risk_level": data.get("riskLevel"),
                    "submitted_at": data.get("submittedAt"),
                    "completed_at": data.get("completedAt"),
                    "expires_at": data.get("expiresAt"),
                })),
            )

        return await self._call(
            VerificationResult, failure_code,
            lambda: self._request("GET", path),
            build,
        )

    async def initiate_kyc(self, request: InitiateKycRequest) -> VerificationResult:
        return await self._initiate("/verification/kyc", "KYC_INITIATE_FAILED", request)

    async def get_kyc_status(self, customer_id: str) -> VerificationResult:
        return await self._status(f"/verification/kyc/{customer_id}", "KYC_STATUS_FAILED", customer_id, kyb=False)

    async def initiate_kyb(self, request: InitiateKybRequest) -> VerificationResult:
        return await self._initiate("/verification/kyb", "KYB_INITIATE_FAILED", request)

    async def get_kyb_status(self, customer_id: str) -> VerificationResult:
        return await self._status(f"/verification/kyb/{customer_id}", "KYB_STATUS_FAILED", customer_id, kyb=True)

    async def upload_document(self, request: UploadDocumentRequest) -> DocumentResult:
        payload = compact({
            "customerId": request.customer_id,
            "type": document_type_name(request.document_type),
            "number": request.document_number,
            "issuingCountry": request.issuing_country,
            "issueDate": iso_date(request.issue_date),
            "expiryDate": iso_date(request.expiry_date),
            "frontImage": request.front_image_base64,
            "backImage": request.back_image_base64,
            "contentType": request.mime_type,
        })

        def build(data: Dict[str, Any]) -> DocumentResult:
            document = parse_document({"type": document_type_name(request.document_type), **data})
            return DocumentResult(success=True, provider=self.provider_id, document=document)

        return await self._call(
            DocumentResult, "UPLOAD_FAILED",
            lambda: self._request("POST", "/documents", json=payload),
            build,
        )

    async def get_documents(self, customer_id: str) -> DocumentListResult:
        def build(data: Dict[str, Any]) -> DocumentListResult:
            return DocumentListResult(
                success=True,
                provider=self.provider_id,
                documents=[parse_document(d) for d in data.get("documents") or []],
            )

        return await self._call(
            DocumentListResult, "LIST_FAILED",
            lambda: self._request("GET", f"/customers/{customer_id}/documents"),
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
            lambda: self._request("POST", f"/verification/{customer_id}/submit"),
            build,
        )

    # Quotes

    def _parse_quote(self, data: Dict[str, Any], request: Optional[CreateQuoteRequest] = None) -> Quote:
        return Quote(**compact({
            "id": data.get("id") or "",
            "provider_quote_id": data.get("id"),
            "source_currency": request.source_currency if request else lookup(
                STABLECOINS, data.get("sourceCurrency"), Stablecoin.USDT),
            "target_currency": request.target_currency if request else lookup(
                FIAT_CURRENCIES, data.get("destinationCurrency"), FiatCurrency.USD),
            "source_amount": to_decimal(data.get("sourceAmount")),
            "target_amount": to_decimal(data.get("destinationAmount")),
            "exchange_rate": to_decimal(data.get("rate")),
            "fee_amount": to_decimal(data.get("fee")),
            "fee_breakdown": parse_fees(data.get("fees")),
            "total_amount": to_decimal(data.get("totalAmount")),
            "network": request.network if request else lookup(
                NETWORKS, data.get("network"), BlockchainNetwork.POLYGON),
            "provider": self.provider_id,
            "created_at": data.get("createdAt"),
            "expires_at": data.get("expiresAt") or utcnow() + self._quote_validity,
        }))

    async def create_quote(self, request: CreateQuoteRequest) -> QuoteResult:
        payload = compact({
            "sourceCurrency": request.source_currency.value,
            "destinationCurrency": request.target_currency.value,
            "sourceAmount": _amount(request.source_amount),
            "destinationAmount": _amount(request.target_amount),
            "network": network_name(request.network),
            "destinationCountry": request.destination_country,
            "paymentMethod": request.payment_method.value,
        })
        return await self._call(
            QuoteResult, "QUOTE_FAILED",
            lambda: self._request("POST", "/quotes", json=payload),
            lambda data: QuoteResult(success=True, provider=self.provider_id, quote=self._parse_quote(data, request)),
        )

    async def get_quote(self, quote_id: str) -> QuoteResult:
        return await self._call(
            QuoteResult, "GET_FAILED",
            lambda: self._request("GET", f"/quotes/{quote_id}"),
            lambda data: QuoteResult(success=True, provider=self.provider_id, quote=self._parse_quote(data)),
            not_found_code="NOT_FOUND",
        )

    # Payouts

    async def create_payout(self, request: CreatePayoutRequest) -> PayoutResult:
        bank = request.beneficiary.bank_account
        recipient = _party(request.beneficiary)
        recipient["bankAccount"] = compact({
            "bankName": bank.bank_name,
            "accountNumber": bank.account_number,
            "accountName": bank.account_holder_name,
            "routingNumber": bank.routing_number,
            "swiftBic": bank.swift_code,
            "sortCode": bank.sort_code,
            "iban": bank.iban,
            "currency": bank.currency.value,
            "country": bank.country_code,
        })
        payload = compact({
            "externalId": request.external_id,
            "quoteId": request.quote_id,
            "sourceCurrency": request.source_currency.value,
            "destinationCurrency": request.target_currency.value,
            "sourceAmount": _amount(request.source_amount),
            "destinationAmount": _amount(request.target_amount),
            "network": network_name(request.network),
            "paymentMethod": request.payment_method.value,
            "sender": _party(request.sender),
            "recipient": recipient,
            "purpose": request.purpose,
            "reference": request.reference,
            "metadata": request.metadata,
        })
        return await self._call(
            PayoutResult, "PAYOUT_FAILED",
            lambda: self._request("POST", "/transfers", json=payload),
            lambda data: PayoutResult(success=True, provider=self.provider_id, payout=parse_transfer(data, request)),
        )

    async def get_payout(self, payout_id: str) -> PayoutResult:
        return await self._call(
            PayoutResult, "GET_FAILED",
            lambda: self._request("GET", f"/transfers/{payout_id}"),
            lambda data: PayoutResult(success=True, provider=self.provider_id, payout=parse_transfer(data)),
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
                blockchain_tx_hash=data.get("blockchainTxHash"),
                bank_reference=data.get("bankReference"),
                failure_reason=data.get("failureReason"),
                timestamp=data.get("updatedAt") or utcnow(),
            )

        return await self._call(
            PayoutStatusResult, "STATUS_FAILED",
            lambda: self._request("GET", f"/transfers/{payout_id}"),
            build,
        )

    async def cancel_payout(self, payout_id: str) -> PayoutResult:
        return await self._call(
            PayoutResult, "CANCEL_FAILED",
            lambda: self._request("POST", f"/transfers/{payout_id}/cancel"),
            lambda data: PayoutResult(success=True, provider=self.provider_id, payout=parse_transfer(data)),
        )

    async def list_payouts(self, request: ListPayoutsRequest) -> PayoutListResult:
        params = {
            "page": request.page,
            "limit": request.page_size,
            "status": request.status.value if request.status else None,
            "customerId": request.customer_id or None,
            "from": iso_date(request.from_date),
            "to": iso_date(request.to_date),
        }

        def build(data: Dict[str, Any]) -> PayoutListResult:
            return PayoutListResult(
                success=True,
                provider=self.provider_id,
                payouts=[parse_transfer(t) for t in data.get("transfers") or []],
                total_count=data.get("total") or 0,
                page=data.get("page") or 1,
                page_size=data.get("limit") or 20,
            )

        return await self._call(
            PayoutListResult, "LIST_FAILED",
            lambda: self._request("GET", "/transfers", params=params),
            build,
        )

    # Webhooks

    def validate_webhook_signature(self, payload: bytes, signature: str) -> bool:
        return validate_webhook_signature(payload, signature, self._config.webhook_secret)

    async def process_webhook(self, payload: bytes, signature: str) -> WebhookResult:
        if not self.validate_webhook_signature(payload, signature):
            logger.warning("Borderless webhook rejected: invalid signature")
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
                event_type=body.get("type") or "unknown",
                resource_type=body.get("resourceType"),
                resource_id=data.get("id"),
                data=data,
            )
        except (ValueError, AttributeError) as e:
            logger.error(f"Error processing webhook from Borderless: {e}")
            return WebhookResult(
                success=False,
                provider=self.provider_id,
                error_code="PROCESSING_ERROR",
                error_message=str(e),
                event_type="unknown",
            )
