from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .enums import (
    BeneficiaryType,
    BlockchainNetwork,
    CustomerStatus,
    CustomerType,
    DocumentType,
    FiatCurrency,
    PaymentMethod,
    PayoutStatus,
    ProviderId,
    Stablecoin,
    VerificationLevel,
    VerificationStatus,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Parties

class Address(BaseModel):
    street1: str
    street2: Optional[str] = None
    city: str
    state: Optional[str] = None
    postal_code: str
    country_code: str


class IndividualInfo(BaseModel):
    first_name: str
    last_name: str
    middle_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None


class BusinessInfo(BaseModel):
    legal_name: str
    trading_name: Optional[str] = None
    registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    country_of_incorporation: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None


class ContactInfo(BaseModel):
    email: str
    phone: Optional[str] = None


class BankAccount(BaseModel):
    bank_name: str
    account_number: str
    account_holder_name: str
    routing_number: Optional[str] = None
    swift_code: Optional[str] = None
    sort_code: Optional[str] = None
    iban: Optional[str] = None
    currency: FiatCurrency
    country_code: str


class Sender(BaseModel):
    id: Optional[str] = None
    external_id: Optional[str] = None
    type: BeneficiaryType = BeneficiaryType.INDIVIDUAL
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    business_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    address: Optional[Address] = None


class Beneficiary(Sender):
    bank_account: BankAccount


# Requests

class CreateCustomerRequest(BaseModel):
    external_id: Optional[str] = None
    type: CustomerType
    individual: Optional[IndividualInfo] = None
    business: Optional[BusinessInfo] = None
    contact: ContactInfo
    address: Optional[Address] = None
    metadata: Optional[Dict[str, str]] = None


class UpdateCustomerRequest(BaseModel):
    individual: Optional[IndividualInfo] = None
    business: Optional[BusinessInfo] = None
    contact: Optional[ContactInfo] = None
    address: Optional[Address] = None
    metadata: Optional[Dict[str, str]] = None


class ListCustomersRequest(BaseModel):
    type: Optional[CustomerType] = None
    status: Optional[CustomerStatus] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class InitiateKycRequest(BaseModel):
    customer_id: str
    target_level: VerificationLevel = VerificationLevel.STANDARD
    redirect_url: Optional[str] = None
    webhook_url: Optional[str] = None


class InitiateKybRequest(InitiateKycRequest):
    pass


class UploadDocumentRequest(BaseModel):
    customer_id: str
    document_type: DocumentType
    document_number: Optional[str] = None
    issuing_country: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    front_image_base64: str
    back_image_base64: Optional[str] = None
    mime_type: str = "image/jpeg"


class CreateQuoteRequest(BaseModel):
    source_currency: Stablecoin
    target_currency: FiatCurrency
    source_amount: Optional[Decimal] = Field(default=None, gt=0)
    target_amount: Optional[Decimal] = Field(default=None, gt=0)
    network: BlockchainNetwork
    destination_country: str
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER

    @model_validator(mode="after")
    def _require_amount(self) -> "CreateQuoteRequest":
        if self.source_amount is None and self.target_amount is None:
            raise ValueError("either source_amount or target_amount is required")
        return self


class CreatePayoutRequest(BaseModel):
    external_id: Optional[str] = None
    quote_id: Optional[str] = None
    source_currency: Stablecoin
    target_currency: FiatCurrency
    source_amount: Optional[Decimal] = Field(default=None, gt=0)
    target_amount: Optional[Decimal] = Field(default=None, gt=0)
    network: BlockchainNetwork
    payment_method: PaymentMethod
    sender: Sender
    beneficiary: Beneficiary
    purpose: Optional[str] = None
    reference: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None

    @model_validator(mode="after")
    def _require_amount(self) -> "CreatePayoutRequest":
        if self.quote_id is None and self.source_amount is None and self.target_amount is None:
            raise ValueError("quote_id, source_amount or target_amount is required")
        return self


class ListPayoutsRequest(BaseModel):
    status: Optional[PayoutStatus] = None
    customer_id: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


# Provider-normalized entities

class HealthCheckResult(BaseModel):
    is_healthy: bool
    status: str
    message: Optional[str] = None
    latency: Optional[timedelta] = None
    checked_at: datetime = Field(default_factory=utcnow)

    @property
    def latency_ms(self) -> Optional[float]:
        if self.latency is None:
            return None
        return self.latency.total_seconds() * 1000

    @classmethod
    def healthy(cls, latency: Optional[timedelta] = None) -> "HealthCheckResult":
        return cls(is_healthy=True, status="Healthy", latency=latency)

    @classmethod
    def unhealthy(cls, message: str, latency: Optional[timedelta] = None) -> "HealthCheckResult":
        return cls(is_healthy=False, status="Unhealthy", message=message, latency=latency)


class Customer(BaseModel):
    id: str
    external_id: Optional[str] = None
    type: CustomerType = CustomerType.INDIVIDUAL
    status: CustomerStatus = CustomerStatus.PENDING
    individual: Optional[IndividualInfo] = None
    business: Optional[BusinessInfo] = None
    contact: Optional[ContactInfo] = None
    address: Optional[Address] = None
    verification_status: VerificationStatus = VerificationStatus.NOT_STARTED
    verification_level: VerificationLevel = VerificationLevel.NONE
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class VerificationCheck(BaseModel):
    id: str
    check_type: str
    status: VerificationStatus
    result: Optional[str] = None
    details: Optional[str] = None
    performed_at: datetime = Field(default_factory=utcnow)


class Document(BaseModel):
    id: str
    type: DocumentType = DocumentType.OTHER
    status: VerificationStatus = VerificationStatus.PENDING
    rejection_reason: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=utcnow)
    reviewed_at: Optional[datetime] = None


class VerificationInfo(BaseModel):
    status: VerificationStatus
    level: VerificationLevel
    kyc_completed: bool = False
    kyb_completed: bool = False
    checks: List[VerificationCheck] = Field(default_factory=list)
    documents: List[Document] = Field(default_factory=list)
    rejection_reason: Optional[str] = None
    required_info: Optional[List[str]] = None
    risk_score: Optional[int] = None
    risk_level: Optional[str] = None
    submitted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class FeeBreakdown(BaseModel):
    network_fee: Decimal = Decimal("0")
    processing_fee: Decimal = Decimal("0")
    fx_spread_fee: Decimal = Decimal("0")
    bank_fee: Decimal = Decimal("0")
    developer_fee: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return (
            self.network_fee + self.processing_fee + self.fx_spread_fee
            + self.bank_fee + self.developer_fee
        )


class Quote(BaseModel):
    id: str
    provider_quote_id: Optional[str] = None
    source_currency: Stablecoin
    target_currency: FiatCurrency
    source_amount: Decimal = Decimal("0")
    target_amount: Decimal = Decimal("0")
    exchange_rate: Decimal = Decimal("0")
    fee_amount: Decimal = Decimal("0")
    fee_breakdown: Optional[FeeBreakdown] = None
    total_amount: Decimal = Decimal("0")
    network: BlockchainNetwork
    provider: ProviderId
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime

    @property
    def is_valid(self) -> bool:
        # advisory only, the provider decides whether the quote is still honoured
        return utcnow() < self.expires_at


class DepositWallet(BaseModel):
    address: str
    network: BlockchainNetwork
    currency: Stablecoin
    expected_amount: Decimal = Decimal("0")
    expires_at: Optional[datetime] = None
    memo: Optional[str] = None


class Payout(BaseModel):
    id: str
    external_id: Optional[str] = None
    provider: ProviderId
    provider_order_id: Optional[str] = None
    status: PayoutStatus
    source_currency: Stablecoin
    source_amount: Decimal = Decimal("0")
    target_currency: FiatCurrency
    target_amount: Decimal = Decimal("0")
    exchange_rate: Decimal = Decimal("0")
    fee_amount: Decimal = Decimal("0")
    network: BlockchainNetwork
    sender: Optional[Sender] = None
    beneficiary: Optional[Beneficiary] = None
    deposit_wallet: Optional[DepositWallet] = None
    payment_method: Optional[PaymentMethod] = None
    blockchain_tx_hash: Optional[str] = None
    bank_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


# API envelope

class ApiResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    errorCode: Optional[str] = None
    errorMessage: Optional[str] = None
