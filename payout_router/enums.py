from enum import Enum


class ProviderId(str, Enum):
    MESTA = "mesta"
    BORDERLESS = "borderless"

    def __str__(self) -> str:
        return self.value


class Stablecoin(str, Enum):
    USDT = "USDT"
    USDC = "USDC"


class FiatCurrency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    NGN = "NGN"
    KES = "KES"
    ZAR = "ZAR"
    GHS = "GHS"
    TZS = "TZS"
    UGX = "UGX"
    INR = "INR"
    PHP = "PHP"
    MXN = "MXN"
    BRL = "BRL"
    ARS = "ARS"
    COP = "COP"


class BlockchainNetwork(str, Enum):
    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    TRON = "tron"
    SOLANA = "solana"
    BINANCE_SMART_CHAIN = "bsc"
    AVALANCHE = "avalanche"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BASE = "base"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    SEPA = "sepa"
    ACH = "ach"
    FASTER_PAYMENTS = "faster_payments"
    SWIFT = "swift"
    MOBILE_MONEY = "mobile_money"
    CASH_PICKUP = "cash_pickup"


class PayoutStatus(str, Enum):
    """Payout lifecycle as mirrored from the provider, in business order."""

    CREATED = "created"
    AWAITING_FUNDS = "awaiting_funds"
    FUNDS_RECEIVED = "funds_received"
    PROCESSING = "processing"
    SENT_TO_BENEFICIARY = "sent_to_beneficiary"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PENDING_REVIEW = "pending_review"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_PAYOUT_STATUSES


TERMINAL_PAYOUT_STATUSES = frozenset({
    PayoutStatus.COMPLETED,
    PayoutStatus.FAILED,
    PayoutStatus.CANCELLED,
    PayoutStatus.EXPIRED,
    PayoutStatus.REFUNDED,
})


class VerificationStatus(str, Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    IN_REVIEW = "in_review"
    ADDITIONAL_INFO_REQUIRED = "additional_info_required"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class VerificationLevel(str, Enum):
    NONE = "none"
    BASIC = "basic"
    STANDARD = "standard"
    ENHANCED = "enhanced"
    FULL = "full"


class CustomerType(str, Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class CustomerStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    UNDER_REVIEW = "under_review"
    SUSPENDED = "suspended"
    BLOCKED = "blocked"
    CLOSED = "closed"


class BeneficiaryType(str, Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class DocumentType(str, Enum):
    PASSPORT = "passport"
    NATIONAL_ID = "national_id"
    DRIVERS_LICENSE = "drivers_license"
    RESIDENCE_PERMIT = "residence_permit"
    UTILITY_BILL = "utility_bill"
    BANK_STATEMENT = "bank_statement"
    TAX_DOCUMENT = "tax_document"
    SELFIE = "selfie"
    CERTIFICATE_OF_INCORPORATION = "certificate_of_incorporation"
    BUSINESS_REGISTRATION = "business_registration"
    ARTICLES_OF_ASSOCIATION = "articles_of_association"
    SHAREHOLDER_REGISTER = "shareholder_register"
    UBO_DECLARATION = "ubo_declaration"
    OTHER = "other"
