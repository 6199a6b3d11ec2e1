from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .enums import PayoutStatus, ProviderId, VerificationLevel, VerificationStatus
from .models import Customer, Document, Payout, Quote, VerificationInfo


class OperationResult(BaseModel):
    success: bool
    provider: ProviderId
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, provider: ProviderId, code: str, message: Optional[str] = None):
        return cls(success=False, provider=provider, error_code=code, error_message=message)


class CustomerResult(OperationResult):
    customer: Optional[Customer] = None
    provider_customer_id: Optional[str] = None


class CustomerListResult(OperationResult):
    customers: List[Customer] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 20


class VerificationResult(OperationResult):
    customer_id: Optional[str] = None
    session_id: Optional[str] = None
    verification_url: Optional[str] = None
    status: VerificationStatus = VerificationStatus.NOT_STARTED
    level: VerificationLevel = VerificationLevel.NONE
    expires_at: Optional[datetime] = None
    required_documents: Optional[List[str]] = None
    rejection_reason: Optional[str] = None
    verification: Optional[VerificationInfo] = None


class DocumentResult(OperationResult):
    document: Optional[Document] = None


class DocumentListResult(OperationResult):
    documents: List[Document] = Field(default_factory=list)


class QuoteResult(OperationResult):
    quote: Optional[Quote] = None


class PayoutResult(OperationResult):
    payout: Optional[Payout] = None


class PayoutStatusResult(OperationResult):
    payout_id: Optional[str] = None
    provider_payout_id: Optional[str] = None
    status: Optional[PayoutStatus] = None
    provider_status: Optional[str] = None
    blockchain_tx_hash: Optional[str] = None
    bank_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    timestamp: Optional[datetime] = None


class PayoutListResult(OperationResult):
    payouts: List[Payout] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 20


class WebhookResult(OperationResult):
    event_type: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    data: Optional[Any] = None
