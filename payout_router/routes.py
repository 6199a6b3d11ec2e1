from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from .enums import CustomerStatus, CustomerType, PayoutStatus, ProviderId
from .models import (
    ApiResponse,
    CreateCustomerRequest,
    CreatePayoutRequest,
    CreateQuoteRequest,
    InitiateKybRequest,
    InitiateKycRequest,
    ListCustomersRequest,
    ListPayoutsRequest,
    UpdateCustomerRequest,
    UploadDocumentRequest,
)
from .results import OperationResult
from .service import UnifiedPaymentService

router = APIRouter(prefix="/api/v1")

# failures of these read operations are reported as 404, everything else as 400
READ_FAILURE_CODES = {"NOT_FOUND", "GET_FAILED", "STATUS_FAILED", "KYC_STATUS_FAILED", "KYB_STATUS_FAILED"}
RESULT_FIELDS = {"success", "error_code", "error_message"}


def get_service(request: Request) -> UnifiedPaymentService:
    return request.app.state.service


def envelope(status_code: int, **fields: Any) -> JSONResponse:
    body = ApiResponse(**fields)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def respond(result: OperationResult, status_code: int = 200) -> JSONResponse:
    if result.success:
        return envelope(status_code, success=True, data=result.model_dump(mode="json", exclude=RESULT_FIELDS))
    failure_status = 404 if result.error_code in READ_FAILURE_CODES else 400
    return envelope(
        failure_status, success=False, errorCode=result.error_code, errorMessage=result.error_message
    )


# Providers

@router.get("/providers")
async def list_providers(service: UnifiedPaymentService = Depends(get_service)):
    return envelope(200, success=True, data=[str(pid) for pid in service.available_providers()])


@router.get("/providers/health")
async def providers_health(service: UnifiedPaymentService = Depends(get_service)):
    results = await service.check_all_providers_health()
    data = {
        str(pid): {**r.model_dump(mode="json", exclude={"latency"}), "latency_ms": r.latency_ms}
        for pid, r in results.items()
    }
    return envelope(200, success=True, data=data)


# Customers

@router.post("/customers")
async def create_customer(
    body: CreateCustomerRequest,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.create_customer(body, provider), status_code=201)


@router.get("/customers")
async def list_customers(
    type: Optional[CustomerType] = None,
    status: Optional[CustomerStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    request = ListCustomersRequest(type=type, status=status, search=search, page=page, page_size=page_size)
    return respond(await service.list_customers(request, provider))


@router.get("/customers/{customer_id}")
async def get_customer(
    customer_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.get_customer(customer_id, provider))


@router.put("/customers/{customer_id}")
async def update_customer(
    customer_id: str,
    body: UpdateCustomerRequest,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.update_customer(customer_id, body, provider))


# Verification

@router.post("/kyc/initiate")
async def initiate_kyc(
    body: InitiateKycRequest,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.initiate_kyc(body, provider))


@router.get("/kyc/{customer_id}")
async def get_kyc_status(
    customer_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.get_kyc_status(customer_id, provider))


@router.post("/kyb/initiate")
async def initiate_kyb(
    body: InitiateKybRequest,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.initiate_kyb(body, provider))


@router.get("/kyb/{customer_id}")
async def get_kyb_status(
    customer_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.get_kyb_status(customer_id, provider))


@router.post("/documents")
async def upload_document(
    body: UploadDocumentRequest,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.upload_document(body, provider))


@router.get("/documents/{customer_id}")
async def get_documents(
    customer_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.get_documents(customer_id, provider))


@router.post("/verification/{customer_id}/submit")
async def submit_verification(
    customer_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.submit_verification(customer_id, provider))


# Quotes

@router.post("/quotes")
async def create_quote(
    body: CreateQuoteRequest,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.create_quote(body, provider))


@router.post("/quotes/compare")
async def compare_quotes(body: CreateQuoteRequest, service: UnifiedPaymentService = Depends(get_service)):
    results = await service.create_quotes_from_all_providers(body)
    quotes = sorted((r.quote for r in results if r.quote is not None), key=lambda q: q.fee_amount)
    return envelope(200, success=True, data=[q.model_dump(mode="json") for q in quotes])


@router.get("/quotes/{quote_id}")
async def get_quote(
    quote_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.get_quote(quote_id, provider))


# Payouts

@router.post("/payouts")
async def create_payout(
    body: CreatePayoutRequest,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.create_payout(body, provider), status_code=201)


@router.get("/payouts")
async def list_payouts(
    status: Optional[PayoutStatus] = None,
    customer_id: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    request = ListPayoutsRequest(
        status=status,
        customer_id=customer_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return respond(await service.list_payouts(request, provider))


@router.get("/payouts/{payout_id}")
async def get_payout(
    payout_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.get_payout(payout_id, provider))


@router.get("/payouts/{payout_id}/status")
async def get_payout_status(
    payout_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.get_payout_status(payout_id, provider))


@router.post("/payouts/{payout_id}/cancel")
async def cancel_payout(
    payout_id: str,
    provider: Optional[ProviderId] = None,
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.cancel_payout(payout_id, provider))


# Webhooks

@router.post("/webhooks/{provider}")
async def receive_webhook(
    provider: ProviderId,
    request: Request,
    x_signature: str = Header(default=""),
    service: UnifiedPaymentService = Depends(get_service),
):
    return respond(await service.process_webhook(provider, await request.body(), x_signature))
