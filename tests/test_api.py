import json
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import FakeHttp, make_provider, unhealthy
from payout_router.enums import ProviderId
from payout_router.health import HealthProber
from payout_router.main import create_app
from payout_router.models import Customer, Quote, utcnow
from payout_router.providers.mesta import MestaProvider
from payout_router.registry import Registry
from payout_router.results import (
    CustomerListResult,
    CustomerResult,
    PayoutResult,
    QuoteResult,
    VerificationResult,
    WebhookResult,
)
from payout_router.routing import FailoverSelector
from payout_router.service import UnifiedPaymentService
from payout_router.settings import AuthSettings, MestaSettings, Settings
from payout_router.webhooks import compute_signature

QUOTE_BODY = {
    "source_currency": "USDT",
    "target_currency": "NGN",
    "source_amount": "100",
    "network": "polygon",
    "destination_country": "NG",
}


def build(*providers, auth=None, enable_failover=True, **client_kwargs) -> TestClient:
    reg = Registry(default_provider=ProviderId.MESTA)
    for p in providers:
        reg.register(p)
    prober = HealthProber(reg)
    service = UnifiedPaymentService(reg, FailoverSelector(reg, prober, enable_failover=enable_failover), prober)
    settings = Settings(_env_file=None, auth=auth or AuthSettings())
    return TestClient(create_app(settings, service), **client_kwargs)


@pytest.fixture
def mesta():
    return make_provider(ProviderId.MESTA)


@pytest.fixture
def borderless():
    return make_provider(ProviderId.BORDERLESS)


@pytest.fixture
def client(mesta, borderless):
    return build(mesta, borderless)


def quote(pid: ProviderId, fee: str) -> QuoteResult:
    return QuoteResult(success=True, provider=pid, quote=Quote(
        id=f"q-{pid.value}",
        source_currency="USDT",
        target_currency="NGN",
        fee_amount=Decimal(fee),
        network="polygon",
        provider=pid,
        expires_at=utcnow() + timedelta(minutes=5),
    ))


def test_liveness(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "providers": 2}


def test_list_providers(client):
    body = client.get("/api/v1/providers").json()
    assert body["success"] is True
    assert body["data"] == ["mesta", "borderless"]


def test_providers_health_reports_latency(client, borderless):
    borderless.check_health.return_value = unhealthy("Status code: 500")

    data = client.get("/api/v1/providers/health").json()["data"]

    assert data["mesta"]["is_healthy"] is True
    assert data["mesta"]["latency_ms"] == pytest.approx(10)
    assert data["borderless"]["message"] == "Status code: 500"


def test_get_customer_success_envelope(client, mesta):
    mesta.get_customer.return_value = CustomerResult(
        success=True,
        provider=ProviderId.MESTA,
        provider_customer_id="cus_1",
        customer=Customer(id="cus_1"),
    )

    r = client.get("/api/v1/customers/cus_1")

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["errorCode"] is None
    assert body["data"]["provider"] == "mesta"
    assert body["data"]["customer"]["id"] == "cus_1"
    assert "error_code" not in body["data"]
    mesta.get_customer.assert_awaited_once_with("cus_1")


def test_create_customer_returns_201(client, mesta):
    mesta.create_customer.return_value = CustomerResult(success=True, provider=ProviderId.MESTA,
                                                        customer=Customer(id="cus_2"))

    r = client.post("/api/v1/customers", json={"type": "individual", "contact": {"email": "a@b.test"}})

    assert r.status_code == 201
    assert r.json()["data"]["customer"]["id"] == "cus_2"


def test_read_failure_maps_to_404(client, mesta):
    mesta.get_payout.return_value = PayoutResult.failure(ProviderId.MESTA, "NOT_FOUND", "no payout")

    r = client.get("/api/v1/payouts/po_x")

    assert r.status_code == 404
    assert r.json() == {"success": False, "data": None, "errorCode": "NOT_FOUND", "errorMessage": "no payout"}


def test_status_failure_maps_to_404(client, mesta):
    mesta.get_kyc_status.return_value = VerificationResult.failure(ProviderId.MESTA, "KYC_STATUS_FAILED")

    assert client.get("/api/v1/kyc/cus_1").status_code == 404


def test_mutation_failure_maps_to_400(client, mesta):
    mesta.cancel_payout.return_value = PayoutResult.failure(ProviderId.MESTA, "CANCEL_FAILED", "already paid")

    r = client.post("/api/v1/payouts/po_1/cancel")

    assert r.status_code == 400
    assert r.json()["errorCode"] == "CANCEL_FAILED"


def test_provider_query_param_pins_provider(client, mesta, borderless):
    borderless.get_quote.return_value = quote(ProviderId.BORDERLESS, "1")

    r = client.get("/api/v1/quotes/q1", params={"provider": "borderless"})

    assert r.status_code == 200
    assert r.json()["data"]["quote"]["provider"] == "borderless"
    mesta.get_quote.assert_not_awaited()


def test_unknown_provider_is_validation_error(client):
    r = client.get("/api/v1/quotes/q1", params={"provider": "acme"})

    assert r.status_code == 422
    assert r.json()["errorCode"] == "VALIDATION_ERROR"


def test_request_without_amount_is_rejected(client):
    body = {k: v for k, v in QUOTE_BODY.items() if k != "source_amount"}

    r = client.post("/api/v1/quotes", json=body)

    assert r.status_code == 422
    assert r.json()["success"] is False
    assert "source_amount or target_amount" in r.json()["errorMessage"]


def test_page_size_is_bounded(client):
    assert client.get("/api/v1/payouts", params={"page_size": 500}).status_code == 422
    assert client.get("/api/v1/customers", params={"page": 0}).status_code == 422


def test_list_customers_builds_request(client, mesta):
    mesta.list_customers.return_value = CustomerListResult(success=True, provider=ProviderId.MESTA)

    client.get("/api/v1/customers", params={"status": "active", "search": "ada", "page_size": 5})

    request = mesta.list_customers.await_args.args[0]
    assert request.status.value == "active"
    assert request.search == "ada"
    assert request.page_size == 5


def test_all_unhealthy_returns_503(client, mesta, borderless):
    mesta.check_health.return_value = unhealthy()
    borderless.check_health.return_value = unhealthy()

    r = client.post("/api/v1/quotes", json=QUOTE_BODY)

    assert r.status_code == 503
    assert r.json()["errorCode"] == "ALL_PROVIDERS_UNAVAILABLE"


def test_provider_unavailable_envelope_hides_provider_detail(mesta, borderless):
    mesta.check_health.return_value = unhealthy('OAuth failed: {"client_secret_hint": "sk_live_abc"}')
    client = build(mesta, borderless, enable_failover=False)

    r = client.post("/api/v1/quotes", json=QUOTE_BODY)

    assert r.status_code == 503
    assert r.json()["errorCode"] == "PROVIDER_UNAVAILABLE"
    assert r.json()["errorMessage"] == "Provider mesta is unavailable"
    borderless.create_quote.assert_not_awaited()


def test_failover_on_unhealthy_default(client, mesta, borderless):
    mesta.check_health.return_value = unhealthy()
    borderless.create_quote.return_value = quote(ProviderId.BORDERLESS, "2")

    r = client.post("/api/v1/quotes", json=QUOTE_BODY)

    assert r.status_code == 200
    assert r.json()["data"]["provider"] == "borderless"


def test_compare_quotes_sorted_by_fee(client, mesta, borderless):
    mesta.create_quote.return_value = quote(ProviderId.MESTA, "3.5")
    borderless.create_quote.side_effect = RuntimeError("timeout")

    data = client.post("/api/v1/quotes/compare", json=QUOTE_BODY).json()["data"]
    assert [q["id"] for q in data] == ["q-mesta"]

    borderless.create_quote.side_effect = None
    borderless.create_quote.return_value = quote(ProviderId.BORDERLESS, "1.2")
    data = client.post("/api/v1/quotes/compare", json=QUOTE_BODY).json()["data"]
    assert [q["id"] for q in data] == ["q-borderless", "q-mesta"]


def test_webhook_passes_raw_body_and_signature(client, borderless):
    borderless.process_webhook.return_value = WebhookResult(
        success=True, provider=ProviderId.BORDERLESS, event_type="transfer.settled", resource_id="tr_1"
    )
    payload = json.dumps({"type": "transfer.settled"}).encode()

    r = client.post("/api/v1/webhooks/borderless", content=payload, headers={"X-Signature": "abc"})

    assert r.status_code == 200
    assert r.json()["data"]["event_type"] == "transfer.settled"
    borderless.process_webhook.assert_awaited_once_with(payload, "abc")
    borderless.check_health.assert_not_awaited()


def test_webhook_invalid_signature_is_400(client, mesta):
    mesta.process_webhook.return_value = WebhookResult(
        success=False, provider=ProviderId.MESTA, error_code="INVALID_SIGNATURE",
        error_message="Webhook signature validation failed", event_type="unknown",
    )

    r = client.post("/api/v1/webhooks/mesta", content="{}")

    assert r.status_code == 400
    assert r.json()["errorCode"] == "INVALID_SIGNATURE"


def test_unregistered_provider_is_500():
    reg_client = build(make_provider(ProviderId.MESTA))

    r = reg_client.post("/api/v1/webhooks/borderless", content="{}")

    assert r.status_code == 500
    assert r.json()["errorCode"] == "PROVIDER_NOT_FOUND"


def test_unexpected_error_is_500_envelope(mesta, borderless):
    mesta.get_customer.side_effect = KeyError("boom")
    client = build(mesta, borderless, raise_server_exceptions=False)

    r = client.get("/api/v1/customers/cus_1")

    assert r.status_code == 500
    assert r.json() == {
        "success": False,
        "data": None,
        "errorCode": "INTERNAL_ERROR",
        "errorMessage": "An unexpected error occurred",
    }


def test_api_key_required_when_enabled(mesta, borderless):
    mesta.submit_verification.return_value = VerificationResult(success=True, provider=ProviderId.MESTA)
    auth = AuthSettings(enabled=True, api_keys=["k1"])
    client = build(mesta, borderless, auth=auth)

    r = client.post("/api/v1/verification/cus_1/submit")
    assert r.status_code == 401
    assert r.json()["errorCode"] == "UNAUTHORIZED"

    assert client.post("/api/v1/verification/cus_1/submit", headers={"X-API-Key": "nope"}).status_code == 401
    assert client.post("/api/v1/verification/cus_1/submit", headers={"X-API-Key": "k1"}).status_code == 200
    assert client.get("/health").status_code == 200


def signed_mesta_client() -> TestClient:
    return build(MestaProvider(MestaSettings(webhook_secret="whsec_test"), http=FakeHttp()))


def test_webhook_signature_is_checked_before_decoding():
    client = signed_mesta_client()

    r = client.post("/api/v1/webhooks/mesta", content=b"\xff\xfe{}", headers={"X-Signature": "deadbeef"})

    assert r.status_code == 400
    assert r.json()["errorCode"] == "INVALID_SIGNATURE"


def test_signed_webhook_with_undecodable_body_is_processing_error():
    client = signed_mesta_client()
    payload = b"\xff\xfe{}"

    r = client.post("/api/v1/webhooks/mesta", content=payload,
                    headers={"X-Signature": compute_signature(payload, "whsec_test")})

    assert r.status_code == 400
    assert r.json()["errorCode"] == "PROCESSING_ERROR"
