import hashlib
import hmac

from payout_router.webhooks import compute_signature, validate_webhook_signature

PAYLOAD = '{"event":"payout.completed","data":{"id":"po_1"}}'
SECRET = "whsec_test"


def test_compute_signature_is_hex_hmac_sha256():
    expected = hmac.new(SECRET.encode(), PAYLOAD.encode(), hashlib.sha256).hexdigest()
    assert compute_signature(PAYLOAD, SECRET) == expected
    assert compute_signature(PAYLOAD.encode(), SECRET) == expected


def test_valid_signature_forms():
    sig = compute_signature(PAYLOAD, SECRET)
    assert validate_webhook_signature(PAYLOAD, sig, SECRET)
    assert validate_webhook_signature(PAYLOAD, sig.upper(), SECRET)
    assert validate_webhook_signature(PAYLOAD, f"sha256={sig}", SECRET)
    assert validate_webhook_signature(PAYLOAD, f"  {sig}\n", SECRET)


def test_tampered_payload_rejected():
    sig = compute_signature(PAYLOAD, SECRET)
    assert not validate_webhook_signature(PAYLOAD.replace("po_1", "po_2"), sig, SECRET)


def test_missing_secret_or_signature_rejected():
    sig = compute_signature(PAYLOAD, "")
    assert not validate_webhook_signature(PAYLOAD, sig, "")
    assert not validate_webhook_signature(PAYLOAD, "", SECRET)


def test_non_ascii_signature_rejected():
    assert not validate_webhook_signature(PAYLOAD, "é" * 64, SECRET)
