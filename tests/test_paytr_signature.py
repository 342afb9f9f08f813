import base64
import hashlib
import hmac

import pytest

from paytr_bridge.core.config import Settings
from paytr_bridge.payments.base import CallbackNotification, PaymentOutcome
from paytr_bridge.payments.paytr import PaytrVerifier, compute_signature, verify_signature

KEY = "merchant-key"
SALT = "merchant-salt"


def _reference_hash(message: str) -> str:
    digest = hmac.new(KEY.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def test_compute_signature_matches_canonical_concatenation() -> None:
    signature = compute_signature("ORD1", "success", "29900", merchant_key=KEY, merchant_salt=SALT)

    assert signature == _reference_hash("ORD1merchant-saltsuccess29900")


def test_verify_signature_accepts_matching_hash() -> None:
    signature = _reference_hash("ORD1merchant-saltsuccess29900")

    assert verify_signature("ORD1", "success", "29900", signature, merchant_key=KEY, merchant_salt=SALT)


@pytest.mark.parametrize(
    "order_reference, status_token, amount_token, salt",
    [
        ("ORD2", "success", "29900", SALT),
        ("ORD1", "failed", "29900", SALT),
        ("ORD1", "success", "29901", SALT),
        ("ORD1", "success", "29900", "other-salt"),
    ],
)
def test_changing_any_field_invalidates_signature(
    order_reference: str, status_token: str, amount_token: str, salt: str
) -> None:
    signature = _reference_hash("ORD1merchant-saltsuccess29900")

    assert not verify_signature(
        order_reference, status_token, amount_token, signature, merchant_key=KEY, merchant_salt=salt
    )


def test_signature_covers_raw_tokens_not_normalized_values() -> None:
    signature = compute_signature("ORD1", "success", "29900", merchant_key=KEY, merchant_salt=SALT)

    assert not verify_signature("ORD1", "SUCCESS", "29900", signature, merchant_key=KEY, merchant_salt=SALT)
    assert not verify_signature("ORD1", "success", "029900", signature, merchant_key=KEY, merchant_salt=SALT)


def test_empty_signature_is_rejected() -> None:
    assert not verify_signature("ORD1", "success", "29900", "", merchant_key=KEY, merchant_salt=SALT)


def _notification(signature: str) -> CallbackNotification:
    return CallbackNotification(
        order_reference="ORD1",
        outcome=PaymentOutcome.SUCCESS,
        amount_minor_units=29900,
        signature=signature,
        status_token="success",
        amount_token="29900",
    )


def test_verifier_flags_mismatch_without_raising() -> None:
    verifier = PaytrVerifier(Settings(paytr_merchant_key=KEY, paytr_merchant_salt=SALT))

    result = verifier.verify(_notification("bogus"))

    assert result.verified is False
    assert result.outcome == PaymentOutcome.SUCCESS
    assert result.order_reference == "ORD1"


def test_verifier_accepts_valid_hash() -> None:
    verifier = PaytrVerifier(Settings(paytr_merchant_key=KEY, paytr_merchant_salt=SALT))
    signature = compute_signature("ORD1", "success", "29900", merchant_key=KEY, merchant_salt=SALT)

    assert verifier.verify(_notification(signature)).verified is True


def test_verifier_uses_salt_cleaned_at_load_time() -> None:
    verifier = PaytrVerifier(Settings(paytr_merchant_key=KEY, paytr_merchant_salt="=" + SALT))
    signature = compute_signature("ORD1", "success", "29900", merchant_key=KEY, merchant_salt=SALT)

    assert verifier.verify(_notification(signature)).verified is True


def test_verifier_without_credentials_reports_unverified() -> None:
    verifier = PaytrVerifier(Settings(paytr_merchant_key=None, paytr_merchant_salt=None))
    signature = compute_signature("ORD1", "success", "29900", merchant_key=KEY, merchant_salt=SALT)

    assert verifier.verify(_notification(signature)).verified is False
