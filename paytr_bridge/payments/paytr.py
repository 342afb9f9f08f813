from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from typing import Any, Mapping
from urllib.parse import parse_qsl

from paytr_bridge.core.config import Settings
from paytr_bridge.payments.base import CallbackNotification, PaymentOutcome, VerifiedOutcome

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("merchant_oid", "status", "total_amount", "hash")

_SUCCESS_TOKENS = {
    "success",
    "successful",
    "succeeded",
    "1",
    "true",
    "ok",
    "paid",
    "completed",
    "başarılı",
    "basarili",
}


class PaytrNotificationError(ValueError):
    """Base error for notifications that cannot be processed."""

    event_code = "paytr_notification_invalid"


class PaytrMissingFieldsError(PaytrNotificationError):
    event_code = "paytr_notification_missing_fields"

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"PayTR notification is missing fields: {', '.join(missing)}")
        self.missing = missing


class PaytrInvalidAmountError(PaytrNotificationError):
    event_code = "paytr_notification_invalid_amount"


def compute_signature(
    order_reference: str,
    status_token: str,
    amount_token: str,
    *,
    merchant_key: str,
    merchant_salt: str,
) -> str:
    """Compute the PayTR callback hash.

    base64(HMAC-SHA256(key, merchant_oid + salt + status + total_amount)), where
    status and total_amount are taken exactly as the gateway sent them.
    """
    message = f"{order_reference}{merchant_salt}{status_token}{amount_token}"
    digest = hmac.new(merchant_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(
    order_reference: str,
    status_token: str,
    amount_token: str,
    signature: str,
    *,
    merchant_key: str,
    merchant_salt: str,
) -> bool:
    if not signature:
        return False
    expected = compute_signature(
        order_reference,
        status_token,
        amount_token,
        merchant_key=merchant_key,
        merchant_salt=merchant_salt,
    )
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8"))


def normalize_outcome(status_token: str | None) -> PaymentOutcome:
    if not status_token:
        return PaymentOutcome.FAILURE
    if str(status_token).strip().lower() in _SUCCESS_TOKENS:
        return PaymentOutcome.SUCCESS
    return PaymentOutcome.FAILURE


def parse_amount(amount_token: str | None) -> int:
    if amount_token is None:
        raise PaytrInvalidAmountError("total_amount is missing")
    try:
        return int(str(amount_token).strip())
    except ValueError:
        raise PaytrInvalidAmountError(f"total_amount is not an integer: {amount_token!r}") from None


def parse_payload(raw_body: bytes) -> dict[str, str]:
    """Parse a notification body sent either as JSON or url-encoded form.

    Values are kept as strings because the hash covers the textual tokens.
    """
    if not raw_body:
        return {}

    stripped = raw_body.lstrip()
    if stripped.startswith(b"{"):
        try:
            data = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): _as_token(value) for key, value in data.items() if value is not None}

    try:
        text = raw_body.decode("utf-8")
    except UnicodeDecodeError:
        text = raw_body.decode("latin-1", errors="replace")
    return dict(parse_qsl(text, keep_blank_values=True))


def extract_notification(payload: Mapping[str, Any]) -> CallbackNotification:
    missing = [field for field in REQUIRED_FIELDS if not str(payload.get(field) or "").strip()]
    if missing:
        raise PaytrMissingFieldsError(missing)

    status_token = str(payload["status"])
    amount_token = str(payload["total_amount"])
    failure_detail = payload.get("failed_reason_msg") or payload.get("fail_message")
    return CallbackNotification(
        order_reference=str(payload["merchant_oid"]).strip(),
        outcome=normalize_outcome(status_token),
        amount_minor_units=parse_amount(amount_token),
        signature=str(payload["hash"]),
        status_token=status_token,
        amount_token=amount_token,
        failure_detail=str(failure_detail) if failure_detail else None,
    )


class PaytrVerifier:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def verify(self, notification: CallbackNotification) -> VerifiedOutcome:
        key = self._settings.paytr_merchant_key
        salt = self._settings.paytr_merchant_salt
        if not key or not salt:
            logger.warning(
                "paytr_credentials_missing",
                extra={
                    "order_reference": notification.order_reference,
                    "merchant_key_set": bool(key),
                    "merchant_salt_set": bool(salt),
                },
            )
            return VerifiedOutcome(notification=notification, verified=False)

        verified = verify_signature(
            notification.order_reference,
            notification.status_token,
            notification.amount_token,
            notification.signature,
            merchant_key=key,
            merchant_salt=salt,
        )
        if not verified:
            logger.warning(
                "paytr_signature_mismatch",
                extra={
                    "order_reference": notification.order_reference,
                    "status": notification.status_token,
                },
            )
        return VerifiedOutcome(notification=notification, verified=verified)


def _as_token(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)
