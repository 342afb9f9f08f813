from __future__ import annotations

import hashlib
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from paytr_bridge.core.config import Settings
from paytr_bridge.core.monitoring import send_monitoring_event
from paytr_bridge.payments.correlation import CorrelationStore
from paytr_bridge.payments.paytr import (
    PaytrNotificationError,
    PaytrVerifier,
    extract_notification,
    parse_payload,
)
from paytr_bridge.payments.reconciliation import (
    Decision,
    ReconciliationResolver,
    RedirectFailure,
    RedirectPending,
    RedirectSuccess,
    UNKNOWN_ORDER_REFERENCE,
    build_redirect_request,
)
from paytr_bridge.services.order_notifier import OrderNotifier

router = APIRouter(tags=["paytr"])
logger = logging.getLogger(__name__)

ACK_BODY = "OK"


def _payload_fingerprint(raw_body: bytes) -> str:
    if not raw_body:
        return "empty"
    return hashlib.sha256(raw_body).hexdigest()[:12]


def _ack() -> PlainTextResponse:
    return PlainTextResponse(ACK_BODY)


def _result_page_url(settings: Settings, decision: Decision) -> str:
    base = settings.site_base_url.rstrip("/")
    if isinstance(decision, RedirectSuccess):
        query = urlencode({"order": decision.order_reference, "amount": decision.amount_major_units})
        return f"{base}{settings.payment_success_path}?{query}"
    if isinstance(decision, RedirectPending):
        order_reference = UNKNOWN_ORDER_REFERENCE
        reason_code = decision.reason_code
    else:
        order_reference = decision.order_reference
        reason_code = decision.reason_code
    query = urlencode({"order": order_reference, "status": reason_code})
    return f"{base}{settings.payment_failure_path}?{query}"


@router.post("/paytr-callback")
async def paytr_notification(request: Request, background_tasks: BackgroundTasks) -> PlainTextResponse:
    state = request.app.state
    settings: Settings = state.settings
    store: CorrelationStore = state.correlation_store
    verifier: PaytrVerifier = state.verifier
    notifier: OrderNotifier = state.notifier

    raw_body = await request.body()
    try:
        payload = parse_payload(raw_body)
        logger.info(
            "paytr_callback_received",
            extra={
                "payload_fingerprint": _payload_fingerprint(raw_body),
                "fields": ",".join(sorted(payload)),
            },
        )
        try:
            notification = extract_notification(payload)
        except PaytrNotificationError as exc:
            logger.warning(exc.event_code, extra={"error": str(exc)})
            return _ack()

        verified = verifier.verify(notification)
        if not verified.verified:
            background_tasks.add_task(
                send_monitoring_event,
                "paytr_signature_mismatch",
                {"order_reference": notification.order_reference},
                settings=settings,
            )
            if settings.paytr_require_valid_hash:
                return PlainTextResponse("HASH_MISMATCH", status_code=400)

        store.record(
            notification.order_reference,
            notification.outcome,
            notification.amount_minor_units,
        )
        logger.info(
            "paytr_callback_recorded",
            extra={
                "order_reference": notification.order_reference,
                "outcome": notification.outcome.value,
                "amount_minor_units": notification.amount_minor_units,
                "verified": verified.verified,
                "failure_detail": notification.failure_detail,
            },
        )
        background_tasks.add_task(notifier.forward, notification.order_reference)
    except Exception as exc:  # noqa: BLE001 - the gateway must always get its acknowledgement
        logger.exception("paytr_callback_failed", extra={"error": str(exc)})
    return _ack()


@router.get("/paytr-callback")
async def paytr_redirect(request: Request, background_tasks: BackgroundTasks) -> RedirectResponse:
    state = request.app.state
    settings: Settings = state.settings
    store: CorrelationStore = state.correlation_store
    resolver: ReconciliationResolver = state.resolver
    notifier: OrderNotifier = state.notifier

    try:
        redirect_request = build_redirect_request(
            dict(request.query_params),
            referrer=request.headers.get("referer"),
            gateway_hosts=settings.gateway_hosts,
        )
        decision = await resolver.resolve(redirect_request)
        logger.info(
            "paytr_redirect_resolved",
            extra={
                "decision": type(decision).__name__,
                "source": decision.source,
                "order_reference": getattr(decision, "order_reference", None),
                "from_gateway": redirect_request.from_gateway,
            },
        )
        order_reference = getattr(decision, "order_reference", None)
        if order_reference and order_reference != UNKNOWN_ORDER_REFERENCE:
            entry = store.find_by_reference(order_reference)
            if entry is not None and not entry.forwarded:
                background_tasks.add_task(notifier.forward, order_reference)
        target = _result_page_url(settings, decision)
    except Exception as exc:  # noqa: BLE001 - the user must land on a result page
        logger.exception("paytr_redirect_failed", extra={"error": str(exc)})
        target = _result_page_url(
            settings,
            RedirectFailure(order_reference=UNKNOWN_ORDER_REFERENCE, reason_code="unknown"),
        )
    return RedirectResponse(url=target, status_code=302)
