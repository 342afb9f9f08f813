from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal, Union
from urllib.parse import urlsplit

from paytr_bridge.core.config import Settings
from paytr_bridge.payments.base import PaymentOutcome, minor_to_major_units
from paytr_bridge.payments.correlation import CorrelationEntry, CorrelationStore
from paytr_bridge.payments.paytr import PaytrInvalidAmountError, normalize_outcome, parse_amount

logger = logging.getLogger(__name__)

UNKNOWN_ORDER_REFERENCE = "UNKNOWN"

DecisionSource = Literal["redirect_params", "correlation", "none"]


@dataclass(frozen=True)
class RedirectRequest:
    order_reference: str | None = None
    status_token: str | None = None
    amount_token: str | None = None
    from_gateway: bool = False

    @property
    def outcome(self) -> PaymentOutcome | None:
        if not self.status_token:
            return None
        return normalize_outcome(self.status_token)


@dataclass(frozen=True)
class RedirectSuccess:
    order_reference: str
    amount_major_units: int
    source: DecisionSource = "redirect_params"


@dataclass(frozen=True)
class RedirectFailure:
    order_reference: str
    reason_code: str
    source: DecisionSource = "redirect_params"


@dataclass(frozen=True)
class RedirectPending:
    reason_code: str = "processing"
    source: DecisionSource = "none"


Decision = Union[RedirectSuccess, RedirectFailure, RedirectPending]


def is_gateway_referrer(referrer: str | None, gateway_hosts: set[str]) -> bool:
    """True when the referrer host is a gateway host or one of its subdomains."""
    if not referrer or not gateway_hosts:
        return False
    try:
        host = (urlsplit(referrer.strip()).hostname or "").lower()
    except ValueError:
        return False
    if not host:
        return False
    return any(host == gateway or host.endswith(f".{gateway}") for gateway in gateway_hosts)


def build_redirect_request(
    query: dict[str, str],
    *,
    referrer: str | None,
    gateway_hosts: set[str],
) -> RedirectRequest:
    return RedirectRequest(
        order_reference=_clean(query.get("merchant_oid")) or _clean(query.get("siparis")),
        status_token=_clean(query.get("status")),
        amount_token=_clean(query.get("total_amount")),
        from_gateway=is_gateway_referrer(referrer, gateway_hosts),
    )


class ReconciliationResolver:
    """Decides which result page a browser redirect represents.

    Rules, first match wins:
      1. merchant_oid and status in the URL are trusted as-is.
      1b. merchant_oid alone is looked up in the correlation store.
      2. a gateway referrer binds to the most recent success in the window.
      3. a gateway referrer with no match waits once for a lagging
         notification, then reports "processing".
      4. anything else is an unknown failure.

    Rule 2 assumes at most one payment is in flight per window; overlapping
    anonymous redirects can be bound to the wrong order.
    """

    def __init__(
        self,
        store: CorrelationStore,
        settings: Settings,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._window = float(settings.correlation_window_seconds)
        self._wait = settings.redirect_wait_bound_seconds
        self._sleep = sleep

    async def resolve(self, request: RedirectRequest) -> Decision:
        outcome = request.outcome
        if request.order_reference and outcome is not None:
            return self._from_redirect_params(request, outcome)

        if request.order_reference:
            entry = self._store.find_by_reference(request.order_reference)
            if entry is not None:
                return _decision_from_entry(entry)

        if request.from_gateway:
            entry = self._store.find_recent_success(self._window)
            if entry is None and self._wait > 0:
                logger.info("redirect_waiting_for_notification", extra={"wait_seconds": self._wait})
                await self._sleep(self._wait)
                entry = self._store.find_recent_success(self._window)
            if entry is not None:
                logger.info(
                    "redirect_correlated",
                    extra={"order_reference": entry.order_reference},
                )
                return _decision_from_entry(entry)
            logger.info("redirect_correlation_miss")
            return RedirectPending()

        return RedirectFailure(
            order_reference=request.order_reference or UNKNOWN_ORDER_REFERENCE,
            reason_code="unknown",
            source="none",
        )

    def _from_redirect_params(self, request: RedirectRequest, outcome: PaymentOutcome) -> Decision:
        order_reference = request.order_reference or UNKNOWN_ORDER_REFERENCE
        if outcome == PaymentOutcome.SUCCESS:
            return RedirectSuccess(
                order_reference=order_reference,
                amount_major_units=_major_units_or_zero(request.amount_token),
            )
        return RedirectFailure(
            order_reference=order_reference,
            reason_code=(request.status_token or "failed").lower(),
        )


def _decision_from_entry(entry: CorrelationEntry) -> Decision:
    if entry.outcome == PaymentOutcome.SUCCESS:
        return RedirectSuccess(
            order_reference=entry.order_reference,
            amount_major_units=minor_to_major_units(entry.amount_minor_units),
            source="correlation",
        )
    return RedirectFailure(
        order_reference=entry.order_reference,
        reason_code="failed",
        source="correlation",
    )


def _major_units_or_zero(amount_token: str | None) -> int:
    if not amount_token:
        return 0
    try:
        return minor_to_major_units(parse_amount(amount_token))
    except PaytrInvalidAmountError:
        return 0


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None
