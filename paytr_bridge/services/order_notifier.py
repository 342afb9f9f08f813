from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from paytr_bridge.core.config import Settings
from paytr_bridge.core.monitoring import send_monitoring_event
from paytr_bridge.payments.base import PaymentOutcome, minor_to_major_units, order_status_for
from paytr_bridge.payments.correlation import CorrelationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotifyResult:
    delivered: bool
    status_code: int | None = None
    error: str | None = None


class OrderNotifier:
    """Forwards reconciled payment outcomes to the order API.

    One best-effort POST per call. Failures are logged and reported through
    `NotifyResult`; nothing is raised and nothing is retried here. Duplicate
    forwards are possible when the notification and redirect paths race and
    must be tolerated by the order API.
    """

    def __init__(
        self,
        settings: Settings,
        store: CorrelationStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._transport = transport

    async def notify(
        self,
        order_reference: str,
        outcome: PaymentOutcome,
        amount_major_units: int,
    ) -> NotifyResult:
        body = {
            "orderNumber": order_reference,
            "amount": amount_major_units,
            "status": order_status_for(outcome).value,
            "paymentMethod": self._settings.payment_method,
            "processedAt": datetime.now(timezone.utc).isoformat(),
        }
        url = self._settings.order_api_url
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.order_api_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return await self._failed(order_reference, error=f"{exc.__class__.__name__}: {exc}")

        if not response.is_success:
            return await self._failed(
                order_reference,
                error=f"unexpected status {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(
            "order_forwarded",
            extra={
                "order_reference": order_reference,
                "order_status": body["status"],
                "amount": amount_major_units,
                "status_code": response.status_code,
            },
        )
        return NotifyResult(delivered=True, status_code=response.status_code)

    async def forward(self, order_reference: str) -> NotifyResult | None:
        """Forward the stored outcome for `order_reference` unless already sent."""
        entry = self._store.find_by_reference(order_reference)
        if entry is None:
            logger.info("order_forward_skipped_no_entry", extra={"order_reference": order_reference})
            return None
        if entry.forwarded:
            logger.info("order_forward_skipped_already_forwarded", extra={"order_reference": order_reference})
            return None

        result = await self.notify(
            entry.order_reference,
            entry.outcome,
            minor_to_major_units(entry.amount_minor_units),
        )
        if result.delivered:
            self._store.mark_forwarded(order_reference, revision=entry.revision)
        return result

    async def _failed(
        self,
        order_reference: str,
        *,
        error: str,
        status_code: int | None = None,
    ) -> NotifyResult:
        logger.warning(
            "order_forward_failed",
            extra={"order_reference": order_reference, "error": error, "status_code": status_code},
        )
        await send_monitoring_event(
            "order_forward_failed",
            {"order_reference": order_reference, "error": error},
            settings=self._settings,
        )
        return NotifyResult(delivered=False, status_code=status_code, error=error)
