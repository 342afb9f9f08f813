from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


class PaymentOutcome(enum.StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


class OrderStatus(enum.StrEnum):
    """Status values understood by the downstream order API."""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CallbackNotification:
    order_reference: str
    outcome: PaymentOutcome
    amount_minor_units: int
    signature: str
    # Raw tokens as sent by the gateway; the signature covers these, not the parsed values.
    status_token: str
    amount_token: str
    failure_detail: str | None = None


@dataclass(frozen=True)
class VerifiedOutcome:
    notification: CallbackNotification
    verified: bool

    @property
    def order_reference(self) -> str:
        return self.notification.order_reference

    @property
    def outcome(self) -> PaymentOutcome:
        return self.notification.outcome

    @property
    def amount_minor_units(self) -> int:
        return self.notification.amount_minor_units


def minor_to_major_units(amount_minor_units: int) -> int:
    """Convert kuruş to lira, rounding half up (29950 -> 300)."""
    major = Decimal(amount_minor_units) / Decimal(100)
    return int(major.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def order_status_for(outcome: PaymentOutcome) -> OrderStatus:
    if outcome == PaymentOutcome.SUCCESS:
        return OrderStatus.COMPLETED
    return OrderStatus.FAILED
