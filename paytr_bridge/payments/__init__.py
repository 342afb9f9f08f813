from paytr_bridge.payments.base import (
    CallbackNotification,
    OrderStatus,
    PaymentOutcome,
    VerifiedOutcome,
    minor_to_major_units,
)
from paytr_bridge.payments.correlation import CorrelationEntry, CorrelationStore

__all__ = [
    "CallbackNotification",
    "CorrelationEntry",
    "CorrelationStore",
    "OrderStatus",
    "PaymentOutcome",
    "VerifiedOutcome",
    "minor_to_major_units",
]
