from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

from paytr_bridge.payments.base import PaymentOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrelationEntry:
    order_reference: str
    outcome: PaymentOutcome
    amount_minor_units: int
    recorded_at: float
    forwarded: bool = False
    # Bumped on every record(); lets a forward confirm it still owns the entry it sent.
    revision: int = 0


class CorrelationStore:
    """Short-lived record of recent payment outcomes keyed by merchant_oid.

    The notification path writes, the redirect path reads. Entries expire
    `ttl_seconds` after they were recorded; expired entries are swept on every
    access. Callers only ever receive immutable snapshots.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, CorrelationEntry] = {}
        self._lock = threading.Lock()
        self._revisions = itertools.count(1)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def record(self, order_reference: str, outcome: PaymentOutcome, amount_minor_units: int) -> CorrelationEntry:
        _require_reference(order_reference)
        with self._lock:
            now = self._clock()
            self._sweep_locked(now)
            entry = CorrelationEntry(
                order_reference=order_reference,
                outcome=outcome,
                amount_minor_units=amount_minor_units,
                recorded_at=now,
                revision=next(self._revisions),
            )
            self._entries[order_reference] = entry
        logger.info(
            "correlation_recorded",
            extra={"order_reference": order_reference, "outcome": outcome.value},
        )
        return entry

    def find_by_reference(self, order_reference: str) -> CorrelationEntry | None:
        _require_reference(order_reference)
        with self._lock:
            self._sweep_locked(self._clock())
            return self._entries.get(order_reference)

    def find_recent_success(self, within_seconds: float) -> CorrelationEntry | None:
        with self._lock:
            now = self._clock()
            self._sweep_locked(now)
            candidates = [
                entry
                for entry in self._entries.values()
                if entry.outcome == PaymentOutcome.SUCCESS and now - entry.recorded_at < within_seconds
            ]
        if not candidates:
            return None
        return max(candidates, key=lambda entry: entry.recorded_at)

    def mark_forwarded(self, order_reference: str, *, revision: int | None = None) -> bool:
        """Flag the stored outcome as sent.

        With `revision`, the flag is set only if the entry has not been
        re-recorded since that snapshot was taken. Returns whether the stored
        entry is now flagged.
        """
        _require_reference(order_reference)
        with self._lock:
            self._sweep_locked(self._clock())
            entry = self._entries.get(order_reference)
            if entry is None:
                return False
            if revision is not None and entry.revision != revision:
                logger.info(
                    "correlation_mark_skipped_superseded",
                    extra={"order_reference": order_reference, "revision": revision},
                )
                return False
            if not entry.forwarded:
                self._entries[order_reference] = replace(entry, forwarded=True)
            return True

    def sweep(self, now: float | None = None) -> int:
        with self._lock:
            return self._sweep_locked(self._clock() if now is None else now)

    def __len__(self) -> int:
        with self._lock:
            self._sweep_locked(self._clock())
            return len(self._entries)

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if now - entry.recorded_at >= self._ttl]
        for key in expired:
            self._entries.pop(key, None)
        if expired:
            logger.debug("correlation_swept", extra={"expired": len(expired)})
        return len(expired)


def _require_reference(order_reference: str) -> None:
    if not order_reference:
        raise ValueError("order_reference must not be empty")
