"""Correlation registry — one pending result slot per outstanding lookup.

Three unrelated threads touch an entry: the requester registers it, the bus
consumer resolves it and the timeout timer expires it. Whoever removes the
entry from the map owns its completion; everybody else finds nothing and
walks away. That makes ``resolve`` and ``expire`` safe against each other
and against duplicate or late deliveries from the bus.
"""

import threading
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from ordering.exceptions import DuplicateIdError, LookupCancelled, LookupTimeout
from ordering.lookup.snapshot import ServiceSnapshot

logger = structlog.get_logger(__name__)


@dataclass
class PendingLookup:
    correlation_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    future: Future = field(default_factory=Future)
    timer: threading.Timer | None = None


class CorrelationRegistry:
    """Thread-safe map of correlation id to pending lookup."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, PendingLookup] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, correlation_id: object) -> bool:
        with self._lock:
            return correlation_id in self._pending

    def register(self, correlation_id: str) -> Future:
        """Open a result slot for ``correlation_id`` and return the future bound to it."""
        with self._lock:
            if correlation_id in self._pending:
                raise DuplicateIdError(f"Correlation id {correlation_id} is already registered")
            pending = PendingLookup(correlation_id=correlation_id)
            self._pending[correlation_id] = pending

        logger.debug("Lookup registered", correlation_id=correlation_id)
        return pending.future

    def attach_timer(self, correlation_id: str, timer: threading.Timer) -> bool:
        """Associate the timeout timer with a still-pending entry.

        Returns ``False`` if the entry was already resolved, in which case the
        caller must not start the timer.
        """
        with self._lock:
            pending = self._pending.get(correlation_id)
            if pending is None:
                return False
            pending.timer = timer
            return True

    def _take(self, correlation_id: str) -> PendingLookup | None:
        with self._lock:
            return self._pending.pop(correlation_id, None)

    @staticmethod
    def _stop_timer(pending: PendingLookup) -> None:
        if pending.timer is not None:
            pending.timer.cancel()

    @staticmethod
    def _deliver(pending: PendingLookup, result: ServiceSnapshot | None = None, error: Exception | None = None) -> None:
        try:
            if error is not None:
                pending.future.set_exception(error)
            else:
                pending.future.set_result(result)
        except InvalidStateError:
            # The waiter cancelled its own future; nothing left to deliver to.
            logger.debug("Lookup waiter already gone", correlation_id=pending.correlation_id)

    def resolve(self, correlation_id: str, response: ServiceSnapshot) -> bool:
        """Complete the pending lookup with ``response``. No-op for unknown ids."""
        pending = self._take(correlation_id)
        if pending is None:
            logger.warning("Response received for no pending lookup", correlation_id=correlation_id)
            return False

        self._stop_timer(pending)
        self._deliver(pending, result=response)
        logger.info(
            "Lookup resolved",
            correlation_id=correlation_id,
            external_id=response.external_id,
            has_error=bool(response.error_message),
        )
        return True

    def expire(self, correlation_id: str) -> bool:
        """Fail the pending lookup with ``LookupTimeout``. No-op if already resolved."""
        pending = self._take(correlation_id)
        if pending is None:
            logger.debug("Timeout fired for settled lookup", correlation_id=correlation_id)
            return False

        self._deliver(pending, error=LookupTimeout(f"Lookup {correlation_id} timed out"))
        logger.error("Lookup timed out", correlation_id=correlation_id)
        return True

    def discard(self, correlation_id: str) -> bool:
        """Drop an entry without delivering anything to its waiter."""
        pending = self._take(correlation_id)
        if pending is None:
            return False
        self._stop_timer(pending)
        return True

    def cancel_all(self) -> int:
        """Fail every pending lookup with ``LookupCancelled``. Used on shutdown."""
        with self._lock:
            drained = list(self._pending.values())
            self._pending.clear()

        for pending in drained:
            self._stop_timer(pending)
            self._deliver(pending, error=LookupCancelled(f"Lookup {pending.correlation_id} cancelled on shutdown"))

        if drained:
            logger.warning("Pending lookups cancelled", count=len(drained))
        return len(drained)
