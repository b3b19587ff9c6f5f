"""Lookup Client — ask the catalogue service about an item and wait for the answer.

The request goes out on the bus; the answer comes back, much later and on a
different thread, through the response ingress. The client bridges the two
with the correlation registry: every request gets a fresh correlation id, a
result slot and a timer that fails the slot if nobody answers in time.
"""

import asyncio
import threading
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass
from uuid import uuid4

import structlog

from ordering.config import load_settings
from ordering.exceptions import (
    EnrichmentError,
    LookupCancelled,
    LookupFailure,
    LookupTimeout,
    PublishError,
    ServiceUnavailable,
)
from ordering.lookup.directory import ServiceDirectory
from ordering.lookup.registry import CorrelationRegistry
from ordering.lookup.snapshot import LookupRequest, ServiceSnapshot
from ordering.messaging import get_bus
from ordering.messaging.port import MessageBus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LookupResult:
    """Outcome of one lookup: either a usable snapshot or the error that prevented it."""

    external_id: str
    snapshot: ServiceSnapshot | None = None
    error: EnrichmentError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ServiceSnapshot:
        if self.error is not None:
            raise self.error
        return self.snapshot

    @classmethod
    def from_snapshot(cls, external_id: str, snapshot: ServiceSnapshot) -> "LookupResult":
        if snapshot.error_message:
            return cls(external_id, error=LookupFailure(snapshot.error_message, external_id=external_id))
        if not snapshot.is_available():
            return cls(
                external_id,
                error=ServiceUnavailable(f"Service {external_id} is not available", external_id=external_id),
            )
        return cls(external_id, snapshot=snapshot)


class PendingLookupResult:
    """Handle on an in-flight lookup.

    ``wait`` blocks the calling thread; ``wait_async`` suspends a coroutine
    instead. Neither raises for lookup failures: they come back as a
    ``LookupResult`` carrying the error.
    """

    def __init__(self, external_id: str, correlation_id: str, future: Future) -> None:
        self.external_id = external_id
        self.correlation_id = correlation_id
        self.future = future

    def done(self) -> bool:
        return self.future.done()

    def _failed(self, error: EnrichmentError) -> LookupResult:
        return LookupResult(self.external_id, error=error)

    def wait(self, timeout: float | None = None) -> LookupResult:
        """Block until the lookup settles.

        ``timeout`` only bounds this wait; the registry deadline still applies
        to the lookup itself.
        """
        try:
            snapshot = self.future.result(timeout=timeout)
        except EnrichmentError as exc:
            return self._failed(exc)
        except CancelledError:
            return self._failed(LookupCancelled(f"Lookup {self.correlation_id} cancelled", self.external_id))
        except TimeoutError:
            return self._failed(LookupTimeout(f"Gave up waiting for lookup {self.correlation_id}", self.external_id))
        return LookupResult.from_snapshot(self.external_id, snapshot)

    async def wait_async(self) -> LookupResult:
        try:
            snapshot = await asyncio.wrap_future(self.future)
        except EnrichmentError as exc:
            return self._failed(exc)
        except asyncio.CancelledError:
            return self._failed(LookupCancelled(f"Lookup {self.correlation_id} cancelled", self.external_id))
        return LookupResult.from_snapshot(self.external_id, snapshot)


class LookupClient:
    def __init__(
        self,
        bus: MessageBus | None = None,
        registry: CorrelationRegistry | None = None,
        directory: ServiceDirectory | None = None,
        timeout_seconds: float | None = None,
        requester_tag: str | None = None,
        channel: str | None = None,
    ) -> None:
        settings = load_settings()
        self._bus = bus
        self.registry = registry if registry is not None else CorrelationRegistry()
        self.directory = directory if directory is not None else ServiceDirectory()
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.lookup_timeout_seconds
        self.requester_tag = requester_tag or settings.lookup_requester_tag
        self.channel = channel or settings.lookup_request_channel

    @property
    def bus(self) -> MessageBus:
        return self._bus if self._bus is not None else get_bus()

    def request_info(self, external_id) -> PendingLookupResult:
        """Publish a lookup for ``external_id`` and return a handle to wait on.

        Raises ``PublishError`` straight away if the bus rejects the request.
        """
        external_id = str(external_id)
        correlation_id = str(uuid4())
        request = LookupRequest(
            external_id=external_id,
            correlation_id=correlation_id,
            requester_tag=self.requester_tag,
        )

        future = self.registry.register(correlation_id)
        try:
            self.bus.publish(self.channel, request.to_payload())
        except Exception as exc:
            self.registry.discard(correlation_id)
            logger.error(
                "Failed to publish lookup request",
                correlation_id=correlation_id,
                external_id=external_id,
                exc_info=True,
            )
            raise PublishError(f"Could not request service {external_id}", external_id=external_id) from exc

        timer = threading.Timer(self.timeout_seconds, self.registry.expire, args=(correlation_id,))
        timer.daemon = True
        # The answer may already be in if the bus delivers synchronously
        if self.registry.attach_timer(correlation_id, timer):
            timer.start()

        logger.info("Lookup requested", correlation_id=correlation_id, external_id=external_id)
        return PendingLookupResult(external_id, correlation_id, future)

    def shutdown(self) -> int:
        """Fail every in-flight lookup. Returns how many were cancelled."""
        return self.registry.cancel_all()
