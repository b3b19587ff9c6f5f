"""Response Ingress — turn raw bus messages from the catalogue into snapshots.

The catalogue service is not consistent about framing. A message can arrive
as an already-parsed object, as JSON text, or as JSON that was base64-encoded
and then quoted as a JSON string. ``classify`` works out which, ``decode``
produces the snapshot and ``ResponseIngress.handle`` routes it.
"""

import base64
import binascii
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from ordering.lookup.directory import ServiceDirectory
from ordering.lookup.registry import CorrelationRegistry
from ordering.lookup.snapshot import ServiceSnapshot
from ordering.utils.logging import bound_context

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StructuredPayload:
    data: dict[str, Any]


@dataclass(frozen=True)
class JsonText:
    text: str


@dataclass(frozen=True)
class Base64Json:
    text: str


Payload = StructuredPayload | JsonText | Base64Json


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    return text


def classify(raw: dict | bytes | str) -> Payload:
    """Work out how a raw message is framed. Does not parse JSON."""
    if isinstance(raw, dict):
        return StructuredPayload(raw)
    if isinstance(raw, bytes | bytearray):
        raw = bytes(raw).decode("utf-8")
    if not isinstance(raw, str):
        raise TypeError(f"Unsupported message type {type(raw).__name__}")

    if raw.strip().startswith("{"):
        return JsonText(raw)

    unquoted = _strip_quotes(raw)
    try:
        decoded = base64.b64decode(unquoted, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return JsonText(unquoted)

    if decoded.strip().startswith("{"):
        return Base64Json(decoded)

    logger.warning("Base64 payload is not a JSON object, using raw text")
    return JsonText(unquoted)


def decode(raw: dict | bytes | str | ServiceSnapshot) -> ServiceSnapshot:
    """Produce a snapshot from a raw message.

    Raises ``ValueError`` (pydantic's ``ValidationError`` included) when the
    payload is not a JSON object or does not fit the snapshot schema.
    """
    if isinstance(raw, ServiceSnapshot):
        return raw

    payload = classify(raw)
    if isinstance(payload, StructuredPayload):
        return ServiceSnapshot.model_validate(payload.data)
    return ServiceSnapshot.model_validate_json(payload.text)


class ResponseIngress:
    """Entry point for catalogue responses and broadcasts.

    Correlated responses complete the waiting lookup first. Every valid
    snapshot is then kept in ``directory`` and offered to ``enrich`` so that
    carts already holding the item pick up the new data.
    """

    def __init__(
        self,
        registry: CorrelationRegistry,
        enrich: Callable[[ServiceSnapshot], Any] | None = None,
        directory: ServiceDirectory | None = None,
    ) -> None:
        self.registry = registry
        self.enrich = enrich
        self.directory = directory

    def __call__(self, raw) -> ServiceSnapshot | None:
        return self.handle(raw)

    def handle(self, raw) -> ServiceSnapshot | None:
        """Decode and route one message. Returns the snapshot, or ``None`` if it was dropped."""
        try:
            snapshot = decode(raw)
        except (ValueError, TypeError):
            logger.error("Failed to decode catalogue response", raw_type=type(raw).__name__, exc_info=True)
            return None

        if not snapshot.external_id:
            logger.warning("Catalogue response without service id dropped", correlation_id=snapshot.correlation_id)
            return None

        with bound_context(correlation_id=snapshot.correlation_id, external_id=snapshot.external_id):
            if snapshot.correlation_id:
                self.registry.resolve(snapshot.correlation_id, snapshot)

            if self.directory is not None:
                self.directory.record(snapshot)

            if self.enrich is not None:
                try:
                    self.enrich(snapshot)
                except Exception:
                    logger.error("Failed to enrich carts from catalogue response", exc_info=True)

        return snapshot
