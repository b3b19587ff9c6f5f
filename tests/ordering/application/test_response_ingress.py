"""Tests for the response ingress — framing variants and routing."""

import base64
import json

import pytest
import structlog
from ordering.lookup.directory import ServiceDirectory
from ordering.lookup.ingress import Base64Json, JsonText, ResponseIngress, StructuredPayload, classify, decode
from ordering.lookup.registry import CorrelationRegistry
from ordering.lookup.snapshot import ServiceSnapshot

PAYLOAD = {
    "id": "svc-A",
    "requestId": "corr-1",
    "title": "Logo design",
    "price": 100,
    "isActive": True,
}


def _b64(data) -> str:
    return base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")


class TestClassify:
    def test_dict_is_structured(self):
        assert classify(PAYLOAD) == StructuredPayload(PAYLOAD)

    def test_json_text(self):
        text = json.dumps(PAYLOAD)
        assert classify(text) == JsonText(text)

    def test_json_text_with_leading_whitespace(self):
        text = "  " + json.dumps(PAYLOAD)
        assert isinstance(classify(text), JsonText)

    def test_bytes_are_decoded_first(self):
        assert isinstance(classify(json.dumps(PAYLOAD).encode("utf-8")), JsonText)

    def test_base64_json(self):
        variant = classify(_b64(PAYLOAD))
        assert isinstance(variant, Base64Json)
        assert json.loads(variant.text) == PAYLOAD

    def test_quoted_base64_json(self):
        variant = classify('"' + _b64(PAYLOAD) + '"')
        assert isinstance(variant, Base64Json)

    def test_base64_of_non_json_falls_back_to_raw_text(self):
        encoded = base64.b64encode(b"hello").decode("ascii")
        assert classify('"' + encoded + '"') == JsonText(encoded)

    def test_garbage_falls_back_to_raw_text(self):
        assert classify("not base64 at all!") == JsonText("not base64 at all!")

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            classify(42)


class TestDecode:
    @pytest.mark.parametrize(
        "raw",
        [
            PAYLOAD,
            json.dumps(PAYLOAD),
            json.dumps(PAYLOAD).encode("utf-8"),
            _b64(PAYLOAD),
            '"' + _b64(PAYLOAD) + '"',
        ],
        ids=["structured", "json", "bytes", "base64", "quoted-base64"],
    )
    def test_every_framing_yields_the_same_snapshot(self, raw):
        snapshot = decode(raw)
        assert snapshot.external_id == "svc-A"
        assert snapshot.correlation_id == "corr-1"
        assert snapshot.price == 100.0

    def test_snapshot_passes_through(self):
        snapshot = ServiceSnapshot(external_id="svc-A")
        assert decode(snapshot) is snapshot

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError):
            decode("{not json")

    def test_json_array_raises(self):
        with pytest.raises(ValueError):
            decode("[1, 2]")


class TestHandle:
    def test_correlated_response_resolves_waiter(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        ingress = ResponseIngress(registry)

        snapshot = ingress.handle(json.dumps(PAYLOAD))

        assert snapshot is not None
        assert future.result(timeout=1).external_id == "svc-A"

    def test_every_valid_snapshot_is_enriched(self):
        registry = CorrelationRegistry()
        registry.register("corr-1")
        seen = []
        ingress = ResponseIngress(registry, enrich=seen.append)

        ingress.handle(PAYLOAD)
        ingress.handle({"id": "svc-B", "title": "Broadcast", "price": 5, "isActive": True})

        assert [s.external_id for s in seen] == ["svc-A", "svc-B"]

    def test_uncorrelated_broadcast_does_not_touch_registry(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        ResponseIngress(registry).handle({"id": "svc-A", "title": "Broadcast", "price": 1})
        assert not future.done()
        assert "corr-1" in registry

    def test_unknown_correlation_id_is_still_enriched(self):
        seen = []
        ingress = ResponseIngress(CorrelationRegistry(), enrich=seen.append)
        assert ingress.handle(dict(PAYLOAD, requestId="stale")) is not None
        assert len(seen) == 1

    def test_undecodable_message_is_dropped(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        seen = []
        ingress = ResponseIngress(registry, enrich=seen.append)

        assert ingress.handle("{broken json") is None
        assert seen == []
        assert not future.done()

    def test_invalid_utf8_bytes_are_dropped(self):
        assert ResponseIngress(CorrelationRegistry()).handle(b"\xff\xfe\xfd") is None

    def test_snapshot_without_id_is_dropped(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        seen = []
        ingress = ResponseIngress(registry, enrich=seen.append)

        assert ingress.handle({"requestId": "corr-1", "title": "No id"}) is None
        assert seen == []
        assert not future.done()

    def test_enrichment_errors_are_swallowed(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")

        def failing_enrich(snapshot):
            raise RuntimeError("database unavailable")

        snapshot = ResponseIngress(registry, enrich=failing_enrich).handle(PAYLOAD)

        assert snapshot is not None
        assert future.result(timeout=1).external_id == "svc-A"

    def test_ingress_is_callable(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        ResponseIngress(registry)(PAYLOAD)
        assert future.done()

    def test_valid_snapshots_are_kept_in_the_directory(self):
        directory = ServiceDirectory()
        ingress = ResponseIngress(CorrelationRegistry(), directory=directory)

        ingress.handle(PAYLOAD)
        ingress.handle({"id": "svc-A", "title": "Logo design v2", "price": 120, "isActive": True})
        ingress.handle({"id": "svc-Z", "requestId": "corr-9", "errorMessage": "Service not found: svc-Z"})

        assert len(directory) == 1
        assert directory.get("svc-A").price == 120

    def test_enrichment_runs_with_lookup_ids_in_log_context(self):
        registry = CorrelationRegistry()
        registry.register("corr-1")
        contexts = []
        ingress = ResponseIngress(registry, enrich=lambda s: contexts.append(structlog.contextvars.get_contextvars()))

        ingress.handle(PAYLOAD)

        assert contexts == [{"correlation_id": "corr-1", "external_id": "svc-A"}]
        assert structlog.contextvars.get_contextvars() == {}


class TestServiceDirectory:
    def _snapshot(self, external_id, title, active=True, price=10.0):
        return ServiceSnapshot(external_id=external_id, title=title, price=price, is_active=active)

    def test_latest_snapshot_wins(self):
        directory = ServiceDirectory()
        directory.record(self._snapshot("svc-A", "Old", price=1.0))
        directory.record(self._snapshot("svc-A", "New", price=2.0))
        assert directory.get("svc-A").title == "New"

    def test_available_lists_active_complete_services_by_title(self):
        directory = ServiceDirectory()
        directory.record(self._snapshot("svc-1", "beta"))
        directory.record(self._snapshot("svc-2", "Alpha"))
        directory.record(self._snapshot("svc-3", "Gamma", active=False))
        directory.record(self._snapshot("svc-4", "Delta", price=None))

        assert [s.external_id for s in directory.available()] == ["svc-2", "svc-1"]

    def test_inactive_update_hides_a_service(self):
        directory = ServiceDirectory()
        directory.record(self._snapshot("svc-A", "Audit"))
        directory.record(self._snapshot("svc-A", "Audit", active=False))
        assert directory.available() == []

    def test_error_snapshots_are_not_recorded(self):
        directory = ServiceDirectory()
        error = ServiceSnapshot(external_id="svc-A", error_message="boom")
        assert directory.record(error) is False
        assert directory.get("svc-A") is None
