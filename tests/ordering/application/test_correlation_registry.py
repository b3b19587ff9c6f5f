"""Tests for the correlation registry — single resolution under races."""

import threading

import pytest
from ordering.exceptions import DuplicateIdError, LookupCancelled, LookupTimeout
from ordering.lookup.registry import CorrelationRegistry
from ordering.lookup.snapshot import ServiceSnapshot


def _snapshot(correlation_id="corr-1", **overrides):
    fields = {"external_id": "svc-A", "correlation_id": correlation_id, "title": "T", "price": 1.0, "is_active": True}
    fields.update(overrides)
    return ServiceSnapshot(**fields)


class TestUnknownIds:
    def test_resolve_unknown_is_a_no_op(self):
        registry = CorrelationRegistry()
        assert registry.resolve("never-registered", _snapshot("never-registered")) is False
        assert len(registry) == 0

    def test_expire_unknown_is_a_no_op(self):
        registry = CorrelationRegistry()
        assert registry.expire("never-registered") is False
        assert len(registry) == 0

    def test_discard_unknown_is_a_no_op(self):
        assert CorrelationRegistry().discard("never-registered") is False


class TestRegisterAndResolve:
    def test_resolve_delivers_snapshot(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        assert "corr-1" in registry

        snapshot = _snapshot()
        assert registry.resolve("corr-1", snapshot) is True
        assert future.result(timeout=1) is snapshot
        assert "corr-1" not in registry

    def test_duplicate_registration_rejected(self):
        registry = CorrelationRegistry()
        registry.register("corr-1")
        with pytest.raises(DuplicateIdError):
            registry.register("corr-1")

    def test_second_resolve_is_ignored(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        first = _snapshot(title="first")
        registry.resolve("corr-1", first)
        assert registry.resolve("corr-1", _snapshot(title="second")) is False
        assert future.result(timeout=1).title == "first"

    def test_resolve_cancels_timer(self):
        registry = CorrelationRegistry()
        registry.register("corr-1")
        timer = threading.Timer(60, registry.expire, args=("corr-1",))
        assert registry.attach_timer("corr-1", timer) is True
        timer.start()

        registry.resolve("corr-1", _snapshot())
        timer.join(timeout=1)
        assert not timer.is_alive()

    def test_attach_timer_after_resolution_refused(self):
        registry = CorrelationRegistry()
        registry.register("corr-1")
        registry.resolve("corr-1", _snapshot())
        assert registry.attach_timer("corr-1", threading.Timer(60, lambda: None)) is False


class TestExpire:
    def test_expire_fails_waiter_with_timeout(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        assert registry.expire("corr-1") is True
        with pytest.raises(LookupTimeout):
            future.result(timeout=1)
        assert len(registry) == 0

    def test_late_response_after_expiry_is_dropped(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        registry.expire("corr-1")
        assert registry.resolve("corr-1", _snapshot()) is False
        assert isinstance(future.exception(timeout=1), LookupTimeout)

    def test_expire_after_resolve_is_a_no_op(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        registry.resolve("corr-1", _snapshot())
        assert registry.expire("corr-1") is False
        assert future.exception(timeout=1) is None

    def test_waiter_that_cancelled_does_not_break_resolution(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        future.cancel()
        assert registry.resolve("corr-1", _snapshot()) is True


class TestShutdown:
    def test_cancel_all_fails_every_waiter(self):
        registry = CorrelationRegistry()
        futures = [registry.register(f"corr-{i}") for i in range(3)]
        assert registry.cancel_all() == 3
        assert len(registry) == 0
        for future in futures:
            assert isinstance(future.exception(timeout=1), LookupCancelled)

    def test_discard_leaves_waiter_pending(self):
        registry = CorrelationRegistry()
        future = registry.register("corr-1")
        assert registry.discard("corr-1") is True
        assert not future.done()


class TestConcurrentResolution:
    @pytest.mark.parametrize("round_", range(20))
    def test_resolve_and_expire_race_settles_exactly_once(self, round_):
        registry = CorrelationRegistry()
        future = registry.register("corr-race")
        start = threading.Barrier(3)
        outcomes = []

        def resolver(title):
            start.wait()
            outcomes.append(registry.resolve("corr-race", _snapshot("corr-race", title=title)))

        def expirer():
            start.wait()
            outcomes.append(registry.expire("corr-race"))

        threads = [
            threading.Thread(target=resolver, args=("a",)),
            threading.Thread(target=resolver, args=("b",)),
            threading.Thread(target=expirer),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count(True) == 1
        assert future.done()
        assert len(registry) == 0
