"""Tests for per-key mutual exclusion."""

import threading
import time

from ordering.utils.locks import KeyedLock


class TestKeyedLock:
    def test_same_key_is_exclusive(self):
        locks = KeyedLock()
        inside = []
        overlaps = []

        def worker():
            with locks.hold("u1"):
                if inside:
                    overlaps.append(True)
                inside.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []

    def test_different_keys_do_not_block(self):
        locks = KeyedLock()
        entered = threading.Event()

        def other():
            with locks.hold("u2"):
                entered.set()

        with locks.hold("u1"):
            thread = threading.Thread(target=other)
            thread.start()
            assert entered.wait(timeout=1)
            thread.join()

    def test_idle_keys_are_dropped(self):
        locks = KeyedLock()
        with locks.hold("u1"):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_released_on_error(self):
        locks = KeyedLock()
        try:
            with locks.hold("u1"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        acquired = threading.Event()

        def worker():
            with locks.hold("u1"):
                acquired.set()

        thread = threading.Thread(target=worker)
        thread.start()
        assert acquired.wait(timeout=1)
        thread.join()
