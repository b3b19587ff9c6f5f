"""Services seen on the bus.

The catalogue answers lookups and also broadcasts updates. The latest
snapshot of every service that reaches the response ingress is kept here,
so the API can list what is currently available without asking the
catalogue again. Nothing is persisted; the directory starts empty after a
restart.
"""

import threading

from ordering.lookup.snapshot import ServiceSnapshot


class ServiceDirectory:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: dict[str, ServiceSnapshot] = {}

    def record(self, snapshot: ServiceSnapshot) -> bool:
        """Keep ``snapshot`` as the latest known state of its service.

        Error payloads say nothing about the service and are not recorded.
        """
        if not snapshot.external_id or snapshot.error_message:
            return False
        with self._lock:
            self._latest[snapshot.external_id] = snapshot
        return True

    def get(self, external_id) -> ServiceSnapshot | None:
        with self._lock:
            return self._latest.get(str(external_id))

    def available(self) -> list[ServiceSnapshot]:
        """Active services that can go into a cart, ordered by title."""
        with self._lock:
            snapshots = list(self._latest.values())
        usable = [s for s in snapshots if s.is_available() and s.is_valid_for_cart()]
        return sorted(usable, key=lambda s: ((s.title or "").lower(), s.external_id))

    def clear(self) -> None:
        with self._lock:
            self._latest.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._latest)
