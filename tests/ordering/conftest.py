import threading

import pytest
from ordering.config import load_settings
from ordering.lookup import reset_lookup_client, set_lookup_client
from ordering.lookup.client import LookupClient
from ordering.messaging import reset_bus, set_bus
from ordering.messaging.memory_adapter import InMemoryBus
from ordering.payment.simulator import reset_simulator, set_simulator
from ordering.payment.simulator.fake_adapter import FakeSimulator
from protean import current_domain
from protean.integrations.pytest import DomainFixture

LOOKUP_TIMEOUT = 1.0


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def bus():
    bus = InMemoryBus()
    set_bus(bus)
    yield bus
    reset_bus()


@pytest.fixture(autouse=True)
def lookup_client(bus):
    client = LookupClient(bus=bus, timeout_seconds=LOOKUP_TIMEOUT)
    set_lookup_client(client)
    yield client
    reset_lookup_client()


@pytest.fixture(autouse=True)
def simulator():
    simulator = FakeSimulator()
    set_simulator(simulator)
    yield simulator
    reset_simulator()


class FakeCatalogue:
    """Stands in for the catalogue service on the other side of the bus.

    Answers every lookup request published on the bus through the response
    ingress, synchronously by default or from a separate thread when
    ``threaded`` is set. Unknown ids are answered with an error payload;
    ids in ``silent`` are never answered.
    """

    def __init__(self, bus: InMemoryBus) -> None:
        self.services: dict[str, dict] = {}
        self.silent: set[str] = set()
        self.threaded = False
        self.requests: list[dict] = []
        self._threads: list[threading.Thread] = []
        bus.subscribe(load_settings().lookup_request_channel, self._on_request)

    def add(self, service_id, price=100.0, title=None, active=True, **fields) -> dict:
        payload = {
            "id": service_id,
            "title": title or f"Service {service_id}",
            "description": f"Description of {service_id}",
            "price": price,
            "categoryName": "Consulting",
            "primaryImageUrl": f"https://img.example.com/{service_id}.png",
            "averageRating": 4.5,
            "isActive": active,
        }
        payload.update(fields)
        self.services[service_id] = payload
        return payload

    def _reply(self, request: dict) -> None:
        from ordering.cart.enrichment import response_ingress

        service_id = request["serviceId"]
        if service_id in self.services:
            message = dict(self.services[service_id], requestId=request["requestId"])
        else:
            message = {
                "id": service_id,
                "requestId": request["requestId"],
                "errorMessage": f"Service not found: {service_id}",
            }
        response_ingress().handle(message)

    def _reply_in_context(self, request: dict) -> None:
        from ordering.domain import ordering

        with ordering.domain_context():
            self._reply(request)

    def _on_request(self, request: dict) -> None:
        self.requests.append(request)
        if request["serviceId"] in self.silent:
            return
        if self.threaded:
            thread = threading.Thread(target=self._reply_in_context, args=(request,))
            self._threads.append(thread)
            thread.start()
        else:
            self._reply(request)

    def join(self) -> None:
        for thread in self._threads:
            thread.join(timeout=5)


@pytest.fixture()
def catalogue(bus):
    catalogue = FakeCatalogue(bus)
    yield catalogue
    catalogue.join()
