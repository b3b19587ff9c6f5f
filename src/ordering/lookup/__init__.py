"""Lookup client factory.

Provides get_lookup_client() / set_lookup_client() / reset_lookup_client().
The response ingress must resolve against the same registry the active
client registers with, so both are reached through this module.
"""

from ordering.lookup.client import LookupClient

_current_client: LookupClient | None = None


def get_lookup_client() -> LookupClient:
    """Return the current lookup client, creating one from settings on first use."""
    global _current_client
    if _current_client is None:
        _current_client = LookupClient()
    return _current_client


def set_lookup_client(client: LookupClient) -> None:
    """Override the active lookup client (useful for tests)."""
    global _current_client
    _current_client = client


def reset_lookup_client() -> None:
    """Cancel in-flight lookups and drop the current client."""
    global _current_client
    if _current_client is not None:
        _current_client.shutdown()
    _current_client = None
