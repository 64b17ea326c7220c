"""Shared fixtures: a scripted resolver so no test touches real DNS."""

from ipaddress import IPv4Address

import pytest

from restrict_ip import UnresolvableHost


class FakeResolver:
    """Returns a fixed address list and records every lookup.

    ``hosts`` maps individual hostnames to their own address lists; any other
    host gets ``addresses``.
    """

    def __init__(self, *addresses, error=None, hosts=None):
        self.addresses = [IPv4Address(a) for a in addresses]
        self.hosts = {name: [IPv4Address(a) for a in found] for name, found in (hosts or {}).items()}
        self.error = error
        self.calls = []

    def resolve(self, host):
        self.calls.append(host)
        if self.error is not None:
            raise self.error
        return list(self.hosts.get(host, self.addresses))

    async def resolve_async(self, host):
        return self.resolve(host)


@pytest.fixture
def fake_resolver():
    """Factory: fake_resolver("1.2.3.4", ...) -> FakeResolver."""
    return FakeResolver


@pytest.fixture
def failing_resolver():
    return FakeResolver(error=UnresolvableHost("nonexistant.com", "Name or service not known"))
