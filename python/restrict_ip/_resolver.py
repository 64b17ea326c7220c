"""
Hostname resolution boundary.

Resolvers hand PinningResolver a clean, ordered list of IPv4 addresses.
Everything else a lookup API may return (IPv6 records, canonical names,
socket types, other address families) is filtered out here.
"""

import asyncio
import socket
from ipaddress import IPv4Address
from typing import Any, Iterable, List, Optional, Protocol, Sequence

from ._errors import UnresolvableHost

__all__ = [
    "Resolver",
    "SystemResolver",
    "ipv4_addresses",
]


class Resolver(Protocol):
    """Hostname to IPv4 addresses, in the order the lookup returned them."""

    def resolve(self, host: str) -> Sequence[IPv4Address]:
        ...

    async def resolve_async(self, host: str) -> Sequence[IPv4Address]:
        ...


def ipv4_addresses(records: Iterable[Any]) -> List[IPv4Address]:
    """Extract IPv4 addresses from raw ``getaddrinfo`` records.

    Keeps ``AF_INET`` entries only, in their original order, without
    duplicates (getaddrinfo repeats an address once per socket type).
    Records of any other shape are skipped.
    """
    addresses: List[IPv4Address] = []
    for record in records:
        if not isinstance(record, tuple) or len(record) != 5:
            continue
        family, _type, _proto, _canonname, sockaddr = record
        if family != socket.AF_INET or not sockaddr:
            continue
        try:
            address = IPv4Address(sockaddr[0])
        except ValueError:
            continue
        if address not in addresses:
            addresses.append(address)
    return addresses


class SystemResolver:
    """Resolver backed by the operating system (``getaddrinfo``).

    The async path runs on the event loop's resolver and gives up after
    ``timeout`` seconds if one is set. The sync path has no timeout of its
    own; it blocks for as long as the system resolver does.

    Lookup failures raise UnresolvableHost with the original error chained.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def resolve(self, host: str) -> List[IPv4Address]:
        try:
            records = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as exc:
            raise UnresolvableHost(host, str(exc)) from exc
        return ipv4_addresses(records)

    async def resolve_async(self, host: str) -> List[IPv4Address]:
        loop = asyncio.get_running_loop()
        lookup = loop.getaddrinfo(host, None, family=socket.AF_INET, type=socket.SOCK_STREAM)
        try:
            records = await asyncio.wait_for(lookup, self.timeout)
        except asyncio.TimeoutError as exc:
            raise UnresolvableHost(host, f"lookup timed out after {self.timeout}s") from exc
        except (socket.gaierror, UnicodeError) as exc:
            raise UnresolvableHost(host, str(exc)) from exc
        return ipv4_addresses(records)
