"""
IPv4 network ranges and the built-in reserved-range tables.

Only IPv4 is modelled. IPv6 ranges are rejected when a range is built so a
misconfiguration fails at startup rather than silently never matching.
"""

from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network, ip_network
from typing import Iterable, Tuple, Union

__all__ = [
    "NetworkRange",
    "LOCALHOST",
    "PRIVATE_RANGES",
    "RESERVED_RANGES",
    "parse_ranges",
]


@dataclass(frozen=True)
class NetworkRange:
    """An IPv4 CIDR block.

    Host bits are masked off, so ``NetworkRange.parse("192.168.0.15/24")``
    is ``192.168.0.0/24``. A bare address is a ``/32``.

    Example:
        >>> r = NetworkRange.parse("10.0.0.0/8")
        >>> r.contains(IPv4Address("10.1.2.3"))
        True
    """

    network: IPv4Network

    @classmethod
    def parse(cls, cidr: Union[str, IPv4Network, "NetworkRange"]) -> "NetworkRange":
        """Build a range from CIDR notation.

        Raises:
            ValueError: If ``cidr`` is malformed or not IPv4.
        """
        if isinstance(cidr, NetworkRange):
            return cidr
        if isinstance(cidr, IPv4Network):
            return cls(cidr)
        if not isinstance(cidr, str):
            raise ValueError(f"expected CIDR string, got {type(cidr).__name__}")

        network = ip_network(cidr.strip(), strict=False)
        if not isinstance(network, IPv4Network):
            raise ValueError(f"{cidr!r} is not an IPv4 range")
        return cls(network)

    @property
    def prefixlen(self) -> int:
        return self.network.prefixlen

    def contains(self, address: IPv4Address) -> bool:
        """Return True if ``address`` falls inside this block."""
        if not isinstance(address, IPv4Address):
            return False
        return address in self.network

    def __contains__(self, address: IPv4Address) -> bool:
        return self.contains(address)

    def __str__(self) -> str:
        return str(self.network)


def parse_ranges(cidrs: Iterable[Union[str, IPv4Network, NetworkRange]]) -> Tuple[NetworkRange, ...]:
    """Parse a list of CIDRs, dropping exact duplicates but keeping order."""
    ranges = []
    for cidr in cidrs:
        network_range = NetworkRange.parse(cidr)
        if network_range not in ranges:
            ranges.append(network_range)
    return tuple(ranges)


# The allow_localhost exception: the canonical loopback address only.
LOCALHOST = NetworkRange.parse("127.0.0.1/32")

# RFC1918 private space plus loopback.
PRIVATE_RANGES = parse_ranges([
    "127.0.0.0/8",
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
])

# RFC6890 special-use registry (IPv4 part), plus multicast.
RESERVED_RANGES = PRIVATE_RANGES + parse_ranges([
    "0.0.0.0/8",           # "this" network
    "100.64.0.0/10",       # shared address space / CGNAT
    "169.254.0.0/16",      # link-local, cloud metadata
    "192.0.0.0/24",        # IETF protocol assignments
    "192.0.2.0/24",        # TEST-NET-1
    "192.88.99.0/24",      # 6to4 relay anycast
    "198.18.0.0/15",       # benchmarking
    "198.51.100.0/24",     # TEST-NET-2
    "203.0.113.0/24",      # TEST-NET-3
    "224.0.0.0/4",         # multicast
    "240.0.0.0/4",         # class E
    "255.255.255.255/32",  # limited broadcast
])
