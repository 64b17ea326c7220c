# restrict_ip Python package
# Policy evaluation and DNS pinning, plus HTTP client adapters

"""restrict_ip - outbound request guard with DNS pinning.

Resolves the target host of an outbound request, checks the address against
an allow/deny policy, and pins the request to that address so a later DNS
change cannot redirect it (DNS rebinding).

Example:
    >>> from restrict_ip import PolicyTable, resolve_and_pin_sync
    >>> policy = PolicyTable.from_options(deny_reserved_ranges=True)
    >>> target = resolve_and_pin_sync("https://example.com/api", policy)
    >>> print(f"Connect to {target.address}, Host: {target.host_header}")
"""

from ._errors import AddressNotAllowed, InvalidUrl, RestrictIpError, UnresolvableHost
from ._guard import GuardMiddleware
from ._network import LOCALHOST, PRIVATE_RANGES, RESERVED_RANGES, NetworkRange
from ._pinning import PinningResolver, ResolvedTarget, resolve_and_pin, resolve_and_pin_sync
from ._policy import ALLOW_ALL, PUBLIC_ONLY, PolicyConfig, PolicyTable
from ._resolver import Resolver, SystemResolver, ipv4_addresses

# Make adapters accessible as restrict_ip.adapters
from . import adapters

__all__ = [
    "ALLOW_ALL",
    "AddressNotAllowed",
    "GuardMiddleware",
    "InvalidUrl",
    "LOCALHOST",
    "NetworkRange",
    "PRIVATE_RANGES",
    "PUBLIC_ONLY",
    "PinningResolver",
    "PolicyConfig",
    "PolicyTable",
    "RESERVED_RANGES",
    "ResolvedTarget",
    "Resolver",
    "RestrictIpError",
    "SystemResolver",
    "UnresolvableHost",
    "adapters",
    "ipv4_addresses",
    "resolve_and_pin",
    "resolve_and_pin_sync",
]
