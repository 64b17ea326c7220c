"""Exception hierarchy for restrict_ip."""

from typing import Optional
from ipaddress import IPv4Address


class RestrictIpError(Exception):
    """Base exception for all restrict_ip errors.

    Catch this to handle any restrict_ip error generically.
    """


class AddressNotAllowed(RestrictIpError):
    """The resolved (or literal) address is denied by policy.

    Never retried and never downgraded to "allow".
    """

    def __init__(self, address: IPv4Address, host: Optional[str] = None):
        self.address = address
        self.host = host
        if host and host != str(address):
            message = f"{host} resolved to {address}, which is not allowed"
        else:
            message = f"address {address} is not allowed"
        super().__init__(message)


class UnresolvableHost(RestrictIpError, ConnectionError):
    """Hostname resolution produced no usable IPv4 address.

    Also a ``ConnectionError``, so callers that treat connection failures
    uniformly catch it without knowing about restrict_ip.
    """

    def __init__(self, host: Optional[str], reason: str = "no usable IPv4 address"):
        self.host = host
        super().__init__(f"cannot resolve {host!r}: {reason}")


class InvalidUrl(RestrictIpError, ValueError):
    """The URL cannot be targeted at all (e.g. unknown scheme without a port)."""
