"""
DNS pinning: resolve once, check the address, connect to that address.

The request URL is rewritten so the transport connects to the checked IPv4
address instead of re-resolving the hostname at connect time. The original
``hostname:port`` travels in the ``Host`` header so the server still sees
the intended virtual host.

Example:
    >>> from restrict_ip import PUBLIC_ONLY, resolve_and_pin_sync
    >>> headers = {}
    >>> target = resolve_and_pin_sync("http://example.com/hook", PUBLIC_ONLY, headers)
    >>> target.url            # e.g. "http://93.184.215.14/hook"
    >>> headers["Host"]       # "example.com:80"
"""

from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import MutableMapping, Optional, Sequence, Tuple
from urllib.parse import ParseResult, urlparse, urlunparse

import structlog

from ._errors import AddressNotAllowed, InvalidUrl, UnresolvableHost
from ._policy import PolicyTable
from ._resolver import Resolver, SystemResolver

__all__ = [
    "ResolvedTarget",
    "PinningResolver",
    "resolve_and_pin",
    "resolve_and_pin_sync",
]

logger = structlog.get_logger(__name__)

DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "ws": 80,
    "wss": 443,
}


@dataclass(frozen=True)
class ResolvedTarget:
    """Result of a successful resolve-and-pin.

    Attributes:
        address: The checked IPv4 address to connect to.
        original_host: Hostname from the request URL (use for Host / SNI).
        original_port: Explicit port, or the scheme's default port.
        url: The request URL with its host replaced by ``address``.
        scheme: URL scheme, lowercased.
        pinned: False when the URL host already was a literal IP address.
    """

    address: IPv4Address
    original_host: str
    original_port: int
    url: str
    scheme: str = "http"
    pinned: bool = True

    @property
    def host_header(self) -> str:
        """Value for the ``Host`` header: ``host:port``, or empty for literal IPs."""
        if not self.pinned:
            return ""
        return f"{self.original_host}:{self.original_port}"

    @property
    def https(self) -> bool:
        return self.scheme in ("https", "wss")


def _split_url(url: str) -> Tuple[ParseResult, str, int]:
    parsed = urlparse(url)
    host = parsed.hostname
    if not host:
        raise UnresolvableHost(None, f"URL {url!r} has no host")

    try:
        port = parsed.port
    except ValueError as exc:
        raise InvalidUrl(f"invalid port in {url!r}") from exc

    if port is None:
        port = DEFAULT_PORTS.get(parsed.scheme.lower())
        if port is None:
            raise InvalidUrl(f"no port given and no default port for scheme {parsed.scheme!r}")
    return parsed, host, port


def _literal_address(host: str) -> Optional[IPv4Address]:
    try:
        address = ip_address(host)
    except ValueError:
        return None
    if isinstance(address, IPv6Address):
        raise UnresolvableHost(host, "IPv6 addresses are not supported")
    return address


def _pinned_url(parsed: ParseResult, address: IPv4Address) -> str:
    netloc = str(address)
    if parsed.port is not None:
        netloc = f"{netloc}:{parsed.port}"
    userinfo, at, _ = parsed.netloc.rpartition("@")
    if at:
        netloc = f"{userinfo}@{netloc}"
    return urlunparse(parsed._replace(netloc=netloc))


def _set_host_header(headers: MutableMapping[str, str], value: str) -> None:
    # Drop differently-cased duplicates from plain dicts
    for key in [k for k in headers if k.lower() == "host" and k != "Host"]:
        del headers[key]
    headers["Host"] = value


class PinningResolver:
    """Resolves a URL's host, checks it against a PolicyTable, pins the request.

    Only the first IPv4 address the resolver returns is considered, and it is
    looked up afresh on every call; nothing is cached between requests.

    Args:
        policy: The PolicyTable every resolved address is checked against.
        resolver: Lookup backend (defaults to SystemResolver).
    """

    def __init__(self, policy: PolicyTable, resolver: Optional[Resolver] = None):
        self.policy = policy
        self.resolver = resolver if resolver is not None else SystemResolver()

    def resolve_and_pin_sync(
        self,
        url: str,
        headers: Optional[MutableMapping[str, str]] = None,
    ) -> ResolvedTarget:
        """Resolve and check ``url``; set ``Host`` in ``headers`` if given.

        Raises:
            UnresolvableHost: No usable IPv4 address for the host.
            AddressNotAllowed: The selected address is denied by policy.
            InvalidUrl: The URL has no port and its scheme has no default.
        """
        parsed, host, port = _split_url(url)
        address = _literal_address(host)
        literal = address is not None
        if not literal:
            address = self._select(host, self._lookup(host))
        return self._pin(url, parsed, host, port, address, literal, headers)

    async def resolve_and_pin(
        self,
        url: str,
        headers: Optional[MutableMapping[str, str]] = None,
    ) -> ResolvedTarget:
        """Async version of resolve_and_pin_sync()."""
        parsed, host, port = _split_url(url)
        address = _literal_address(host)
        literal = address is not None
        if not literal:
            address = self._select(host, await self._lookup_async(host))
        return self._pin(url, parsed, host, port, address, literal, headers)

    def _lookup(self, host: str) -> Sequence[IPv4Address]:
        try:
            return self.resolver.resolve(host)
        except UnresolvableHost:
            logger.info("host_unresolvable", host=host)
            raise

    async def _lookup_async(self, host: str) -> Sequence[IPv4Address]:
        try:
            return await self.resolver.resolve_async(host)
        except UnresolvableHost:
            logger.info("host_unresolvable", host=host)
            raise

    def _select(self, host: str, addresses: Sequence[IPv4Address]) -> IPv4Address:
        if addresses:
            return addresses[0]
        logger.info("host_unresolvable", host=host)
        raise UnresolvableHost(host)

    def _pin(
        self,
        url: str,
        parsed: ParseResult,
        host: str,
        port: int,
        address: IPv4Address,
        literal: bool,
        headers: Optional[MutableMapping[str, str]],
    ) -> ResolvedTarget:
        rule = self.policy.denied_by(address)
        if rule is not None:
            logger.warning("address_not_allowed", host=host, address=str(address), rule=str(rule))
            raise AddressNotAllowed(address, host)

        target = ResolvedTarget(
            address=address,
            original_host=host,
            original_port=port,
            url=url if literal else _pinned_url(parsed, address),
            scheme=parsed.scheme.lower(),
            pinned=not literal,
        )
        if headers is not None:
            _set_host_header(headers, target.host_header)

        logger.debug("request_pinned", host=host, address=str(address), port=port, pinned=target.pinned)
        return target


def resolve_and_pin_sync(
    url: str,
    policy: PolicyTable,
    headers: Optional[MutableMapping[str, str]] = None,
    resolver: Optional[Resolver] = None,
) -> ResolvedTarget:
    """Resolve, check and pin ``url`` synchronously.

    Args:
        url: Target URL.
        policy: PolicyTable to check the resolved address against.
        headers: Optional request headers; ``Host`` is set on success.
        resolver: Optional lookup backend (defaults to SystemResolver).

    Returns:
        ResolvedTarget with the checked address and the rewritten URL.

    Raises:
        UnresolvableHost: No usable IPv4 address for the host.
        AddressNotAllowed: The selected address is denied by policy.
    """
    return PinningResolver(policy, resolver).resolve_and_pin_sync(url, headers)


async def resolve_and_pin(
    url: str,
    policy: PolicyTable,
    headers: Optional[MutableMapping[str, str]] = None,
    resolver: Optional[Resolver] = None,
) -> ResolvedTarget:
    """Async version of resolve_and_pin_sync()."""
    return await PinningResolver(policy, resolver).resolve_and_pin(url, headers)
