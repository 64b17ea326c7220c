"""
DNS-pinning adapter for aiohttp.

Usage:
    from restrict_ip.adapters import safe_aiohttp_session

    async with safe_aiohttp_session() as session:
        async with session.get(user_url) as response:
            body = await response.text()
"""

from typing import Any, Optional
import socket
import warnings

from aiohttp import ClientSession, TCPConnector

from restrict_ip._pinning import PinningResolver
from restrict_ip._policy import PUBLIC_ONLY, PolicyTable
from restrict_ip._resolver import Resolver


class PinningConnector(TCPConnector):
    """aiohttp connector that resolves hosts through PinningResolver.

    The connector asks PinningResolver for the address of every host it is
    about to connect to, so the socket is opened to the checked address.
    aiohttp keeps using the hostname for the Host header and TLS.
    """

    def __init__(
        self,
        policy: PolicyTable = PUBLIC_ONLY,
        resolver: Optional[Resolver] = None,
        **kwargs,
    ):
        self.pinning = PinningResolver(policy, resolver)
        super().__init__(**kwargs)

    async def _resolve_host(
        self,
        host: str,
        port: int,
        traces: Optional[Any] = None,
    ) -> list:
        """Override DNS resolution with the checked address."""
        netloc = f"[{host}]" if ":" in host else host
        target = await self.pinning.resolve_and_pin(f"http://{netloc}:{port}/")

        # The checked address is the only candidate aiohttp may connect to
        return [
            {
                "hostname": host,
                "host": str(target.address),
                "port": port,
                "family": socket.AF_INET,
                "proto": 0,
                "flags": socket.AI_NUMERICHOST,
            }
        ]


def safe_aiohttp_session(
    policy: PolicyTable = PUBLIC_ONLY,
    resolver: Optional[Resolver] = None,
    **kwargs,
) -> ClientSession:
    """Create an aiohttp.ClientSession with DNS pinning.

    Every connection made through this session goes to an address that was
    resolved once and checked against ``policy``.

    Args:
        policy: PolicyTable to check addresses against (default PUBLIC_ONLY)
        resolver: Optional lookup backend
        **kwargs: Additional arguments passed to aiohttp.ClientSession

    Returns:
        A configured aiohttp.ClientSession

    Example:
        >>> async with safe_aiohttp_session() as session:
        ...     async with session.get("https://example.com/api") as response:
        ...         body = await response.text()
    """
    connector = kwargs.pop("connector", None)
    if connector is not None:
        warnings.warn(
            "Custom connector provided and will be ignored. "
            "Use PinningConnector for DNS pinning.",
            UserWarning,
        )

    connector = PinningConnector(policy=policy, resolver=resolver)
    return ClientSession(connector=connector, **kwargs)
