"""
DNS-pinning adapter for httpx.

Usage:
    from restrict_ip.adapters import safe_httpx_client, safe_httpx_async_client

    # Sync
    client = safe_httpx_client()
    response = client.get(user_url)

    # Async
    async with safe_httpx_async_client() as client:
        response = await client.get(user_url)
"""

from typing import Optional

import httpx

from restrict_ip._pinning import PinningResolver, ResolvedTarget
from restrict_ip._policy import PUBLIC_ONLY, PolicyTable
from restrict_ip._resolver import Resolver


def _pinned_request(request: httpx.Request, target: ResolvedTarget) -> httpx.Request:
    """Point ``request`` at the checked address, keeping Host and SNI on the hostname."""
    if not target.pinned:
        return request

    extensions = dict(request.extensions)
    if target.https:
        extensions["sni_hostname"] = target.original_host

    headers = request.headers.copy()
    headers["Host"] = target.host_header

    return httpx.Request(
        method=request.method,
        url=request.url.copy_with(host=str(target.address)),
        headers=headers,
        stream=request.stream,
        extensions=extensions,
    )


class PinningTransport(httpx.BaseTransport):
    """httpx transport that resolves, checks and pins every request.

    Wraps an inner transport (an ``httpx.HTTPTransport`` built from
    ``kwargs`` unless one is passed in) and hands it the rewritten request.
    """

    def __init__(
        self,
        policy: PolicyTable = PUBLIC_ONLY,
        resolver: Optional[Resolver] = None,
        transport: Optional[httpx.BaseTransport] = None,
        **kwargs,
    ):
        self.pinning = PinningResolver(policy, resolver)
        self._transport = transport if transport is not None else httpx.HTTPTransport(**kwargs)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        target = self.pinning.resolve_and_pin_sync(str(request.url))
        return self._transport.handle_request(_pinned_request(request, target))

    def close(self) -> None:
        self._transport.close()


class AsyncPinningTransport(httpx.AsyncBaseTransport):
    """Async httpx transport that resolves, checks and pins every request."""

    def __init__(
        self,
        policy: PolicyTable = PUBLIC_ONLY,
        resolver: Optional[Resolver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ):
        self.pinning = PinningResolver(policy, resolver)
        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport(**kwargs)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        target = await self.pinning.resolve_and_pin(str(request.url))
        return await self._transport.handle_async_request(_pinned_request(request, target))

    async def aclose(self) -> None:
        await self._transport.aclose()


def safe_httpx_client(
    policy: PolicyTable = PUBLIC_ONLY,
    resolver: Optional[Resolver] = None,
    **kwargs,
) -> httpx.Client:
    """Create an httpx.Client with DNS pinning.

    Every request made through this client is checked against ``policy``
    and connects to the checked address, for HTTP and HTTPS alike.

    Args:
        policy: PolicyTable to check addresses against (default PUBLIC_ONLY)
        resolver: Optional lookup backend
        **kwargs: Additional arguments passed to httpx.Client

    Returns:
        A configured httpx.Client

    Example:
        >>> client = safe_httpx_client()
        >>> response = client.get("https://example.com/api")
    """
    transport = PinningTransport(policy=policy, resolver=resolver)
    return httpx.Client(transport=transport, **kwargs)


def safe_httpx_async_client(
    policy: PolicyTable = PUBLIC_ONLY,
    resolver: Optional[Resolver] = None,
    **kwargs,
) -> httpx.AsyncClient:
    """Create an httpx.AsyncClient with DNS pinning.

    Example:
        >>> async with safe_httpx_async_client() as client:
        ...     response = await client.get("https://example.com/api")
    """
    transport = AsyncPinningTransport(policy=policy, resolver=resolver)
    return httpx.AsyncClient(transport=transport, **kwargs)
