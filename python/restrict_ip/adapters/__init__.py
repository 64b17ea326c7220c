"""
restrict_ip HTTP Client Adapters

DNS-pinning adapters for popular Python HTTP clients.

HTTPS Note:
    The httpx and aiohttp adapters pin HTTPS connections too: the socket goes
    to the checked address while TLS still verifies the original hostname.
    The requests and urllib3 adapters check HTTPS targets but keep the
    hostname in the URL, since rewriting it would break certificate
    verification. The address is checked, but the connection re-resolves.

    For user-provided HTTPS URLs prefer safe_httpx_client() or
    safe_aiohttp_session().

Usage:
    # requests
    from restrict_ip.adapters import safe_session
    s = safe_session()
    response = s.get(user_url)

    # httpx
    from restrict_ip.adapters import safe_httpx_client
    client = safe_httpx_client()
    response = client.get(user_url)

    # httpx async
    from restrict_ip.adapters import safe_httpx_async_client
    async with safe_httpx_async_client() as client:
        response = await client.get(user_url)

    # aiohttp
    from restrict_ip.adapters import safe_aiohttp_session
    async with safe_aiohttp_session() as session:
        async with session.get(user_url) as response:
            body = await response.text()

    # urllib3
    from restrict_ip.adapters import safe_urllib3_pool
    pool = safe_urllib3_pool()
    response = pool.request("GET", user_url)

Every factory takes a PolicyTable (default: PUBLIC_ONLY) and an optional
resolver.
"""

from restrict_ip._policy import PUBLIC_ONLY, PolicyTable

# Lazy imports to avoid requiring all client libraries
__all__ = [
    "PolicyTable",
    "PUBLIC_ONLY",
    "safe_session",
    "safe_httpx_client",
    "safe_httpx_async_client",
    "safe_aiohttp_session",
    "safe_urllib3_pool",
]


def safe_session(policy: PolicyTable = PUBLIC_ONLY, **kwargs):
    """Create a requests.Session with DNS pinning.

    Requires: pip install restrict_ip[requests]
    """
    from .requests_adapter import safe_session as _safe_session
    return _safe_session(policy, **kwargs)


def safe_httpx_client(policy: PolicyTable = PUBLIC_ONLY, **kwargs):
    """Create an httpx.Client with DNS pinning.

    Requires: pip install restrict_ip[httpx]
    """
    from .httpx_adapter import safe_httpx_client as _safe_httpx_client
    return _safe_httpx_client(policy, **kwargs)


def safe_httpx_async_client(policy: PolicyTable = PUBLIC_ONLY, **kwargs):
    """Create an httpx.AsyncClient with DNS pinning.

    Requires: pip install restrict_ip[httpx]
    """
    from .httpx_adapter import safe_httpx_async_client as _safe_httpx_async_client
    return _safe_httpx_async_client(policy, **kwargs)


def safe_aiohttp_session(policy: PolicyTable = PUBLIC_ONLY, **kwargs):
    """Create an aiohttp.ClientSession with DNS pinning.

    Requires: pip install restrict_ip[aiohttp]
    """
    from .aiohttp_adapter import safe_aiohttp_session as _safe_aiohttp_session
    return _safe_aiohttp_session(policy, **kwargs)


def safe_urllib3_pool(policy: PolicyTable = PUBLIC_ONLY, **kwargs):
    """Create a urllib3.PoolManager with DNS pinning.

    Requires: pip install restrict_ip[urllib3]
    """
    from .urllib3_adapter import safe_urllib3_pool as _safe_urllib3_pool
    return _safe_urllib3_pool(policy, **kwargs)
