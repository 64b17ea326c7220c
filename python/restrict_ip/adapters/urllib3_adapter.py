"""
DNS-pinning adapter for urllib3.

Usage:
    from restrict_ip.adapters import safe_urllib3_pool

    pool = safe_urllib3_pool()
    response = pool.request("GET", "https://example.com/api")
    print(response.data)
"""

from typing import Optional
from urllib.parse import urljoin

from urllib3.exceptions import MaxRetryError
from urllib3.poolmanager import PoolManager
from urllib3.util import parse_url
from urllib3.util.retry import Retry

from restrict_ip._pinning import PinningResolver
from restrict_ip._policy import PUBLIC_ONLY, PolicyTable
from restrict_ip._resolver import Resolver


class SafePoolManager(PoolManager):
    """urllib3 PoolManager that resolves and checks every request.

    HTTP vs HTTPS:
        - HTTP: Full protection. Requests go to the checked address with
          ``Host: hostname:port``.
        - HTTPS: The address is checked, but the hostname is kept for
          certificate verification and is resolved again at connect time.

    Every redirect hop comes back through urlopen() and is checked again.
    Redirects from a pinned hop are followed here, from the original URL,
    so the pinned address and ``Host`` do not leak into the next hop.
    """

    def __init__(
        self,
        policy: PolicyTable = PUBLIC_ONLY,
        resolver: Optional[Resolver] = None,
        **kwargs,
    ):
        self.pinning = PinningResolver(policy, resolver)
        super().__init__(**kwargs)

    def urlopen(
        self,
        method: str,
        url: str,
        redirect: bool = True,
        **kwargs,
    ):
        """Check the URL and pin it before making the request."""
        target = self.pinning.resolve_and_pin_sync(url)

        if not target.pinned or target.https:
            return super().urlopen(method, url, redirect=redirect, **kwargs)

        headers = kwargs.get("headers")
        headers = dict(headers) if headers else dict(self.headers)
        for key in [k for k in headers if k.lower() == "host"]:
            del headers[key]
        headers["Host"] = target.host_header

        response = super().urlopen(method, target.url, redirect=False, **{**kwargs, "headers": headers})

        location = redirect and response.get_redirect_location()
        if not location:
            return response
        return self._follow_redirect(method, url, target, response, location, **kwargs)

    def _follow_redirect(self, method, url, target, response, location, **kwargs):
        """Redirect from a pinned hop using the caller's URL and headers.

        Mirrors PoolManager.urlopen, except that the next hop is resolved
        against the original hostname and never sees the pinned ``Host``.
        """
        location = urljoin(url, location)

        if response.status == 303:
            method = "GET"
            kwargs["body"] = None

        retries = kwargs.get("retries")
        if not isinstance(retries, Retry):
            retries = Retry.from_int(retries, redirect=True)

        if retries.remove_headers_on_redirect and parse_url(location).host != target.original_host:
            headers = kwargs.get("headers")
            if headers:
                kwargs["headers"] = {
                    k: v for k, v in headers.items() if k.lower() not in retries.remove_headers_on_redirect
                }

        try:
            retries = retries.increment(method, url, response=response)
        except MaxRetryError:
            if retries.raise_on_redirect:
                response.drain_conn()
                raise
            return response

        kwargs["retries"] = retries
        response.drain_conn()
        return self.urlopen(method, location, redirect=True, **kwargs)


def safe_urllib3_pool(
    policy: PolicyTable = PUBLIC_ONLY,
    resolver: Optional[Resolver] = None,
    **kwargs,
) -> SafePoolManager:
    """Create a urllib3.PoolManager with DNS pinning.

    Args:
        policy: PolicyTable to check addresses against (default PUBLIC_ONLY)
        resolver: Optional lookup backend
        **kwargs: Additional arguments passed to urllib3.PoolManager

    Returns:
        A configured SafePoolManager

    Example:
        >>> pool = safe_urllib3_pool()
        >>> response = pool.request("GET", "https://example.com/api")
        >>> print(response.status)
    """
    return SafePoolManager(policy=policy, resolver=resolver, **kwargs)
