"""
DNS-pinning adapter for requests.

Usage:
    from restrict_ip.adapters import safe_session

    s = safe_session()
    response = s.get(user_url)  # checked and pinned
"""

from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from restrict_ip._pinning import PinningResolver
from restrict_ip._policy import PUBLIC_ONLY, PolicyTable
from restrict_ip._resolver import Resolver


class PinningAdapter(HTTPAdapter):
    """requests HTTPAdapter that resolves and checks every request before sending.

    HTTP vs HTTPS:
        - HTTP: Full protection. The URL host is replaced by the checked
          address and ``Host`` carries ``hostname:port``.
        - HTTPS: The address is checked, but the URL keeps its hostname so
          certificate verification works. urllib3 resolves again when it
          connects.

    For pinned HTTPS use safe_httpx_client() instead.
    """

    def __init__(
        self,
        policy: PolicyTable = PUBLIC_ONLY,
        resolver: Optional[Resolver] = None,
        **kwargs,
    ):
        self.pinning = PinningResolver(policy, resolver)
        super().__init__(**kwargs)

    def send(self, request: requests.PreparedRequest, **kwargs) -> requests.Response:
        """Check and pin the URL before sending the request.

        The pinned URL and ``Host`` go on a copy. Session.resolve_redirects
        builds the next hop from the caller's request and ``response.url``,
        so both keep the original hostname and every hop is pinned afresh.
        """
        if not request.url:
            return super().send(request, **kwargs)

        # Raises on unresolvable or denied hosts
        target = self.pinning.resolve_and_pin_sync(request.url)
        if not target.pinned or target.https:
            return super().send(request, **kwargs)

        pinned = request.copy()
        pinned.headers["Host"] = target.host_header
        pinned.url = target.url

        response = super().send(pinned, **kwargs)
        response.url = request.url
        return response


def safe_session(
    policy: PolicyTable = PUBLIC_ONLY,
    max_retries: int = 3,
    resolver: Optional[Resolver] = None,
) -> requests.Session:
    """Create a requests.Session with DNS pinning.

    All HTTP and HTTPS requests made through this session are checked
    against ``policy`` before being sent. Plain HTTP connections are pinned
    to the checked address.

    Args:
        policy: PolicyTable to check addresses against (default PUBLIC_ONLY)
        max_retries: Transport-level retries for failed connections
        resolver: Optional lookup backend

    Returns:
        A configured requests.Session

    Example:
        >>> s = safe_session()
        >>> response = s.get("https://example.com/api")
        >>> # This would raise AddressNotAllowed:
        >>> # s.get("http://169.254.169.254/")
    """
    session = requests.Session()

    adapter = PinningAdapter(policy=policy, resolver=resolver, max_retries=Retry(total=max_retries))
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session
