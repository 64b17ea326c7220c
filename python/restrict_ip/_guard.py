"""
Request-pipeline filter.

``GuardMiddleware`` sits in front of the next stage of an HTTP client
pipeline. The request travels as a mutable environment mapping holding at
least ``url``; ``request_headers`` is created if missing.

Example:
    >>> def send(env):
    ...     return transport.request(env["url"], headers=env["request_headers"])
    >>> guarded = GuardMiddleware(send, {"deny_reserved_ranges": True})
    >>> guarded({"url": "http://example.com/hook"})
"""

import inspect
from typing import Any, Callable, Mapping, MutableMapping, Optional, Union

from ._pinning import PinningResolver
from ._policy import PolicyConfig, PolicyTable
from ._resolver import Resolver

__all__ = ["GuardMiddleware"]

Env = MutableMapping[str, Any]


class GuardMiddleware:
    """Pins every request passing through to a policy-checked address.

    Args:
        app: Next pipeline stage, called with the rewritten environment.
        config: PolicyConfig, a mapping of configuration keys, or None to
            allow every address.
        resolver: Optional lookup backend (defaults to SystemResolver).

    On failure the error propagates and ``app`` is never called.
    """

    def __init__(
        self,
        app: Callable[[Env], Any],
        config: Union[PolicyConfig, Mapping[str, Any], None] = None,
        resolver: Optional[Resolver] = None,
    ):
        if config is not None and not isinstance(config, PolicyConfig):
            config = PolicyConfig.model_validate(dict(config))
        self.app = app
        self.policy = PolicyTable(config)
        self.pinning = PinningResolver(self.policy, resolver)

    def _prepare(self, env: Env) -> MutableMapping[str, str]:
        headers = env.get("request_headers")
        if headers is None:
            headers = env["request_headers"] = {}
        return headers

    def __call__(self, env: Env) -> Any:
        headers = self._prepare(env)
        target = self.pinning.resolve_and_pin_sync(str(env["url"]), headers)
        env["url"] = target.url
        return self.app(env)

    async def call_async(self, env: Env) -> Any:
        """Async pipeline variant; ``app`` may return an awaitable."""
        headers = self._prepare(env)
        target = await self.pinning.resolve_and_pin(str(env["url"]), headers)
        env["url"] = target.url
        result = self.app(env)
        if inspect.isawaitable(result):
            result = await result
        return result
