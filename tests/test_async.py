"""
Async tests for resolution and pinning.

Run with: pytest tests/test_async.py
"""

import asyncio
import socket
from ipaddress import IPv4Address

import pytest

from restrict_ip import (
    ALLOW_ALL,
    AddressNotAllowed,
    GuardMiddleware,
    PinningResolver,
    PolicyTable,
    SystemResolver,
    UnresolvableHost,
    resolve_and_pin,
)


class TestResolveAndPinAsync:
    """Tests for the async resolve_and_pin."""

    @pytest.mark.asyncio
    async def test_rewrites_hostname(self, fake_resolver):
        headers = {}
        target = await resolve_and_pin(
            "http://test.com/ipn/endpoint", ALLOW_ALL, headers, resolver=fake_resolver("169.254.169.254")
        )
        assert target.url == "http://169.254.169.254/ipn/endpoint"
        assert headers["Host"] == "test.com:80"

    @pytest.mark.asyncio
    async def test_literal_ip(self, fake_resolver):
        headers = {}
        target = await PinningResolver(ALLOW_ALL, fake_resolver()).resolve_and_pin(
            "http://169.254.169.254:1999/ipn/endpoint", headers
        )
        assert target.url == "http://169.254.169.254:1999/ipn/endpoint"
        assert headers["Host"] == ""

    @pytest.mark.asyncio
    async def test_denied(self, fake_resolver):
        policy = PolicyTable.from_options(deny_private_ranges=True)
        with pytest.raises(AddressNotAllowed):
            await resolve_and_pin("http://test.com/", policy, resolver=fake_resolver("10.0.0.252"))

    @pytest.mark.asyncio
    async def test_unresolvable(self, fake_resolver):
        with pytest.raises(UnresolvableHost):
            await resolve_and_pin("http://nonexistant.com/", ALLOW_ALL, resolver=fake_resolver())


class TestSystemResolverAsync:
    """Tests for SystemResolver.resolve_async with a stubbed lookup."""

    @pytest.mark.asyncio
    async def test_filters_reply(self, monkeypatch):
        def fake_getaddrinfo(host, port, family=0, type=0, proto=0, flags=0):
            return [
                (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("2001:db8::1", 0, 0, 0)),
                (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("93.184.215.14", 0)),
            ]

        monkeypatch.setattr(socket, "getaddrinfo", fake_getaddrinfo)
        result = await SystemResolver().resolve_async("test.com")
        assert result == [IPv4Address("93.184.215.14")]

    @pytest.mark.asyncio
    async def test_timeout(self, monkeypatch):
        """A hung lookup becomes UnresolvableHost once the timeout passes."""
        async def hung_getaddrinfo(*args, **kwargs):
            await asyncio.sleep(10)

        monkeypatch.setattr(asyncio.get_running_loop(), "getaddrinfo", hung_getaddrinfo)
        with pytest.raises(UnresolvableHost) as exc_info:
            await SystemResolver(timeout=0.01).resolve_async("slow.example")
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_lookup_failure(self, monkeypatch):
        async def failing_getaddrinfo(*args, **kwargs):
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

        monkeypatch.setattr(asyncio.get_running_loop(), "getaddrinfo", failing_getaddrinfo)
        with pytest.raises(UnresolvableHost):
            await SystemResolver().resolve_async("nonexistant.com")


class TestGuardMiddlewareAsync:
    """Tests for GuardMiddleware.call_async."""

    @pytest.mark.asyncio
    async def test_awaits_next_stage(self, fake_resolver):
        async def send(env):
            return env["url"], env["request_headers"]["Host"]

        guard = GuardMiddleware(send, resolver=fake_resolver("5.5.5.5"))
        assert await guard.call_async({"url": "http://test.com:1999/x"}) == ("http://5.5.5.5:1999/x", "test.com:1999")

    @pytest.mark.asyncio
    async def test_plain_next_stage(self, fake_resolver):
        guard = GuardMiddleware(lambda env: env, resolver=fake_resolver("5.5.5.5"))
        env = await guard.call_async({"url": "http://test.com/"})
        assert env["url"] == "http://5.5.5.5/"

    @pytest.mark.asyncio
    async def test_awaits_future_from_next_stage(self, fake_resolver):
        """Any awaitable result is awaited, not only coroutines."""
        def send(env):
            future = asyncio.get_running_loop().create_future()
            future.set_result(env["url"])
            return future

        guard = GuardMiddleware(send, resolver=fake_resolver("5.5.5.5"))
        assert await guard.call_async({"url": "http://test.com/"}) == "http://5.5.5.5/"
