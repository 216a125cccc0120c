"""
Property-based tests for the redirect resolver.

HTTP is simulated with httpx.MockTransport; async code is driven with
asyncio.run inside synchronous tests.
"""

import asyncio

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

from link_shield.config import ResolverConfig
from link_shield.enums import HopType
from link_shield.models import RedirectHop
from link_shield.redirect_resolver import RedirectResolver, find_client_redirect, summarize_chain


def meta_page(target: str, equiv_first: bool = True) -> str:
    if equiv_first:
        tag = f'<meta http-equiv="refresh" content="0; url={target}">'
    else:
        tag = f"<meta content='3;URL={target}' http-equiv='Refresh'>"
    return f"<html><head>{tag}</head><body>Redirecting</body></html>"


def resolve(handler, url: str, config: ResolverConfig = None):
    async def run():
        async with RedirectResolver(config, transport=httpx.MockTransport(handler)) as resolver:
            return await resolver.resolve(url)
    return asyncio.run(run())


class TestDepthLimitProperty:
    """Property tests for the explicit depth bound."""

    @given(max_depth=st.integers(min_value=1, max_value=7))
    @settings(max_examples=10, deadline=None)
    def test_cyclic_meta_refresh_bounded(self, max_depth: int) -> None:
        """
        *For any* cyclic client-side redirect chain, resolution SHALL stop
        after the depth limit and return the last URL reached.
        """
        def handler(request: httpx.Request) -> httpx.Response:
            other = "https://b.example/" if request.url.host == "a.example" else "https://a.example/"
            return httpx.Response(200, html=meta_page(other))

        resolved = resolve(handler, "https://a.example/", ResolverConfig(max_depth=max_depth))

        assert resolved.total_redirects == max_depth
        assert len(resolved.chain) == max_depth + 1
        assert resolved.final_url == resolved.chain[-1].url
        assert resolved.error is None

    @given(
        max_depth=st.integers(min_value=1, max_value=7),
        status=st.sampled_from([301, 302, 303, 307, 308]),
    )
    @settings(max_examples=30, deadline=None)
    def test_cyclic_http_redirects_bounded(self, max_depth: int, status: int) -> None:
        """
        *For any* cyclic HTTP redirect chain, resolution SHALL record every
        hop up to the depth limit and return the last URL reached.
        """
        def handler(request: httpx.Request) -> httpx.Response:
            other = "https://b.example.net/" if request.url.host == "a.example.com" else "https://a.example.com/"
            return httpx.Response(status, headers={"Location": other})

        resolved = resolve(handler, "https://a.example.com/", ResolverConfig(max_depth=max_depth))

        assert len(resolved.chain) - 1 == resolved.total_redirects == max_depth
        assert resolved.final_url == resolved.chain[-1].url
        assert resolved.error is None
        assert all(hop.hop_type == HopType.HTTP and hop.status_code == status for hop in resolved.chain[1:])
        assert resolved.cross_domain_hop_count == 1
        assert resolved.is_suspicious_redirect == (max_depth >= 4)

    def test_long_http_chain_stops_at_seven(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(302, headers={"Location": f"https://hop{len(calls)}.example/"})

        resolved = resolve(handler, "https://start.example/")

        assert len(calls) == 7
        assert len(resolved.chain) - 1 == 7
        assert resolved.final_url == "https://hop7.example/"
        assert resolved.is_suspicious_redirect

    def test_default_depth_is_seven(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, html=meta_page(f"/step{len(calls)}"))

        resolved = resolve(handler, "https://loop.example/")

        assert resolved.total_redirects == 7
        assert len(calls) == 7
        assert resolved.final_url == "https://loop.example/step7"
        assert all(hop.hop_type == HopType.CLIENT_SIDE for hop in resolved.chain[1:])


class TestHopRecordingProperty:
    """Hop types and order."""

    def test_no_redirect(self) -> None:
        resolved = resolve(lambda request: httpx.Response(200, html="<p>hi</p>"), "example.com")

        assert resolved.final_url == "https://example.com/"
        assert resolved.total_redirects == 0
        assert [hop.hop_type for hop in resolved.chain] == [HopType.ORIGIN]
        assert not resolved.is_suspicious_redirect

    def test_http_redirect_then_meta_refresh(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "short.example":
                return httpx.Response(302, headers={"Location": "https://landing.example/start"})
            if request.url.host == "landing.example":
                return httpx.Response(200, html=meta_page("https://final.example/login", equiv_first=False))
            return httpx.Response(200, html="<p>login</p>")

        resolved = resolve(handler, "https://short.example/abc")

        assert [hop.hop_type for hop in resolved.chain] == [HopType.ORIGIN, HopType.HTTP, HopType.CLIENT_SIDE]
        assert resolved.chain[1].status_code == 302
        assert resolved.chain[1].url == "https://landing.example/start"
        assert resolved.final_url == "https://final.example/login"
        assert resolved.cross_domain_hop_count == 2
        assert resolved.is_suspicious_redirect

    def test_script_redirect_relative_target(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/":
                return httpx.Response(200, html="<script>window.location.href = '/next';</script>")
            return httpx.Response(200, html="<p>done</p>")

        resolved = resolve(handler, "https://site.example/")

        assert resolved.final_url == "https://site.example/next"
        assert resolved.cross_domain_hop_count == 0

    def test_network_failure_returns_url_reached(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "first.example":
                return httpx.Response(200, html=meta_page("https://down.example/"))
            raise httpx.ConnectError("connection refused", request=request)

        resolved = resolve(handler, "https://first.example/")

        assert resolved.final_url == "https://down.example/"
        assert resolved.error == "ConnectError"

    def test_failure_mid_http_chain_keeps_hops(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "a.example.com":
                return httpx.Response(301, headers={"Location": "https://b.example.org/next"})
            if request.url.host == "b.example.org":
                return httpx.Response(302, headers={"Location": "https://c.evil.xyz/login"})
            raise httpx.ConnectError("connection refused", request=request)

        resolved = resolve(handler, "https://a.example.com/")

        assert resolved.final_url == "https://c.evil.xyz/login"
        assert [hop.status_code for hop in resolved.chain[1:]] == [301, 302]
        assert resolved.cross_domain_hop_count == 2
        assert resolved.is_suspicious_redirect
        assert resolved.error == "ConnectError"

    def test_relative_location_resolved(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/":
                return httpx.Response(307, headers={"Location": "/landing"})
            return httpx.Response(200, html="<p>done</p>")

        resolved = resolve(handler, "https://site.example/")

        assert resolved.final_url == "https://site.example/landing"
        assert resolved.chain[1].status_code == 307

    def test_invalid_url_never_fetched(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        resolved = resolve(handler, "")

        assert calls == []
        assert resolved.error == "invalid_url"
        assert resolved.chain == []


class TestClientRedirectDetectionProperty:
    """Property tests for body scanning."""

    @given(
        path=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=20),
        equiv_first=st.booleans(),
    )
    @settings(max_examples=100)
    def test_meta_refresh_both_attribute_orders(self, path: str, equiv_first: bool) -> None:
        """*For any* meta refresh tag in either attribute order, the target SHALL be found."""
        target = f"https://dest.example/{path}"

        assert find_client_redirect(meta_page(target, equiv_first), "https://src.example/") == target

    def test_location_replace(self) -> None:
        body = "<script>location.replace('https://evil.example/x')</script>"

        assert find_client_redirect(body, "https://src.example/") == "https://evil.example/x"

    def test_non_http_targets_ignored(self) -> None:
        body = "<script>window.location = 'javascript:alert(1)'</script>"

        assert find_client_redirect(body, "https://src.example/") is None

    def test_plain_page_has_no_redirect(self) -> None:
        assert find_client_redirect("<p>Hello</p>", "https://src.example/") is None
        assert find_client_redirect("", "https://src.example/") is None


class TestChainSummaryProperty:
    """Property tests for aggregate chain analysis."""

    @given(hosts=st.lists(st.sampled_from(["a.example", "b.example", "c.example"]), min_size=1, max_size=8))
    @settings(max_examples=100)
    def test_summary_counts(self, hosts: list[str]) -> None:
        """
        *For any* chain, cross-domain hops SHALL be distinct hosts minus one
        and the chain SHALL be suspicious iff that is at least 2 or it has
        more than 4 hops.
        """
        chain = [
            RedirectHop(url=f"https://{host}/{i}", domain=host, hop_type=HopType.ORIGIN if i == 0 else HopType.HTTP)
            for i, host in enumerate(hosts)
        ]

        resolved = summarize_chain(chain[0].url, chain)

        assert resolved.cross_domain_hop_count == len(set(hosts)) - 1
        assert resolved.total_redirects == len(hosts) - 1
        assert resolved.final_url == chain[-1].url
        assert resolved.is_suspicious_redirect == (len(set(hosts)) - 1 >= 2 or len(hosts) > 4)
