"""
Redirect resolver: follows a link to its final destination.

Every hop issues a single GET with transport-level redirects disabled.
An HTTP redirect is taken from the Location header; any other response
body is scanned for a client-side redirect (meta refresh, script location
assignment). HTTP and client-side hops share one explicit depth counter.
Resolution never raises: a failing hop ends resolution at the URL reached
so far.
"""

import html
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

import httpx

from .audit_logger import AuditLogger
from .config import ResolverConfig
from .enums import HopType, LogLevel
from .models import RedirectHop, ResolvedURL
from .url_parser import parse_url

META_REFRESH_PATTERNS = (
    # http-equiv before content
    re.compile(
        r"<meta\b[^>]*?http-equiv\s*=\s*[\"']?refresh[\"']?[^>]*?"
        r"content\s*=\s*[\"']?\s*\d*(?:\.\d+)?\s*[;,]?\s*url\s*=\s*[\"']?([^\"'>\s]+)",
        re.IGNORECASE,
    ),
    # content before http-equiv
    re.compile(
        r"<meta\b[^>]*?content\s*=\s*[\"']?\s*\d*(?:\.\d+)?\s*[;,]?\s*url\s*=\s*[\"']?([^\"'>\s]+)"
        r"[^>]*?http-equiv\s*=\s*[\"']?refresh",
        re.IGNORECASE,
    ),
)

SCRIPT_REDIRECT_PATTERNS = (
    re.compile(
        r"(?:(?:window|self|top|document)\.)?location(?:\.href)?\s*=\s*[\"']([^\"']+)[\"']",
    ),
    re.compile(
        r"(?:(?:window|self|top|document)\.)?location\.(?:replace|assign)\(\s*[\"']([^\"']+)[\"']\s*\)",
    ),
)

REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})

SUSPICIOUS_CROSS_DOMAIN_HOPS = 2
SUSPICIOUS_CHAIN_LENGTH = 4


def find_client_redirect(body: str, base_url: str) -> Optional[str]:
    """
    Scan an HTML body for a client-side redirect.

    Meta refresh wins over script-based redirects. Relative targets are
    resolved against ``base_url``. Only http(s) targets are returned.
    """
    if not body:
        return None

    for pattern in META_REFRESH_PATTERNS + SCRIPT_REDIRECT_PATTERNS:
        match = pattern.search(body)
        if not match:
            continue
        target = urljoin(base_url, html.unescape(match.group(1).strip()))
        if urlsplit(target).scheme in ("http", "https"):
            return target
    return None


def summarize_chain(original_url: str, chain: list[RedirectHop], error: Optional[str] = None) -> ResolvedURL:
    """Build the aggregate view of a hop chain."""
    hostnames = {hop.domain for hop in chain if hop.domain}
    cross_domain = max(0, len(hostnames) - 1)
    final_url = chain[-1].url if chain else original_url
    return ResolvedURL(
        original_url=original_url,
        final_url=final_url,
        chain=chain,
        cross_domain_hop_count=cross_domain,
        is_suspicious_redirect=(
            cross_domain >= SUSPICIOUS_CROSS_DOMAIN_HOPS or len(chain) > SUSPICIOUS_CHAIN_LENGTH
        ),
        total_redirects=max(0, len(chain) - 1),
        error=error,
    )


def _hostname(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


class RedirectResolver:
    """
    Async redirect follower.

    The HTTP client is created lazily and reused; use the resolver as an
    async context manager or call close() when done.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            config: Resolver settings (depth limit, timeouts, User-Agent)
            transport: Optional httpx transport, e.g. a MockTransport in tests
            logger: Optional audit logger
        """
        self._config = config or ResolverConfig()
        self._transport = transport
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "RedirectResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def max_depth(self) -> int:
        return self._config.max_depth

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                follow_redirects=False,
                timeout=httpx.Timeout(
                    self._config.read_timeout_seconds,
                    connect=self._config.connect_timeout_seconds,
                ),
                headers={
                    "User-Agent": self._config.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                },
            )
        return self._client

    async def resolve(self, url: str) -> ResolvedURL:
        """
        Follow a URL through HTTP and client-side redirects.

        Each hop is recorded before the next request is issued, so a cycle
        or a failing hop still reports the chain reached so far.

        Returns:
            ResolvedURL whose chain starts with the origin hop. At most
            ``max_depth`` hops follow the origin.
        """
        candidate = parse_url(url)
        if not candidate.valid:
            return summarize_chain(url, [], error="invalid_url")

        current = candidate.href
        chain = [RedirectHop(url=current, domain=candidate.host, hop_type=HopType.ORIGIN)]
        depth = 0
        error: Optional[str] = None

        while depth < self.max_depth:
            try:
                status_code, location, body = await self._fetch(current)
            except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, ValueError) as e:
                error = type(e).__name__
                self._log_error("Redirect resolution aborted", e, current)
                break

            if location is not None:
                target = urljoin(current, location)
                if urlsplit(target).scheme not in ("http", "https"):
                    break
                chain.append(RedirectHop(
                    url=target,
                    domain=_hostname(target),
                    hop_type=HopType.HTTP,
                    status_code=status_code,
                ))
                current = target
                depth += 1
                continue

            target = find_client_redirect(body, current)
            if target is None or target == current:
                break

            chain.append(RedirectHop(url=target, domain=_hostname(target), hop_type=HopType.CLIENT_SIDE))
            current = target
            depth += 1

        if depth >= self.max_depth:
            self._log(
                LogLevel.WARN,
                "Redirect depth limit reached",
                {"url": url, "max_depth": self.max_depth},
            )

        resolved = summarize_chain(chain[0].url, chain, error)
        self._log(
            LogLevel.DEBUG,
            "Resolved redirect chain",
            {
                "original_url": resolved.original_url,
                "final_url": resolved.final_url,
                "total_redirects": resolved.total_redirects,
                "cross_domain_hop_count": resolved.cross_domain_hop_count,
            },
        )
        return resolved

    async def _fetch(self, url: str) -> tuple[int, Optional[str], str]:
        """
        GET a single URL without following redirects.

        Returns:
            (status_code, redirect_location, body_text). The location is
            None unless the response is an HTTP redirect, in which case the
            body is not read.
        """
        client = self._get_client()
        limit = self._config.max_body_bytes

        async with client.stream("GET", url) as response:
            location = response.headers.get("location")
            if response.status_code in REDIRECT_STATUS_CODES and location:
                return response.status_code, location.strip(), ""

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) >= limit:
                    break
            try:
                text = bytes(body[:limit]).decode(response.encoding or "utf-8", errors="replace")
            except LookupError:
                text = bytes(body[:limit]).decode("utf-8", errors="replace")
            return response.status_code, None, text


    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, "RedirectResolver", message, data)

    def _log_error(self, message: str, error: Exception, url: str) -> None:
        if self._logger:
            self._logger.log_error("RedirectResolver", message, error=error, request_url=url)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
